"""create routes, requests, queries and operations tables

Revision ID: 001
Revises: 
Create Date: 2025-08-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the producer-side sample tables."""
    op.create_table(
        'pulse_routes',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('method', sa.String(length=10), nullable=False),
        sa.Column('path', sa.String(length=500), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('method', 'path', name='uq_pulse_routes_method_path')
    )

    op.create_table(
        'pulse_requests',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('route_id', sa.Integer(), nullable=False),
        sa.Column('duration', sa.Float(), nullable=False),
        sa.Column('status', sa.Integer(), nullable=False),
        sa.Column('is_error', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('request_uuid', sa.String(length=36), nullable=False),
        sa.Column('controller_action', sa.String(length=255), nullable=True),
        sa.Column('occurred_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['route_id'], ['pulse_routes.id']),
        sa.UniqueConstraint('request_uuid')
    )
    op.create_index('ix_pulse_requests_occurred_at', 'pulse_requests', ['occurred_at'])
    op.create_index('ix_pulse_requests_route_id_occurred_at', 'pulse_requests', ['route_id', 'occurred_at'])

    op.create_table(
        'pulse_queries',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('normalized_sql', sa.String(length=1000), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('normalized_sql')
    )

    op.create_table(
        'pulse_operations',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('request_id', sa.Integer(), nullable=False),
        sa.Column('query_id', sa.Integer(), nullable=True),
        sa.Column('operation_type', sa.String(length=50), nullable=False),
        sa.Column('label', sa.String(), nullable=False),
        sa.Column('duration', sa.Float(), nullable=False),
        sa.Column('codebase_location', sa.String(length=500), nullable=True),
        sa.Column('start_time', sa.Float(), nullable=False, server_default='0'),
        sa.Column('occurred_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['request_id'], ['pulse_requests.id']),
        sa.ForeignKeyConstraint(['query_id'], ['pulse_queries.id'])
    )
    op.create_index('ix_pulse_operations_occurred_at', 'pulse_operations', ['occurred_at'])
    op.create_index('ix_pulse_operations_query_id_occurred_at', 'pulse_operations', ['query_id', 'occurred_at'])
    op.create_index('ix_pulse_operations_operation_type', 'pulse_operations', ['operation_type'])


def downgrade() -> None:
    """Drop the sample tables."""
    op.drop_index('ix_pulse_operations_operation_type', table_name='pulse_operations')
    op.drop_index('ix_pulse_operations_query_id_occurred_at', table_name='pulse_operations')
    op.drop_index('ix_pulse_operations_occurred_at', table_name='pulse_operations')
    op.drop_table('pulse_operations')
    op.drop_table('pulse_queries')
    op.drop_index('ix_pulse_requests_route_id_occurred_at', table_name='pulse_requests')
    op.drop_index('ix_pulse_requests_occurred_at', table_name='pulse_requests')
    op.drop_table('pulse_requests')
    op.drop_table('pulse_routes')
