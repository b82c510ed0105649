"""create pulse_daily_stats table

Revision ID: 003
Revises: 002
Create Date: 2025-08-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '003'
down_revision: Union[str, None] = '002'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create pulse_daily_stats with one row per entity and day."""
    op.create_table(
        'pulse_daily_stats',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('entity_type', sa.String(length=20), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('total_requests', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('avg_duration', sa.Float(), nullable=False, server_default='0'),
        sa.Column('max_duration', sa.Float(), nullable=False, server_default='0'),
        sa.Column('error_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('p95_duration', sa.Float(), nullable=False, server_default='0'),
        sa.Column('hourly_data', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('date', 'entity_type', 'entity_id', name='uq_pulse_daily_stats_entity_day')
    )
    op.create_index(
        'uq_pulse_daily_stats_overall_day',
        'pulse_daily_stats',
        ['date', 'entity_type'],
        unique=True,
        postgresql_where=sa.text('entity_id IS NULL'),
        sqlite_where=sa.text('entity_id IS NULL')
    )
    op.create_index('ix_pulse_daily_stats_entity', 'pulse_daily_stats', ['entity_type', 'entity_id'])
    op.create_index('ix_pulse_daily_stats_date', 'pulse_daily_stats', ['date'])


def downgrade() -> None:
    """Drop pulse_daily_stats table."""
    op.drop_index('ix_pulse_daily_stats_date', table_name='pulse_daily_stats')
    op.drop_index('ix_pulse_daily_stats_entity', table_name='pulse_daily_stats')
    op.drop_index('uq_pulse_daily_stats_overall_day', table_name='pulse_daily_stats')
    op.drop_table('pulse_daily_stats')
