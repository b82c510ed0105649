"""create pulse_summaries table

Revision ID: 002
Revises: 001
Create Date: 2025-08-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create pulse_summaries keyed by group, period type and period start."""
    op.create_table(
        'pulse_summaries',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('summarizable_type', sa.String(length=20), nullable=False),
        sa.Column('summarizable_id', sa.Integer(), nullable=False),
        sa.Column('period_type', sa.String(length=10), nullable=False),
        sa.Column('period_start', sa.DateTime(), nullable=False),
        sa.Column('period_end', sa.DateTime(), nullable=False),
        sa.Column('count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('avg_duration', sa.Float(), nullable=True),
        sa.Column('min_duration', sa.Float(), nullable=True),
        sa.Column('max_duration', sa.Float(), nullable=True),
        sa.Column('total_duration', sa.Float(), nullable=True),
        sa.Column('p50_duration', sa.Float(), nullable=True),
        sa.Column('p95_duration', sa.Float(), nullable=True),
        sa.Column('p99_duration', sa.Float(), nullable=True),
        sa.Column('stddev_duration', sa.Float(), nullable=True),
        sa.Column('error_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('success_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status_2xx', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status_3xx', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status_4xx', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status_5xx', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'summarizable_type', 'summarizable_id', 'period_type', 'period_start',
            name='uq_pulse_summaries_natural_key'
        )
    )

    # Period lookups for dashboards and retention
    op.create_index(
        'ix_pulse_summaries_period_type_period_start',
        'pulse_summaries',
        ['period_type', 'period_start']
    )


def downgrade() -> None:
    """Drop pulse_summaries table."""
    op.drop_index('ix_pulse_summaries_period_type_period_start', table_name='pulse_summaries')
    op.drop_table('pulse_summaries')
