"""create soil_cache and pipeline_runs

Revision ID: 7c41d2e9a0b3
Revises:
Create Date: 2026-10-17 09:12:41.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = '7c41d2e9a0b3'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'soil_cache',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('cache_key', sa.String(length=64), nullable=False),
        sa.Column('provider', sa.String(length=50), nullable=False),
        sa.Column('polygon', sa.JSON(), nullable=False),
        sa.Column('summary', sa.JSON(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_soil_cache_cache_key', 'soil_cache', ['cache_key'], unique=True)
    op.create_index('ix_soil_cache_expires_at', 'soil_cache', ['expires_at'])

    op.create_table(
        'pipeline_runs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('pipeline_name', sa.String(length=100), nullable=False),
        sa.Column(
            'status',
            sa.Enum('running', 'success', 'failed', 'skipped', name='pipeline_status_enum'),
            nullable=False,
        ),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('finished_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('duration_ms', sa.Integer(), nullable=True),
        sa.Column('records_processed', sa.Integer(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
    )
    op.create_index('ix_pipeline_runs_pipeline_name', 'pipeline_runs', ['pipeline_name'])


def downgrade() -> None:
    op.drop_index('ix_pipeline_runs_pipeline_name', table_name='pipeline_runs')
    op.drop_table('pipeline_runs')
    op.execute("DROP TYPE IF EXISTS pipeline_status_enum")
    op.drop_index('ix_soil_cache_expires_at', table_name='soil_cache')
    op.drop_index('ix_soil_cache_cache_key', table_name='soil_cache')
    op.drop_table('soil_cache')
