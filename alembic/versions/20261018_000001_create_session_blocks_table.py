"""Create session_blocks table

Revision ID: 20261018_000001
Revises: None
Create Date: 2026-10-18

This migration creates the session_blocks table for prepaid session packs.
The studios and customers tables already exist.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261018_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACTIVE_ONLY = sa.text("status = 'active'")


def upgrade() -> None:
    """Create the session_blocks table."""
    op.create_table(
        'session_blocks',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('studio_id', sa.Integer(), nullable=False),
        sa.Column('total_sessions', sa.Integer(), nullable=False),
        sa.Column('remaining_sessions', sa.Integer(), nullable=False),
        sa.Column(
            'status',
            sa.Enum(
                'active', 'pending', 'completed', 'cancelled',
                name='session_block_status',
                create_constraint=True,
            ),
            nullable=False,
            server_default='pending'
        ),
        sa.Column('activation_date', sa.DateTime(), nullable=True),
        sa.Column('purchase_date', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('payment_method', sa.String(length=50), server_default='cash', nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(
            ['customer_id'],
            ['customers.id'],
            name='fk_session_blocks_customer_id',
            ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(
            ['studio_id'],
            ['studios.id'],
            name='fk_session_blocks_studio_id',
            ondelete='NO ACTION',
        ),
        sa.CheckConstraint('total_sessions > 0', name='ck_session_blocks_total_positive'),
        sa.CheckConstraint(
            'remaining_sessions >= 0 AND remaining_sessions <= total_sessions',
            name='ck_session_blocks_remaining_bounds',
        ),
    )

    # Create indexes for common queries
    op.create_index('ix_session_blocks_customer_id', 'session_blocks', ['customer_id'])
    op.create_index('ix_session_blocks_studio_id', 'session_blocks', ['studio_id'])
    op.create_index('ix_session_blocks_status', 'session_blocks', ['status'])
    op.create_index('ix_session_blocks_customer_status', 'session_blocks', ['customer_id', 'status'])

    # At most one active block per customer
    op.create_index(
        'ux_session_blocks_one_active_per_customer',
        'session_blocks',
        ['customer_id'],
        unique=True,
        sqlite_where=ACTIVE_ONLY,
        postgresql_where=ACTIVE_ONLY,
        mssql_where=ACTIVE_ONLY,
    )


def downgrade() -> None:
    """Drop the session_blocks table."""
    op.drop_index('ux_session_blocks_one_active_per_customer', table_name='session_blocks')
    op.drop_index('ix_session_blocks_customer_status', table_name='session_blocks')
    op.drop_index('ix_session_blocks_status', table_name='session_blocks')
    op.drop_index('ix_session_blocks_studio_id', table_name='session_blocks')
    op.drop_index('ix_session_blocks_customer_id', table_name='session_blocks')
    op.drop_table('session_blocks')
