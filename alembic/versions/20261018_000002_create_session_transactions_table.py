"""Create session_transactions table

Revision ID: 20261018_000002
Revises: 20261018_000001
Create Date: 2026-10-18

This migration creates the append-only audit trail of session movements.
Block ids are kept without a foreign key so entries outlive deleted blocks.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261018_000002'
down_revision: Union[str, None] = '20261018_000001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the session_transactions table."""
    op.create_table(
        'session_transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('session_block_id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('studio_id', sa.Integer(), nullable=False),
        sa.Column(
            'transaction_type',
            sa.Enum(
                'purchase', 'deduction', 'refund', 'edit', 'deletion', 'activation',
                name='session_transaction_type',
                create_constraint=True,
            ),
            nullable=False
        ),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('appointment_id', sa.Integer(), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('payment_method', sa.String(length=50), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_index('ix_session_transactions_session_block_id', 'session_transactions', ['session_block_id'])
    op.create_index('ix_session_transactions_customer_id', 'session_transactions', ['customer_id'])
    op.create_index('ix_session_transactions_studio_id', 'session_transactions', ['studio_id'])
    op.create_index('ix_session_transactions_transaction_type', 'session_transactions', ['transaction_type'])
    op.create_index('ix_session_transactions_appointment_id', 'session_transactions', ['appointment_id'])


def downgrade() -> None:
    """Drop the session_transactions table."""
    op.drop_index('ix_session_transactions_appointment_id', table_name='session_transactions')
    op.drop_index('ix_session_transactions_transaction_type', table_name='session_transactions')
    op.drop_index('ix_session_transactions_studio_id', table_name='session_transactions')
    op.drop_index('ix_session_transactions_customer_id', table_name='session_transactions')
    op.drop_index('ix_session_transactions_session_block_id', table_name='session_transactions')
    op.drop_table('session_transactions')
