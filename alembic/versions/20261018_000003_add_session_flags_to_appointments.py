"""Add session flags to appointments

Revision ID: 20261018_000003
Revises: 20261018_000002
Create Date: 2026-10-18

consumes_session is copied from the appointment type at booking time;
session_consumed marks that the one allowed deduction has happened.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261018_000003'
down_revision: Union[str, None] = '20261018_000002'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Add consumes_session and session_consumed."""
    with op.batch_alter_table('appointments') as batch_op:
        batch_op.add_column(
            sa.Column('consumes_session', sa.Boolean(), server_default=sa.true(), nullable=False)
        )
        batch_op.add_column(
            sa.Column('session_consumed', sa.Boolean(), server_default=sa.false(), nullable=False)
        )

    # Appointments completed before this migration already had their session deducted
    appointments = sa.table(
        'appointments',
        sa.column('status', sa.String()),
        sa.column('session_consumed', sa.Boolean()),
    )
    op.execute(
        appointments.update()
        .where(appointments.c.status.in_(['completed', 'no_show']))
        .values(session_consumed=True)
    )


def downgrade() -> None:
    """Drop consumes_session and session_consumed."""
    with op.batch_alter_table('appointments') as batch_op:
        batch_op.drop_column('session_consumed')
        batch_op.drop_column('consumes_session')
