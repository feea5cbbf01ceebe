from datetime import date, datetime

import pytest
from sqlalchemy import event, text
from sqlalchemy.dialects import postgresql

from conftest import make_appointment
from models import SessionBlock, SessionBlockStatus
from services import maintenance_service, session_ledger
from services.appointment_service import AppointmentOutcome, AppointmentService


@pytest.fixture
def selects(db):
    """SELECT statements run by the session, rendered for PostgreSQL (SQLite drops FOR UPDATE)."""
    statements = []

    def capture(state):
        if state.is_select:
            statements.append(str(state.statement.compile(dialect=postgresql.dialect())))

    event.listen(db, "do_orm_execute", capture)
    yield statements
    event.remove(db, "do_orm_execute", capture)


def locked(statements, table):
    return [s for s in statements if f"FROM {table}" in s and s.rstrip().endswith("FOR UPDATE")]


class TestRowLocks:
    def test_consume_locks_customer_and_blocks(self, db, customer, selects):
        session_ledger.create_block(db, customer.id, customer.studio_id, 10)
        selects.clear()

        session_ledger.consume_session(db, customer.id)

        assert locked(selects, "customers")
        assert locked(selects, "session_blocks")

    @pytest.mark.parametrize("operation", ["create", "refund", "edit", "delete", "reconcile"])
    def test_every_ledger_operation_locks(self, db, customer, selects, operation):
        session_ledger.create_block(db, customer.id, customer.studio_id, 10)
        pending = session_ledger.create_block(db, customer.id, customer.studio_id, 10)
        session_ledger.consume_session(db, customer.id)
        selects.clear()

        if operation == "create":
            session_ledger.create_block(db, customer.id, customer.studio_id, 20)
        elif operation == "refund":
            session_ledger.refund_session(db, customer.id, 1)
        elif operation == "edit":
            session_ledger.edit_pending_block(db, pending.id, 20)
        elif operation == "delete":
            session_ledger.delete_block(db, pending.id)
        else:
            session_ledger.reconcile_stuck_pending(db, customer.id)

        assert locked(selects, "customers")
        assert locked(selects, "session_blocks")

    def test_appointment_outcome_locks_appointment(self, db, customer, selects):
        session_ledger.create_block(db, customer.id, customer.studio_id, 10)
        appointment = make_appointment(db, customer, date(2026, 5, 4))
        selects.clear()

        AppointmentService.apply_outcome(db, appointment.id, AppointmentOutcome.COMPLETED)

        assert locked(selects, "appointments")
        assert locked(selects, "session_blocks")


class TestLegacyDoubleActive:
    """Rows written before the one-active index existed."""

    @pytest.fixture
    def two_active(self, db, customer):
        db.execute(text("DROP INDEX ux_session_blocks_one_active_per_customer"))
        older = SessionBlock(
            customer_id=customer.id,
            studio_id=customer.studio_id,
            total_sessions=10,
            remaining_sessions=1,
            status=SessionBlockStatus.ACTIVE,
            activation_date=datetime(2026, 1, 1),
        )
        newer = SessionBlock(
            customer_id=customer.id,
            studio_id=customer.studio_id,
            total_sessions=10,
            remaining_sessions=10,
            status=SessionBlockStatus.ACTIVE,
            activation_date=datetime(2026, 2, 1),
        )
        pending = SessionBlock(
            customer_id=customer.id,
            studio_id=customer.studio_id,
            total_sessions=20,
            remaining_sessions=20,
            status=SessionBlockStatus.PENDING,
        )
        db.add_all([older, newer, pending])
        db.flush()
        return older, newer, pending

    def test_reported_by_audit(self, db, customer, two_active):
        assert maintenance_service.find_multiple_active(db) == [
            {"customer_id": customer.id, "active_blocks": 2}
        ]

    def test_using_up_the_older_block_keeps_the_newer_active(self, db, customer, two_active):
        older, newer, pending = two_active

        result = session_ledger.consume_session(db, customer.id)

        assert result.block_id == older.id
        assert result.completed is True
        assert result.activated_block_id is None
        assert older.status == SessionBlockStatus.COMPLETED
        assert newer.status == SessionBlockStatus.ACTIVE
        assert pending.status == SessionBlockStatus.PENDING
