import pytest

import reconcile_sessions
from conftest import make_customer, make_studio
from models import SessionBlock, SessionBlockStatus, SessionTransaction, SessionTransactionType
from services import maintenance_service, session_ledger


def stuck_block(db, customer, total=10):
    block = SessionBlock(
        customer_id=customer.id,
        studio_id=customer.studio_id,
        total_sessions=total,
        remaining_sessions=total,
        status=SessionBlockStatus.PENDING,
    )
    db.add(block)
    db.flush()
    return block


def test_find_invariant_violations(db, studio, customer):
    healthy = make_customer(db, studio, first_name="Ben", phone="+49 170 2222222")
    session_ledger.create_block(db, healthy.id, studio.id, 10)
    session_ledger.create_block(db, healthy.id, studio.id, 10)
    stuck_block(db, customer)

    violations = maintenance_service.find_invariant_violations(db)

    assert violations == {"multiple_active": [], "stuck_pending": [customer.id]}


def test_reconcile_all_is_idempotent(db, studio, customer):
    first = stuck_block(db, customer)
    stuck_block(db, customer, total=20)

    assert maintenance_service.reconcile_all(db, acting_user_id=3) == [first.id]
    assert maintenance_service.reconcile_all(db) == []
    assert first.status == SessionBlockStatus.ACTIVE

    activation = db.query(SessionTransaction).filter(
        SessionTransaction.transaction_type == SessionTransactionType.ACTIVATION
    ).one()
    assert activation.created_by_user_id == 3
    assert maintenance_service.find_stuck_customers(db) == []


def test_reconcile_scoped_to_studio(db, studio, customer):
    other_studio = make_studio(db, name="Studio Nord", identifier="NRD")
    other = make_customer(db, other_studio, first_name="Eva", phone="+49 170 3333333")
    stuck_block(db, customer)
    other_block = stuck_block(db, other)

    assert maintenance_service.reconcile_all(db, studio_id=other_studio.id) == [other_block.id]
    assert maintenance_service.find_stuck_customers(db) == [customer.id]


def test_reconcile_customer(db, customer):
    block = stuck_block(db, customer)

    assert maintenance_service.reconcile_customer(db, customer.id) == block.id
    assert maintenance_service.reconcile_customer(db, customer.id) is None


@pytest.fixture
def cli_db(db, monkeypatch):
    """Run the CLI's units of work in the test session."""
    monkeypatch.setattr(reconcile_sessions, "run_in_transaction", lambda fn, *args: fn(db, *args))
    return db


def test_cli_check_reports_stuck_customers(cli_db, customer):
    stuck_block(cli_db, customer)

    assert reconcile_sessions.main(["--check"]) == 1
    assert reconcile_sessions.main(["--customer", str(customer.id)]) == 0
    assert reconcile_sessions.main(["--check"]) == 0


def test_cli_reconciles_a_studio(cli_db, studio, customer):
    block = stuck_block(cli_db, customer)

    assert reconcile_sessions.main(["--studio", str(studio.id)]) == 0
    assert block.status == SessionBlockStatus.ACTIVE
