from datetime import date, timedelta

import pytest

from conftest import auth_header, make_appointment, make_customer, make_studio, manager_header
from models import Customer, SessionBlock, Studio
from services import session_ledger


@pytest.fixture
def studio_id(seed):
    return seed(lambda db: make_studio(db).id)


@pytest.fixture
def owner(studio_id):
    return auth_header(studio_id=studio_id)


@pytest.fixture
def customer_id(seed, studio_id):
    def _create(db):
        customer = make_customer(db, db.get(Studio, studio_id))
        session_ledger.create_block(db, customer.id, studio_id, 20)
        return customer.id
    return seed(_create)


def block_ids(client, customer_id, headers):
    response = client.get(f"/api/customers/{customer_id}/session-blocks", headers=headers)
    assert response.status_code == 200
    return [b["id"] for b in response.json()["blocks"]]


class TestAuth:
    def test_missing_token(self, client, customer_id):
        response = client.get(f"/api/customers/{customer_id}/session-blocks")
        assert response.status_code == 401

    def test_invalid_token(self, client, customer_id):
        response = client.get(
            f"/api/customers/{customer_id}/session-blocks",
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert response.status_code == 403

    def test_customers_cannot_use_the_back_office(self, client, customer_id):
        response = client.get(
            f"/api/customers/{customer_id}/session-blocks",
            headers=auth_header(role="customer"),
        )
        assert response.status_code == 403

    def test_other_studio_owner_sees_nothing(self, client, seed, customer_id):
        other_id = seed(lambda db: make_studio(db, name="Studio Nord", identifier="NRD", owner_id=200).id)

        response = client.get(
            f"/api/customers/{customer_id}/session-blocks",
            headers=auth_header(user_id=200, studio_id=other_id),
        )
        assert response.status_code == 404

    def test_owner_studio_is_looked_up_without_claim(self, client, customer_id):
        response = client.get(f"/api/customers/{customer_id}/session-blocks", headers=auth_header())
        assert response.status_code == 200


class TestCustomers:
    def test_create_customer_with_package(self, client, owner):
        response = client.post("/api/customers", headers=owner, json={
            "first_name": "Anna",
            "last_name": "Keller",
            "phone": "+49 170 9999999",
            "session_package": 10,
            "payment_method": "card",
        })

        assert response.status_code == 201
        body = response.json()
        code = body["customer"]["registration_code"]
        assert code == f"MIT-{body['customer']['id']}"
        assert code in body["instructions"]
        assert body["session_block"]["status"] == "active"
        assert body["session_block"]["remaining_sessions"] == 10

    def test_invalid_package(self, client, owner):
        response = client.post("/api/customers", headers=owner, json={
            "first_name": "Anna",
            "last_name": "Keller",
            "phone": "+49 170 9999999",
            "session_package": 15,
        })

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_pack_size"

    def test_duplicate_phone(self, client, owner, customer_id):
        response = client.post("/api/customers", headers=owner, json={
            "first_name": "Anna",
            "last_name": "Keller",
            "phone": "+49 170 1234567",
            "session_package": 10,
        })
        assert response.status_code == 409
        assert response.json()["error"] == "duplicate_customer"

    def test_manager_must_name_the_studio(self, client, studio_id):
        payload = {"first_name": "A", "last_name": "B", "phone": "555-0100", "session_package": 10}

        assert client.post("/api/customers", headers=manager_header(), json=payload).status_code == 400

        payload["studio_id"] = studio_id
        assert client.post("/api/customers", headers=manager_header(), json=payload).status_code == 201

    def test_delete_customer_with_open_sessions(self, client, owner, customer_id):
        response = client.delete(f"/api/customers/{customer_id}", headers=owner)

        assert response.status_code == 400
        assert response.json()["error"] == "customer_has_sessions"


class TestSessionBlocks:
    def test_buy_consume_and_promote(self, client, owner, customer_id):
        created = client.post(
            f"/api/customers/{customer_id}/session-blocks",
            headers=owner,
            json={"total_sessions": 10, "payment_method": "cash"},
        )
        assert created.status_code == 201
        assert created.json()["status"] == "pending"

        consumed = client.post(
            f"/api/customers/{customer_id}/sessions/consume",
            headers=owner,
            json={"sessions_to_consume": 20},
        )
        assert consumed.status_code == 200
        assert consumed.json()["block_completed"] is True
        assert consumed.json()["activated_block_id"] == created.json()["id"]

        listing = client.get(f"/api/customers/{customer_id}/session-blocks", headers=owner).json()
        assert listing["blocks"][0]["id"] == created.json()["id"]
        assert listing["summary"]["active_sessions"] == 10
        assert listing["summary"]["pending_blocks"] == 0

    def test_consume_without_sessions_rolls_back(self, client, owner, customer_id, session_factory):
        response = client.post(
            f"/api/customers/{customer_id}/sessions/consume",
            headers=owner,
            json={"sessions_to_consume": 21},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "no_active_sessions"
        with session_factory() as db:
            block = db.query(SessionBlock).filter(SessionBlock.customer_id == customer_id).one()
            assert block.remaining_sessions == 20

    def test_refund_is_capped(self, client, owner, customer_id):
        client.post(f"/api/customers/{customer_id}/sessions/consume", headers=owner, json={})

        response = client.post(
            f"/api/customers/{customer_id}/sessions/refund",
            headers=owner,
            json={"sessions_to_refund": 3, "reason": "Studio closed"},
        )

        assert response.status_code == 200
        assert response.json()["refunded"] == 1
        assert response.json()["new_remaining"] == 20

    def test_refund_to_unknown_block(self, client, owner, customer_id):
        response = client.post(
            f"/api/customers/{customer_id}/sessions/refund",
            headers=owner,
            json={"sessions_to_refund": 1, "block_id": 999},
        )
        assert response.status_code == 404
        assert response.json()["error"] == "no_target_block"

    def test_edit_pending_block(self, client, owner, customer_id):
        pending = client.post(
            f"/api/customers/{customer_id}/session-blocks", headers=owner, json={"total_sessions": 20}
        ).json()
        url = f"/api/customers/{customer_id}/session-blocks/{pending['id']}"

        downgrade = client.put(url, headers=owner, json={"total_sessions": 10})
        assert downgrade.status_code == 400
        assert downgrade.json()["error"] == "downgrade"

        upgrade = client.put(url, headers=owner, json={"total_sessions": 40})
        assert upgrade.status_code == 200
        assert upgrade.json()["remaining_sessions"] == 40

    def test_delete_block(self, client, owner, customer_id):
        active_id = block_ids(client, customer_id, owner)[0]
        client.post(f"/api/customers/{customer_id}/sessions/consume", headers=owner, json={})

        refused = client.delete(f"/api/customers/{customer_id}/session-blocks/{active_id}", headers=owner)
        assert refused.status_code == 400
        assert refused.json()["error"] == "has_consumption"

        pending = client.post(
            f"/api/customers/{customer_id}/session-blocks", headers=owner, json={"total_sessions": 30}
        ).json()
        deleted = client.delete(f"/api/customers/{customer_id}/session-blocks/{pending['id']}", headers=owner)
        assert deleted.status_code == 200
        assert deleted.json()["refunded_sessions"] == 30
        assert block_ids(client, customer_id, owner) == [active_id]

    def test_transactions(self, client, owner, customer_id):
        client.post(f"/api/customers/{customer_id}/sessions/consume", headers=owner, json={"reason": "Walk-in"})

        response = client.get(f"/api/customers/{customer_id}/sessions/transactions", headers=owner)

        assert response.status_code == 200
        assert [t["transaction_type"] for t in response.json()] == ["deduction", "purchase"]
        assert response.json()[0]["notes"] == "Walk-in"


class TestAppointments:
    def test_outcome_deducts_once(self, client, owner, seed, customer_id):
        def _appointment(db):
            customer = db.get(Customer, customer_id)
            return make_appointment(db, customer, date.today() - timedelta(days=1)).id
        appointment_id = seed(_appointment)
        url = f"/api/appointments/{appointment_id}/outcome"

        first = client.patch(url, headers=owner, json={"outcome": "completed"})
        second = client.patch(url, headers=owner, json={"outcome": "no_show"})

        assert first.status_code == 200
        assert first.json()["session_deducted"] is True
        assert first.json()["remaining_sessions"] == 19
        assert second.json()["session_deducted"] is False
        assert second.json()["status"] == "no_show"

    def test_unknown_appointment(self, client, owner):
        response = client.patch("/api/appointments/77/outcome", headers=owner, json={"outcome": "completed"})
        assert response.status_code == 404

    def test_complete_past(self, client, owner, seed, customer_id):
        def _appointment(db):
            customer = db.get(Customer, customer_id)
            make_appointment(db, customer, date.today() - timedelta(days=2))
        seed(_appointment)

        response = client.post("/api/appointments/complete-past", headers=owner, json={})

        assert response.status_code == 200
        assert response.json() == {"completed": 1, "sessions_deducted": 1, "failed": []}


class TestMaintenance:
    def test_reconcile_and_violations(self, client, owner, seed, studio_id, customer_id):
        active_id = block_ids(client, customer_id, owner)[0]
        client.post(
            f"/api/customers/{customer_id}/session-blocks", headers=owner, json={"total_sessions": 10}
        )
        client.delete(f"/api/customers/{customer_id}/session-blocks/{active_id}", headers=owner)

        violations = client.get("/api/maintenance/violations", headers=owner).json()
        assert violations["stuck_pending"] == [customer_id]

        response = client.post("/api/maintenance/reconcile", headers=owner, json={"customer_id": customer_id})
        assert response.status_code == 200
        assert len(response.json()["activated_block_ids"]) == 1

        again = client.post("/api/maintenance/reconcile", headers=owner, json={})
        assert again.json()["activated_block_ids"] == []

    def test_owner_cannot_reconcile_other_studio(self, client, owner, studio_id):
        response = client.post("/api/maintenance/reconcile", headers=owner, json={"studio_id": studio_id + 1})
        assert response.status_code == 403


class TestStudios:
    def test_owner_reads_own_stats(self, client, owner, studio_id, customer_id):
        client.post(f"/api/customers/{customer_id}/sessions/consume", headers=owner, json={"sessions_to_consume": 2})

        response = client.get(f"/api/studios/{studio_id}/sessions/stats", headers=owner)

        assert response.status_code == 200
        stats = response.json()
        assert stats["purchases"] == 1
        assert stats["sessions_added"] == 20
        assert stats["sessions_deducted"] == 2
        assert stats["transactions"]["deduction"] == {"count": 1, "sessions": -2}
        assert stats["total_remaining_sessions"] == 18

    def test_reversed_period(self, client, owner, studio_id):
        response = client.get(
            f"/api/studios/{studio_id}/sessions/stats",
            headers=owner,
            params={"from_date": "2026-05-02", "to_date": "2026-05-01"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_date_range"

    def test_owner_cannot_read_other_studio(self, client, owner, seed, studio_id):
        other_id = seed(lambda db: make_studio(db, name="Studio Nord", identifier="NRD", owner_id=200).id)

        assert client.get(f"/api/studios/{other_id}/sessions/stats", headers=owner).status_code == 403
        assert client.get(f"/api/studios/{other_id}/customers/sessions", headers=owner).status_code == 403

    def test_manager_reads_any_studio(self, client, studio_id, customer_id):
        response = client.get(f"/api/studios/{studio_id}/customers/sessions", headers=manager_header())

        assert response.status_code == 200
        [row] = response.json()["customers"]
        assert row["customer_id"] == customer_id
        assert row["remaining_sessions"] == 20
        assert row["has_active_sessions"] is True

    def test_manager_unknown_studio(self, client):
        response = client.get("/api/studios/9999/sessions/stats", headers=manager_header())
        assert response.status_code == 404


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["database"] is True
