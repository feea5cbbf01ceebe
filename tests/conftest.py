import os

# Must be set before config is imported anywhere
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"

from datetime import time

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.orm import sessionmaker

import config
from auth import MANAGER, STUDIO_OWNER
from database import build_engine, get_session
from models import Appointment, AppointmentStatus, Base, Customer, Studio

OWNER_ID = 100


@pytest.fixture
def engine():
    test_engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.rollback()
    session.close()


def make_studio(db, name="Studio Mitte", identifier="MIT", owner_id=OWNER_ID):
    studio = Studio(name=name, owner_id=owner_id, unique_identifier=identifier)
    db.add(studio)
    db.flush()
    return studio


def make_customer(db, studio, first_name="Anna", last_name="Keller", phone="+49 170 1234567"):
    customer = Customer(
        studio_id=studio.id,
        contact_first_name=first_name,
        contact_last_name=last_name,
        contact_phone=phone,
    )
    db.add(customer)
    db.flush()
    return customer


def make_appointment(db, customer, day, start=time(10, 0), end=time(11, 0), **fields):
    appointment = Appointment(
        studio_id=customer.studio_id,
        customer_id=customer.id,
        appointment_date=day,
        start_time=start,
        end_time=end,
        status=fields.pop("status", AppointmentStatus.CONFIRMED),
        **fields,
    )
    db.add(appointment)
    db.flush()
    return appointment


@pytest.fixture
def studio(db):
    return make_studio(db)


@pytest.fixture
def customer(db, studio):
    return make_customer(db, studio)


@pytest.fixture
def client(session_factory):
    from main import app

    def override_get_session():
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_session] = override_get_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def seed(session_factory):
    """Commit fixtures through a short-lived session, as the API sees committed rows only."""
    def _seed(fn):
        session = session_factory()
        try:
            result = fn(session)
            session.commit()
            return result
        finally:
            session.close()
    return _seed


def create_token(user_id, role, **claims):
    return jwt.encode({"id": user_id, "role": role, **claims}, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def auth_header(role=STUDIO_OWNER, user_id=OWNER_ID, **claims):
    return {"Authorization": f"Bearer {create_token(user_id, role, **claims)}"}


def manager_header():
    return auth_header(role=MANAGER, user_id=1)

