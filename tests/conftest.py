"""Shared fixtures: in-memory SQLite database, fake Redis and API client."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("TIMEZONE", "America/Fortaleza")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from clinica.db.base import Base
from clinica.db.session import enable_sqlite_foreign_keys, get_db
from clinica.main import app, rate_limiter
from clinica.models import Clinic, User, UserClinic
from clinica.services import view_cache
from clinica.services.sessions import CallerSession, issue_session


class FakeRedis:
    """Dictionary-backed stand-in for the few Redis commands the cache uses."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self.store.get(key)

    def setex(self, key: str, ttl: int, value: str) -> None:
        self.store[key] = value

    def incr(self, key: str) -> int:
        value = int(self.store.get(key, 0)) + 1
        self.store[key] = str(value)
        return value


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    session_factory = sessionmaker(bind=db_engine, autoflush=False, future=True)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(view_cache, "_get_client", lambda: fake)
    return fake


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    rate_limiter._entries.clear()
    yield
    rate_limiter._entries.clear()


def make_member(db_session, clinic: Clinic | None, *, email: str) -> User:
    user = User(name=email.split("@")[0].title(), email=email)
    db_session.add(user)
    db_session.flush()
    if clinic is not None:
        db_session.add(UserClinic(user_id=user.id, clinic_id=clinic.id))
    db_session.commit()
    return user


def caller_for(user: User, clinic: Clinic | None) -> CallerSession:
    return CallerSession(
        user_id=user.id,
        user_name=user.name,
        user_email=user.email,
        clinic_id=clinic.id if clinic else None,
    )


@pytest.fixture
def clinic(db_session) -> Clinic:
    clinic = Clinic(name="Clínica Central", timezone="America/Fortaleza")
    db_session.add(clinic)
    db_session.commit()
    return clinic


@pytest.fixture
def other_clinic(db_session) -> Clinic:
    clinic = Clinic(name="Clínica Vizinha", timezone="America/Fortaleza")
    db_session.add(clinic)
    db_session.commit()
    return clinic


@pytest.fixture
def staff(db_session, clinic) -> User:
    return make_member(db_session, clinic, email="recepcao@central.example.com")


@pytest.fixture
def caller(staff, clinic) -> CallerSession:
    return caller_for(staff, clinic)


@pytest.fixture
def other_caller(db_session, other_clinic) -> CallerSession:
    user = make_member(db_session, other_clinic, email="recepcao@vizinha.example.com")
    return caller_for(user, other_clinic)


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(db_session, staff) -> dict[str, str]:
    token = issue_session(db_session, staff).token
    db_session.commit()
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_auth_headers(db_session, other_caller) -> dict[str, str]:
    user = db_session.get(User, other_caller.user_id)
    token = issue_session(db_session, user).token
    db_session.commit()
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def doctor_payload() -> dict:
    return {
        "name": "Dr. Ana",
        "specialty": "cardiologia",
        "appointment_price": 150.00,
        "available_from_weekday": 1,
        "available_to_weekday": 5,
        "available_from_time": "08:00:00",
        "available_to_time": "18:00:00",
    }
