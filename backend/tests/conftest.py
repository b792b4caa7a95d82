import os
from datetime import datetime, timedelta, timezone

# Ensure JWT_SECRET exists before importing jobflow.main (it calls require_jwt_secret() at import time).
os.environ.setdefault("JWT_SECRET", "test_jwt_secret")

from contextlib import contextmanager

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from jobflow.auth.identity import Identity
from jobflow.core import config as app_config
from jobflow.core.base import Base, LocalBase
from jobflow.core.database import get_db
from jobflow.core.security import create_access_token
from jobflow.dependencies.store import get_clock
from jobflow.stores.local import LocalStore
from jobflow.stores.remote import RemoteStore

# Import models so they register with SQLAlchemy metadata.
from jobflow.models.application import Application  # noqa: F401
from jobflow.models.application_event import ApplicationEvent  # noqa: F401
from jobflow.models.contact import Contact  # noqa: F401
from jobflow.models.reminder import Reminder  # noqa: F401
from jobflow.models.user_settings import UserSettings  # noqa: F401
from jobflow.models.user_progress import UserProgress  # noqa: F401
import jobflow.models.local  # noqa: F401

# A Monday, so week-bucket assertions line up with the calendar.
T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable wall clock shared by the device store, the server and the optimistic layer."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeMonotonic:
    def __init__(self) -> None:
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


def _memory_engine():
    # In-memory SQLite for fast, isolated tests.
    return create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture()
def clock():
    return FakeClock(T0)


@pytest.fixture()
def monotonic():
    return FakeMonotonic()


@pytest.fixture(scope="session")
def db_engine():
    engine = _memory_engine()
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture()
def db_session(db_engine):
    # Important: because we use an in-memory SQLite DB with StaticPool, the DB
    # persists across tests. Reset schema per test to avoid cross-test coupling.
    Base.metadata.drop_all(bind=db_engine)
    Base.metadata.create_all(bind=db_engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session")
def local_engine():
    engine = _memory_engine()
    LocalBase.metadata.create_all(bind=engine)
    return engine


@pytest.fixture()
def local_store(local_engine, clock):
    LocalBase.metadata.drop_all(bind=local_engine)
    LocalBase.metadata.create_all(bind=local_engine)

    store = LocalStore(sessionmaker(autocommit=False, autoflush=False, bind=local_engine), clock=clock)
    try:
        yield store
    finally:
        store.close()


@pytest.fixture()
def app(db_session, clock):
    # Ensure settings has a JWT secret even if imported earlier.
    app_config.settings.JWT_SECRET = app_config.settings.JWT_SECRET or "test_jwt_secret"

    import jobflow.main as main

    fastapi_app = main.app

    def override_get_db():
        yield db_session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_clock] = lambda: clock
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


def auth_headers(identity_key: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(identity_key)}"}


@pytest.fixture()
def identity():
    return Identity.signed_in("user-a", create_access_token("user-a"))


@pytest.fixture()
def client(app):
    """
    Default client authenticated as "user-a".
    """
    with TestClient(app, headers=auth_headers("user-a")) as c:
        yield c


@pytest.fixture()
def client_for(app):
    """
    Context manager to create a client authenticated as an arbitrary identity key.

    Usage:
        with client_for("user-b") as c:
            ...
    """

    @contextmanager
    def _client_for(identity_key: str):
        with TestClient(app, headers=auth_headers(identity_key)) as c:
            yield c

    return _client_for


@pytest.fixture()
def remote_store(app, identity):
    """RemoteStore speaking HTTP to the in-process app (TestClient is an httpx.Client)."""
    with TestClient(app) as c:
        yield RemoteStore(c, identity)
