# tests/conftest.py

import os

# Settings are read at import time, so test configuration goes in first.
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("SEED_CATEGORIES_ON_STARTUP", "false")

import pytest
from unittest.mock import MagicMock
from sqlalchemy.orm import sessionmaker
from starlette.testclient import TestClient

from activity_service.api import deps
from activity_service.crud import crud_category
from activity_service.crud.crud_category import CategoryCreate
from activity_service.db.base_class import Base
from activity_service.db.session import build_engine, get_db
from activity_service.main import app
from activity_service.services.lifecycle import ActivityLifecycleService, ActivityLockRegistry
from tests.utils.clock import BASE_NOW, FixedClock


# --- Database Setup ---
# A file-backed SQLite database per test: committed data is visible to
# every connection, which the concurrency tests rely on.
@pytest.fixture(scope="function")
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'activities_test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(scope="function")
def clock():
    return FixedClock(BASE_NOW)


@pytest.fixture(scope="function")
def service(clock):
    return ActivityLifecycleService(
        clock=clock, locks=ActivityLockRegistry(timeout_seconds=10), max_attempts=3
    )


@pytest.fixture(scope="function")
def category(db):
    return crud_category.category.create(db, obj_in=CategoryCreate(name="Basketball"))


# --- Test Client Fixtures ---
@pytest.fixture(scope="function")
def test_client():
    """
    Provides a TestClient where the database and the service are mocks.
    This is for INTEGRATION tests of the HTTP layer.
    """
    app.dependency_overrides[get_db] = lambda: MagicMock()

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def test_client_e2e(session_factory, service):
    """
    Provides a TestClient backed by the test database and a service on the
    fixed clock. Authentication is real (tokens signed with the test secret).
    """

    def override_get_db_e2e():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db_e2e
    app.dependency_overrides[deps.get_lifecycle_service] = lambda: service

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
