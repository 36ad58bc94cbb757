"""Pytest configuration and fixtures for SchoolTalk tests."""

import os
import tempfile

# Point the app at throwaway storage before any schooltalk module is imported
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SESSION_FILE"] = os.path.join(tempfile.gettempdir(), "schooltalk-test-session.json")
os.environ["SECRET_HASHER"] = "sha256"
os.environ["SECRET_MODE"] = "access_code"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from schooltalk.database import build_engine, create_tables, drop_tables, get_db  # noqa: E402
from schooltalk.services.credentials import CredentialStore  # noqa: E402
from schooltalk.services.roster import RosterStore  # noqa: E402

TEACHER_A = "15550001111"
TEACHER_B = "15550002222"
CODE_A = "1234"
CODE_B = "9876"
PARENT = "12345678901"


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no database)")
    config.addinivalue_line("markers", "integration: Tests against an in-memory database")


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database shared across connections."""
    test_engine = build_engine("sqlite:///:memory:", poolclass=StaticPool)
    create_tables(bind=test_engine)
    yield test_engine
    drop_tables(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def credentials(db) -> CredentialStore:
    return CredentialStore(db)


@pytest.fixture
def roster(db) -> RosterStore:
    return RosterStore(db)


@pytest.fixture
def accounts(credentials):
    """Two registered teacher accounts."""
    credentials.register(TEACHER_A, CODE_A)
    credentials.register(TEACHER_B, CODE_B)
    return TEACHER_A, TEACHER_B


@pytest.fixture
def client(session_factory):
    """TestClient whose requests use the in-memory test database."""
    from schooltalk.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_a():
    return {"X-Account-Id": TEACHER_A, "X-Account-Secret": CODE_A}


@pytest.fixture
def auth_b():
    return {"X-Account-Id": TEACHER_B, "X-Account-Secret": CODE_B}
