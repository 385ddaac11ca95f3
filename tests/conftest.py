"""
Pytest configuration and fixtures.
Provides test database, client, and common test utilities.
"""

import os

# Cheap hashes and an in-memory default database for the whole run.
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from typing import Generator  # noqa: E402

import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session  # noqa: E402
from sqlmodel.pool import StaticPool  # noqa: E402

from planify.core.config import Settings, settings  # noqa: E402
from planify.db.session import Database, get_session  # noqa: E402
from planify.main import create_app  # noqa: E402
from planify.models.user import User, UserRole  # noqa: E402
from planify.services.credential_store import CredentialStore  # noqa: E402

API = settings.API_PREFIX

USER_EMAIL = "test@example.com"
USER_PASSWORD = "Testpassword123"
ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "Adminpassword123"


@pytest.fixture(name="database")
def database_fixture() -> Generator[Database, None, None]:
    """
    Create a test database.
    Uses an in-memory SQLite database for fast tests. The fixture owns the
    engine; apps built on it leave it open at shutdown.
    """
    database = Database("sqlite://", poolclass=StaticPool)
    database.init()
    yield database
    database.dispose()


@pytest.fixture(name="session")
def session_fixture(database: Database) -> Generator[Session, None, None]:
    with database.session() as session:
        yield session


@pytest.fixture(name="app_settings")
def app_settings_fixture() -> Settings:
    return settings.model_copy()


@pytest.fixture(name="app")
def app_fixture(app_settings: Settings, database: Database, session: Session) -> Generator[FastAPI, None, None]:
    """
    Build a fresh application (fresh rate-limit counters) bound to the test database.
    """
    app = create_app(app_settings, database=database)

    def get_session_override() -> Generator[Session, None, None]:
        yield session

    app.dependency_overrides[get_session] = get_session_override
    yield app
    app.dependency_overrides.clear()


@pytest.fixture(name="client")
def client_fixture(app: FastAPI) -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(name="store")
def store_fixture(session: Session) -> CredentialStore:
    return CredentialStore(session)


@pytest.fixture(name="test_user")
def test_user_fixture(store: CredentialStore) -> User:
    """
    Create a test user.
    """
    return store.create(
        {
            "email": USER_EMAIL,
            "password": USER_PASSWORD,
            "first_name": "Test",
            "last_name": "User",
        }
    )


@pytest.fixture(name="test_admin")
def test_admin_fixture(store: CredentialStore) -> User:
    """
    Create a test admin user.
    """
    return store.create(
        {
            "email": ADMIN_EMAIL,
            "password": ADMIN_PASSWORD,
            "first_name": "Admin",
            "last_name": "User",
            "role": UserRole.ADMIN,
        }
    )


def login(client: TestClient, email: str, password: str) -> str:
    response = client.post(f"{API}/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["data"]["token"]


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(name="user_token")
def user_token_fixture(client: TestClient, test_user: User) -> str:
    """
    Get an access token for a regular user.
    """
    return login(client, USER_EMAIL, USER_PASSWORD)


@pytest.fixture(name="admin_token")
def admin_token_fixture(client: TestClient, test_admin: User) -> str:
    """
    Get an access token for an admin user.
    """
    return login(client, ADMIN_EMAIL, ADMIN_PASSWORD)
