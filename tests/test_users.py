"""
Tests for user administration endpoints and the authorization policy.
"""

from typing import Annotated, Generator

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from sqlmodel import Session

from conftest import API, USER_EMAIL, USER_PASSWORD, auth_headers, login
from planify.api.deps import get_current_user, require_owner, require_roles
from planify.core.config import settings
from planify.db.session import Database, get_session
from planify.main import create_app
from planify.models.user import User, UserRole
from planify.services.credential_store import CredentialStore


@pytest.fixture(name="other_user")
def other_user_fixture(store: CredentialStore) -> User:
    return store.create(
        {"email": "other@example.com", "password": "Otherpassword1", "first_name": "Other", "last_name": "Person"}
    )


def test_list_users_as_admin(client: TestClient, admin_token: str, test_user: User) -> None:
    response = client.get(f"{API}/users", headers=auth_headers(admin_token))
    assert response.status_code == 200
    users = response.json()["data"]["users"]
    assert {u["email"] for u in users} == {USER_EMAIL, "admin@example.com"}
    assert all("passwordHash" not in u for u in users)


def test_list_users_as_regular_user(client: TestClient, user_token: str) -> None:
    """Test that regular users cannot access admin-only routes."""
    response = client.get(f"{API}/users", headers=auth_headers(user_token))
    assert response.status_code == 403
    assert response.json()["message"] == "You do not have permission to access this resource"


def test_list_users_without_token_is_401_not_403(client: TestClient) -> None:
    response = client.get(f"{API}/users")
    assert response.status_code == 401


def test_owner_can_read_own_record(client: TestClient, user_token: str, test_user: User) -> None:
    response = client.get(f"{API}/users/{test_user.id}", headers=auth_headers(user_token))
    assert response.status_code == 200
    assert response.json()["data"]["user"]["email"] == USER_EMAIL


def test_non_owner_is_forbidden(client: TestClient, user_token: str, other_user: User) -> None:
    response = client.get(f"{API}/users/{other_user.id}", headers=auth_headers(user_token))
    assert response.status_code == 403
    assert response.json()["message"] == "You can only access your own resources"


def test_admin_can_read_any_record(client: TestClient, admin_token: str, other_user: User) -> None:
    response = client.get(f"{API}/users/{other_user.id}", headers=auth_headers(admin_token))
    assert response.status_code == 200
    assert response.json()["data"]["user"]["email"] == "other@example.com"


def test_admin_reading_missing_user(client: TestClient, admin_token: str) -> None:
    response = client.get(f"{API}/users/9999", headers=auth_headers(admin_token))
    assert response.status_code == 404
    assert response.json()["message"] == "User not found"


def test_block_user_cuts_off_existing_token(
    client: TestClient, admin_token: str, user_token: str, test_user: User
) -> None:
    response = client.patch(
        f"{API}/users/{test_user.id}/status",
        headers=auth_headers(admin_token),
        json={"isBlocked": True},
    )
    assert response.status_code == 200
    assert response.json()["data"]["user"]["isBlocked"] is True

    response = client.get(f"{API}/auth/profile", headers=auth_headers(user_token))
    assert response.status_code == 401
    assert response.json()["message"] == "Your account has been blocked"

    client.patch(
        f"{API}/users/{test_user.id}/status",
        headers=auth_headers(admin_token),
        json={"isBlocked": False},
    )
    assert login(client, USER_EMAIL, USER_PASSWORD)


def test_regular_user_cannot_block(client: TestClient, user_token: str, other_user: User) -> None:
    response = client.patch(
        f"{API}/users/{other_user.id}/status",
        headers=auth_headers(user_token),
        json={"isBlocked": True},
    )
    assert response.status_code == 403


def test_role_gate_accepts_configured_roles(app: FastAPI, client: TestClient, store: CredentialStore) -> None:
    @app.get(f"{API}/clubs/manage")
    def manage(user: Annotated[User, Depends(require_roles(UserRole.CLUB_LEAD, "community_lead"))]) -> dict:
        return {"role": user.role.value}

    store.create(
        {
            "email": "lead@example.com",
            "password": "Leadpassword1",
            "first_name": "Club",
            "last_name": "Lead",
            "role": UserRole.CLUB_LEAD,
        }
    )
    store.create(
        {
            "email": "member@example.com",
            "password": "Memberpassword1",
            "first_name": "Club",
            "last_name": "Member",
            "role": UserRole.CLUB_MEMBER,
        }
    )

    lead_token = login(client, "lead@example.com", "Leadpassword1")
    member_token = login(client, "member@example.com", "Memberpassword1")

    assert client.get(f"{API}/clubs/manage", headers=auth_headers(lead_token)).json() == {"role": "club_lead"}
    assert client.get(f"{API}/clubs/manage", headers=auth_headers(member_token)).status_code == 403


def test_ownership_gate_reads_body_field(app: FastAPI, client: TestClient, user_token: str, test_user: User) -> None:
    @app.post(f"{API}/rsvps")
    def create_rsvp(
        _: Annotated[User, Depends(require_owner("userId"))],
        current_user: Annotated[User, Depends(get_current_user)],
    ) -> dict:
        return {"owner": current_user.id}

    own = client.post(f"{API}/rsvps", headers=auth_headers(user_token), json={"userId": test_user.id})
    assert own.status_code == 200
    assert own.json() == {"owner": test_user.id}

    other = client.post(f"{API}/rsvps", headers=auth_headers(user_token), json={"userId": test_user.id + 1})
    assert other.status_code == 403

    missing = client.post(f"{API}/rsvps", headers=auth_headers(user_token), json={})
    assert missing.status_code == 403


def test_admin_roles_come_from_settings() -> None:
    assert settings.admin_roles == frozenset({"admin"})


def test_admin_roles_come_from_app_settings(
    database: Database, session: Session, store: CredentialStore, other_user: User
) -> None:
    app = create_app(settings.model_copy(update={"ADMIN_ROLES": "admin,community_lead"}), database=database)

    def get_session_override() -> Generator[Session, None, None]:
        yield session

    app.dependency_overrides[get_session] = get_session_override
    store.create(
        {
            "email": "lead@example.com",
            "password": "Leadpassword1",
            "first_name": "Community",
            "last_name": "Lead",
            "role": UserRole.COMMUNITY_LEAD,
        }
    )

    with TestClient(app) as test_client:
        token = login(test_client, "lead@example.com", "Leadpassword1")
        assert test_client.get(f"{API}/users", headers=auth_headers(token)).status_code == 200
        response = test_client.get(f"{API}/users/{other_user.id}", headers=auth_headers(token))
        assert response.status_code == 200


def test_default_admin_roles_exclude_community_lead(client: TestClient, store: CredentialStore) -> None:
    store.create(
        {
            "email": "lead@example.com",
            "password": "Leadpassword1",
            "first_name": "Community",
            "last_name": "Lead",
            "role": UserRole.COMMUNITY_LEAD,
        }
    )
    token = login(client, "lead@example.com", "Leadpassword1")
    assert client.get(f"{API}/users", headers=auth_headers(token)).status_code == 403
