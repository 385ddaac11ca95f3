"""
Tests for password hashing and token issuance/verification.
"""

from datetime import timedelta

import pytest

from planify.core.security import (
    ExpiredTokenError,
    InvalidTokenError,
    TokenService,
    access_tokens,
    create_access_token,
    create_refresh_token,
    get_password_hash,
    refresh_tokens,
    verify_password,
)


def test_password_hashing() -> None:
    """Test password hashing and verification."""
    password = "Testpassword123"
    hashed = get_password_hash(password)

    assert hashed != password
    assert hashed.startswith("$2b$")
    assert verify_password(password, hashed)
    assert not verify_password("wrongpassword", hashed)


def test_same_password_hashes_differently() -> None:
    assert get_password_hash("Testpassword123") != get_password_hash("Testpassword123")


@pytest.mark.parametrize("digest", [None, "", "not-a-bcrypt-digest"])
def test_verify_password_with_missing_or_garbage_digest(digest: str | None) -> None:
    assert verify_password("Testpassword123", digest) is False


def test_access_token_claims() -> None:
    token = create_access_token(7, email="test@example.com", role="user")
    claims = access_tokens.verify(token)

    assert claims.user_id == 7
    assert claims.type == "access"
    assert claims.email == "test@example.com"
    assert claims.role == "user"
    assert claims.exp - claims.iat == 24 * 60 * 60


def test_refresh_token_carries_only_the_subject() -> None:
    claims = refresh_tokens.verify(create_refresh_token(7))
    assert claims.user_id == 7
    assert claims.type == "refresh"
    assert claims.email is None
    assert claims.exp - claims.iat == 7 * 24 * 60 * 60


def test_expired_token() -> None:
    token = access_tokens.issue(1, expires_delta=timedelta(seconds=-5), email="a@x.com", role="user")
    with pytest.raises(ExpiredTokenError) as exc_info:
        access_tokens.verify(token)
    assert exc_info.value.message == "Token has expired"
    assert exc_info.value.status_code == 401


def test_token_signed_with_another_secret() -> None:
    forged = TokenService("not-the-real-secret", timedelta(minutes=5), "access").issue(1, role="admin")
    with pytest.raises(InvalidTokenError) as exc_info:
        access_tokens.verify(forged)
    assert exc_info.value.message == "Invalid token"


def test_tampered_payload() -> None:
    header, _, signature = create_access_token(1, email="a@x.com", role="user").split(".")
    _, payload, _ = create_access_token(2, email="b@x.com", role="admin").split(".")
    with pytest.raises(InvalidTokenError):
        access_tokens.verify(f"{header}.{payload}.{signature}")


def test_token_families_do_not_mix() -> None:
    with pytest.raises(InvalidTokenError):
        access_tokens.verify(create_refresh_token(1))
    with pytest.raises(InvalidTokenError):
        refresh_tokens.verify(create_access_token(1, email="a@x.com", role="user"))


def test_type_claim_is_checked() -> None:
    shared = "shared-secret"
    access = TokenService(shared, timedelta(minutes=5), "access")
    refresh = TokenService(shared, timedelta(minutes=5), "refresh")
    with pytest.raises(InvalidTokenError):
        access.verify(refresh.issue(1))


def test_non_numeric_subject_is_rejected() -> None:
    with pytest.raises(InvalidTokenError):
        access_tokens.verify(access_tokens.issue("someone"))


@pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
def test_malformed_token(token: str) -> None:
    with pytest.raises(InvalidTokenError):
        access_tokens.verify(token)


def test_decode_unsafe() -> None:
    expired = access_tokens.issue(3, expires_delta=timedelta(seconds=-5), role="user")
    claims = TokenService.decode_unsafe(expired)
    assert claims is not None
    assert claims["sub"] == "3"
    assert claims["role"] == "user"

    assert TokenService.decode_unsafe("garbage") is None
