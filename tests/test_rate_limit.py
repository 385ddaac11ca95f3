"""
Tests for the rate limiter and its middleware.
"""

import pytest
from fastapi.testclient import TestClient

from conftest import API
from planify.api.rate_limit import RateLimiter
from planify.core.config import Settings, settings


@pytest.fixture(name="app_settings")
def app_settings_fixture() -> Settings:
    return settings.model_copy(update={"RATE_LIMIT_REQUESTS": 3, "RATE_LIMIT_WINDOW_SECONDS": 60})


def test_limiter_counts_within_window() -> None:
    limiter = RateLimiter(max_requests=2, window_seconds=10)

    assert limiter.hit("ip:1", now=0) == (True, 1, 10)
    assert limiter.hit("ip:1", now=1) == (True, 0, 9)
    assert limiter.hit("ip:1", now=2) == (False, 0, 8)


def test_limiter_resets_after_window() -> None:
    limiter = RateLimiter(max_requests=1, window_seconds=10)

    assert limiter.hit("ip:1", now=0)[0] is True
    assert limiter.hit("ip:1", now=5)[0] is False
    assert limiter.hit("ip:1", now=10)[0] is True


def test_limiter_keys_are_independent() -> None:
    limiter = RateLimiter(max_requests=1, window_seconds=10)

    assert limiter.hit("ip:1", now=0)[0] is True
    assert limiter.hit("ip:2", now=0)[0] is True
    assert limiter.hit("ip:1", now=1)[0] is False


def test_middleware_rejects_after_limit(client: TestClient) -> None:
    for remaining in (2, 1, 0):
        response = client.get(f"{API}/health")
        assert response.status_code == 200
        assert response.headers["X-RateLimit-Limit"] == "3"
        assert response.headers["X-RateLimit-Remaining"] == str(remaining)

    response = client.get(f"{API}/health")
    assert response.status_code == 429
    assert response.json() == {
        "success": False,
        "message": "Too many requests from this IP, please try again later.",
    }
    assert int(response.headers["Retry-After"]) > 0


def test_root_is_not_limited(client: TestClient) -> None:
    for _ in range(5):
        assert client.get("/").status_code == 200
