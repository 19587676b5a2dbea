from __future__ import annotations

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from marketplace.app import create_app
from marketplace.core import config as core_config
from marketplace.core.rate_limiter import AttemptLimiter


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_over_limit_is_refused_with_retry_after():
    clock = _Clock()
    limiter = AttemptLimiter(clock)
    limiter.hit("auth:login:1.2.3.4", 2, 60)
    limiter.hit("auth:login:1.2.3.4", 2, 60)
    clock.now += 15
    with pytest.raises(HTTPException) as exc:
        limiter.hit("auth:login:1.2.3.4", 2, 60)
    assert exc.value.status_code == 429
    assert exc.value.headers["Retry-After"] == "45"
    # other clients are unaffected
    limiter.hit("auth:login:5.6.7.8", 2, 60)


def test_window_closes_and_expired_clients_are_dropped():
    clock = _Clock()
    limiter = AttemptLimiter(clock)
    for n in range(50):
        limiter.hit(f"auth:register:10.0.0.{n}", 5, 60)
    assert len(limiter) == 50

    clock.now += 61
    limiter.hit("auth:register:10.0.0.1", 1, 60)
    assert len(limiter) == 1
    with pytest.raises(HTTPException):
        limiter.hit("auth:register:10.0.0.1", 1, 60)


def test_login_endpoint_is_limited(temp_db, monkeypatch):
    monkeypatch.setenv("AUTH_RATE_LIMIT", "2")
    core_config.get_settings.cache_clear()
    client = TestClient(create_app())
    body = {"identifier": "nobody", "password": "password123"}
    assert client.post("/auth/login", json=body).status_code == 401
    assert client.post("/auth/login", json=body).status_code == 401
    limited = client.post("/auth/login", json=body)
    assert limited.status_code == 429
    assert "Retry-After" in limited.headers
