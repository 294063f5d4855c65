"""Pytest fixtures.

HTTP tests get a fresh application per test backed by its own in-memory
SQLite database; core tests get a SessionManager wired to in-memory stores
and a controllable clock.
"""
from __future__ import annotations

import pytest

from api import create_app
from api.config import TestingConfig
from models.stores import InMemoryRefreshTokenStore, InMemoryUserStore
from tests.helpers import FakeClock
from utils.security import PasswordHasher
from utils.sessions import SessionConfig, SessionManager

SECRET = "unit-test-signing-secret-0123456789abcdef"


@pytest.fixture()
def hasher() -> PasswordHasher:
    """Argon2 with the cheapest parameters argon2 accepts."""
    return PasswordHasher(time_cost=1, memory_cost=8, parallelism=1)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def manager(hasher, clock) -> SessionManager:
    return SessionManager(
        SessionConfig(jwt_secret=SECRET, api_key="svc-key"),
        users=InMemoryUserStore(),
        refresh_tokens=InMemoryRefreshTokenStore(),
        hasher=hasher,
        clock=clock,
    )


@pytest.fixture()
def app():
    app = create_app(TestingConfig)
    app.logger.setLevel("WARNING")
    yield app
    app.extensions["storage"].drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def register(client):
    """POST /api/users and return the JSON body."""
    def _register(email="a@x.com", password="secret1"):
        resp = client.post("/api/users", json={"email": email, "password": password})
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()

    return _register


@pytest.fixture()
def login(client, register):
    """Register and log in; returns the login JSON body."""
    def _login(email="a@x.com", password="secret1"):
        register(email, password)
        resp = client.post("/api/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.get_json()
        return resp.get_json()

    return _login
