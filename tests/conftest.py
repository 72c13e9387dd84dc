"""
tests/conftest.py -- Shared test fixtures for the SSO service.

This module provides:
  - store: CredentialStore on a per-test SQLite file
  - hasher: a cheap (cost 4) PasswordHasher shared by the whole session
  - app_id: a registered application signed with APP_SECRET
  - service: AuthService wired to the test store
  - api_client: TestClient with a patched lifespan wiring the same objects

Design: SQLite files under tmp_path (not :memory:) are required because
AuthService runs every store call on a worker thread. SQLAlchemy gives each
thread its own connection, and a plain :memory: database is per-connection,
so worker threads would see a blank schema.
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import CredentialStore

APP_SECRET = b"secret-sample"
TOKEN_TTL = timedelta(hours=1)


# ---------------------------------------------------------------------------
# Domain fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def store(tmp_path) -> Generator[CredentialStore, None, None]:
    s = CredentialStore(f"sqlite:///{tmp_path / 'sso_test.db'}")
    yield s
    s.close()


@pytest.fixture
def app_id(store: CredentialStore) -> int:
    return store.create_app("test-app", APP_SECRET)


@pytest.fixture
def service(store: CredentialStore, hasher: PasswordHasher) -> AuthService:
    return AuthService(logging.getLogger("sso.test"), store, store, store, TOKEN_TTL, hasher=hasher)


# ---------------------------------------------------------------------------
# HTTP fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(store: CredentialStore, auth_service, request_timeout: float = 5.0):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test objects into app.state so TestClient routes see
    the isolated test store rather than the configured database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.store = store
        app.state.auth_service = auth_service
        app.state.request_timeout = request_timeout
        yield

    return test_lifespan


@pytest.fixture
def api_client(store: CredentialStore, service: AuthService, app_id: int) -> Generator[tuple[TestClient, CredentialStore, int], None, None]:
    """Yield (client, store, app_id) for API integration tests."""
    app.router.lifespan_context = _patch_lifespan(store, service)
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, store, app_id


@pytest.fixture
def make_client():
    """Factory for a TestClient around an arbitrary service object (fakes, mocks).

    raise_server_exceptions=False so unexpected exceptions surface as the
    500 response a real caller would see.
    """
    clients: list[TestClient] = []

    def _make(auth_service, store=None, request_timeout: float = 5.0) -> TestClient:
        app.router.lifespan_context = _patch_lifespan(store, auth_service, request_timeout)
        client = TestClient(app, raise_server_exceptions=False)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)
