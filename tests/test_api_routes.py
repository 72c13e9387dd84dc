"""
tests/test_api_routes.py -- Integration tests for the auth HTTP surface.

These tests exercise the full stack: FastAPI routing -> validation ->
AuthService -> CredentialStore -> fault mapping. Validation tests use a
MagicMock service to prove the service is never reached.

Fixtures used (from conftest.py):
  - api_client: (client, store, app_id) -- real service on a temp SQLite file
  - make_client: factory for a client around any service object
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from auth.errors import (
    InvalidCredentialsError,
    OperationError,
    UserExistsError,
    UserNotFoundError,
)
from auth.store import CredentialStore

PASSWORD = "Sup3r-secret"

INTERNAL = {"error": {"code": "internal", "message": "internal error"}}


def _email() -> str:
    return f"api-{uuid.uuid4().hex[:12]}@example.com"


def _register(client: TestClient, email: str, password: str = PASSWORD) -> int:
    resp = client.post("/api/v1/auth/register", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()["user_id"]


# ---------------------------------------------------------------------------
# Happy paths
# ---------------------------------------------------------------------------


class TestHappyPath:
    def test_register_then_login(self, api_client: tuple[TestClient, CredentialStore, int]) -> None:
        client, store, app_id = api_client
        email = _email()
        uid = _register(client, email)
        assert uid > 0

        resp = client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD, "app_id": app_id})

        assert resp.status_code == 200
        assert resp.headers["Cache-Control"] == "no-store"
        token = resp.json()["token"]
        claims = jwt.decode(token, store.app(app_id).secret, algorithms=["HS256"])
        assert claims["uid"] == uid
        assert claims["email"] == email
        assert claims["app_id"] == app_id

    def test_is_admin_reflects_store_flag(self, api_client: tuple[TestClient, CredentialStore, int]) -> None:
        client, store, _ = api_client
        uid = _register(client, _email())

        resp = client.post("/api/v1/auth/is-admin", json={"user_id": uid})
        assert resp.status_code == 200
        assert resp.json() == {"is_admin": False}

        store.set_admin(uid)

        resp = client.post("/api/v1/auth/is-admin", json={"user_id": uid})
        assert resp.json() == {"is_admin": True}

    def test_health(self, api_client: tuple[TestClient, CredentialStore, int]) -> None:
        client, _, _ = api_client
        resp = client.get("/api/v1/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["components"] == {"app": "ok", "database": "ok"}


# ---------------------------------------------------------------------------
# Anti-enumeration: every service failure looks the same on the wire
# ---------------------------------------------------------------------------


class TestFaultCollapsing:
    def test_wrong_password_and_unknown_email_identical(self, api_client: tuple[TestClient, CredentialStore, int]) -> None:
        client, _, app_id = api_client
        email = _email()
        _register(client, email)

        wrong_pw = client.post("/api/v1/auth/login", json={"email": email, "password": "nope", "app_id": app_id})
        no_user = client.post("/api/v1/auth/login", json={"email": _email(), "password": PASSWORD, "app_id": app_id})

        assert wrong_pw.status_code == no_user.status_code == 500
        assert wrong_pw.json() == no_user.json() == INTERNAL

    def test_duplicate_registration_is_internal(self, api_client: tuple[TestClient, CredentialStore, int]) -> None:
        client, store, _ = api_client
        email = _email()
        _register(client, email)
        before = store.count_users()

        resp = client.post("/api/v1/auth/register", json={"email": email, "password": PASSWORD})

        assert resp.status_code == 500
        assert resp.json() == INTERNAL
        assert store.count_users() == before

    def test_unknown_app_is_internal(self, api_client: tuple[TestClient, CredentialStore, int]) -> None:
        client, _, app_id = api_client
        email = _email()
        _register(client, email)
        resp = client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD, "app_id": app_id + 50})
        assert resp.status_code == 500
        assert resp.json() == INTERNAL

    def test_unknown_user_is_admin_is_internal(self, api_client: tuple[TestClient, CredentialStore, int]) -> None:
        client, _, _ = api_client
        resp = client.post("/api/v1/auth/is-admin", json={"user_id": 424242})
        assert resp.status_code == 500
        assert resp.json() == INTERNAL

    @pytest.mark.parametrize(
        "exc",
        [
            InvalidCredentialsError(),
            UserExistsError(),
            UserNotFoundError(),
            OperationError("auth.IsAdmin", RuntimeError("db down")),
            RuntimeError("unexpected"),
        ],
    )
    def test_every_service_failure_maps_to_internal(self, make_client, exc: Exception) -> None:
        service = MagicMock()
        service.is_admin = AsyncMock(side_effect=exc)
        client = make_client(service)

        resp = client.post("/api/v1/auth/is-admin", json={"user_id": 1})

        assert resp.status_code == 500
        assert resp.json() == INTERNAL
        assert "db down" not in resp.text

    def test_deadline_exceeded_is_internal(self, make_client) -> None:
        async def stalled(user_id: int) -> bool:
            await asyncio.sleep(5)
            return True

        service = MagicMock()
        service.is_admin = stalled
        client = make_client(service, request_timeout=0.05)

        resp = client.post("/api/v1/auth/is-admin", json={"user_id": 1})

        assert resp.status_code == 500
        assert resp.json() == INTERNAL

    def test_unhandled_failure_still_access_logged(self, make_client, caplog) -> None:
        async def stalled(user_id: int) -> bool:
            await asyncio.sleep(5)
            return True

        service = MagicMock()
        service.is_admin = stalled
        client = make_client(service, request_timeout=0.05)

        with caplog.at_level(logging.INFO, logger="sso.api"):
            client.post("/api/v1/auth/is-admin", json={"user_id": 1})

        access = [r.getMessage() for r in caplog.records if r.getMessage().startswith("POST ")]
        assert len(access) == 1
        assert access[0].startswith("POST /api/v1/auth/is-admin 500 ")


# ---------------------------------------------------------------------------
# Validation: client faults, service never invoked
# ---------------------------------------------------------------------------


def _mock_service() -> MagicMock:
    service = MagicMock()
    service.login = AsyncMock(return_value="token")
    service.register_new_user = AsyncMock(return_value=1)
    service.is_admin = AsyncMock(return_value=False)
    return service


class TestValidation:
    @pytest.mark.parametrize(
        ("body", "field"),
        [
            ({"email": "", "password": "pw", "app_id": 1}, "email"),
            ({"email": "a@example.com", "password": "", "app_id": 1}, "password"),
            ({"email": "a@example.com", "password": "pw", "app_id": 0}, "app_id"),
            ({"password": "pw", "app_id": 1}, "email"),
            ({"email": "a@example.com", "password": "pw"}, "app_id"),
        ],
    )
    def test_login_rejects_missing_fields(self, make_client, body: dict, field: str) -> None:
        service = _mock_service()
        client = make_client(service)

        resp = client.post("/api/v1/auth/login", json=body)

        assert resp.status_code == 400
        assert resp.json() == {"error": {"code": "invalid_argument", "message": f"{field} is required"}}
        service.login.assert_not_called()

    @pytest.mark.parametrize(
        ("body", "field"),
        [
            ({"email": "", "password": "pw"}, "email"),
            ({"email": "a@example.com", "password": ""}, "password"),
            ({}, "email"),
        ],
    )
    def test_register_rejects_missing_fields(self, make_client, body: dict, field: str) -> None:
        service = _mock_service()
        client = make_client(service)

        resp = client.post("/api/v1/auth/register", json=body)

        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == f"{field} is required"
        service.register_new_user.assert_not_called()

    def test_is_admin_rejects_zero_user_id(self, make_client) -> None:
        service = _mock_service()
        client = make_client(service)

        resp = client.post("/api/v1/auth/is-admin", json={"user_id": 0})

        assert resp.status_code == 400
        assert resp.json()["error"] == {"code": "invalid_argument", "message": "user_id is required"}
        service.is_admin.assert_not_called()

    def test_wrong_json_type_is_invalid_argument(self, make_client) -> None:
        service = _mock_service()
        client = make_client(service)

        resp = client.post("/api/v1/auth/login", json={"email": "a@example.com", "password": "pw", "app_id": "one"})

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "invalid_argument"
        service.login.assert_not_called()

    def test_app_id_outside_int32_is_invalid_argument(self, make_client) -> None:
        service = _mock_service()
        client = make_client(service)

        resp = client.post(
            "/api/v1/auth/login",
            json={"email": "a@example.com", "password": "pw", "app_id": 2**31},
        )

        assert resp.status_code == 400
        service.login.assert_not_called()

    def test_validation_passes_through_to_service(self, make_client) -> None:
        service = _mock_service()
        client = make_client(service)

        resp = client.post("/api/v1/auth/login", json={"email": "a@example.com", "password": "pw", "app_id": 3})

        assert resp.status_code == 200
        assert resp.json() == {"token": "token"}
        service.login.assert_awaited_once_with("a@example.com", "pw", 3)
