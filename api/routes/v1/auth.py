"""
api/routes/v1/auth.py -- The three unary auth operations over HTTP.

Routes:
  POST /api/v1/auth/login     -- {email, password, app_id} -> {token}
  POST /api/v1/auth/register  -- {email, password}         -> {user_id}
  POST /api/v1/auth/is-admin  -- {user_id}                 -> {is_admin}

Every handler follows the same chain: validate (auth/validation.py) ->
AuthService under the per-request deadline -> response model. Validation
faults are raised before the service is touched. Service failures are left to
propagate; the exception handlers in api/main.py map them through
api/faults.py.

Security:
  [AE] No handler inspects AuthError subclasses. The wire never reveals
       whether a login failed on the email, the password, or the server.
  Cache-Control: no-store on login responses so tokens are not cached by
       intermediaries.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.models import (
    IsAdminRequest,
    IsAdminResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
)
from auth.service import AuthService
from auth.validation import validate_is_admin, validate_login, validate_register

T = TypeVar("T")

# All routes are public: this service is the one that issues credentials.
router = APIRouter()


async def _with_deadline(request: Request, call: Awaitable[T]) -> T:
    """Await call, cancelling it when the configured request timeout elapses.

    Cancellation propagates into the service and aborts the pending store
    call; asyncio.TimeoutError then surfaces as an internal fault.
    """
    timeout: float = request.app.state.request_timeout
    return await asyncio.wait_for(call, timeout=timeout)


def _service(request: Request) -> AuthService:
    return request.app.state.auth_service


@router.post("/auth/login", response_model=LoginResponse)
async def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Exchange email + password for a token signed for app_id."""
    validate_login(body.email, body.password, body.app_id)

    token = await _with_deadline(request, _service(request).login(body.email, body.password, body.app_id))

    resp = JSONResponse(content=LoginResponse(token=token).model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/register", response_model=RegisterResponse)
async def register(request: Request, body: RegisterRequest) -> RegisterResponse:
    """Create an account and return its id."""
    validate_register(body.email, body.password)

    user_id = await _with_deadline(request, _service(request).register_new_user(body.email, body.password))

    return RegisterResponse(user_id=user_id)


@router.post("/auth/is-admin", response_model=IsAdminResponse)
async def is_admin(request: Request, body: IsAdminRequest) -> IsAdminResponse:
    """Report whether user_id carries the admin flag."""
    validate_is_admin(body.user_id)

    flag = await _with_deadline(request, _service(request).is_admin(body.user_id))

    return IsAdminResponse(is_admin=flag)
