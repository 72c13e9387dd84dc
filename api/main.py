"""
api/main.py -- FastAPI application entry point for the SSO service.

Run with:  python main.py serve
           uvicorn api.main:app

Lifespan builds the object graph once on startup (settings -> logging ->
store -> service) and tears it down on shutdown. Nothing in the request path
reads globals: handlers reach the service through app.state.

Exception handling:
  All handlers return the same ErrorResponse envelope. The mapping from
  exception to wire fault lives in api/faults.py and nowhere else.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from api.faults import error_body
from api.models import HealthResponse
from api.routes.v1.auth import router as auth_router
from auth.errors import AuthError, InvalidArgumentError
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import CredentialStore
from core.config import get_settings
from core.logs import setup_logging

VERSION = "0.1.0"

logger = logging.getLogger("sso.api")


# ---------------------------------------------------------------------------
# Lifespan -- startup / shutdown
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage the store and service across the server lifetime.

    Startup order matters: the store must exist before the service that
    holds it. Shutdown disposes the engine's connection pool.
    """
    settings = get_settings()
    log = setup_logging(settings.env)
    log.info("SSO service starting (env=%s)", settings.env)

    store = CredentialStore(settings.storage_url)
    app.state.store = store
    app.state.auth_service = AuthService(
        logging.getLogger("sso.auth"),
        store,
        store,
        store,
        settings.token_ttl,
        hasher=PasswordHasher(settings.bcrypt_rounds),
    )
    app.state.request_timeout = settings.request_timeout_seconds
    logger.info("Auth initialized (token_ttl=%ss)", settings.token_ttl_seconds)

    yield

    app.state.store.close()
    logger.info("SSO service shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="SSO Auth API",
    description="Account registration, credential verification and per-app token issuance.",
    version=VERSION,
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    # Unhandled exceptions escape call_next and are answered by the catch-all
    # handler further out; they are still access-logged, as a 500.
    start = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s %d %.1fms %s",
            request.method,
            request.url.path,
            status_code,
            ms,
            request.client.host if request.client else "unknown",
        )


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


def _fault_response(exc: BaseException) -> JSONResponse:
    status_code, body = error_body(exc)
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(InvalidArgumentError)
async def invalid_argument_handler(request: Request, exc: InvalidArgumentError) -> JSONResponse:
    return _fault_response(exc)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Unparseable bodies are client faults, like missing fields."""
    logger.debug("malformed request on %s: %s", request.url.path, exc.errors())
    return _fault_response(exc)


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Collapse every service failure to the generic internal fault [AE].

    The kind is logged server-side so operators can still tell them apart.
    """
    logger.info("%s failed: %s: %s", request.url.path, type(exc).__name__, exc)
    return _fault_response(exc)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected server errors, including request timeouts.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _fault_response(exc)


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, version, and whether the credential store answers."""
    store: CredentialStore = request.app.state.store
    database = "ok" if store.ping() else "error"
    return HealthResponse(
        status="healthy" if database == "ok" else "degraded",
        version=VERSION,
        components={"app": "ok", "database": database},
    )
