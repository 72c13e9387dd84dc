"""
auth/service.py -- Registration, login and admin lookup.

AuthService is the only place that decides what a store signal means for the
caller. It recognises exactly three store conditions (user already stored,
user not found, app not found) and recodes them into domain kinds from
auth/errors.py. Everything else a store raises is wrapped in OperationError
with the operation name and re-raised; nothing is retried.

Anti-enumeration [AE]:
  Unknown email and wrong password both raise InvalidCredentialsError, and
  both cost one bcrypt verification, so neither the error kind nor the
  response time tells the caller whether an email is registered.

Concurrency:
  The service holds no mutable state after construction. Store calls and
  bcrypt work run on worker threads via asyncio.to_thread, so one slow call
  never blocks the event loop. Cancelling the awaiting task (or a timeout
  around it) aborts the await immediately; a bcrypt computation already in
  progress runs to completion on its thread and its result is discarded.
  Email uniqueness under concurrent registration is enforced by the store.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import Protocol

from auth.errors import (
    AppRecordNotFoundError,
    InvalidCredentialsError,
    OperationError,
    TokenGenerationError,
    UserAlreadyStoredError,
    UserExistsError,
    UserNotFoundError,
    UserRecordNotFoundError,
)
from auth.models import App, User
from auth.passwords import PasswordHasher
from auth.tokens import new_token

# ---------------------------------------------------------------------------
# Store capabilities
#
# Kept separate even though CredentialStore implements all three, so tests
# (and deployments) can substitute each one independently.
# ---------------------------------------------------------------------------


class UserSaver(Protocol):
    def save_user(self, email: str, pass_hash: bytes) -> int:
        """Persist a user and return its id. Raises UserAlreadyStoredError on duplicate email."""
        ...


class UserProvider(Protocol):
    def user(self, email: str) -> User:
        """Raises UserRecordNotFoundError when no user has this email."""
        ...

    def is_admin(self, user_id: int) -> bool:
        """Raises UserRecordNotFoundError when no user has this id."""
        ...


class AppProvider(Protocol):
    def app(self, app_id: int) -> App:
        """Raises AppRecordNotFoundError when no app has this id."""
        ...


# ---------------------------------------------------------------------------
# Logging helper
# ---------------------------------------------------------------------------


class _OpLog(logging.LoggerAdapter):
    """Prefix every message with key=value context (op, email, ids).

    Only non-secret identifiers are ever passed in. Passwords and hashes
    never reach this adapter.
    """

    def process(self, msg, kwargs):
        context = " ".join(f"{k}={v}" for k, v in self.extra.items())
        return f"{context} | {msg}", kwargs


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class AuthService:
    """Credential verification and token issuance.

    Usage:
        store = CredentialStore(db_url)
        service = AuthService(logger, store, store, store, timedelta(hours=1))
        user_id = await service.register_new_user("a@example.com", "pw")
        token = await service.login("a@example.com", "pw", app_id=1)
        await service.is_admin(user_id)  # False
    """

    def __init__(
        self,
        log: logging.Logger,
        user_saver: UserSaver,
        user_provider: UserProvider,
        app_provider: AppProvider,
        token_ttl: timedelta,
        hasher: PasswordHasher | None = None,
    ) -> None:
        self._log = log
        self._user_saver = user_saver
        self._user_provider = user_provider
        self._app_provider = app_provider
        self._token_ttl = token_ttl
        self._hasher = hasher if hasher is not None else PasswordHasher()

    @property
    def token_ttl(self) -> timedelta:
        return self._token_ttl

    async def login(self, email: str, password: str, app_id: int) -> str:
        """Verify email/password and return a token signed for app_id.

        Raises InvalidCredentialsError for an unknown email or a wrong
        password [AE], OperationError caused by AppRecordNotFoundError if
        app_id is not registered, and TokenGenerationError if signing fails.
        No state is written.
        """
        op = "auth.Login"
        log = _OpLog(self._log, {"op": op, "email": email, "app_id": app_id})
        log.info("trying to log user in")

        try:
            user = await asyncio.to_thread(self._user_provider.user, email)
        except UserRecordNotFoundError as exc:
            # Equalize timing -- do NOT return before running bcrypt [AE]
            await asyncio.to_thread(self._hasher.burn, password)
            log.warning("user not found")
            raise InvalidCredentialsError() from exc
        except Exception as exc:
            log.error("failed to get user: %s", exc)
            raise OperationError(op, exc) from exc

        matched = await asyncio.to_thread(self._hasher.verify, password, user.pass_hash)
        if not matched:
            log.info("invalid credentials (user_id=%s)", user.id)
            raise InvalidCredentialsError()

        try:
            app = await asyncio.to_thread(self._app_provider.app, app_id)
        except AppRecordNotFoundError as exc:
            # Surfaced under the op tag, not recoded: app_id is not secret.
            log.warning("app not found")
            raise OperationError(op, exc) from exc
        except Exception as exc:
            log.error("failed to get app: %s", exc)
            raise OperationError(op, exc) from exc

        log.info("user logged in (user_id=%s)", user.id)

        try:
            token = new_token(user, app, self._token_ttl)
        except TokenGenerationError as exc:
            log.error("failed to generate token: %s", exc)
            raise

        return token

    async def register_new_user(self, email: str, password: str) -> int:
        """Hash the password, store a new user and return the assigned id.

        Raises UserExistsError if the email is already registered. The store's
        uniqueness constraint decides races between concurrent registrations.
        """
        op = "auth.RegisterNewUser"
        log = _OpLog(self._log, {"op": op, "email": email})
        log.info("registering user")

        try:
            pass_hash = await asyncio.to_thread(self._hasher.hash, password)
        except Exception as exc:
            log.error("failed to generate password hash: %s", exc)
            raise OperationError(op, exc) from exc

        try:
            user_id = await asyncio.to_thread(self._user_saver.save_user, email, pass_hash)
        except UserAlreadyStoredError as exc:
            log.warning("user already exists")
            raise UserExistsError() from exc
        except Exception as exc:
            log.error("failed to save user: %s", exc)
            raise OperationError(op, exc) from exc

        log.info("new user registered (user_id=%s)", user_id)
        return user_id

    async def is_admin(self, user_id: int) -> bool:
        """Return the stored admin flag for user_id.

        Raises UserNotFoundError if no such user is stored.
        """
        op = "auth.IsAdmin"
        log = _OpLog(self._log, {"op": op, "user_id": user_id})
        log.info("checking if user is admin")

        try:
            is_admin = await asyncio.to_thread(self._user_provider.is_admin, user_id)
        except UserRecordNotFoundError as exc:
            log.warning("user not found")
            raise UserNotFoundError() from exc
        except Exception as exc:
            log.error("failed to check admin flag: %s", exc)
            raise OperationError(op, exc) from exc

        log.info("check completed (is_admin=%s)", is_admin)
        return is_admin
