"""
auth/errors.py -- Exception hierarchy for the SSO service.

Three families, kept apart so each layer only catches what it owns:

  Store signals (StorageError and subclasses)
      Raised by any UserSaver / UserProvider / AppProvider implementation.
      AuthService recognises exactly the "already exists" and "not found"
      subclasses and recodes them into domain kinds.

  Domain kinds (AuthError and subclasses)
      Raised by AuthService. The transport collapses all of them to one
      generic internal fault on the wire.

  Client fault (InvalidArgumentError)
      Raised by auth/validation.py before the service is reached.

Layer rule: stdlib only.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Store signals
# ---------------------------------------------------------------------------


class StorageError(Exception):
    """Base class for conditions a credential store reports on purpose."""


class UserAlreadyStoredError(StorageError):
    """A user with the same email is already stored."""


class UserRecordNotFoundError(StorageError):
    """No user matches the lookup key."""


class AppRecordNotFoundError(StorageError):
    """No application matches the lookup key."""


# ---------------------------------------------------------------------------
# Domain kinds
# ---------------------------------------------------------------------------


class AuthError(Exception):
    """Base class for every failure AuthService raises."""


class InvalidCredentialsError(AuthError):
    """Unknown email or wrong password. The two cases are indistinguishable."""

    def __init__(self) -> None:
        super().__init__("invalid credentials")


class UserExistsError(AuthError):
    def __init__(self) -> None:
        super().__init__("user exists")


class UserNotFoundError(AuthError):
    """Admin lookup for a user id that is not stored."""

    def __init__(self) -> None:
        super().__init__("user not found")


class TokenGenerationError(AuthError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"token generation failed: {reason}")


class OperationError(AuthError):
    """An unrecognised store or system failure, tagged with the operation name.

    The original exception is always attached as __cause__ (raise ... from exc)
    so nothing is lost for server-side logging.
    """

    def __init__(self, op: str, cause: BaseException) -> None:
        super().__init__(f"{op}: {cause}")
        self.op = op


# ---------------------------------------------------------------------------
# Client fault
# ---------------------------------------------------------------------------


class InvalidArgumentError(Exception):
    """A request is structurally invalid (missing field, zero id)."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message
