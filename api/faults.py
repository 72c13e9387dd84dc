"""
api/faults.py -- The single mapping from exceptions to wire faults.

Policy [AE]: only client faults (structurally invalid requests) are reported
as such. Every AuthService failure -- wrong password, unknown email, duplicate
registration, unknown app, store outage -- is reported as the same generic
internal fault, so a caller cannot tell from the response which one happened.

FAULT_TABLE is the authoritative, reviewable list. Anything not listed falls
back to INTERNAL.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi.exceptions import RequestValidationError

from api.models import ErrorDetail, ErrorResponse
from auth.errors import (
    AuthError,
    InvalidArgumentError,
    InvalidCredentialsError,
    OperationError,
    TokenGenerationError,
    UserExistsError,
    UserNotFoundError,
)


@dataclass(frozen=True)
class Fault:
    code: str
    status_code: int


INVALID_ARGUMENT = Fault("invalid_argument", 400)
INTERNAL = Fault("internal", 500)

INTERNAL_MESSAGE = "internal error"

FAULT_TABLE: dict[type[BaseException], Fault] = {
    # Client faults
    InvalidArgumentError: INVALID_ARGUMENT,
    RequestValidationError: INVALID_ARGUMENT,
    # AuthService failures -- collapsed on purpose [AE]
    InvalidCredentialsError: INTERNAL,
    UserExistsError: INTERNAL,
    UserNotFoundError: INTERNAL,
    TokenGenerationError: INTERNAL,
    OperationError: INTERNAL,
    AuthError: INTERNAL,
}


def fault_for(exc: BaseException) -> Fault:
    """Resolve the fault for exc by walking its MRO; unknown types are INTERNAL."""
    for klass in type(exc).__mro__:
        fault = FAULT_TABLE.get(klass)
        if fault is not None:
            return fault
    return INTERNAL


def error_body(exc: BaseException) -> tuple[int, dict]:
    """Return (status_code, JSON body) for exc.

    Client faults carry their own message. Internal faults always carry the
    fixed INTERNAL_MESSAGE; the real reason stays in the server log.
    """
    fault = fault_for(exc)
    if fault is INVALID_ARGUMENT:
        if isinstance(exc, InvalidArgumentError):
            message = exc.message
        else:
            message = "malformed request"
    else:
        message = INTERNAL_MESSAGE
    body = ErrorResponse(error=ErrorDetail(code=fault.code, message=message)).model_dump()
    return fault.status_code, body
