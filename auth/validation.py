"""
auth/validation.py -- Structural request checks at the service boundary.

Pure predicates: no I/O, no store access. They only reject requests that are
missing required values (protobuf-style zero values count as missing). All
semantic checks -- does the user exist, is the password right, is the email
taken -- belong to AuthService.
"""

from __future__ import annotations

from auth.errors import InvalidArgumentError


def validate_login(email: str, password: str, app_id: int) -> None:
    if not email:
        raise InvalidArgumentError("email", "email is required")
    if not password:
        raise InvalidArgumentError("password", "password is required")
    if not app_id:
        raise InvalidArgumentError("app_id", "app_id is required")


def validate_register(email: str, password: str) -> None:
    if not email:
        raise InvalidArgumentError("email", "email is required")
    if not password:
        raise InvalidArgumentError("password", "password is required")


def validate_is_admin(user_id: int) -> None:
    if not user_id:
        raise InvalidArgumentError("user_id", "user_id is required")
