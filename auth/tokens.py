"""
auth/tokens.py -- Session token issuance and verification.

Security design decisions:
  JWT: python-jose with HS256. Every token is signed with the secret of the
       application it is issued for, so a token can only be verified by a
       holder of that application's secret. Claims are exactly:
         uid     -- user id
         email   -- user email
         app_id  -- audience application id
         exp     -- issue time + TTL (seconds since epoch)

  Tokens are stateless and never persisted. Expiry is the only invalidation
  mechanism; there is no refresh and no revocation list.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from jose import jwt
from jose.exceptions import JOSEError

from auth.errors import TokenGenerationError

if TYPE_CHECKING:
    from auth.models import App, User

ALGORITHM = "HS256"


def new_token(user: User, app: App, ttl: timedelta) -> str:
    """Build and sign a session token for user, scoped to app, valid for ttl.

    Raises TokenGenerationError only when signing itself fails, e.g. the
    application has no usable secret. Not a retryable condition.
    """
    if not app.secret:
        raise TokenGenerationError(f"app {app.id} has an empty secret")

    expire = datetime.now(timezone.utc) + ttl
    claims = {
        "uid": user.id,
        "email": user.email,
        "app_id": app.id,
        "exp": expire,
    }
    try:
        return jwt.encode(claims, app.secret, algorithm=ALGORITHM)
    except JOSEError as exc:
        raise TokenGenerationError(str(exc)) from exc


def decode_token(token: str, secret: bytes | str) -> dict:
    """Verify signature and expiry and return the claims dict.

    Raises jose.JWTError (signature mismatch, expired, malformed). Relying
    parties call this with the secret of the application they belong to.
    """
    return jwt.decode(token, secret, algorithms=[ALGORITHM])
