"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and the service
do the work; these only own the domain shape.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class User:
    """A registered account.

    id is assigned by the store on insert and never changes afterwards.
    pass_hash is the bcrypt hash as raw bytes -- the plaintext password is
    never held on this object. repr=False keeps the hash out of log lines and
    tracebacks that format the dataclass.
    """

    email: str
    pass_hash: bytes = field(repr=False)
    id: int | None = None
    is_admin: bool = False


@dataclass
class App:
    """A client application that tokens are issued for.

    Provisioned out of band (see main.py create-app). secret is the HMAC key
    used to sign every token issued for this application; only holders of
    the same secret can verify those tokens.
    """

    id: int
    name: str
    secret: bytes = field(repr=False)
