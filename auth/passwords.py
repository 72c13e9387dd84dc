"""
auth/passwords.py -- bcrypt password hashing.

bcrypt is used directly (no passlib wrapper). Cost is fixed per hasher
instance at construction; the default of 12 is the safe production value and
tests construct a cheaper hasher.

bcrypt only reads the first 72 bytes of its input, and bcrypt 5 raises
ValueError instead of ignoring the rest. Both hash and verify therefore cut
the UTF-8 encoding to 72 bytes themselves, so a longer password registers and
logs in normally, and any two passwords sharing the first 72 bytes match.
"""

from __future__ import annotations

import bcrypt

DEFAULT_ROUNDS = 12
MAX_PASSWORD_BYTES = 72


def _encode(plain: str) -> bytes:
    return plain.encode("utf-8")[:MAX_PASSWORD_BYTES]


class PasswordHasher:
    """Salted, slow, one-way password hashing.

    Usage:
        hasher = PasswordHasher()
        pass_hash = hasher.hash("s3cret")
        hasher.verify("s3cret", pass_hash)  # True
    """

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        self.rounds = rounds
        # Timing equalization target: verified against when the email is
        # unknown, so both login failures cost one full bcrypt check.
        self._dummy_hash = self.hash("sso_timing_dummy")

    def hash(self, plain: str) -> bytes:
        return bcrypt.hashpw(_encode(plain), bcrypt.gensalt(rounds=self.rounds))

    def verify(self, plain: str, hashed: bytes) -> bool:
        """Return True if the plaintext password matches the bcrypt hash.

        A malformed stored hash is a mismatch, not an error: the caller cannot
        do anything with it except refuse the login.
        """
        try:
            return bcrypt.checkpw(_encode(plain), hashed)
        except ValueError:
            return False

    def burn(self, plain: str) -> None:
        """Run one verification against the dummy hash and discard the result."""
        self.verify(plain, self._dummy_hash)
