"""
Password hashing via argon2-cffi.

The work factor is tunable through configuration; hashing is intentionally
slow and CPU bound.
"""
from __future__ import annotations

import logging

from argon2 import PasswordHasher as Argon2Hasher
from argon2.exceptions import InvalidHashError, VerificationError

logger = logging.getLogger(__name__)


class PasswordHasher:
    """Salted one-way password digests (argon2id)."""

    def __init__(self, time_cost: int = 3, memory_cost: int = 65536, parallelism: int = 4):
        self._ph = Argon2Hasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
        )

    def hash(self, plaintext: str) -> str:
        """Hash a plaintext password."""
        return self._ph.hash(plaintext)

    def verify(self, plaintext: str, digest: str) -> bool:
        """Check a plaintext password against a stored digest.

        Returns False on mismatch or on an unreadable digest, never raises
        for either.
        """
        if not plaintext or not digest:
            return False
        try:
            return self._ph.verify(digest, plaintext)
        except VerificationError:
            return False
        except InvalidHashError:
            logger.warning("Stored password digest could not be parsed")
            return False

    def needs_rehash(self, digest: str) -> bool:
        """True when the digest was produced with other cost parameters."""
        try:
            return self._ph.check_needs_rehash(digest)
        except InvalidHashError:
            return False
