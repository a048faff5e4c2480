"""
Password hashing and verification utilities.

Follows Layer 1 rules:
- Always use a strong, memory-hard hashing algorithm (argon2id)
- Hashes are self-describing so parameters can be raised over time
- Legacy bcrypt hashes are still recognised and flagged for upgrade
- NEVER log plaintext passwords or hashes
"""
from __future__ import annotations
from typing import Any

import bcrypt
from argon2 import PasswordHasher as Argon2Hasher, Type, extract_parameters
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from argon2.low_level import ARGON2_VERSION

from domain.models import VerificationOutcome

ARGON2_PREFIX = "$argon2"
BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")
# bcrypt only ever looked at the first 72 bytes of a password
BCRYPT_MAX_PASSWORD_BYTES = 72

# Ordered weakest → strongest for upgrade decisions
_TYPE_RANK = {Type.D: 0, Type.I: 0, Type.ID: 1}


class PasswordHasher:
    """
    Produces and verifies opaque, versioned password hashes.

    Pure: output depends only on the inputs and the parameters fixed at
    construction.
    """

    def __init__(
        self,
        *,
        time_cost: int = 3,
        memory_cost: int = 65536,
        parallelism: int = 4,
        hash_len: int = 32,
        salt_len: int = 16,
    ):
        self._ph = Argon2Hasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            hash_len=hash_len,
            salt_len=salt_len,
            type=Type.ID,
        )

    @classmethod
    def from_settings(cls, settings: Any) -> "PasswordHasher":
        return cls(
            time_cost=settings.ARGON2_TIME_COST,
            memory_cost=settings.ARGON2_MEMORY_COST,
            parallelism=settings.ARGON2_PARALLELISM,
            hash_len=settings.ARGON2_HASH_LEN,
            salt_len=settings.ARGON2_SALT_LEN,
        )

    def hash(self, password: bytes) -> bytes:
        """
        Hash a password with argon2id under the current parameters.

        A fresh random salt is drawn on every call.

        Args:
            password: Plaintext password bytes

        Returns:
            PHC-encoded hash as ASCII bytes
        """
        return self._ph.hash(password).encode("ascii")

    def verify(self, password: bytes, password_hash: bytes) -> VerificationOutcome:
        """
        Classify a password against a stored hash.

        Never raises for malformed blobs; those are UNRECOGNIZED_FORMAT.

        Args:
            password: Plaintext password bytes
            password_hash: Stored opaque hash blob

        Returns:
            VerificationOutcome
        """
        try:
            encoded = bytes(password_hash).decode("ascii")
        except (TypeError, ValueError):
            return VerificationOutcome.UNRECOGNIZED_FORMAT

        if encoded.startswith(ARGON2_PREFIX):
            return self._verify_argon2(password, encoded)
        if encoded.startswith(BCRYPT_PREFIXES):
            return self._verify_bcrypt(password, encoded)
        return VerificationOutcome.UNRECOGNIZED_FORMAT

    def _verify_argon2(self, password: bytes, encoded: str) -> VerificationOutcome:
        try:
            params = extract_parameters(encoded)
        except InvalidHashError:
            return VerificationOutcome.UNRECOGNIZED_FORMAT

        try:
            self._ph.verify(encoded, password)
        except VerifyMismatchError:
            return VerificationOutcome.INVALID
        except (VerificationError, InvalidHashError):
            return VerificationOutcome.UNRECOGNIZED_FORMAT

        if self._is_weaker(params):
            return VerificationOutcome.NEEDS_REHASH
        return VerificationOutcome.VALID

    def _is_weaker(self, params) -> bool:
        """True when any current parameter exceeds the one embedded in the hash."""
        ph = self._ph
        return (
            _TYPE_RANK.get(params.type, -1) < _TYPE_RANK[ph.type]
            or params.version < ARGON2_VERSION
            or params.time_cost < ph.time_cost
            or params.memory_cost < ph.memory_cost
            or params.parallelism < ph.parallelism
            or params.hash_len < ph.hash_len
        )

    def _verify_bcrypt(self, password: bytes, encoded: str) -> VerificationOutcome:
        try:
            ok = bcrypt.checkpw(password[:BCRYPT_MAX_PASSWORD_BYTES], encoded.encode("ascii"))
        except ValueError:
            return VerificationOutcome.UNRECOGNIZED_FORMAT
        # Legacy scheme: a match is always upgraded to argon2id
        return VerificationOutcome.NEEDS_REHASH if ok else VerificationOutcome.INVALID
