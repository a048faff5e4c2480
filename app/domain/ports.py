"""
Contracts consumed by AuthService.

Implementations live in repositories/ (account stores) and core/auth.py
(token issuer). AuthService only depends on these protocols.
"""
from __future__ import annotations
from typing import Optional, Protocol
from domain.models import Account, IdentityClaims


class AccountStore(Protocol):
    """
    Persistence contract for accounts keyed by unique username.

    Uniqueness is the store's job (unique index), never a check-then-insert
    in the caller. Failures other than the two domain signals are raised
    as core.errors.StoreError.
    """

    def ensure_indexes(self) -> None:
        """Idempotently create the accounts table and its unique username index."""
        ...

    def create_unique(self, username: str, password_hash: bytes) -> Account:
        """Insert a new account or raise DuplicateAccount."""
        ...

    def find_by_username(self, username: str) -> Account:
        """Return the account or raise AccountNotFound."""
        ...

    def update_password_hash(
        self,
        username: str,
        new_hash: bytes,
        *,
        expected_hash: Optional[bytes] = None,
    ) -> None:
        """
        Replace the stored hash or raise AccountNotFound.

        With expected_hash, only update if the stored hash still equals it.
        """
        ...


class TokenIssuer(Protocol):
    def sign(self, claims: IdentityClaims) -> str: ...
    def verify(self, token: str) -> IdentityClaims: ...
