# app/repositories/memory_account_repo.py
from __future__ import annotations
from datetime import datetime, timezone
from threading import Lock
from typing import Dict, Optional

from core.errors import AccountNotFound, DuplicateAccount
from domain.models import Account


class InMemoryAccountStore:
    """
    Process-local AccountStore for tests and local runs.

    The lock plays the role of the unique index: insert-if-absent happens in
    one critical section, so concurrent signups for one username have
    exactly one winner.
    """

    def __init__(self):
        self._accounts: Dict[str, Account] = {}
        self._lock = Lock()

    def ensure_indexes(self) -> None:
        return None

    def create_unique(self, username: str, password_hash: bytes) -> Account:
        account = Account(
            username=username,
            password_hash=password_hash,
            created_at=datetime.now(timezone.utc),
        )
        with self._lock:
            if username in self._accounts:
                raise DuplicateAccount(username)
            self._accounts[username] = account
        return account

    def find_by_username(self, username: str) -> Account:
        with self._lock:
            account = self._accounts.get(username)
        if account is None:
            raise AccountNotFound(username)
        return account

    def update_password_hash(
        self,
        username: str,
        new_hash: bytes,
        *,
        expected_hash: Optional[bytes] = None,
    ) -> None:
        with self._lock:
            current = self._accounts.get(username)
            if current is None:
                raise AccountNotFound(username)
            if expected_hash is not None and current.password_hash != expected_hash:
                raise AccountNotFound(username)
            self._accounts[username] = current.model_copy(update={"password_hash": new_hash})
