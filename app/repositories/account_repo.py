"""
Repository for account database operations (Postgres).

Follows Layer 4 rules:
- Data access MUST be routed through repository layer
- No raw queries inside API routes
- Username uniqueness is enforced by a unique index, never by check-then-insert
"""
from __future__ import annotations
from typing import Callable, ContextManager, Optional

import psycopg2
from psycopg2 import errors, sql

from core.db import get_conn
from core.errors import AccountNotFound, DuplicateAccount, StoreError
from domain.models import Account


class PostgresAccountStore:
    """
    AccountStore backed by one uniquely-indexed table.

    Args:
        table: Table name (quoted as an identifier, never interpolated raw)
        conn_factory: Context manager yielding a psycopg2 connection
    """

    def __init__(
        self,
        table: str = "accounts",
        conn_factory: Callable[[], ContextManager] = get_conn,
    ):
        self._table = sql.Identifier(table)
        self._index = sql.Identifier(f"{table}_username_key")
        self._conn = conn_factory

    def ensure_indexes(self) -> None:
        try:
            with self._conn() as conn, conn.cursor() as cur:
                cur.execute(sql.SQL("""
                    CREATE TABLE IF NOT EXISTS {table} (
                        username      TEXT        NOT NULL,
                        password_hash BYTEA       NOT NULL,
                        created_at    TIMESTAMPTZ NOT NULL DEFAULT now(),
                        updated_at    TIMESTAMPTZ NOT NULL DEFAULT now()
                    )
                """).format(table=self._table))
                cur.execute(sql.SQL(
                    "CREATE UNIQUE INDEX IF NOT EXISTS {index} ON {table} (username)"
                ).format(index=self._index, table=self._table))
        except psycopg2.Error as exc:
            raise StoreError("could not ensure account indexes") from exc

    def create_unique(self, username: str, password_hash: bytes) -> Account:
        """
        Insert a new account.

        Raises:
            DuplicateAccount: the unique index already holds this username
            StoreError: any other database failure
        """
        try:
            with self._conn() as conn, conn.cursor() as cur:
                cur.execute(sql.SQL("""
                    INSERT INTO {table} (username, password_hash)
                    VALUES (%s, %s)
                    RETURNING created_at
                """).format(table=self._table), (username, psycopg2.Binary(password_hash)))
                row = cur.fetchone()
        except errors.UniqueViolation:
            raise DuplicateAccount(username) from None
        except psycopg2.Error as exc:
            raise StoreError("could not create account") from exc
        except ValueError as exc:
            # driver refuses NUL characters in TEXT parameters before reaching Postgres
            raise StoreError("could not create account") from exc
        return Account(username=username, password_hash=password_hash, created_at=row[0] if row else None)

    def find_by_username(self, username: str) -> Account:
        try:
            with self._conn() as conn, conn.cursor() as cur:
                cur.execute(sql.SQL("""
                    SELECT username, password_hash, created_at
                    FROM {table}
                    WHERE username = %s
                    LIMIT 1
                """).format(table=self._table), (username,))
                row = cur.fetchone()
        except psycopg2.Error as exc:
            raise StoreError("could not read account") from exc
        except ValueError:
            raise AccountNotFound(username) from None
        if not row:
            raise AccountNotFound(username)
        return Account(username=row[0], password_hash=bytes(row[1]), created_at=row[2])

    def update_password_hash(
        self,
        username: str,
        new_hash: bytes,
        *,
        expected_hash: Optional[bytes] = None,
    ) -> None:
        query = sql.SQL("""
            UPDATE {table}
            SET password_hash = %s, updated_at = now()
            WHERE username = %s
        """).format(table=self._table)
        params = [psycopg2.Binary(new_hash), username]
        if expected_hash is not None:
            query = query + sql.SQL(" AND password_hash = %s")
            params.append(psycopg2.Binary(expected_hash))

        try:
            with self._conn() as conn, conn.cursor() as cur:
                cur.execute(query, params)
                updated = cur.rowcount
        except psycopg2.Error as exc:
            raise StoreError("could not update password hash") from exc
        except ValueError:
            raise AccountNotFound(username) from None
        if not updated:
            raise AccountNotFound(username)
