# app/core/db.py
from __future__ import annotations
from contextlib import contextmanager
from threading import Lock
from psycopg2.pool import ThreadedConnectionPool
from .config import settings

_pool: ThreadedConnectionPool | None = None
_pool_lock = Lock()


def get_pool() -> ThreadedConnectionPool:
    """Build the connection pool on first use so importing the app never dials Postgres."""
    global _pool
    with _pool_lock:
        if _pool is None:
            _pool = ThreadedConnectionPool(
                settings.PG_POOL_MIN, settings.PG_POOL_MAX,
                host=settings.PG_HOST,
                port=settings.PG_PORT,
                dbname=settings.PG_DB,
                user=settings.PG_USER,
                password=settings.PG_PASSWORD,
                sslmode=settings.PG_SSLMODE,
                options=f"-c search_path={settings.PG_SCHEMA}",
            )
        return _pool


@contextmanager
def get_conn():
    pool = get_pool()
    conn = pool.getconn()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        pool.putconn(conn)


def close_pool() -> None:
    global _pool
    with _pool_lock:
        if _pool is not None:
            _pool.closeall()
            _pool = None
