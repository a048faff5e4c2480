# app/main.py
from __future__ import annotations
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool

from api.v1.auth import router as auth_router
from core.auth import JwtTokenIssuer
from core.config import Settings, settings as default_settings
from core.db import close_pool
from core.errors import register_error_handlers
from core.logger import logger
from core.security import PasswordHasher
from domain.ports import AccountStore
from repositories.account_repo import PostgresAccountStore
from repositories.memory_account_repo import InMemoryAccountStore
from services.auth_service import AuthService


def build_account_store(settings: Settings) -> AccountStore:
    if settings.ACCOUNT_STORE == "memory":
        # Accounts vanish on restart; meant for local runs
        return InMemoryAccountStore()
    return PostgresAccountStore(table=settings.ACCOUNTS_TABLE)


def build_auth_service(settings: Settings) -> AuthService:
    """Wire the collaborators selected by settings."""
    return AuthService(
        store=build_account_store(settings),
        hasher=PasswordHasher.from_settings(settings),
        issuer=JwtTokenIssuer(
            settings.JWT_SECRET,
            algorithm=settings.JWT_ALGORITHM,
            verify_key=settings.JWT_VERIFY_KEY,
            leeway_seconds=settings.JWT_LEEWAY_SEC,
        ),
        token_ttl_seconds=settings.JWT_EXP_MIN * 60,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Uniqueness constraint is set up once here, never on the request path
    await run_in_threadpool(app.state.auth_service.setup)
    logger.info("Account indexes ensured")
    yield
    await run_in_threadpool(close_pool)


def create_app(
    auth_service: Optional[AuthService] = None,
    settings: Settings = default_settings,
) -> FastAPI:
    app = FastAPI(title="Auth API", version="1.0", lifespan=lifespan)
    app.state.auth_service = auth_service or build_auth_service(settings)

    register_error_handlers(app)

    @app.get("/health")
    def health(): return {"ok": True}

    app.include_router(auth_router, prefix=settings.AUTH_PREFIX)
    return app


app = create_app()
