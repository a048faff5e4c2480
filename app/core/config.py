"""
Centralized configuration management.

Follows Layer 5 rules:
- All secrets (DB URLs, JWT keys) MUST come from environment variables
  or a secure secret store (never hardcoded)
- Centralize configuration in this module
- Do not spread os.getenv calls all over the codebase
- Do not log secrets or environment values
"""
from __future__ import annotations
from typing import Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # --- Postgres ---
    PG_HOST: str = Field(default="localhost", description="PostgreSQL host")
    PG_PORT: int = Field(default=5432, description="PostgreSQL port")
    PG_DB: str = Field(default="auth", description="PostgreSQL database name")
    PG_USER: str = Field(default="auth", description="PostgreSQL user")
    PG_PASSWORD: str = Field(default="", description="PostgreSQL password")
    PG_SSLMODE: str = Field(default="prefer", description="PostgreSQL SSL mode (require/prefer/disable)")
    PG_SCHEMA: str = Field(default="public", description="PostgreSQL schema")
    PG_POOL_MIN: int = Field(default=1, description="Minimum pooled connections")
    PG_POOL_MAX: int = Field(default=10, description="Maximum pooled connections")
    ACCOUNT_STORE: Literal["postgres", "memory"] = Field(default="postgres", description="Account store backend")
    ACCOUNTS_TABLE: str = Field(default="accounts", description="Table holding accounts")

    # --- JWT ---
    JWT_SECRET: str = Field(..., description="JWT signing secret key")
    JWT_ALGORITHM: str = Field(default="HS256", description="JWT signing algorithm")
    JWT_VERIFY_KEY: Optional[str] = Field(default=None, description="Public key for asymmetric algorithms; defaults to JWT_SECRET")
    JWT_EXP_MIN: int = Field(default=120, description="JWT expiration in minutes")
    JWT_LEEWAY_SEC: int = Field(default=0, description="Clock skew tolerated when checking exp/iat")

    # --- Password hashing (argon2id) ---
    ARGON2_TIME_COST: int = Field(default=3, description="Argon2 iterations")
    ARGON2_MEMORY_COST: int = Field(default=65536, description="Argon2 memory in KiB")
    ARGON2_PARALLELISM: int = Field(default=4, description="Argon2 lanes")
    ARGON2_HASH_LEN: int = Field(default=32, description="Argon2 digest length in bytes")
    ARGON2_SALT_LEN: int = Field(default=16, description="Argon2 salt length in bytes")

    # --- HTTP ---
    AUTH_PREFIX: str = Field(default="", description="Path prefix for the auth routes")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
