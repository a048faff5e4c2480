from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class Account(BaseModel):
    username: str
    password_hash: bytes = Field(repr=False)
    created_at: Optional[datetime] = None


class VerificationOutcome(str, Enum):
    """
    Result of checking a password against a stored hash.

    NEEDS_REHASH means the password is correct but the hash was produced
    under weaker parameters (or a legacy scheme) and should be replaced.
    UNRECOGNIZED_FORMAT means the stored blob cannot be parsed at all.
    """
    VALID = "valid"
    INVALID = "invalid"
    NEEDS_REHASH = "needs_rehash"
    UNRECOGNIZED_FORMAT = "unrecognized_format"


class IdentityClaims(BaseModel):
    """Claims carried by a bearer token; also the body of GET /me."""
    username: str
    iat: int
    exp: int
