"""
Pydantic schemas for the auth endpoints.

Follows Layer 3 rules:
- ALWAYS use Pydantic models for request/response
- Never expose password hashes or other sensitive fields
"""
from __future__ import annotations
from typing import Literal
from pydantic import BaseModel, Field


class CredentialsIn(BaseModel):
    """Request schema for signup and login."""
    username: str = Field(..., description="Unique account username")
    password: str = Field(..., description="Plaintext password")


class AuthOut(BaseModel):
    """Response schema for a successful signup or login."""
    status: Literal["ok"] = "ok"
    token: str = Field(..., description="Signed bearer token")


class StatusOut(BaseModel):
    """Response schema for a rejected signup or login."""
    status: Literal["not ok"] = "not ok"
