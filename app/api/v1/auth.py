"""
Authentication endpoints.

Follows Layer 1 and Layer 3 rules:
- Validate input with Pydantic schemas
- Return minimal information on failure
- ALWAYS use Pydantic models for request/response
"""
from __future__ import annotations
from fastapi import APIRouter, BackgroundTasks, Depends
from core.auth import auth_required, get_auth_service
from domain.models import IdentityClaims
from schemas.auth import AuthOut, CredentialsIn, StatusOut

router = APIRouter(tags=["auth"])

_REJECTED = {400: {"model": StatusOut, "description": "Rejected credentials"}}


@router.post("/signup", response_model=AuthOut, responses=_REJECTED)
def signup(body: CredentialsIn, svc=Depends(get_auth_service)) -> dict:
    """
    Register a new account and issue a bearer token.

    Returns `400 {"status": "not ok"}` if the username is already taken.
    """
    return svc.signup(body.username, body.password)


@router.post("/login", response_model=AuthOut, responses=_REJECTED)
def login(
    body: CredentialsIn,
    background_tasks: BackgroundTasks,
    svc=Depends(get_auth_service),
) -> dict:
    """
    Authenticate and issue a bearer token.

    Unknown user and wrong password both return `400 {"status": "not ok"}`.
    A valid password stored under outdated hash parameters is re-hashed
    after the response is sent.
    """
    return svc.login(body.username, body.password, defer=background_tasks.add_task)


@router.get("/me", response_model=IdentityClaims)
def me(claims: IdentityClaims = Depends(auth_required)) -> IdentityClaims:
    """Return the identity claims of the presented bearer token."""
    return claims
