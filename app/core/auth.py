"""
Bearer token signing/verification and the FastAPI auth dependency.

Follows Layer 1 rules:
- Sign tokens with strong, private signing keys supplied by configuration
- NEVER hardcode secrets or keys in the repository
- Include username, iat and exp in JWT claims
- Set sensible expirations for access tokens
- Only accept tokens via secure headers (Authorization: Bearer <token>)
"""
from __future__ import annotations
from typing import TYPE_CHECKING, Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import ValidationError as PydanticValidationError

from core.errors import TokenInvalid, Unauthorized
from domain.models import IdentityClaims

if TYPE_CHECKING:
    from services.auth_service import AuthService

_bearer_scheme = HTTPBearer(auto_error=False)


class JwtTokenIssuer:
    """
    Signs and verifies identity claims as JWTs (PyJWT).

    Key material and algorithm are constructor arguments so deployments can
    swap HS256 for an asymmetric algorithm without touching AuthService.
    """

    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        verify_key: Optional[str] = None,
        leeway_seconds: int = 0,
    ):
        if not secret:
            raise ValueError("JwtTokenIssuer requires a non-empty signing key")
        self._signing_key = secret
        self._verify_key = verify_key or secret
        self._algorithm = algorithm
        self._leeway = leeway_seconds

    def sign(self, claims: IdentityClaims) -> str:
        return jwt.encode(claims.model_dump(), self._signing_key, algorithm=self._algorithm)

    def verify(self, token: str) -> IdentityClaims:
        """
        Decode and validate a token.

        Raises:
            TokenInvalid: bad format, bad signature, missing claims or expired
        """
        try:
            payload = jwt.decode(
                token,
                self._verify_key,
                algorithms=[self._algorithm],
                leeway=self._leeway,
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            raise TokenInvalid("Token has expired") from None
        except jwt.InvalidTokenError as exc:
            raise TokenInvalid(f"Invalid token: {exc.__class__.__name__}") from None

        try:
            return IdentityClaims.model_validate(payload)
        except PydanticValidationError:
            raise TokenInvalid("Token is missing identity claims") from None


def get_auth_service(request: Request) -> "AuthService":
    """FastAPI dependency returning the AuthService wired in main.create_app."""
    return request.app.state.auth_service


def auth_required(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    svc=Depends(get_auth_service),
) -> IdentityClaims:
    """
    FastAPI dependency that validates the bearer token.

    Raises:
        Unauthorized: 401 if the token is missing, invalid, or expired
    """
    if credentials is None or not credentials.credentials:
        raise Unauthorized("Missing bearer token")
    return svc.verify_access(credentials.credentials)
