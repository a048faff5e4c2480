# app/core/errors.py
from typing import Any, Dict, Optional
from enum import Enum
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class ErrorCode(str, Enum):
    UNAUTHORIZED = "unauthorized"          # 401
    CONFLICT = "conflict"                  # 400 (signup duplicate)
    INVALID_CREDENTIALS = "invalid_credentials"  # 400
    VALIDATION_ERROR = "validation_error"  # 400
    CORRUPT_CREDENTIALS = "corrupt_credentials"  # 500
    INTERNAL_ERROR = "internal_error"      # 500
    UNAVAILABLE = "unavailable"            # 503


# --- Collaborator errors (store / token issuer). Never reach HTTP directly. ---

class DuplicateAccount(Exception):
    """The store's unique index rejected a second account with the same username."""

    def __init__(self, username: str):
        super().__init__(f"account already exists: {username}")
        self.username = username


class AccountNotFound(Exception):
    def __init__(self, username: str):
        super().__init__(f"account not found: {username}")
        self.username = username


class StoreError(Exception):
    """Any account store failure other than the two above."""


class TokenInvalid(Exception):
    """Token failed signature, format, claims or expiry checks."""


# --- Service taxonomy. Translated into responses by register_error_handlers. ---

_REASON_PHRASES = {
    400: "Bad Request",
    401: "Unauthorized",
    500: "Internal Server Error",
    503: "Service Unavailable",
}


class AuthError(Exception):
    """
    Base class for errors surfaced by AuthService.

    Attributes:
        status_code: HTTP status the error maps to
        code: Stable error code for clients
        message: Human-readable description (never contains secrets)
    """
    status_code: int = 500
    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    headers: Optional[Dict[str, str]] = None

    def __init__(self, message: str = "An unexpected error occurred"):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "statusCode": self.status_code,
            "error": _REASON_PHRASES.get(self.status_code, "Error"),
            "code": self.code.value,
            "message": self.message,
        }


class ValidationError(AuthError):
    status_code = 400
    code = ErrorCode.VALIDATION_ERROR

    def __init__(self, field: str, message: Optional[str] = None):
        super().__init__(message or f"body should have required property '{field}'")
        self.field = field


class AccountExists(AuthError):
    status_code = 400
    code = ErrorCode.CONFLICT

    def __init__(self):
        super().__init__("Account already exists")

    def to_dict(self) -> Dict[str, Any]:
        return {"status": "not ok"}


class InvalidCredentials(AuthError):
    """Wrong password or unknown user; the two are indistinguishable to the caller."""
    status_code = 400
    code = ErrorCode.INVALID_CREDENTIALS

    def __init__(self):
        super().__init__("Invalid credentials")

    def to_dict(self) -> Dict[str, Any]:
        return {"status": "not ok"}


class Unauthorized(AuthError):
    status_code = 401
    code = ErrorCode.UNAUTHORIZED
    headers = {"WWW-Authenticate": "Bearer"}

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message)


class CorruptCredentialState(AuthError):
    """Stored password hash could not be parsed. Operator must investigate."""
    status_code = 500
    code = ErrorCode.CORRUPT_CREDENTIALS

    def __init__(self):
        super().__init__("An unexpected error occurred")


class ServiceUnavailable(AuthError):
    status_code = 503
    code = ErrorCode.UNAVAILABLE

    def __init__(self):
        super().__init__("Service temporarily unavailable")


def _validation_message(error: Dict[str, Any]) -> str:
    loc = [str(part) for part in error.get("loc", ())]
    if error.get("type") == "missing":
        if len(loc) > 1:
            return f"{loc[0]} should have required property '{loc[-1]}'"
        return f"{loc[0] if loc else 'body'} is required"
    return f"{'.'.join(loc)} {error.get('msg', 'is invalid')}"


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=exc.headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = _validation_message(errors[0]) if errors else "Invalid request"
    return JSONResponse(
        status_code=400,
        content={
            "statusCode": 400,
            "error": "Bad Request",
            "code": ErrorCode.VALIDATION_ERROR.value,
            "message": message,
        },
    )


def register_error_handlers(app: FastAPI) -> None:
    """Map the service taxonomy and request validation failures onto HTTP responses."""
    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
