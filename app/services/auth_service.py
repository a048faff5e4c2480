"""
Authentication service: signup, login, and bearer token verification.

Follows Layer 1 and Layer 6 rules:
- Validates credentials securely
- Returns minimal information on failure (no "user not found vs wrong password" distinction)
- Logs security events (signup, login attempts, rehash, token rejection)
- NEVER logs plaintext passwords, hashes or tokens
"""
from __future__ import annotations
import time
from typing import Any, Callable, Optional

from core.errors import (
    AccountExists,
    AccountNotFound,
    CorruptCredentialState,
    DuplicateAccount,
    InvalidCredentials,
    ServiceUnavailable,
    StoreError,
    TokenInvalid,
    Unauthorized,
    ValidationError,
)
from core.logger import log_security_event
from core.security import PasswordHasher
from domain.models import IdentityClaims, VerificationOutcome
from domain.ports import AccountStore, TokenIssuer

# Signature of BackgroundTasks.add_task: (func, *args) -> None
Defer = Callable[..., Any]


def _require(field: str, value: Optional[str]) -> str:
    if not value:
        raise ValidationError(field)
    if "\x00" in value:
        raise ValidationError(field, f"body.{field} must not contain NUL characters")
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        raise ValidationError(field, f"body.{field} must be valid UTF-8") from None
    return value


class AuthService:
    """
    Composes the password hasher, account store and token issuer.

    Holds no per-request state; every collaborator is passed in explicitly.
    """

    def __init__(
        self,
        *,
        store: AccountStore,
        hasher: PasswordHasher,
        issuer: TokenIssuer,
        token_ttl_seconds: int = 7200,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.hasher = hasher
        self.issuer = issuer
        self.token_ttl_seconds = token_ttl_seconds
        self.clock = clock

    def setup(self) -> None:
        """Establish the uniqueness constraint. Run once at startup."""
        self.store.ensure_indexes()

    def signup(self, username: Optional[str], password: Optional[str]) -> dict:
        """
        Register a new account and issue a token for it.

        Args:
            username: Requested unique username
            password: Plaintext password

        Returns:
            Dict with status and token

        Raises:
            ValidationError: a field is missing, empty or not encodable
            AccountExists: the username is taken
            ServiceUnavailable: the account store failed
        """
        username = _require("username", username)
        password = _require("password", password)

        password_hash = self.hasher.hash(password.encode())
        try:
            self.store.create_unique(username, password_hash)
        except DuplicateAccount:
            log_security_event(action="signup", result="failure", username=username,
                               meta={"reason": "account_exists"})
            raise AccountExists() from None
        except StoreError:
            log_security_event(action="signup", result="error", username=username,
                               level="error", exc_info=True)
            raise ServiceUnavailable() from None

        log_security_event(action="signup", result="success", username=username)
        return {"status": "ok", "token": self._issue(username)}

    def login(
        self,
        username: Optional[str],
        password: Optional[str],
        *,
        defer: Optional[Defer] = None,
    ) -> dict:
        """
        Authenticate a user and issue a token.

        When the stored hash is valid but outdated, the upgrade is handed to
        `defer` (e.g. BackgroundTasks.add_task) so it runs after the response;
        without `defer` it runs inline. Either way it cannot fail the login.

        Args:
            username: Account username
            password: Plaintext password
            defer: Scheduler for the best-effort rehash

        Returns:
            Dict with status and token

        Raises:
            ValidationError: a field is missing, empty or not encodable
            InvalidCredentials: unknown user or wrong password
            CorruptCredentialState: stored hash cannot be parsed
            ServiceUnavailable: the account store failed
        """
        username = _require("username", username)
        password = _require("password", password)

        try:
            account = self.store.find_by_username(username)
        except AccountNotFound:
            log_security_event(action="login", result="failure", username=username,
                               meta={"reason": "unknown_user"})
            raise InvalidCredentials() from None
        except StoreError:
            log_security_event(action="login", result="error", username=username,
                               level="error", exc_info=True)
            raise ServiceUnavailable() from None

        outcome = self.hasher.verify(password.encode(), account.password_hash)

        if outcome is VerificationOutcome.INVALID:
            log_security_event(action="login", result="failure", username=username,
                               meta={"reason": "invalid_password"})
            raise InvalidCredentials()
        elif outcome is VerificationOutcome.UNRECOGNIZED_FORMAT:
            log_security_event(action="login", result="fault", username=username,
                               meta={"reason": "unrecognized_hash"}, level="error")
            raise CorruptCredentialState()
        elif outcome is VerificationOutcome.NEEDS_REHASH:
            log_security_event(action="login", result="success", username=username,
                               meta={"rehash": True})
            token = self._issue(username)
            if defer is None:
                self.rehash(username, password, account.password_hash)
            else:
                defer(self.rehash, username, password, account.password_hash)
            return {"status": "ok", "token": token}
        elif outcome is VerificationOutcome.VALID:
            log_security_event(action="login", result="success", username=username)
            return {"status": "ok", "token": self._issue(username)}

        raise AssertionError(f"unhandled verification outcome: {outcome!r}")

    def rehash(self, username: str, password: str, previous_hash: bytes) -> bool:
        """
        Best-effort upgrade of a stored hash to the current parameters.

        The write only lands if the stored hash is still `previous_hash`.
        Failures are logged, never raised.

        Returns:
            True if the stored hash was replaced
        """
        try:
            new_hash = self.hasher.hash(password.encode())
            self.store.update_password_hash(username, new_hash, expected_hash=previous_hash)
        except AccountNotFound:
            log_security_event(action="rehash", result="skipped", username=username,
                               meta={"reason": "hash_changed_or_account_missing"}, level="warning")
            return False
        except Exception:
            log_security_event(action="rehash", result="failure", username=username,
                               level="error", exc_info=True)
            return False

        log_security_event(action="rehash", result="success", username=username)
        return True

    def verify_access(self, token: str) -> IdentityClaims:
        """
        Verify a bearer token and return the identity it carries.

        Raises:
            Unauthorized: token is invalid, tampered or expired
        """
        try:
            return self.issuer.verify(token)
        except TokenInvalid as exc:
            log_security_event(action="verify_token", result="denied",
                               meta={"reason": str(exc)}, level="warning")
            raise Unauthorized() from None

    def _issue(self, username: str) -> str:
        now = int(self.clock())
        claims = IdentityClaims(username=username, iat=now, exp=now + self.token_ttl_seconds)
        return self.issuer.sign(claims)
