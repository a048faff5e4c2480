import time

import bcrypt
import pytest

from core.errors import (
    AccountExists,
    CorruptCredentialState,
    InvalidCredentials,
    ServiceUnavailable,
    StoreError,
    Unauthorized,
    ValidationError,
)
from domain.models import VerificationOutcome
from services.auth_service import AuthService
from conftest import fast_hasher


class BrokenUpdateStore:
    """Delegates to a real store but fails every hash update."""

    def __init__(self, inner):
        self.inner = inner
        self.update_calls = 0

    def ensure_indexes(self):
        self.inner.ensure_indexes()

    def create_unique(self, username, password_hash):
        return self.inner.create_unique(username, password_hash)

    def find_by_username(self, username):
        return self.inner.find_by_username(username)

    def update_password_hash(self, username, new_hash, *, expected_hash=None):
        self.update_calls += 1
        raise StoreError("connection reset")


class DownStore:
    def ensure_indexes(self):
        raise StoreError("down")

    def create_unique(self, username, password_hash):
        raise StoreError("down")

    def find_by_username(self, username):
        raise StoreError("down")

    def update_password_hash(self, username, new_hash, *, expected_hash=None):
        raise StoreError("down")


def test_signup_issues_token_for_username(service):
    result = service.signup("matteo", "matteo")
    assert result["status"] == "ok"
    assert service.verify_access(result["token"]).username == "matteo"


def test_signup_stores_hash_not_password(service, store):
    service.signup("matteo", "matteo")
    stored = store.find_by_username("matteo").password_hash
    assert b"matteo" not in stored
    assert stored.startswith(b"$argon2id$")


def test_duplicate_signup_is_account_exists(service):
    service.signup("matteo", "matteo")
    with pytest.raises(AccountExists):
        service.signup("matteo", "other")


@pytest.mark.parametrize("username,password,field", [
    ("", "matteo", "username"),
    (None, "matteo", "username"),
    ("matteo", "", "password"),
    ("matteo", None, "password"),
])
def test_signup_and_login_reject_missing_fields(service, username, password, field):
    with pytest.raises(ValidationError) as exc:
        service.signup(username, password)
    assert exc.value.field == field
    with pytest.raises(ValidationError):
        service.login(username, password)


@pytest.mark.parametrize("username,password,field", [
    ("mat\x00teo", "matteo", "username"),
    ("matteo", "\ud800", "password"),
])
def test_signup_and_login_reject_unstorable_values(service, username, password, field):
    with pytest.raises(ValidationError) as exc:
        service.signup(username, password)
    assert exc.value.field == field
    with pytest.raises(ValidationError):
        service.login(username, password)


def test_login_valid(service):
    service.signup("matteo", "matteo")
    result = service.login("matteo", "matteo")
    assert service.verify_access(result["token"]).username == "matteo"


def test_unknown_user_and_wrong_password_are_indistinguishable(service):
    service.signup("matteo", "matteo")
    with pytest.raises(InvalidCredentials) as wrong_password:
        service.login("matteo", "collina")
    with pytest.raises(InvalidCredentials) as unknown_user:
        service.login("nobody", "collina")
    assert wrong_password.value.to_dict() == unknown_user.value.to_dict()
    assert wrong_password.value.status_code == unknown_user.value.status_code


def test_unrecognized_hash_is_a_fault_not_a_login_failure(service, store):
    store.create_unique("matteo", b"not-a-known-hash-format")
    with pytest.raises(CorruptCredentialState) as exc:
        service.login("matteo", "matteo")
    assert exc.value.status_code == 500
    assert not isinstance(exc.value, InvalidCredentials)


def test_needs_rehash_login_succeeds_and_upgrades_hash(service, store, hasher):
    legacy = fast_hasher(time_cost=1, memory_cost=512).hash(b"matteo")
    store.create_unique("matteo", legacy)

    result = service.login("matteo", "matteo")

    assert result["status"] == "ok"
    upgraded = store.find_by_username("matteo").password_hash
    assert upgraded != legacy
    assert hasher.verify(b"matteo", upgraded) is VerificationOutcome.VALID
    assert service.login("matteo", "matteo")["status"] == "ok"


def test_legacy_bcrypt_account_is_upgraded_to_argon2(service, store):
    store.create_unique("matteo", bcrypt.hashpw(b"matteo", bcrypt.gensalt(rounds=4)))
    service.login("matteo", "matteo")
    assert store.find_by_username("matteo").password_hash.startswith(b"$argon2id$")


def test_rehash_is_handed_to_defer(service, store):
    legacy = fast_hasher(time_cost=1, memory_cost=512).hash(b"matteo")
    store.create_unique("matteo", legacy)
    scheduled = []

    result = service.login("matteo", "matteo", defer=lambda fn, *args: scheduled.append((fn, args)))

    assert result["status"] == "ok"
    assert len(scheduled) == 1
    # nothing written until the deferred task runs
    assert store.find_by_username("matteo").password_hash == legacy
    fn, args = scheduled[0]
    assert fn(*args) is True
    assert store.find_by_username("matteo").password_hash != legacy


def test_valid_login_schedules_nothing(service):
    service.signup("matteo", "matteo")
    scheduled = []
    service.login("matteo", "matteo", defer=lambda *a: scheduled.append(a))
    assert scheduled == []


def test_rehash_failure_does_not_fail_login(store, issuer, hasher):
    broken = BrokenUpdateStore(store)
    svc = AuthService(store=broken, hasher=hasher, issuer=issuer)
    store.create_unique("matteo", fast_hasher(time_cost=1, memory_cost=512).hash(b"matteo"))

    result = svc.login("matteo", "matteo")

    assert result["status"] == "ok"
    assert broken.update_calls == 1


def test_rehash_skips_when_hash_changed_concurrently(service, store):
    legacy = fast_hasher(time_cost=1, memory_cost=512).hash(b"matteo")
    store.create_unique("matteo", legacy)
    store.update_password_hash("matteo", b"changed-by-someone-else")

    assert service.rehash("matteo", "matteo", legacy) is False
    assert store.find_by_username("matteo").password_hash == b"changed-by-someone-else"


def test_store_outage_is_service_unavailable(hasher, issuer):
    svc = AuthService(store=DownStore(), hasher=hasher, issuer=issuer)
    with pytest.raises(ServiceUnavailable):
        svc.signup("matteo", "matteo")
    with pytest.raises(ServiceUnavailable):
        svc.login("matteo", "matteo")


def test_verify_access_rejects_garbage(service):
    with pytest.raises(Unauthorized):
        service.verify_access("garbage")


def test_verify_access_rejects_expired_token(store, hasher, issuer):
    past = time.time() - 7200
    svc = AuthService(store=store, hasher=hasher, issuer=issuer, token_ttl_seconds=60, clock=lambda: past)
    token = svc.signup("matteo", "matteo")["token"]
    with pytest.raises(Unauthorized):
        svc.verify_access(token)


def test_token_claims_carry_issue_and_expiry(store, hasher, issuer):
    now = int(time.time())
    svc = AuthService(store=store, hasher=hasher, issuer=issuer, token_ttl_seconds=600, clock=lambda: now)
    claims = svc.verify_access(svc.signup("matteo", "matteo")["token"])
    assert claims.iat == now
    assert claims.exp == now + 600


def test_setup_ensures_indexes(hasher, issuer):
    svc = AuthService(store=DownStore(), hasher=hasher, issuer=issuer)
    with pytest.raises(StoreError):
        svc.setup()
