import os

# Settings are read at import time; give the test run its own signing key
os.environ.setdefault("JWT_SECRET", "thisisalongsecretjustfortests-0123456789")

import pytest
from fastapi.testclient import TestClient

from core.auth import JwtTokenIssuer
from core.security import PasswordHasher
from main import create_app
from repositories.memory_account_repo import InMemoryAccountStore
from services.auth_service import AuthService

SECRET = os.environ["JWT_SECRET"]


def fast_hasher(**overrides) -> PasswordHasher:
    """Argon2id with small costs so the suite stays quick."""
    params = {"time_cost": 2, "memory_cost": 1024, "parallelism": 1}
    params.update(overrides)
    return PasswordHasher(**params)


@pytest.fixture
def store():
    return InMemoryAccountStore()


@pytest.fixture
def hasher():
    return fast_hasher()


@pytest.fixture
def issuer():
    return JwtTokenIssuer(SECRET)


@pytest.fixture
def service(store, hasher, issuer):
    return AuthService(store=store, hasher=hasher, issuer=issuer, token_ttl_seconds=900)


@pytest.fixture
def client(service):
    app = create_app(auth_service=service)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def create_user(client):
    """
    Sign up an account through the API.

    Returns the token and an `inject` helper that sends requests with the
    bearer token already attached.
    """
    def _create(username: str = "matteo", password: str = "matteo"):
        res = client.post("/signup", json={"username": username, "password": password})
        assert res.status_code == 200, res.text
        token = res.json()["token"]

        def inject(method: str, url: str, **kwargs):
            headers = {"Authorization": f"Bearer {token}", **kwargs.pop("headers", {})}
            return client.request(method, url, headers=headers, **kwargs)

        return {"token": token, "inject": inject}

    return _create
