"""
tests/conftest.py -- Shared test fixtures for the bookstore API tests.

This module provides:
  - make_settings(): explicit Settings for tests, never read from the environment
  - token_config / issuer / guard: the token pieces built from those settings
  - user_store / catalog: fresh in-memory stores for unit tests
  - api_client: TestClient over create_app() with demo users seeded
  - login(): helper that returns a bearer header for a demo user

Design: the API fixture uses named shared-memory SQLite URIs (not plain
:memory:) because TestClient runs sync route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. The named URI format shares one in-memory instance across all
connections in the same process.
"""

from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import create_app
from auth.guard import AccessGuard
from auth.models import Identity
from auth.seed import seed_roles
from auth.store import UserStore
from auth.tokens import TokenConfig, TokenIssuer
from catalog.store import CatalogStore
from core.config import Settings

TEST_KEY = "test-signing-key-0123456789abcdef0123456789"
TEST_ISSUER = "http://localhost:5000"
DEMO_PASSWORD = "P@ssword1"


def make_settings(**overrides) -> Settings:
    """Settings for tests. _env_file=None keeps a developer's .env out of the run."""
    values = {
        "jwt_key": TEST_KEY,
        "jwt_issuer": TEST_ISSUER,
        "database_url": "sqlite:///:memory:",
        "allowed_hosts": ["testserver"],
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def login(client: TestClient, username: str, password: str = DEMO_PASSWORD) -> dict[str, str]:
    """POST /api/users and return an Authorization header for the token."""
    resp = client.post("/api/users", json={"username": username, "password": password})
    assert resp.status_code == 200, f"Login failed for {username}: {resp.status_code} {resp.text}"
    return auth_header(resp.json()["token"])


# ---------------------------------------------------------------------------
# Rate limiter
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_rate_limits() -> None:
    """Clear the shared in-memory limiter so login-heavy tests don't hit 429."""
    limiter.reset()


# ---------------------------------------------------------------------------
# Token pieces
# ---------------------------------------------------------------------------


@pytest.fixture
def token_config() -> TokenConfig:
    return TokenConfig.from_settings(make_settings())


@pytest.fixture
def issuer(token_config: TokenConfig) -> TokenIssuer:
    return TokenIssuer(token_config)


@pytest.fixture
def guard(token_config: TokenConfig) -> AccessGuard:
    return AccessGuard(token_config)


@pytest.fixture
def identity() -> Identity:
    """A detached identity -- enough to issue a token without a store."""
    return Identity(
        id="5f0c7c2e-1a57-4c0e-9d43-3b3c8f6f9a10",
        username="reader",
        email="reader@example.com",
        hashed_password="not-used",
    )


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    """In-memory UserStore with the standard roles seeded."""
    store = UserStore("sqlite:///:memory:")
    seed_roles(store)
    yield store
    store.close()


@pytest.fixture
def catalog() -> Generator[CatalogStore, None, None]:
    store = CatalogStore("sqlite:///:memory:")
    yield store
    store.close()


# ---------------------------------------------------------------------------
# API client -- one per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request) -> Generator[TestClient, None, None]:
    """Yield a TestClient over a fully built app with the demo users seeded.

    Each test module gets its own named in-memory database so state does not
    leak between modules.
    """
    db_name = request.module.__name__.rsplit(".", 1)[-1]
    settings = make_settings(
        database_url=f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true",
        demo_user_password=DEMO_PASSWORD,
    )
    app = create_app(settings)
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client
