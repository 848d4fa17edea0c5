"""
tests/conftest.py -- Shared test fixtures for the users API.

This module provides:
  - make_store(): isolated named shared-memory SQLite user store
  - build_service(): AuthService wired with cheap bcrypt and a throwaway secret
  - _patch_lifespan(): wires a test service into app.state, bypassing real startup
  - api_client: TestClient plus a pre-registered user and its token

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
wherever more than one thread touches the store. TestClient runs sync route
handlers in a thread pool, and plain :memory: DBs are per-connection, so each
worker thread would see a blank schema. The named URI format
(file:name?mode=memory&cache=shared&uri=true) shares one in-memory instance
across all connections in the same process.

Environment must be set before any api/ or core/ import: get_settings() is
read when api.main is imported (middleware, logging).
"""

from __future__ import annotations

import asyncio
import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager, suppress

# CRITICAL: set before importing api/ or core/ so Settings picks these up.
os.environ.setdefault("DEBUG", "true")  # auto-generate SECRET_KEY
os.environ.setdefault("BCRYPT_ROUNDS", "4")  # minimum cost -- keeps the suite fast
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenIssuer
from cache.store import IdentityCache

TEST_SECRET = "test-secret-key-that-is-at-least-32-characters-long"

# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def shared_memory_url(name: str) -> str:
    """Return a unique named shared-memory SQLite URL."""
    return f"sqlite:///file:{name}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


def make_store(name: str = "test_users") -> UserStore:
    return UserStore(shared_memory_url(name))


def build_service(store: UserStore, secret: str = TEST_SECRET, cache: IdentityCache | None = None) -> AuthService:
    """Wire an AuthService with the cheapest bcrypt cost and a fixed secret."""
    return AuthService(
        store=store,
        hasher=PasswordHasher(rounds=4),
        issuer=TokenIssuer(secret, expire_seconds=3600),
        cache=cache or IdentityCache(ttl=60),
    )


def _patch_lifespan(service: AuthService):
    """Return an async context manager that replaces the real lifespan.

    Wires the pre-built service and its components into app.state so
    TestClient routes hit real handlers against an isolated store.

    The purge_task is a long-sleeping coroutine so shutdown can .cancel() a
    real asyncio.Task.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = service.store
        app.state.password_hasher = service.hasher
        app.state.token_issuer = service.issuer
        app.state.identity_cache = service.cache
        app.state.auth_service = service
        app.state.secure_cookies = False
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()
        with suppress(asyncio.CancelledError):
            await app.state.purge_task

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = make_store()
    yield s
    s.close()


@pytest.fixture
def service(store: UserStore) -> AuthService:
    return build_service(store)


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, str, int], None, None]:
    """Yield (client, token, user_id) for API integration tests.

    A user "Test User" <testuser@example.com> / "testpass123" is registered
    before the client starts; token is a Bearer token for that user.
    One client per test module keeps the suite fast; each module gets its own
    database so modules cannot see each other's users.
    """
    user_store = make_store(f"api_{request.module.__name__.rsplit('.', 1)[-1]}")
    service = build_service(user_store)

    user = service.register("Test User", "testuser@example.com", "testpass123")
    token = service.issuer.issue(user)

    app.router.lifespan_context = _patch_lifespan(service)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, user.id

    user_store.close()
