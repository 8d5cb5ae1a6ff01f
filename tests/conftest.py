"""
tests/conftest.py -- Shared test fixtures for Starlane integration tests.

This module provides:
  - _make_test_stores(): isolated in-memory DBs for users + galaxy
  - _patch_lifespan(): wires test stores and the auth core into app.state
  - api_client: TestClient plus one token per role for API integration tests
  - bearer(): Authorization header helper

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.

Environment must be set before any auth/core import:
  DEBUG=true              get_settings() auto-generates SECRET_KEY
  BCRYPT_ROUNDS=4         bcrypt's minimum cost keeps the suite fast
  LOGIN_RATE_LIMIT        high enough that repeated logins never hit 429
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set before any auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app, wire_auth
from auth.models import Role, User
from auth.passwords import hash_password
from auth.store import UserStore
from auth.tokens import get_token_codec, utcnow
from galaxy.store import GalaxyStore

TEST_PASSWORD = "testpass123"


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def role_email(role: Role) -> str:
    return f"{role.value.lower()}@starlane.dev"


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, GalaxyStore]:
    """Create isolated named shared-memory SQLite stores.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    users_url = f"sqlite:///file:test_users_{db_suffix}?mode=memory&cache=shared&uri=true"
    galaxy_url = f"sqlite:///file:test_galaxy_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(users_url), GalaxyStore(galaxy_url)


def _patch_lifespan(user_store: UserStore, galaxy: GalaxyStore):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.galaxy = galaxy
        wire_auth(app, user_store)
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    """Fresh in-memory UserStore for unit tests."""
    store = UserStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, dict[Role, str], dict[Role, int]], None, None]:
    """Yield (client, tokens, user_ids) for API integration tests.

    One account per role is created up front (email "<role>@starlane.dev",
    password TEST_PASSWORD). tokens maps each Role to a valid Bearer token
    for that account; user_ids maps each Role to its database id.
    """
    user_store, galaxy = _make_test_stores(request.module.__name__.rsplit(".", 1)[-1])

    tokens: dict[Role, str] = {}
    user_ids: dict[Role, int] = {}
    codec = get_token_codec()
    for role in Role:
        uid = user_store.create_user(
            User(
                email=role_email(role),
                hashed_password=hash_password(TEST_PASSWORD),
                fullname=f"Test {role.value.title()}",
                role=role,
            )
        )
        user_ids[role] = uid
        tokens[role] = codec.encode(uid, role_email(role), role, utcnow())

    app.router.lifespan_context = _patch_lifespan(user_store, galaxy)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, tokens, user_ids

    galaxy.close()
    user_store.close()
