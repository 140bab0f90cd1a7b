"""
tests/conftest.py -- Shared test fixtures for the property auth backend.

This module provides (RecordingSink and build_service live in _helpers.py):
  - engine / role_store / user_store: per-test in-memory stores (unit tests)
  - sink: a fresh RecordingSink
  - service: AuthService wired to the in-memory stores and a RecordingSink
  - api_client: TestClient over the real app with a patched lifespan

Design: The API fixture uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs sync route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. The named URI shares one in-memory instance across all
connections in the same process.

DEBUG, LOGIN_RATE_LIMIT and UPLOAD_DIR must be set before any api/auth/core
import: get_settings() is cached on first use and the app reads it at import.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set before any core/api import so get_settings() auto-generates
# SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")
# The suite logs in far more than 10 times a minute from one client address.
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")
UPLOAD_DIR = tempfile.mkdtemp(prefix="property_uploads_")
os.environ["UPLOAD_DIR"] = UPLOAD_DIR

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from _helpers import SEED_ROLES, TEST_SECRET, RecordingSink, build_service
from api.main import app
from auth.service import AuthService
from auth.store import RoleStore, UserStore, create_store_engine
from auth.tokens import TokenIssuer


# ---------------------------------------------------------------------------
# Unit-test fixtures -- fresh in-memory DB per test
# ---------------------------------------------------------------------------


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    eng = create_store_engine("sqlite:///:memory:")
    RoleStore(eng).seed(SEED_ROLES)
    yield eng
    eng.dispose()


@pytest.fixture
def role_store(engine: Engine) -> RoleStore:
    return RoleStore(engine)


@pytest.fixture
def user_store(engine: Engine) -> UserStore:
    return UserStore(engine)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def service(engine: Engine, sink: RecordingSink) -> AuthService:
    return build_service(engine, sink)


# ---------------------------------------------------------------------------
# Integration fixture -- one TestClient per test module
# ---------------------------------------------------------------------------


def _patch_lifespan(engine: Engine, service: AuthService, token_issuer: TokenIssuer):
    """Return an async context manager that replaces the real lifespan.

    Wires the test engine and service into app.state so routes see an
    isolated test DB rather than the production database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.engine = engine
        app.state.token_issuer = token_issuer
        app.state.auth_service = service
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, RecordingSink], None, None]:
    """Yield (client, sink) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real route handlers, middleware and exception handlers but use an
    isolated in-memory store. The sink records reset messages.
    """
    db_name = request.module.__name__.replace(".", "_")
    engine = create_store_engine(f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true")
    RoleStore(engine).seed(SEED_ROLES)
    sink = RecordingSink()
    service = build_service(engine, sink)

    app.router.lifespan_context = _patch_lifespan(engine, service, TokenIssuer(TEST_SECRET, 3600))

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, sink

    engine.dispose()
