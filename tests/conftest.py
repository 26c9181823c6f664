"""
Shared pytest fixtures for the ADVERTIS test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - auth_headers: builds Bearer headers for a user/role
    - tables: the packaged static tables
    - scripted: ScriptedProvider swapped into the app's gateway
    - make_strategy: creates an owned Strategy through the service layer
"""

import pytest

from advertis import create_app
from advertis.ai.gateway import LLMProvider
from advertis.auth import issue_session_token
from advertis.models import db as _db
from advertis.services import strategy_service

OWNER_ID = "user-1"
OTHER_ID = "user-2"


class ScriptedProvider(LLMProvider):
    """
    Provider that answers from a queue. Each queued item is either the text
    content to return or an exception instance to raise. Every call is
    recorded in ``calls`` as ``(messages, model, kwargs)``.
    """

    name = "scripted"

    def __init__(self, *responses, prompt_tokens=120, completion_tokens=80):
        self.responses = list(responses)
        self.calls = []
        self.prompt_tokens = prompt_tokens
        self.completion_tokens = completion_tokens

    def queue(self, *responses):
        self.responses.extend(responses)

    def chat(self, messages, model, **kwargs):
        self.calls.append((messages, model, kwargs))
        if not self.responses:
            raise AssertionError("ScriptedProvider called with an empty queue")
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return {
            "content": item,
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "model": model,
        }

    @property
    def last_user_message(self):
        messages = self.calls[-1][0]
        return next(m["content"] for m in reversed(messages) if m["role"] == "user")


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def tables(app):
    return app.extensions["static_tables"]


# ── Auth helpers ─────────────────────────────────────────────────────────


@pytest.fixture()
def auth_headers():
    """Return a builder: auth_headers(role="OPERATOR", user_id=OWNER_ID)."""
    def _build(role="OPERATOR", user_id=OWNER_ID, ttl=None):
        token = issue_session_token(user_id, role, ttl=ttl)
        return {"Authorization": f"Bearer {token}"}
    return _build


# ── Generation provider ──────────────────────────────────────────────────


@pytest.fixture()
def scripted(app):
    """Swap a ScriptedProvider into the app gateway for the duration of a test."""
    gateway = app.extensions["ai_gateway"]
    original = gateway.provider
    provider = ScriptedProvider()
    gateway.provider = provider
    yield provider
    gateway.provider = original


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def make_strategy(tables):
    """Create a Strategy owned by ``user_id`` (default OWNER_ID)."""
    def _make(user_id=OWNER_ID, **data):
        data.setdefault("brand_name", "Bonnet Rouge")
        data.setdefault("sector", "Agroalimentaire")
        return strategy_service.create_strategy(user_id, data, tables)
    return _make


@pytest.fixture()
def force_phase():
    """Set a phase directly, bypassing the transition guards."""
    def _force(strategy, phase):
        strategy.phase = phase
        _db.session.commit()
        return strategy
    return _force
