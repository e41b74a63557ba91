"""Shared test fixtures for HabitLog tests.

- In-memory SQLite database, recreated for every test
- FastAPI TestClient wired to that database
- A fake oracle that returns canned text (or raises) instead of calling an LLM
- make_entry(): lightweight entry objects for the pure functions
"""

import os
from datetime import datetime
from types import SimpleNamespace

# Must be set before database.py is imported anywhere
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("LLM_API_URL", None)

import pytest
from fastapi.testclient import TestClient

from database import Base, SessionLocal, engine
from oracle import OracleError, get_oracle
import models  # noqa: F401
from main import app


# ─────────────────────────────────────────────────────────────────────────────
# Fake Oracle
# ─────────────────────────────────────────────────────────────────────────────


class FakeOracle:
    """Returns queued responses in order; an Exception in the queue is raised."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def complete(self, system_prompt, user_prompt):
        self.calls.append((system_prompt, user_prompt))
        if not self.responses:
            raise OracleError("no more canned responses")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def fake_oracle():
    """Factory: fake_oracle('{"activity": ...}', OracleError(...)) → FakeOracle."""
    return FakeOracle


# ─────────────────────────────────────────────────────────────────────────────
# Database Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def reset_database():
    """Every test starts with empty tables."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    """TestClient with no oracle configured (rule-based classification)."""
    app.dependency_overrides[get_oracle] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def client_with_oracle():
    """Factory: client_with_oracle(FakeOracle(...)) → TestClient using that oracle."""

    def _make(oracle):
        app.dependency_overrides[get_oracle] = lambda: oracle
        return TestClient(app)

    yield _make
    app.dependency_overrides.clear()


# ─────────────────────────────────────────────────────────────────────────────
# Entry Factories
# ─────────────────────────────────────────────────────────────────────────────


def make_entry(
    activity="run",
    date=None,
    type="positive habit",
    category="exercise",
    quantity=None,
    unit=None,
    mood=None,
    sentiment="positive",
    raw_text=None,
):
    """Plain object with the attributes the analytics functions read."""
    return SimpleNamespace(
        raw_text=raw_text or activity,
        activity=activity,
        type=type,
        category=category,
        quantity=quantity,
        unit=unit,
        mood=mood,
        sentiment=sentiment,
        date=date or datetime(2026, 10, 17, 9, 0),
    )


@pytest.fixture
def entry_factory():
    return make_entry


def add_entry(session, **fields):
    """Persist a HabitEntry with sensible defaults and return it."""
    defaults = {
        "raw_text": fields.get("activity", "run"),
        "activity": "run",
        "type": "positive habit",
        "category": "exercise",
        "sentiment": "positive",
    }
    defaults.update(fields)
    entry = models.HabitEntry(**defaults)
    session.add(entry)
    session.commit()
    session.refresh(entry)
    return entry


@pytest.fixture
def entry_in_db(db):
    def _add(**fields):
        return add_entry(db, **fields)

    return _add
