"""Shared fixtures — fake rows, fake sessions, fake pipeline and transport.

Nothing here needs a running database.
"""
import asyncio
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from schemas.lead import Caller, ContactEntityRow, LeadRow
from sync.composition import compose_lead
from sync.config import SyncSettings

BASE_TIME = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_lead_row():
    counter = {"n": 0}

    def _make(**overrides) -> LeadRow:
        counter["n"] += 1
        data = {
            "id": uuid.uuid4(),
            "lead_number": 1000 + counter["n"],
            "user_id": uuid.uuid4(),
            "contact_entity_id": None,
            "created_at": BASE_TIME + timedelta(minutes=counter["n"]),
            "updated_at": BASE_TIME + timedelta(minutes=counter["n"], seconds=30),
        }
        data.update(overrides)
        return LeadRow(**data)

    return _make


@pytest.fixture
def make_contact():
    def _make(**overrides) -> ContactEntityRow:
        data = {
            "id": uuid.uuid4(),
            "first_name": "Jane",
            "last_name": "Doe",
            "email": "jane@acme.com",
            "phone": "555-0100",
            "business_name": "Acme Corp",
            "loan_amount": 250000,
            "loan_type": "SBA 7(a)",
            "stage": "Qualified",
            "priority": "High",
        }
        data.update(overrides)
        return ContactEntityRow(**data)

    return _make


@pytest.fixture
def make_lead(make_lead_row):
    """Composite lead built from a fresh row and an optional contact."""

    def _make(contact=None, **row_overrides):
        if contact is not None:
            row_overrides.setdefault("contact_entity_id", contact.id)
        return compose_lead(make_lead_row(**row_overrides), contact)

    return _make


@pytest.fixture
def caller():
    return Caller(user_id=uuid.uuid4(), roles=frozenset({"loan_originator"}))


@pytest.fixture
def manager():
    return Caller(user_id=uuid.uuid4(), roles=frozenset({"manager"}))


@pytest.fixture
def settings():
    return SyncSettings(empty_retry_delay=0)


@pytest.fixture
def session_factory():
    """Stand-in for db.connection.get_db yielding an AsyncMock session."""
    sessions = []

    @asynccontextmanager
    async def _factory():
        session = AsyncMock()
        sessions.append(session)
        yield session

    _factory.sessions = sessions
    return _factory


class FakePipeline:
    """Returns queued results (or raises queued exceptions) from load_composite.

    When gated, each call waits for release() before returning.
    """

    def __init__(self, *results, gated: bool = False):
        self.results = list(results)
        self.calls = []
        self.gate = asyncio.Event()
        if not gated:
            self.gate.set()

    def release(self) -> None:
        self.gate.set()

    async def load_composite(self, caller):
        self.calls.append(caller)
        await self.gate.wait()
        result = self.results.pop(0) if len(self.results) > 1 else (self.results[0] if self.results else [])
        if isinstance(result, BaseException):
            raise result
        return list(result)


class FakeTransport:
    """In-memory change transport recording subscribe/unsubscribe calls."""

    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.subscriptions = {}
        self.subscribe_calls = []
        self.unsubscribe_calls = []
        self.lost_callbacks = {}

    async def subscribe(self, channel_id, spec, callback, on_lost=None):
        self.subscribe_calls.append((channel_id, spec))
        if spec.table in self.fail_on:
            raise ConnectionError("realtime unavailable")
        self.subscriptions[channel_id] = (spec, callback)
        self.lost_callbacks[channel_id] = on_lost

    async def unsubscribe(self, channel_id):
        self.unsubscribe_calls.append(channel_id)
        self.subscriptions.pop(channel_id, None)
        self.lost_callbacks.pop(channel_id, None)

    def drop(self):
        """Simulate the transport connection going away."""
        lost, self.lost_callbacks = self.lost_callbacks, {}
        self.subscriptions.clear()
        for on_lost in lost.values():
            if on_lost is not None:
                on_lost()

    def emit(self, event):
        for spec, callback in list(self.subscriptions.values()):
            if spec.matches(event):
                callback(event)


@pytest.fixture
def fake_pipeline_cls():
    return FakePipeline


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def failing_transport():
    return FakeTransport(fail_on={"leads", "contact_entities"})
