"""Shared pytest fixtures for all test suites."""

import itertools
from collections import defaultdict
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from kanso.agents.generation_gateway import GenerationGateway
from kanso.schemas.itinerary import Activity, BudgetTier, Coordinates, DayItinerary, Itinerary
from kanso.utils.database import SupabaseClient
from kanso.utils.rate_limiter import GovernanceContext, InMemoryLedgerStore


class FakeClock:
    """Controllable epoch-millisecond clock."""

    def __init__(self, start_ms: int = 1_700_000_000_000):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeQuery:
    """Chainable stand-in for a Supabase table query builder."""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.rows = db.tables[table]
        self.op = "select"
        self.payload = None
        self.filters = []
        self.order_by = None
        self.max_rows = None
        self.on_conflict = None
        self.ignore_duplicates = False

    def select(self, columns="*"):
        self.op = "select"
        return self

    def insert(self, row):
        self.op = "insert"
        self.payload = dict(row)
        return self

    def upsert(self, row, on_conflict=None, ignore_duplicates=False):
        self.op = "upsert"
        self.payload = dict(row)
        self.on_conflict = on_conflict
        self.ignore_duplicates = ignore_duplicates
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, count):
        self.max_rows = count
        return self

    def _matches(self, row):
        return all(row.get(column) == value for column, value in self.filters)

    def _stamp(self, row):
        row.setdefault("created_at", next(self.db.sequence))
        return row

    def execute(self):
        if self.op == "insert":
            row = self._stamp(self.payload)
            self.rows.append(row)
            return SimpleNamespace(data=[dict(row)])

        if self.op == "upsert":
            key = self.on_conflict
            for existing in self.rows:
                if existing.get(key) == self.payload.get(key):
                    if self.ignore_duplicates:
                        return SimpleNamespace(data=[])
                    existing.update(self.payload)
                    return SimpleNamespace(data=[dict(existing)])
            row = self._stamp(self.payload)
            self.rows.append(row)
            return SimpleNamespace(data=[dict(row)])

        matched = [row for row in self.rows if self._matches(row)]
        if self.op == "delete":
            for row in matched:
                self.rows.remove(row)
            return SimpleNamespace(data=[dict(row) for row in matched])

        if self.order_by:
            column, desc = self.order_by
            matched.sort(key=lambda row: row.get(column) or 0, reverse=desc)
        if self.max_rows is not None:
            matched = matched[:self.max_rows]
        return SimpleNamespace(data=[dict(row) for row in matched])


class FakeSupabase:
    """In-memory Supabase client covering the query shapes the app uses."""

    def __init__(self):
        self.tables = defaultdict(list)
        self.sequence = itertools.count(1)

    def table(self, name):
        return FakeQuery(self, name)


def make_response(text=None, function_calls=None, candidates=None, prompt_feedback=None):
    """Build a fake GenerateContentResponse."""
    if candidates is None:
        candidates = [SimpleNamespace(finish_reason="STOP", safety_ratings=[], content=None)]
    return SimpleNamespace(
        text=text,
        function_calls=function_calls,
        candidates=candidates,
        prompt_feedback=prompt_feedback,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ledger_store() -> InMemoryLedgerStore:
    return InMemoryLedgerStore()


@pytest.fixture
def governance(ledger_store, clock) -> GovernanceContext:
    """Limiters with the production quotas, in-memory ledger and fake clock."""
    return GovernanceContext.from_settings(store=ledger_store, clock=clock)


@pytest.fixture
def chat_session():
    return SimpleNamespace(send_message=AsyncMock())


@pytest.fixture
def genai_client(chat_session):
    """Fake google-genai client exposing only the async surface the gateway calls."""
    return SimpleNamespace(
        aio=SimpleNamespace(
            models=SimpleNamespace(generate_content=AsyncMock()),
            chats=SimpleNamespace(create=MagicMock(return_value=chat_session)),
        )
    )


@pytest.fixture
def gateway(governance, genai_client) -> GenerationGateway:
    return GenerationGateway(governance, client=genai_client, model_name="test-model")


@pytest.fixture
def fake_supabase(monkeypatch) -> FakeSupabase:
    db = FakeSupabase()
    monkeypatch.setattr(SupabaseClient, "_instance", db)
    return db


def make_activity(name: str, category: str = "culture") -> Activity:
    return Activity(
        time="09:00 AM",
        activity=name,
        location=f"{name} entrance",
        description=f"Visit {name}",
        type=category,
        cost_estimate="$10",
        coordinates=Coordinates(lat=35.0, lng=135.7),
    )


@pytest.fixture
def sample_itinerary() -> Itinerary:
    """Three-day Kyoto itinerary with one activity per day."""
    return Itinerary(
        id="itin-1",
        destination="Kyoto",
        duration=3,
        start_date="2026-04-02",
        travelers=2,
        group_type=["Couple"],
        budget=BudgetTier.MODERATE,
        days=[
            DayItinerary(day=1, theme="Temples", activities=[make_activity("Kinkaku-ji")]),
            DayItinerary(day=2, theme="Markets", activities=[make_activity("Nishiki Market", "food")]),
            DayItinerary(day=3, theme="Bamboo", activities=[make_activity("Arashiyama", "nature")]),
        ],
        created_at=1_700_000_000_000,
    )


@pytest.fixture
def activity_factory():
    return make_activity


@pytest.fixture
def response_factory():
    return make_response
