import asyncio
import os
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Callable, Dict, List, Optional
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Never talk to a real Supabase project from tests
for _var in ("SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY"):
    os.environ.pop(_var, None)

from styling_backend.config import Settings
from styling_backend.services.credit_service import CreditService
from styling_backend.services.credit_store import InMemoryCreditStore, SupabaseCreditStore


class FakeResponse:
    def __init__(self, data: List[Dict]):
        self.data = data
        self.count = len(data)


class FakeQuery:
    """Subset of the postgrest query builder used by SupabaseCreditStore."""

    def __init__(self, db: "FakeSupabaseClient", table: str):
        self.db = db
        self.table = table
        self.op = "select"
        self.payload = None
        self.filters = []
        self._order = None
        self._limit = None

    def select(self, *columns, **kwargs):
        self.op = "select"
        return self

    def insert(self, payload):
        self.op = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.op = "update"
        self.payload = payload
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self._order = (column, desc)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def _matches(self, row):
        return all(row.get(column) == value for column, value in self.filters)

    async def execute(self):
        # Yield like a real network round trip
        await asyncio.sleep(0)
        if self.db.failing or self.table in self.db.failing_tables:
            raise ConnectionError("supabase unreachable")

        rows = self.db.tables.setdefault(self.table, [])

        if self.op == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for item in items:
                row = dict(item)
                if self.table == "user_credits":
                    if any(r["user_id"] == row["user_id"] for r in rows):
                        raise Exception("duplicate key value violates unique constraint")
                else:
                    row.setdefault("id", str(uuid4()))
                    row.setdefault("created_at", self.db.next_timestamp())
                rows.append(row)
                inserted.append(dict(row))
            return FakeResponse(inserted)

        if self.op == "update":
            if self.db.on_update is not None:
                self.db.on_update(rows)
            matched = [r for r in rows if self._matches(r)]
            for row in matched:
                row.update(self.payload)
            return FakeResponse([dict(r) for r in matched])

        matched = [dict(r) for r in rows if self._matches(r)]
        if self._order:
            column, desc = self._order
            matched.sort(key=lambda r: r[column], reverse=desc)
        if self._limit is not None:
            matched = matched[:self._limit]
        return FakeResponse(matched)


class FakeSupabaseClient:
    def __init__(self):
        self.tables: Dict[str, List[Dict]] = {}
        self.failing = False
        self.failing_tables = set()
        self.on_update: Optional[Callable[[List[Dict]], None]] = None
        self._clock = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def next_timestamp(self) -> str:
        self._clock += timedelta(seconds=1)
        return self._clock.isoformat()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        supabase_url="",
        supabase_service_role_key="",
        default_starting_credits=5,
        personal_look_credit_cost=2,
        remix_look_credit_cost=1,
        store_write_retries=3,
    )


@pytest.fixture
def fallback() -> InMemoryCreditStore:
    return InMemoryCreditStore()


@pytest.fixture
def ledger(settings, fallback) -> CreditService:
    """Ledger with no primary store."""
    return CreditService(fallback=fallback, settings=settings)


@pytest.fixture
def fake_supabase() -> FakeSupabaseClient:
    return FakeSupabaseClient()


@pytest.fixture
def supabase_store(fake_supabase) -> SupabaseCreditStore:
    return SupabaseCreditStore(fake_supabase)


@pytest.fixture
def supabase_ledger(supabase_store, fallback, settings) -> CreditService:
    return CreditService(store=supabase_store, fallback=fallback, settings=settings)


@pytest_asyncio.fixture
async def client(ledger) -> AsyncGenerator[AsyncClient, None]:
    from styling_backend.routers.credits import get_credit_service
    from styling_backend.server.server import app

    app.dependency_overrides[get_credit_service] = lambda: ledger
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
