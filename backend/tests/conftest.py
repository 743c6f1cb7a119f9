from __future__ import annotations

import copy
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import pytest

from app.core.config import Settings
from app.db import Base, create_db_engine, create_session_factory, init_db
from app.domain import OrderRow, RelayEnvelope
from ingestion.pagination import OrdersPage
from ingestion.service import session_scope_for


DATA_DIR = Path(__file__).parent / "data"


def _load(name: str) -> dict[str, object]:
    return json.loads((DATA_DIR / name).read_text(encoding="utf-8"))


@pytest.fixture
def wyvern_order_payload() -> dict[str, object]:
    return _load("wyvern_order.json")


@pytest.fixture
def seaport_order_payload() -> dict[str, object]:
    return _load("seaport_order.json")


@pytest.fixture
def test_settings(tmp_path, monkeypatch) -> Settings:
    settings = Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path/'relayer.db'}",
        chain_id=1,
        realtime_opensea_api_key="realtime-key",
        backfill_opensea_api_key="backfill-key",
        sync_rate_limit_seconds=1.0,
    )
    monkeypatch.setattr("app.core.config.get_settings", lambda: settings)
    monkeypatch.setattr("app.core.config.settings", settings)
    return settings


@pytest.fixture
def session_scope(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path/'orders.db'}")
    init_db(bind=engine)
    yield session_scope_for(create_session_factory(engine))
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


class MemoryStore:
    """Order store honouring the hash uniqueness contract in memory."""

    def __init__(self, existing: set[str] | None = None, fail_on_call: int | None = None) -> None:
        self.rows: dict[str, OrderRow] = {}
        self.existing = set(existing or ())
        self.calls = 0
        self.fail_on_call = fail_on_call

    def insert_orders(self, rows):
        self.calls += 1
        if self.fail_on_call == self.calls:
            from sqlalchemy.exc import OperationalError

            raise OperationalError("INSERT", {}, Exception("database is locked"))
        inserted: list[str] = []
        for row in rows:
            if row.hash in self.existing or row.hash in self.rows:
                continue
            self.rows[row.hash] = row
            inserted.append(row.hash)
        return inserted


class MemoryQueue:
    def __init__(self) -> None:
        self.batches: list[tuple[list[RelayEnvelope], bool]] = []

    def enqueue(self, envelopes, *, delayed):
        self.batches.append((list(envelopes), delayed))

    @property
    def envelopes(self) -> list[RelayEnvelope]:
        return [envelope for batch, _ in self.batches for envelope in batch]


class ScriptedClient:
    """Marketplace client returning pre-built pages or raising scripted errors."""

    def __init__(self, pages: list[OrdersPage | Exception]) -> None:
        self._pages = list(pages)
        self.calls: list[dict[str, object]] = []

    def fetch_page(self, position, *, limit, listed_after=None, listed_before=None):
        self.calls.append(
            {
                "position": position,
                "limit": limit,
                "listed_after": listed_after,
                "listed_before": listed_before,
            }
        )
        if not self._pages:
            raise AssertionError("fetched more pages than scripted")
        page = self._pages.pop(0)
        if isinstance(page, Exception):
            raise page
        return page


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def memory_queue() -> MemoryQueue:
    return MemoryQueue()


def make_wyvern_orders(template: dict[str, object], count: int, *, start: int = 0) -> list[dict]:
    orders = []
    for index in range(start, start + count):
        order = copy.deepcopy(template)
        order["prefixed_hash"] = f"0x{index:064X}"
        order["created_date"] = f"2022-03-01T12:{index // 60 % 60:02d}:{index % 60:02d}.000000"
        orders.append(order)
    return orders


def make_seaport_orders(template: dict[str, object], count: int, *, start: int = 0) -> list[dict]:
    orders = []
    for index in range(start, start + count):
        order = copy.deepcopy(template)
        order["order_hash"] = f"0x{index:064X}"
        order["created_date"] = f"2022-07-01T08:{index // 60 % 60:02d}:{index % 60:02d}.000000"
        orders.append(order)
    return orders
