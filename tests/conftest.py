"""
Pytest configuration and shared fixtures.

Integration tests run against an in-memory DuckDB store seeded through the
native collection schemas (bank_orders, bip_orders, shipments, ...).
"""
import itertools
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Any, Optional

import pytest
import pytest_asyncio

from core.duckdb_store import DuckDBStore

# Reference instant for every dashboard test (business timezone, naive)
NOW = datetime(2026, 3, 10, 14, 0, 0)


class OrderFactory:
    """Builds native rows with sensible defaults for each collection."""

    def __init__(self):
        self._ids = itertools.count(1)

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    def bank(
        self,
        status: str,
        created_at: datetime,
        bank_id: Optional[str] = "bank-1",
        product: Optional[str] = "Phone",
        points: float = 100.0,
        order_date: Optional[datetime] = None,
        is_deleted: bool = False,
        **overrides
    ) -> Dict[str, Any]:
        order_id = self._next_id("bk")
        row = {
            "id": order_id,
            "ref_no": f"REF-{order_id}",
            "cd_number": None,
            "status": status,
            "created_at": created_at,
            "order_date": order_date or created_at,
            "bank_id": bank_id,
            "product_id": None,
            "product": product,
            "redeemed_points": points,
            "is_deleted": is_deleted,
            "shipment_id": None,
        }
        row.update(overrides)
        return row

    def bip(
        self,
        status: str,
        created_at: datetime,
        bank_id: Optional[str] = "bank-1",
        product: Optional[str] = "Laptop",
        amount: float = 1000.0,
        order_date: Optional[datetime] = None,
        is_deleted: bool = False,
        **overrides
    ) -> Dict[str, Any]:
        order_id = self._next_id("bip")
        row = {
            "id": order_id,
            "eforms_no": f"EF-{order_id}",
            "status": status,
            "created_at": created_at,
            "order_date": order_date or created_at,
            "bank_id": bank_id,
            "product_id": None,
            "product": product,
            "amount": amount,
            "is_deleted": is_deleted,
            "shipment_id": None,
        }
        row.update(overrides)
        return row

    def shipment(
        self,
        status: str,
        created_at: datetime,
        courier_id: Optional[str] = "courier-1",
        is_deleted: bool = False,
    ) -> Dict[str, Any]:
        return {
            "id": self._next_id("shp"),
            "order_id": None,
            "courier_id": courier_id,
            "status": status,
            "created_at": created_at,
            "is_deleted": is_deleted,
        }


@pytest.fixture
def now() -> datetime:
    """Fixed reference instant: 2026-03-10 14:00 local time."""
    return NOW


@pytest.fixture
def factory() -> OrderFactory:
    """Native row factory."""
    return OrderFactory()


@pytest_asyncio.fixture
async def store():
    """Empty in-memory DuckDB store with the native schema."""
    db = DuckDBStore(":memory:")
    await db.connect()
    try:
        yield db
    finally:
        await db.close()


@pytest_asyncio.fixture
async def banks(store) -> List[Dict[str, Any]]:
    """Three live banks and one soft-deleted bank."""
    rows = [
        {"id": "bank-1", "bank_name": "Alpha Bank", "is_deleted": False, "created_at": NOW},
        {"id": "bank-2", "bank_name": "Beta Bank", "is_deleted": False, "created_at": NOW},
        {"id": "bank-3", "bank_name": "Gamma Bank", "is_deleted": False, "created_at": NOW},
        {"id": "bank-4", "bank_name": "Closed Bank", "is_deleted": True, "created_at": NOW},
    ]
    await store.insert_rows("banks", rows)
    return rows


@pytest_asyncio.fixture
async def seeded_store(store, banks, factory):
    """
    Mixed dataset across both streams, used by the property tests.

    Spans today, the last week and older orders with every status,
    plus soft-deleted rows that must never be counted.
    """
    today = NOW.replace(hour=0, minute=0)
    bank_rows = [
        factory.bank("pending", NOW - timedelta(minutes=30), product="Phone", points=120),
        factory.bank("pending", NOW - timedelta(hours=2), bank_id="bank-2", product="Tablet", points=80),
        factory.bank("pending", NOW - timedelta(hours=30), product="Watch", points=60),
        factory.bank("confirmed", today + timedelta(hours=9), product="Phone", points=200),
        factory.bank("confirmed", NOW - timedelta(days=2), bank_id="bank-2", product="Tablet", points=250),
        factory.bank("processing", NOW - timedelta(days=1), product="Watch", points=150),
        factory.bank("dispatch", NOW - timedelta(days=3), bank_id="bank-2", product="Tablet", points=400),
        factory.bank("delivered", today + timedelta(hours=8), product="Phone", points=300),
        factory.bank("cancelled", NOW - timedelta(days=5), bank_id="bank-2", product="Watch", points=50),
        factory.bank("pending", NOW - timedelta(minutes=10), product="Phone", points=999, is_deleted=True),
    ]
    bip_rows = [
        factory.bip("pending", NOW - timedelta(hours=5), bank_id="bank-2", amount=1000),
        factory.bip("confirmed", NOW - timedelta(days=1), bank_id="bank-2", amount=2000),
        factory.bip("processing", NOW - timedelta(days=4), amount=750.5),
        factory.bip("shipped", NOW - timedelta(days=3), amount=500),
        factory.bip("delivered", NOW - timedelta(days=9), bank_id="bank-2", amount=700),
        factory.bip("cancelled", today + timedelta(hours=1), amount=300),
        factory.bip("delivered", NOW - timedelta(hours=1), amount=999, is_deleted=True),
    ]
    await store.insert_rows("bank_orders", bank_rows)
    await store.insert_rows("bip_orders", bip_rows)
    await store.insert_rows("couriers", [
        {"id": "courier-1", "name": "FastShip"},
        {"id": "courier-2", "name": "Aramex"},
    ])
    await store.insert_rows("shipments", [
        factory.shipment("booked", NOW - timedelta(days=1)),
        factory.shipment("in_transit", NOW - timedelta(days=2)),
        factory.shipment("delivered", NOW - timedelta(days=3), courier_id="courier-2"),
        factory.shipment("booked", NOW - timedelta(days=1), courier_id=None),
    ])
    return store


class RecordingStore:
    """
    Store stand-in that records every order query and returns fixed values.

    Lets tests assert which streams were queried without a database.
    """

    def __init__(self, count: int = 1, total: Decimal = Decimal("10.00"), fail_on: Optional[str] = None):
        self.calls: List[tuple] = []
        self.count = count
        self.total = total
        self.fail_on = fail_on

    def _record(self, name: str, stream):
        self.calls.append((name, stream))
        if self.fail_on == name:
            from core.exceptions import DataStoreQueryError
            raise DataStoreQueryError("Query failed", "simulated failure")

    async def count_orders(self, stream, order_filter):
        self._record("count_orders", stream)
        return self.count

    async def sum_orders(self, stream, order_filter, field_name="amount"):
        self._record("sum_orders", stream)
        return self.total

    async def group_orders(self, stream, order_filter, keys, aggregations):
        self._record("group_orders", stream)
        return []

    async def get_courier_rollup(self, date_range=None):
        self._record("get_courier_rollup", None)
        return []

    async def get_banks(self):
        self._record("get_banks", None)
        return []

    @property
    def streams_queried(self):
        return {stream for _, stream in self.calls if stream is not None}


@pytest.fixture
def recording_store() -> RecordingStore:
    """Database-free store that records queried streams."""
    return RecordingStore()
