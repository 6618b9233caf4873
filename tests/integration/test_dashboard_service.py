"""
Integration tests for web/services/dashboard_service.py

Covers the assembled dashboard and the cross-panel properties it must keep:
funnel monotonicity, percentage bounds, aging partition, stream selector
equivalence and financial additivity.
"""
from datetime import datetime, timedelta

import pytest

from core.exceptions import DataStoreQueryError, ValidationError
from web.services import dashboard_service

NOW = datetime(2026, 3, 10, 14, 0)

ORDER_TYPES = ("all", "bank_orders", "bip_orders")


async def stats(store, start_date=None, end_date=None, order_type="all"):
    return await dashboard_service.get_comprehensive_stats(
        start_date, end_date, order_type, store=store, now=NOW
    )


class TestComprehensiveStats:
    """Tests for get_comprehensive_stats."""

    @pytest.mark.asyncio
    async def test_all_panels_present(self, seeded_store):
        result = await stats(seeded_store)
        assert list(result) == [
            "topCards",
            "pipeline",
            "pendingAging",
            "dispatchTeam",
            "bankPerformance",
            "topProductsDelays",
            "financialOverview",
            "weeklyBreakdown",
        ]

    @pytest.mark.asyncio
    async def test_seeded_headlines(self, seeded_store):
        result = await stats(seeded_store)
        cards = result["topCards"]

        # Soft-deleted rows never count
        assert cards["totalOrdersToday"] == 6
        assert cards["awaitingConfirmation"] == 4
        assert cards["deliveredToday"] == 1
        assert result["pipeline"]["imported"]["count"] == 15

    @pytest.mark.asyncio
    @pytest.mark.parametrize("order_type", ORDER_TYPES)
    async def test_funnel_monotonic(self, seeded_store, order_type):
        pipeline = (await stats(seeded_store, order_type=order_type))["pipeline"]
        counts = [pipeline[s]["count"] for s in ("imported", "confirmed", "purchased", "dispatched", "delivered")]
        assert counts == sorted(counts, reverse=True)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("order_type", ORDER_TYPES)
    async def test_percentages_bounded(self, seeded_store, order_type):
        result = await stats(seeded_store, order_type=order_type)
        for stage in result["pipeline"].values():
            assert 0 <= stage["percentage"] <= 100
        for bank in result["bankPerformance"]:
            assert 0 <= bank["confirmedPercentage"] <= 100
            assert 0 <= bank["cancelRate"] <= 100
            assert bank["orders"] > 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("order_type", ORDER_TYPES)
    async def test_aging_partitions_pending(self, seeded_store, order_type):
        """Every pending order lands in exactly one aging bucket."""
        result = await stats(seeded_store, order_type=order_type)
        assert sum(result["pendingAging"].values()) == result["topCards"]["awaitingConfirmation"]

    @pytest.mark.asyncio
    async def test_selector_equivalence(self, seeded_store):
        """Stream-additive panels for "all" equal bank plus BIP."""
        both = await stats(seeded_store)
        bank = await stats(seeded_store, order_type="bank_orders")
        bip = await stats(seeded_store, order_type="bip_orders")

        for key, value in both["topCards"].items():
            assert value == bank["topCards"][key] + bip["topCards"][key]
        for stage, value in both["pipeline"].items():
            assert value["count"] == bank["pipeline"][stage]["count"] + bip["pipeline"][stage]["count"]
        for bucket, value in both["pendingAging"].items():
            assert value == bank["pendingAging"][bucket] + bip["pendingAging"][bucket]

    @pytest.mark.asyncio
    async def test_financial_additivity(self, seeded_store):
        both = (await stats(seeded_store))["financialOverview"]
        bank = (await stats(seeded_store, order_type="bank_orders"))["financialOverview"]
        bip = (await stats(seeded_store, order_type="bip_orders"))["financialOverview"]

        for key, value in both.items():
            assert value == pytest.approx(bank[key] + bip[key])
        assert both["totalOrdersValue"] == pytest.approx(1610 + 5250.5)

    @pytest.mark.asyncio
    async def test_top_products_bank_only(self, seeded_store):
        bank = (await stats(seeded_store, order_type="bank_orders"))["topProductsDelays"]
        both = (await stats(seeded_store))["topProductsDelays"]
        assert both == bank
        assert (await stats(seeded_store, order_type="bip_orders"))["topProductsDelays"] == []

    @pytest.mark.asyncio
    async def test_same_day_range(self, store, factory):
        """startDate == endDate covers the whole day, including 23:59:59."""
        await store.insert_rows("bank_orders", [
            factory.bank("confirmed", datetime(2026, 1, 15, 0, 0)),
            factory.bank("confirmed", datetime(2026, 1, 15, 23, 59, 59)),
            factory.bank("confirmed", datetime(2026, 1, 16, 0, 0)),
            factory.bank("confirmed", datetime(2026, 1, 14, 23, 59, 59)),
        ])
        result = await stats(store, "2026-01-15", "2026-01-15")
        assert result["topCards"]["pendingPurchase"] == 2
        assert result["pipeline"]["imported"]["count"] == 2

    @pytest.mark.asyncio
    async def test_empty_store(self, store):
        result = await stats(store)
        assert result["pipeline"]["imported"] == {"count": 0, "percentage": 100}
        assert result["dispatchTeam"] == []
        assert result["bankPerformance"] == []
        assert result["topProductsDelays"] == []
        assert result["weeklyBreakdown"] == []
        assert set(result["financialOverview"].values()) == {0}

    @pytest.mark.asyncio
    async def test_data_store_failure_aborts(self, recording_store):
        """One failed query fails the whole dashboard; no partial result."""
        recording_store.fail_on = "sum_orders"
        with pytest.raises(DataStoreQueryError):
            await stats(recording_store)

    @pytest.mark.asyncio
    async def test_invalid_input_before_any_query(self, recording_store):
        with pytest.raises(ValidationError):
            await stats(recording_store, start_date="15/01/2026")
        with pytest.raises(ValidationError):
            await stats(recording_store, order_type="retail")
        assert recording_store.calls == []

    @pytest.mark.asyncio
    async def test_excluded_stream_never_queried(self, recording_store):
        await stats(recording_store, order_type="bip_orders")
        assert {s.value for s in recording_store.streams_queried} == {"bip"}


class TestOverviewStats:
    """Tests for get_overview_stats."""

    @pytest.mark.asyncio
    async def test_counts(self, seeded_store):
        await seeded_store.insert_rows("products", [
            {"id": "p1", "name": "Phone", "is_deleted": False, "created_at": NOW},
            {"id": "p2", "name": "Tablet", "is_deleted": False, "created_at": NOW},
            {"id": "p3", "name": "Gone", "is_deleted": True, "created_at": NOW},
        ])
        await seeded_store.insert_rows("vendors", [
            {"id": "v1", "name": "Acme", "status": "active", "created_at": NOW - timedelta(days=2), "is_deleted": False},
            {"id": "v2", "name": "Globex", "status": "inactive", "created_at": NOW - timedelta(days=60), "is_deleted": False},
        ])
        await seeded_store.insert_rows("purchase_orders", [
            {"id": "po1", "status": "open", "created_at": NOW, "is_deleted": False},
            {"id": "po2", "status": "open", "created_at": NOW, "is_deleted": True},
        ])

        overview = await dashboard_service.get_overview_stats(store=seeded_store, now=NOW)

        assert overview["bankOrders"] == {"total": 15, "completed": 2, "active": 6}
        assert overview["products"] == {"total": 2, "inStock": 2, "active": 2}
        assert overview["vendors"] == {"total": 2, "newVendors": 1, "active": 1}
        assert overview["purchaseOrders"] == {"total": 1, "capacityPercentage": 100, "active": 1}

    @pytest.mark.asyncio
    async def test_empty(self, store):
        overview = await dashboard_service.get_overview_stats(store=store, now=NOW)
        assert overview["purchaseOrders"] == {"total": 0, "capacityPercentage": 0, "active": 0}
        assert overview["bankOrders"]["total"] == 0
