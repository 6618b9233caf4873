"""
Dashboard service: assembles the comprehensive operational dashboard.

Builds one FilterContext per request and runs every panel calculator
concurrently against it. Any data store failure aborts the whole request;
partial dashboards are never returned.
"""
import logging
from datetime import datetime, timedelta
from typing import Dict, Optional, Any

from core.config import config
from core.duckdb_store import get_store
from core.exceptions import DataStoreError
from core.filters import OrderFilter, StreamSelector, build_filter_context, to_local_naive
from core.models import OrderStatus, OrderType, percentage
from core.observability import Timer
from core.panels import PANELS
from core.repositories import OrderRepositoryFacade
from core.resilience import gather_all

logger = logging.getLogger(__name__)


async def get_comprehensive_stats(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    order_type: str = OrderType.ALL.value,
    store=None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Compute every dashboard panel for one filter context.

    Args:
        start_date: Inclusive start date (YYYY-MM-DD)
        end_date: Inclusive end date; a bare date covers the whole day
        order_type: all, bank_orders or bip_orders
        store: Data store (default: the process-wide DuckDB store)
        now: Reference instant for "today" and aging (default: current time)

    Returns:
        Dict with topCards, pipeline, pendingAging, dispatchTeam,
        bankPerformance, topProductsDelays, financialOverview, weeklyBreakdown

    Raises:
        ValidationError: If dates or order type are malformed
        DataStoreError: If any underlying query fails
    """
    ctx = build_filter_context(start_date, end_date, order_type, now=now)
    store = store or await get_store()

    try:
        with Timer("comprehensive_stats", logger) as timer:
            results = await gather_all(*(calculate(ctx, store) for calculate in PANELS.values()))
    except DataStoreError as e:
        logger.error(
            "Dashboard aggregation failed",
            extra={"error": str(e), "order_type": getattr(order_type, "value", order_type)},
        )
        raise

    logger.info(
        "Dashboard stats computed",
        extra={
            "start_date": start_date,
            "end_date": end_date,
            "order_type": getattr(order_type, "value", order_type),
            "duration_ms": round(timer.elapsed_ms, 2),
        },
    )
    return dict(zip(PANELS.keys(), results))


async def get_overview_stats(store=None, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Headline entity counts (orders across both streams, products, vendors,
    purchase orders). Not date filtered.
    """
    store = store or await get_store()
    now = to_local_naive(now or datetime.now(config.dashboard.tz))
    new_since = now - timedelta(days=config.dashboard.new_vendor_window_days)

    orders = OrderRepositoryFacade(store, StreamSelector())
    everything = OrderFilter()

    (
        total_orders,
        completed_orders,
        active_orders,
        products,
        vendors,
        purchase_orders,
    ) = await gather_all(
        orders.count(everything),
        orders.count(everything.with_statuses(OrderStatus.DELIVERED)),
        orders.count(everything.with_statuses(OrderStatus.PENDING, OrderStatus.PROCESSING)),
        store.count_products(),
        store.get_vendor_counts(new_since),
        store.count_purchase_orders(),
    )

    # No separate "closed" state is tracked for purchase orders yet
    active_purchase_orders = purchase_orders

    return {
        "bankOrders": {
            "total": total_orders,
            "completed": completed_orders,
            "active": active_orders,
        },
        "products": {
            "total": products,
            "inStock": products,
            "active": products,
        },
        "vendors": vendors,
        "purchaseOrders": {
            "total": purchase_orders,
            "capacityPercentage": percentage(active_purchase_orders, purchase_orders),
            "active": active_purchase_orders,
        },
    }
