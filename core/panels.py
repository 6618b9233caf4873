"""
Dashboard panel calculators.

Each calculator takes the shared FilterContext and the store and returns
one panel of the comprehensive dashboard. Calculators never depend on each
other; all of their sub-queries run concurrently via gather_all.
"""
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Any, Callable, Awaitable

from core.config import config
from core.filters import FilterContext, OrderFilter
from core.models import (
    OrderStatus,
    Stream,
    AVG_DISPATCH_UNAVAILABLE,
    AVG_DELIVERY_UNAVAILABLE,
    percentage,
)
from core.observability import get_logger, timed
from core.repositories import Agg, OrderRepositoryFacade, merge_groups
from core.resilience import gather_all

logger = get_logger(__name__)

PanelCalculator = Callable[[FilterContext, Any], Awaitable[Any]]


# ═══════════════════════════════════════════════════════════════════════════════
# TOP CARDS
# ═══════════════════════════════════════════════════════════════════════════════

@timed("panel.top_cards")
async def calculate_top_cards(ctx: FilterContext, store) -> Dict[str, int]:
    """Headline counters; the two "today" cards ignore the requested range."""
    orders = OrderRepositoryFacade(store, ctx.selector)
    base = ctx.base_filter
    today = ctx.today_filter()

    (
        total_today,
        awaiting_confirmation,
        pending_purchase,
        pending_dispatch,
        delivered_today,
        cancelled,
    ) = await gather_all(
        orders.count(today),
        orders.count(base.with_statuses(OrderStatus.PENDING)),
        orders.count(base.with_statuses(OrderStatus.CONFIRMED)),
        orders.count(base.with_statuses(OrderStatus.PROCESSING)),
        orders.count(today.with_statuses(OrderStatus.DELIVERED)),
        orders.count(base.with_statuses(OrderStatus.CANCELLED)),
    )

    return {
        "totalOrdersToday": total_today,
        "awaitingConfirmation": awaiting_confirmation,
        "pendingPurchase": pending_purchase,
        "pendingDispatch": pending_dispatch,
        "deliveredToday": delivered_today,
        "cancelledOrders": cancelled,
    }


# ═══════════════════════════════════════════════════════════════════════════════
# PIPELINE FUNNEL
# ═══════════════════════════════════════════════════════════════════════════════

# Stage name -> statuses counted (None = every status); each set nests in the previous
FUNNEL_STAGES = (
    ("imported", None),
    ("confirmed", OrderStatus.confirmed_or_later()),
    ("purchased", OrderStatus.purchased_or_later()),
    ("dispatched", OrderStatus.dispatched_or_later()),
    ("delivered", frozenset({OrderStatus.DELIVERED})),
)


@timed("panel.pipeline")
async def calculate_pipeline(ctx: FilterContext, store) -> Dict[str, Dict[str, int]]:
    """
    Cumulative order funnel over the base filter.

    Percentages are relative to the imported count and rounded per stage,
    so adjacent stages can round to the same value. Imported is always 100.
    """
    orders = OrderRepositoryFacade(store, ctx.selector)
    base = ctx.base_filter

    counts = await gather_all(*(
        orders.count(base if statuses is None else base.with_statuses(statuses))
        for _, statuses in FUNNEL_STAGES
    ))
    imported = counts[0]

    pipeline = {}
    for (stage, _), count in zip(FUNNEL_STAGES, counts):
        pipeline[stage] = {
            "count": count,
            "percentage": 100 if stage == "imported" else percentage(count, imported),
        }
    return pipeline


# ═══════════════════════════════════════════════════════════════════════════════
# PENDING AGING
# ═══════════════════════════════════════════════════════════════════════════════

@timed("panel.pending_aging")
async def calculate_pending_aging(ctx: FilterContext, store) -> Dict[str, int]:
    """
    Pending orders by time since creation: [0,1h) [1h,4h) [4h,24h) [24h,inf).

    All buckets use the same ``ctx.now``. An order created exactly one hour
    ago is in [1h,4h). Future-dated orders fall into the first bucket.
    """
    orders = OrderRepositoryFacade(store, ctx.selector)
    pending = ctx.base_filter.with_statuses(OrderStatus.PENDING)

    one_hour_ago = ctx.now - timedelta(hours=1)
    four_hours_ago = ctx.now - timedelta(hours=4)
    day_ago = ctx.now - timedelta(hours=24)

    zero_to_one, one_to_four, four_to_24, over_24 = await gather_all(
        orders.count(pending.where("created_at", ">", one_hour_ago)),
        orders.count(
            pending.where("created_at", ">", four_hours_ago).where("created_at", "<=", one_hour_ago)
        ),
        orders.count(
            pending.where("created_at", ">", day_ago).where("created_at", "<=", four_hours_ago)
        ),
        orders.count(pending.where("created_at", "<=", day_ago)),
    )

    return {
        "zeroToOneHour": zero_to_one,
        "oneToFourHours": one_to_four,
        "fourToTwentyFourHours": four_to_24,
        "moreThanTwentyFourHours": over_24,
    }


# ═══════════════════════════════════════════════════════════════════════════════
# DISPATCH BY COURIER
# ═══════════════════════════════════════════════════════════════════════════════

@timed("panel.dispatch_team")
async def calculate_dispatch_team(ctx: FilterContext, store) -> List[Dict[str, Any]]:
    """Shipment progress per courier. Shipments are not split by order stream."""
    rollup = await store.get_courier_rollup(ctx.date_range)
    return [
        {
            "courierName": row["courier_name"],
            "pending": row["pending"],
            "dispatched": row["dispatched"],
            "avgDispatch": AVG_DISPATCH_UNAVAILABLE.to_dict(),
        }
        for row in rollup
    ]


# ═══════════════════════════════════════════════════════════════════════════════
# BANK PERFORMANCE
# ═══════════════════════════════════════════════════════════════════════════════

@timed("panel.bank_performance")
async def calculate_bank_performance(ctx: FilterContext, store) -> List[Dict[str, Any]]:
    """Per-bank totals, confirmation share and cancel rate.

    Banks without orders in the filter are left out. Sorted by order count
    descending, then bank name.
    """
    orders = OrderRepositoryFacade(store, ctx.selector)
    banks, rows = await gather_all(
        store.get_banks(),
        orders.group_by(ctx.base_filter, ["bank_id"], {
            "total": Agg.count(),
            "confirmed": Agg.count_where(OrderStatus.confirmed_or_later()),
            "cancelled": Agg.count_where(OrderStatus.CANCELLED),
        }),
    )
    per_bank = {
        row["bank_id"]: row
        for row in merge_groups(rows, ["bank_id"], ["total", "confirmed", "cancelled"])
    }

    performance = []
    for bank in banks:
        stats = per_bank.get(bank["id"])
        if not stats or stats["total"] <= 0:
            continue
        total = stats["total"]
        performance.append({
            "bankId": bank["id"],
            "bankName": bank["bank_name"],
            "orders": total,
            "confirmedPercentage": percentage(stats["confirmed"], total, ndigits=2),
            "cancelRate": percentage(stats["cancelled"], total, ndigits=2),
            "avgDelivery": AVG_DELIVERY_UNAVAILABLE.to_dict(),
        })

    performance.sort(key=lambda b: (-b["orders"], b["bankName"]))
    return performance


# ═══════════════════════════════════════════════════════════════════════════════
# TOP DELAYED PRODUCTS
# ═══════════════════════════════════════════════════════════════════════════════

def _product_rank(row: Dict[str, Any]) -> tuple:
    product = row.get("product")
    return (-row["pendingPurchase"], -row["ordersCount"], product is None, product or "")


@timed("panel.top_products_delays")
async def calculate_top_products_delays(ctx: FilterContext, store) -> List[Dict[str, Any]]:
    """
    Bank-order products still waiting to be purchased.

    Ranked by pendingPurchase, then ordersCount (both descending), then
    product name. Empty when the bank stream is not selected.
    """
    orders = OrderRepositoryFacade(store, ctx.selector)
    rows = await orders.group_stream(
        Stream.BANK,
        ctx.base_filter.with_statuses(OrderStatus.PENDING, OrderStatus.CONFIRMED),
        ["product"],
        {
            "ordersCount": Agg.count(),
            "pendingPurchase": Agg.count_where(OrderStatus.CONFIRMED),
        },
    )
    rows.sort(key=_product_rank)

    return [
        {
            "product": row["product"],
            "ordersCount": row["ordersCount"],
            "pendingPurchase": row["pendingPurchase"],
        }
        for row in rows[:config.dashboard.top_products_limit]
    ]


# ═══════════════════════════════════════════════════════════════════════════════
# FINANCIAL OVERVIEW
# ═══════════════════════════════════════════════════════════════════════════════

CENTS = Decimal("0.01")


def _money(value) -> float:
    """Round an exact total to cents, then hand it out as a float."""
    return float(Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP))


@timed("panel.financial_overview")
async def calculate_financial_overview(ctx: FilterContext, store) -> Dict[str, float]:
    """Order value totals (redeemed points for bank orders, amount for BIP)."""
    orders = OrderRepositoryFacade(store, ctx.selector)
    base = ctx.base_filter

    total, pending_purchase, pending_dispatch, delivered = await gather_all(
        orders.sum(base),
        orders.sum(base.with_statuses(OrderStatus.CONFIRMED)),
        orders.sum(base.with_statuses(OrderStatus.PROCESSING)),
        orders.sum(base.with_statuses(OrderStatus.DELIVERED)),
    )

    return {
        "totalOrdersValue": _money(total),
        "pendingPurchaseValue": _money(pending_purchase),
        "pendingDispatchValue": _money(pending_dispatch),
        "deliveredValue": _money(delivered),
    }


# ═══════════════════════════════════════════════════════════════════════════════
# WEEKLY BREAKDOWN
# ═══════════════════════════════════════════════════════════════════════════════

# Canonical status -> weekly row column
WEEKLY_STATUS_COLUMNS = {
    OrderStatus.CONFIRMED.value: "confirmed",
    OrderStatus.PROCESSING.value: "processing",
    OrderStatus.DISPATCHED.value: "dispatched",
    OrderStatus.CANCELLED.value: "cancelled",
}


@timed("panel.weekly_breakdown")
async def calculate_weekly_breakdown(ctx: FilterContext, store) -> List[Dict[str, Any]]:
    """
    Daily order counts by status, keyed on order_date.

    Days without orders are omitted rather than zero-filled.
    """
    orders = OrderRepositoryFacade(store, ctx.selector)
    window = ctx.weekly_range()
    rows = await orders.group_by(
        OrderFilter().within("order_date", window),
        ["order_day", "status"],
        {"count": Agg.count()},
    )

    days: Dict[str, Dict[str, Any]] = {}
    for row in rows:
        day = row["order_day"]
        if day is None:
            continue
        stats = days.setdefault(day, {
            "date": day,
            "total": 0,
            "confirmed": 0,
            "processing": 0,
            "dispatched": 0,
            "cancelled": 0,
        })
        stats["total"] += row["count"]
        column = WEEKLY_STATUS_COLUMNS.get(row["status"])
        if column:
            stats[column] += row["count"]

    return [days[day] for day in sorted(days)]


# Response key -> calculator, in response order
PANELS: Dict[str, PanelCalculator] = {
    "topCards": calculate_top_cards,
    "pipeline": calculate_pipeline,
    "pendingAging": calculate_pending_aging,
    "dispatchTeam": calculate_dispatch_team,
    "bankPerformance": calculate_bank_performance,
    "topProductsDelays": calculate_top_products_delays,
    "financialOverview": calculate_financial_overview,
    "weeklyBreakdown": calculate_weekly_breakdown,
}
