"""
Date range and stream filtering for dashboard queries.

Turns the raw (startDate, endDate, orderType) request into an immutable
FilterContext that every panel calculator shares.
"""
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timedelta
from typing import Optional, Tuple, FrozenSet, Iterable, Any, Union

from core.config import config
from core.exceptions import ValidationError
from core.models import OrderType

END_OF_DAY = time(23, 59, 59, 999000)

# Fields an OrderFilter may constrain (canonical record names)
FILTER_FIELDS = {"created_at", "order_date", "bank_id", "product"}
FILTER_OPERATORS = {"=", ">=", "<=", ">", "<"}


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of naive wall-clock datetimes; None means unbounded."""
    start: Optional[datetime] = None
    end: Optional[datetime] = None


@dataclass(frozen=True)
class StreamSelector:
    """Which order streams a request covers."""
    include_bank: bool = True
    include_bip: bool = True

    @classmethod
    def from_order_type(cls, order_type: Union[OrderType, str]) -> "StreamSelector":
        order_type = parse_order_type(order_type)
        return cls(include_bank=order_type.includes_bank, include_bip=order_type.includes_bip)


@dataclass(frozen=True)
class Condition:
    """Single comparison on a canonical field."""
    field: str
    op: str
    value: Any


@dataclass(frozen=True)
class OrderFilter:
    """
    Immutable predicate over canonical order records.

    Soft-deleted records are always excluded. ``statuses=None`` means any
    status; an empty set matches nothing.
    """
    statuses: Optional[FrozenSet[str]] = None
    conditions: Tuple[Condition, ...] = ()

    def with_statuses(self, *statuses) -> "OrderFilter":
        values = frozenset(getattr(s, "value", s) for s in _flatten(statuses))
        return replace(self, statuses=values)

    def where(self, field: str, op: str, value: Any) -> "OrderFilter":
        if field not in FILTER_FIELDS:
            raise ValueError(f"Unsupported filter field: {field}")
        if op not in FILTER_OPERATORS:
            raise ValueError(f"Unsupported filter operator: {op}")
        return replace(self, conditions=self.conditions + (Condition(field, op, value),))

    def within(self, field: str, date_range: Optional[DateRange]) -> "OrderFilter":
        """Narrow ``field`` to an inclusive range."""
        narrowed = self
        if date_range is None:
            return narrowed
        if date_range.start is not None:
            narrowed = narrowed.where(field, ">=", date_range.start)
        if date_range.end is not None:
            narrowed = narrowed.where(field, "<=", date_range.end)
        return narrowed


def _flatten(values: Iterable) -> list:
    flat = []
    for value in values:
        if isinstance(value, (set, frozenset, list, tuple)):
            flat.extend(value)
        else:
            flat.append(value)
    return flat


@dataclass(frozen=True)
class FilterContext:
    """Everything a panel calculator needs to scope its queries."""
    selector: StreamSelector
    base_filter: OrderFilter
    now: datetime
    date_range: Optional[DateRange] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    weekly_window_days: int = field(default=7)

    @property
    def today_start(self) -> datetime:
        return datetime.combine(self.now.date(), time.min)

    @property
    def today_end(self) -> datetime:
        """Exclusive upper bound of today."""
        return self.today_start + timedelta(days=1)

    def today_filter(self) -> OrderFilter:
        """Orders created today; ignores the requested date range."""
        return (
            OrderFilter()
            .where("created_at", ">=", self.today_start)
            .where("created_at", "<", self.today_end)
        )

    def weekly_range(self) -> DateRange:
        """Window for the weekly breakdown.

        The requested range when both bounds were given, otherwise the
        trailing window of calendar days ending today.
        """
        if self.start_date is not None and self.end_date is not None:
            return self.date_range
        end = datetime.combine(self.now.date(), END_OF_DAY)
        start = datetime.combine(self.now.date() - timedelta(days=self.weekly_window_days - 1), time.min)
        return DateRange(start, end)


def parse_order_type(value: Union[OrderType, str, None]) -> OrderType:
    """Parse an order type, defaulting to ALL."""
    if value is None or value == "":
        return OrderType.ALL
    if isinstance(value, OrderType):
        return value
    try:
        return OrderType(value)
    except ValueError:
        allowed = ", ".join(t.value for t in OrderType)
        raise ValidationError("orderType", f"Must be one of: {allowed}", value)


def to_local_naive(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(config.dashboard.tz).replace(tzinfo=None)
    return value


def _parse_day(text: str) -> Optional[date]:
    """Date-only ISO forms (2026-01-31, and 20260131 on newer Pythons)."""
    if "T" in text or " " in text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def parse_date_bound(value: Optional[str], field: str, end_of_day: bool = False) -> Optional[datetime]:
    """
    Parse an ISO date or datetime string into a naive local datetime.

    A date without a time component becomes 00:00:00.000 of that day, or
    23:59:59.999 when ``end_of_day`` is set.

    Raises:
        ValidationError: If the string is not an ISO date/datetime
    """
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValidationError(field, "Must be a string", value)

    text = value.strip()
    day = _parse_day(text)
    if day is not None:
        return datetime.combine(day, END_OF_DAY if end_of_day else time.min)
    try:
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return to_local_naive(datetime.fromisoformat(text))
    except ValueError:
        raise ValidationError(field, "Invalid date format. Expected ISO date (YYYY-MM-DD)", value)


def build_filter_context(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    order_type: Union[OrderType, str, None] = OrderType.ALL,
    now: Optional[datetime] = None,
) -> FilterContext:
    """
    Build the shared filter context for one dashboard request.

    Args:
        start_date: Inclusive start (YYYY-MM-DD or ISO datetime)
        end_date: Inclusive end; a bare date means end of that day
        order_type: all, bank_orders or bip_orders
        now: Reference instant (default: current time in the business timezone)

    Returns:
        FilterContext with date range, stream selector and base filter

    Examples:
        >>> ctx = build_filter_context("2026-01-01", "2026-01-31", "bank_orders")
        >>> ctx.date_range.end
        datetime.datetime(2026, 1, 31, 23, 59, 59, 999000)
        >>> ctx.selector
        StreamSelector(include_bank=True, include_bip=False)
    """
    start = parse_date_bound(start_date, "startDate")
    end = parse_date_bound(end_date, "endDate", end_of_day=True)
    selector = StreamSelector.from_order_type(order_type)

    date_range = DateRange(start, end) if (start or end) else None
    base_filter = OrderFilter().within("created_at", date_range)

    if now is None:
        now = datetime.now(config.dashboard.tz)
    now = to_local_naive(now)

    return FilterContext(
        selector=selector,
        base_filter=base_filter,
        now=now,
        date_range=date_range,
        start_date=start,
        end_date=end,
        weekly_window_days=config.dashboard.weekly_window_days,
    )
