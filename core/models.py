"""
Domain models for the order dashboard.

Provides the canonical status vocabulary shared by both order streams,
the stream/order-type selectors and the small value types the dashboard
panels emit.
"""
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional, Dict, Any, FrozenSet


# ═══════════════════════════════════════════════════════════════════════════════
# ENUMS
# ═══════════════════════════════════════════════════════════════════════════════

class Stream(str, Enum):
    """The two parallel order collections."""
    BANK = "bank"
    BIP = "bip"


class OrderType(str, Enum):
    """Order type selector accepted by the dashboard API."""
    ALL = "all"
    BANK_ORDERS = "bank_orders"
    BIP_ORDERS = "bip_orders"

    @property
    def includes_bank(self) -> bool:
        return self in (OrderType.ALL, OrderType.BANK_ORDERS)

    @property
    def includes_bip(self) -> bool:
        return self in (OrderType.ALL, OrderType.BIP_ORDERS)


class OrderStatus(str, Enum):
    """Canonical order status, shared by both streams after normalization."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    PROCESSING = "processing"
    DISPATCHED = "dispatched"
    SHIPPED = "shipped"
    DELIVERED = "delivered"

    @classmethod
    def confirmed_or_later(cls) -> FrozenSet["OrderStatus"]:
        """Statuses that have passed confirmation."""
        return frozenset({cls.CONFIRMED, cls.PROCESSING, cls.DISPATCHED, cls.SHIPPED, cls.DELIVERED})

    @classmethod
    def purchased_or_later(cls) -> FrozenSet["OrderStatus"]:
        """Statuses that have passed purchasing."""
        return frozenset({cls.PROCESSING, cls.DISPATCHED, cls.SHIPPED, cls.DELIVERED})

    @classmethod
    def dispatched_or_later(cls) -> FrozenSet["OrderStatus"]:
        """Statuses that have left the warehouse."""
        return frozenset({cls.DISPATCHED, cls.SHIPPED, cls.DELIVERED})


class ShipmentStatus(str, Enum):
    """Shipment status as tracked by couriers."""
    BOOKED = "booked"
    IN_TRANSIT = "in_transit"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    RETURNED = "returned"
    CANCELLED = "cancelled"

    @classmethod
    def dispatched_statuses(cls) -> FrozenSet["ShipmentStatus"]:
        """Statuses of shipments that have been handed to the courier."""
        return frozenset({cls.IN_TRANSIT, cls.OUT_FOR_DELIVERY, cls.DELIVERED})


# Native spellings that differ from the canonical vocabulary, per stream.
# The order backend writes the shared "dispatch" value into both collections.
NATIVE_STATUS_ALIASES: Dict[Stream, Dict[str, OrderStatus]] = {
    Stream.BANK: {"dispatch": OrderStatus.DISPATCHED},
    Stream.BIP: {"dispatch": OrderStatus.DISPATCHED},
}


# ═══════════════════════════════════════════════════════════════════════════════
# VALUE TYPES
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PlaceholderMetric:
    """A dashboard metric that is reported but not backed by real data yet.

    Serialized as ``{"value": None, "available": False, "reason": ...}`` so a
    client can tell it apart from a computed number.
    """
    reason: str
    value: Optional[float] = None
    available: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


AVG_DISPATCH_UNAVAILABLE = PlaceholderMetric(
    reason="Shipments do not record dispatch timestamps",
)
AVG_DELIVERY_UNAVAILABLE = PlaceholderMetric(
    reason="Orders do not record delivery timestamps",
)


def percentage(part: int, whole: int, ndigits: Optional[int] = None) -> float:
    """Share of ``part`` in ``whole`` as a percentage, 0 when ``whole`` is 0.

    With ``ndigits=None`` the result is rounded half-up to an integer.
    """
    if whole <= 0:
        return 0
    value = part * 100 / whole
    if ndigits is None:
        return int(value + 0.5)
    return round(value, ndigits)
