"""Shared constants and helpers for DuckDB store and repository mixins."""
from core.config import config

# Query timeout settings
DEFAULT_QUERY_TIMEOUT = config.store.query_timeout  # seconds

# Native tables, one per collection owned by the order management backend
BANK_ORDERS_TABLE = "bank_orders"
BIP_ORDERS_TABLE = "bip_orders"
SHIPMENTS_TABLE = "shipments"
COURIERS_TABLE = "couriers"
BANKS_TABLE = "banks"
PRODUCTS_TABLE = "products"
VENDORS_TABLE = "vendors"
PURCHASE_ORDERS_TABLE = "purchase_orders"


def _not_deleted(alias: str) -> str:
    """SQL predicate hiding soft-deleted rows (NULL counts as not deleted)."""
    return f"NOT COALESCE({alias}.is_deleted, FALSE)"


def _placeholders(count: int) -> str:
    """Comma-separated ``?`` list for an IN clause."""
    return ", ".join("?" * count)


def _sql_literal(value: str) -> str:
    """Quote a trusted constant for inlining into SQL."""
    return "'" + value.replace("'", "''") + "'"
