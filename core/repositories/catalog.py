"""DuckDBStore catalog methods: products, vendors and purchase orders."""
from datetime import datetime
from typing import Dict

from core.duckdb_constants import PRODUCTS_TABLE, VENDORS_TABLE, PURCHASE_ORDERS_TABLE, _not_deleted


class CatalogMixin:

    async def count_products(self) -> int:
        """Non-deleted products."""
        row = await self._fetch_one(f"""
            SELECT COUNT(*) FROM {PRODUCTS_TABLE} p WHERE {_not_deleted("p")}
        """)
        return int(row[0])

    async def get_vendor_counts(self, new_since: datetime) -> Dict[str, int]:
        """Vendor totals: all, created since ``new_since``, and active."""
        row = await self._fetch_one(f"""
            SELECT
                COUNT(*) AS total,
                COALESCE(SUM(CASE WHEN v.created_at >= ? THEN 1 ELSE 0 END), 0) AS new_vendors,
                COALESCE(SUM(CASE WHEN v.status = 'active' THEN 1 ELSE 0 END), 0) AS active
            FROM {VENDORS_TABLE} v
            WHERE {_not_deleted("v")}
        """, [new_since])
        return {"total": int(row[0]), "newVendors": int(row[1]), "active": int(row[2])}

    async def count_purchase_orders(self) -> int:
        """Non-deleted purchase orders."""
        row = await self._fetch_one(f"""
            SELECT COUNT(*) FROM {PURCHASE_ORDERS_TABLE} po WHERE {_not_deleted("po")}
        """)
        return int(row[0])
