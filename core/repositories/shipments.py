"""DuckDBStore shipment methods."""
from typing import Optional, List, Dict, Any

from core.duckdb_constants import SHIPMENTS_TABLE, COURIERS_TABLE, _not_deleted, _placeholders
from core.filters import DateRange
from core.models import ShipmentStatus


class ShipmentsMixin:

    async def get_courier_rollup(self, date_range: Optional[DateRange] = None) -> List[Dict[str, Any]]:
        """
        Shipment counts per courier.

        Shipments whose courier cannot be resolved are grouped under
        ``courier_name = None``. Sorted by courier name, unknown last.
        """
        dispatched = sorted(s.value for s in ShipmentStatus.dispatched_statuses())
        params: list = [ShipmentStatus.BOOKED.value, *dispatched]
        where_clauses = [_not_deleted("s")]

        if date_range is not None:
            if date_range.start is not None:
                where_clauses.append("s.created_at >= ?")
                params.append(date_range.start)
            if date_range.end is not None:
                where_clauses.append("s.created_at <= ?")
                params.append(date_range.end)

        rows = await self._fetch_all(f"""
            SELECT
                c.name AS courier_name,
                COALESCE(SUM(CASE WHEN s.status = ? THEN 1 ELSE 0 END), 0) AS pending,
                COALESCE(SUM(CASE WHEN s.status IN ({_placeholders(len(dispatched))}) THEN 1 ELSE 0 END), 0) AS dispatched,
                COUNT(*) AS total
            FROM {SHIPMENTS_TABLE} s
            LEFT JOIN {COURIERS_TABLE} c ON c.id = s.courier_id
            WHERE {" AND ".join(where_clauses)}
            GROUP BY c.name
            ORDER BY c.name NULLS LAST
        """, params)

        return [
            {
                "courier_name": row[0],
                "pending": int(row[1]),
                "dispatched": int(row[2]),
                "total": int(row[3]),
            }
            for row in rows
        ]
