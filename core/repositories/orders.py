"""DuckDBStore order stream methods.

Each order stream is read through a StreamAdapter that projects its native
schema onto the canonical order record, so callers only ever see canonical
field names and status spellings:

    id, stream, reference, status, created_at, order_date, bank_id,
    product_id, product, amount, is_deleted, shipment_id
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, List, Dict, Any, Tuple, Sequence, FrozenSet

from core.duckdb_constants import (
    BANK_ORDERS_TABLE, BIP_ORDERS_TABLE, _not_deleted, _placeholders, _sql_literal,
)
from core.filters import OrderFilter
from core.models import Stream, NATIVE_STATUS_ALIASES


@dataclass(frozen=True)
class StreamAdapter:
    """Maps one stream's native table onto the canonical order record."""
    stream: Stream
    table: str
    amount_column: str
    reference_column: str

    def status_sql(self) -> str:
        aliases = NATIVE_STATUS_ALIASES[self.stream]
        if not aliases:
            return "status"
        cases = " ".join(
            f"WHEN {_sql_literal(native)} THEN {_sql_literal(canonical.value)}"
            for native, canonical in sorted(aliases.items())
        )
        return f"CASE status {cases} ELSE status END"

    def projection_sql(self) -> str:
        """SELECT producing canonical records from the native table."""
        return f"""
            SELECT
                id,
                {_sql_literal(self.stream.value)} AS stream,
                {self.reference_column} AS reference,
                {self.status_sql()} AS status,
                created_at,
                order_date,
                bank_id,
                product_id,
                product,
                CAST(COALESCE({self.amount_column}, 0) AS DECIMAL(18, 2)) AS amount,
                is_deleted,
                shipment_id
            FROM {self.table}
        """


STREAM_ADAPTERS: Dict[Stream, StreamAdapter] = {
    Stream.BANK: StreamAdapter(Stream.BANK, BANK_ORDERS_TABLE, "redeemed_points", "ref_no"),
    Stream.BIP: StreamAdapter(Stream.BIP, BIP_ORDERS_TABLE, "amount", "eforms_no"),
}

# Grouping keys: canonical field name -> SQL expression over alias ``o``
GROUP_KEYS = {
    "status": "o.status",
    "bank_id": "o.bank_id",
    "product": "o.product",
    "order_day": "strftime(o.order_date, '%Y-%m-%d')",
}

SUMMABLE_FIELDS = {"amount"}


@dataclass(frozen=True)
class Agg:
    """Aggregation applied to each group of canonical records."""
    kind: str
    column: Optional[str] = None
    statuses: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def count(cls) -> "Agg":
        return cls("count")

    @classmethod
    def sum(cls, field_name: str) -> "Agg":
        if field_name not in SUMMABLE_FIELDS:
            raise ValueError(f"Field cannot be summed: {field_name}")
        return cls("sum", column=field_name)

    @classmethod
    def count_where(cls, *statuses) -> "Agg":
        values = []
        for status in statuses:
            if isinstance(status, (set, frozenset, list, tuple)):
                values.extend(status)
            else:
                values.append(status)
        return cls("count_where", statuses=frozenset(getattr(s, "value", s) for s in values))

    def to_sql(self) -> Tuple[str, list]:
        if self.kind == "count":
            return "COUNT(*)", []
        if self.kind == "sum":
            return f"COALESCE(SUM(o.{self.column}), 0)", []
        if self.kind == "count_where":
            if not self.statuses:
                return "0", []
            statuses = sorted(self.statuses)
            return (
                f"COALESCE(SUM(CASE WHEN o.status IN ({_placeholders(len(statuses))}) THEN 1 ELSE 0 END), 0)",
                statuses,
            )
        raise ValueError(f"Unknown aggregation: {self.kind}")


def compile_filter(order_filter: OrderFilter) -> Tuple[str, list]:
    """Translate an OrderFilter into a WHERE clause over alias ``o``."""
    clauses = [_not_deleted("o")]
    params: list = []

    if order_filter.statuses is not None:
        if not order_filter.statuses:
            clauses.append("FALSE")
        else:
            statuses = sorted(order_filter.statuses)
            clauses.append(f"o.status IN ({_placeholders(len(statuses))})")
            params.extend(statuses)

    for condition in order_filter.conditions:
        clauses.append(f"o.{condition.field} {condition.op} ?")
        params.append(condition.value)

    return " AND ".join(clauses), params


class OrderStreamsMixin:
    """Count, group and sum primitives over one order stream at a time."""

    async def count_orders(self, stream: Stream, order_filter: OrderFilter) -> int:
        """Number of canonical records in ``stream`` matching the filter."""
        where_sql, params = compile_filter(order_filter)
        row = await self._fetch_one(f"""
            SELECT COUNT(*)
            FROM ({STREAM_ADAPTERS[stream].projection_sql()}) o
            WHERE {where_sql}
        """, params)
        return int(row[0]) if row else 0

    async def sum_orders(self, stream: Stream, order_filter: OrderFilter, field_name: str = "amount") -> Decimal:
        """Exact sum of a canonical money field, 0 when nothing matches."""
        agg_sql, agg_params = Agg.sum(field_name).to_sql()
        where_sql, params = compile_filter(order_filter)
        row = await self._fetch_one(f"""
            SELECT {agg_sql}
            FROM ({STREAM_ADAPTERS[stream].projection_sql()}) o
            WHERE {where_sql}
        """, agg_params + params)
        return Decimal(row[0]) if row and row[0] is not None else Decimal(0)

    async def group_orders(
        self,
        stream: Stream,
        order_filter: OrderFilter,
        keys: Sequence[str],
        aggregations: Dict[str, Agg],
    ) -> List[Dict[str, Any]]:
        """
        Grouped aggregation over canonical records.

        Args:
            stream: Stream to read
            order_filter: Row predicate
            keys: Canonical grouping keys (see GROUP_KEYS)
            aggregations: Output name -> Agg

        Returns:
            One dict per group with the key fields and aggregated values
        """
        for key in keys:
            if key not in GROUP_KEYS:
                raise ValueError(f"Unsupported group key: {key}")
        if not keys:
            raise ValueError("At least one group key is required")

        select_parts = [f"{GROUP_KEYS[key]} AS {key}" for key in keys]
        select_params: list = []
        names = list(aggregations.keys())
        for name in names:
            agg_sql, agg_params = aggregations[name].to_sql()
            select_parts.append(f"{agg_sql} AS {name}")
            select_params.extend(agg_params)

        where_sql, where_params = compile_filter(order_filter)
        group_positions = ", ".join(str(i + 1) for i in range(len(keys)))

        rows = await self._fetch_all(f"""
            SELECT {", ".join(select_parts)}
            FROM ({STREAM_ADAPTERS[stream].projection_sql()}) o
            WHERE {where_sql}
            GROUP BY {group_positions}
        """, select_params + where_params)

        columns = list(keys) + names
        return [
            dict(zip(columns, row))
            for row in rows
        ]
