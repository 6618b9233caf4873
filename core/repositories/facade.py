"""
Order repository facade: both streams behind one selector-aware interface.

Every primitive fans out to the included streams concurrently. An excluded
stream contributes a static zero (or empty list) and is never queried.
"""
from decimal import Decimal
from typing import List, Dict, Any, Sequence

from core.filters import OrderFilter, StreamSelector
from core.models import Stream
from core.repositories.orders import Agg
from core.resilience import gather_all


class OrderRepositoryFacade:
    """Selector-gated count / group / sum over the bank and BIP streams."""

    def __init__(self, store, selector: StreamSelector):
        self.store = store
        self.selector = selector

    def includes(self, stream: Stream) -> bool:
        if stream is Stream.BANK:
            return self.selector.include_bank
        return self.selector.include_bip

    @property
    def streams(self) -> List[Stream]:
        """Streams covered by the selector, bank first."""
        return [s for s in (Stream.BANK, Stream.BIP) if self.includes(s)]

    # ─── Per-stream primitives (gated) ───────────────────────────────────────

    async def count_stream(self, stream: Stream, order_filter: OrderFilter) -> int:
        if not self.includes(stream):
            return 0
        return await self.store.count_orders(stream, order_filter)

    async def sum_stream(self, stream: Stream, order_filter: OrderFilter, field_name: str = "amount") -> Decimal:
        if not self.includes(stream):
            return Decimal(0)
        return await self.store.sum_orders(stream, order_filter, field_name)

    async def group_stream(
        self,
        stream: Stream,
        order_filter: OrderFilter,
        keys: Sequence[str],
        aggregations: Dict[str, Agg],
    ) -> List[Dict[str, Any]]:
        if not self.includes(stream):
            return []
        rows = await self.store.group_orders(stream, order_filter, keys, aggregations)
        for row in rows:
            row["stream"] = stream.value
        return rows

    # ─── Cross-stream primitives ─────────────────────────────────────────────

    async def count(self, order_filter: OrderFilter) -> int:
        """Matching records across both streams."""
        bank, bip = await gather_all(
            self.count_stream(Stream.BANK, order_filter),
            self.count_stream(Stream.BIP, order_filter),
        )
        return bank + bip

    async def sum(self, order_filter: OrderFilter, field_name: str = "amount") -> Decimal:
        """Exact sum of a money field across both streams, 0 if nothing matches."""
        bank, bip = await gather_all(
            self.sum_stream(Stream.BANK, order_filter, field_name),
            self.sum_stream(Stream.BIP, order_filter, field_name),
        )
        return bank + bip

    async def group_by(
        self,
        order_filter: OrderFilter,
        keys: Sequence[str],
        aggregations: Dict[str, Agg],
    ) -> List[Dict[str, Any]]:
        """Grouped rows from both streams, concatenated (bank rows first).

        Each row carries a ``stream`` field; use merge_groups to combine
        rows sharing the same key.
        """
        bank, bip = await gather_all(
            self.group_stream(Stream.BANK, order_filter, keys, aggregations),
            self.group_stream(Stream.BIP, order_filter, keys, aggregations),
        )
        return bank + bip


def merge_groups(rows: List[Dict[str, Any]], keys: Sequence[str], values: Sequence[str]) -> List[Dict[str, Any]]:
    """
    Sum ``values`` across rows sharing the same ``keys``.

    First-seen order of keys is preserved.
    """
    merged: Dict[tuple, Dict[str, Any]] = {}
    for row in rows:
        group_key = tuple(row.get(k) for k in keys)
        if group_key not in merged:
            merged[group_key] = {k: row.get(k) for k in keys}
            merged[group_key].update({v: 0 for v in values})
        target = merged[group_key]
        for v in values:
            target[v] += row.get(v) or 0
    return list(merged.values())
