"""DuckDBStore bank methods."""
from typing import List, Dict, Any

from core.duckdb_constants import BANKS_TABLE, _not_deleted


class BanksMixin:

    async def get_banks(self) -> List[Dict[str, Any]]:
        """All non-deleted banks, ordered by name."""
        rows = await self._fetch_all(f"""
            SELECT b.id, b.bank_name
            FROM {BANKS_TABLE} b
            WHERE {_not_deleted("b")}
            ORDER BY b.bank_name, b.id
        """)
        return [{"id": row[0], "bank_name": row[1]} for row in rows]
