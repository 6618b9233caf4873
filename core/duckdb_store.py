"""
DuckDB data store for the order dashboard.

Holds read-only copies of the order management collections (bank orders,
BIP orders, shipments, couriers, banks, products, vendors, purchase orders)
in their native schemas.

Domain-specific query methods are organized into repository mixins:
- OrderStreamsMixin: count / group / sum primitives per order stream
- ShipmentsMixin: shipment rollups by courier
- BanksMixin: bank lookups
- CatalogMixin: products, vendors and purchase order counts
"""
import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional, List, Dict, Any, Callable, Union

import duckdb

from core.config import config
from core.exceptions import (
    DataStoreQueryError,
    DataStoreUnavailableError,
    QueryTimeoutError,
)
from core.duckdb_constants import (
    DEFAULT_QUERY_TIMEOUT,
    BANK_ORDERS_TABLE, BIP_ORDERS_TABLE, SHIPMENTS_TABLE, COURIERS_TABLE,
    BANKS_TABLE, PRODUCTS_TABLE, VENDORS_TABLE, PURCHASE_ORDERS_TABLE,
)
from core.repositories import OrderStreamsMixin, ShipmentsMixin, BanksMixin, CatalogMixin
from core.resilience import RetryConfig, retry_with_backoff

logger = logging.getLogger(__name__)


class DuckDBStore(OrderStreamsMixin, ShipmentsMixin, BanksMixin, CatalogMixin):
    """
    Async-compatible DuckDB store for dashboard queries.

    Features:
    - Persistent or in-memory storage (``":memory:"``)
    - Per-query timeout, surfaced as QueryTimeoutError
    - Driver errors surfaced as DataStoreQueryError
    - Thread offloading to avoid blocking asyncio event loop
    """

    TABLES = (
        BANK_ORDERS_TABLE, BIP_ORDERS_TABLE, SHIPMENTS_TABLE, COURIERS_TABLE,
        BANKS_TABLE, PRODUCTS_TABLE, VENDORS_TABLE, PURCHASE_ORDERS_TABLE,
    )

    def __init__(self, db_path: Union[str, Path, None] = None, query_timeout: Optional[float] = None):
        self.db_path = str(db_path or config.store.db_path)
        self.query_timeout = query_timeout or DEFAULT_QUERY_TIMEOUT
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = asyncio.Lock()  # Serializes all database access

        # Thread pool for offloading blocking DB operations
        self._executor: Optional[ThreadPoolExecutor] = None

        # Stats for monitoring
        self._total_queries = 0

    @property
    def in_memory(self) -> bool:
        return self.db_path == ":memory:"

    async def _open(self) -> duckdb.DuckDBPyConnection:
        if not self.in_memory:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        return duckdb.connect(self.db_path)

    async def connect(self) -> None:
        """Initialize database connection, schema, and thread pool."""
        async with self._lock:
            if self._connection is not None:
                return
            try:
                self._connection = await retry_with_backoff(
                    self._open,
                    config=RetryConfig(
                        max_attempts=config.store.connect_attempts,
                        base_delay=config.store.connect_base_delay,
                    ),
                    retryable_exceptions=(duckdb.IOException,),
                )
            except (duckdb.Error, OSError) as e:
                raise DataStoreUnavailableError(
                    "Could not open DuckDB store", f"{self.db_path}: {e}", retry_after=5
                ) from e

            self._init_schema(self._connection)

            # Single worker - DuckDB connections require serialized access
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="duckdb")

            logger.info(f"DuckDB connected: {self.db_path}")

    async def close(self) -> None:
        """Close database connection and thread pool."""
        async with self._lock:
            if self._executor:
                self._executor.shutdown(wait=True)
                self._executor = None

            if self._connection:
                self._connection.close()
                self._connection = None
                logger.info("DuckDB connection closed")

    def get_connection_info(self) -> Dict[str, Any]:
        """Get connection info for monitoring."""
        return {
            "status": "active" if self._connection else "not_initialized",
            "total_queries": self._total_queries,
            "db_path": self.db_path,
        }

    @asynccontextmanager
    async def connection(self):
        """Get database connection, connecting lazily.

        Acquires lock to ensure single-threaded DuckDB access.
        """
        if self._connection is None:
            await self.connect()
        async with self._lock:
            yield self._connection

    # ─── Query Execution with Timeout ────────────────────────────────────────

    async def _run(self, query: str, params: Optional[list], fetch: Callable, timeout: Optional[float]):
        """Run ``fetch(cursor)`` for a query on the worker thread with timeout."""
        timeout = timeout or self.query_timeout
        async with self.connection() as conn:
            self._total_queries += 1
            loop = asyncio.get_running_loop()

            def _work():
                return fetch(conn.execute(query, params or []))

            try:
                return await asyncio.wait_for(
                    loop.run_in_executor(self._executor, _work),
                    timeout=timeout
                )
            except asyncio.TimeoutError:
                logger.warning("Query timed out", extra={"timeout": timeout})
                raise QueryTimeoutError(query, timeout, "Dashboard query")
            except duckdb.Error as e:
                logger.error("Query failed", extra={"error": str(e)})
                raise DataStoreQueryError("Query failed", str(e), query=query) from e

    async def _fetch_one(self, query: str, params: list = None, timeout: float = None) -> Optional[tuple]:
        """
        Execute query and fetch one result with timeout.

        Raises:
            QueryTimeoutError: If query exceeds timeout
            DataStoreQueryError: If DuckDB rejects the query
        """
        return await self._run(query, params, lambda cur: cur.fetchone(), timeout)

    async def _fetch_all(self, query: str, params: list = None, timeout: float = None) -> List[tuple]:
        """
        Execute query and fetch all results with timeout.

        Raises:
            QueryTimeoutError: If query exceeds timeout
            DataStoreQueryError: If DuckDB rejects the query
        """
        return await self._run(query, params, lambda cur: cur.fetchall(), timeout)

    async def insert_rows(self, table: str, rows: List[Dict[str, Any]]) -> int:
        """Bulk-load rows into a native table (used by fixtures and imports)."""
        if not rows:
            return 0
        if table not in self.TABLES:
            raise ValueError(f"Unknown table: {table}")
        columns = list(rows[0].keys())
        sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({', '.join('?' * len(columns))})"
        values = [[row.get(col) for col in columns] for row in rows]
        async with self.connection() as conn:
            conn.executemany(sql, values)
        return len(rows)

    def _init_schema(self, conn: duckdb.DuckDBPyConnection) -> None:
        """Create native collection tables if not exists."""
        conn.execute("""
        -- Bank orders (redeemed loyalty points)
        CREATE TABLE IF NOT EXISTS bank_orders (
            id VARCHAR PRIMARY KEY,
            ref_no VARCHAR,
            cd_number VARCHAR,
            status VARCHAR NOT NULL,
            created_at TIMESTAMP NOT NULL,
            order_date TIMESTAMP,
            bank_id VARCHAR,
            product_id VARCHAR,
            product VARCHAR,
            redeemed_points DECIMAL(14, 2) DEFAULT 0,
            is_deleted BOOLEAN DEFAULT FALSE,
            shipment_id VARCHAR
        );
        CREATE INDEX IF NOT EXISTS idx_bank_orders_status ON bank_orders(status);
        CREATE INDEX IF NOT EXISTS idx_bank_orders_created ON bank_orders(created_at);

        -- BIP orders (bank installment purchases)
        CREATE TABLE IF NOT EXISTS bip_orders (
            id VARCHAR PRIMARY KEY,
            eforms_no VARCHAR,
            status VARCHAR NOT NULL,
            created_at TIMESTAMP NOT NULL,
            order_date TIMESTAMP,
            bank_id VARCHAR,
            product_id VARCHAR,
            product VARCHAR,
            amount DECIMAL(14, 2) DEFAULT 0,
            is_deleted BOOLEAN DEFAULT FALSE,
            shipment_id VARCHAR
        );
        CREATE INDEX IF NOT EXISTS idx_bip_orders_status ON bip_orders(status);
        CREATE INDEX IF NOT EXISTS idx_bip_orders_created ON bip_orders(created_at);

        CREATE TABLE IF NOT EXISTS couriers (
            id VARCHAR PRIMARY KEY,
            name VARCHAR NOT NULL
        );

        CREATE TABLE IF NOT EXISTS shipments (
            id VARCHAR PRIMARY KEY,
            order_id VARCHAR,
            courier_id VARCHAR,
            status VARCHAR NOT NULL,
            created_at TIMESTAMP NOT NULL,
            is_deleted BOOLEAN DEFAULT FALSE
        );
        CREATE INDEX IF NOT EXISTS idx_shipments_created ON shipments(created_at);

        CREATE TABLE IF NOT EXISTS banks (
            id VARCHAR PRIMARY KEY,
            bank_name VARCHAR NOT NULL,
            is_deleted BOOLEAN DEFAULT FALSE,
            created_at TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS products (
            id VARCHAR PRIMARY KEY,
            name VARCHAR NOT NULL,
            is_deleted BOOLEAN DEFAULT FALSE,
            created_at TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS vendors (
            id VARCHAR PRIMARY KEY,
            name VARCHAR NOT NULL,
            status VARCHAR DEFAULT 'active',
            created_at TIMESTAMP,
            is_deleted BOOLEAN DEFAULT FALSE
        );

        CREATE TABLE IF NOT EXISTS purchase_orders (
            id VARCHAR PRIMARY KEY,
            status VARCHAR,
            created_at TIMESTAMP,
            is_deleted BOOLEAN DEFAULT FALSE
        );
        """)

    async def get_stats(self) -> Dict[str, Any]:
        """Get row counts per collection (soft-deleted rows included)."""
        counts = {}
        for table in ("bank_orders", "bip_orders", "shipments", "banks"):
            row = await self._fetch_one(f"SELECT COUNT(*) FROM {table}")
            counts[table] = int(row[0])
        return counts


# ═══════════════════════════════════════════════════════════════════════════════
# SINGLETON INSTANCE
# ═══════════════════════════════════════════════════════════════════════════════

_store_instance: Optional[DuckDBStore] = None
_store_lock: Optional[asyncio.Lock] = None


async def get_store() -> DuckDBStore:
    """Get singleton DuckDB store instance (coroutine-safe)."""
    global _store_instance, _store_lock
    if _store_lock is None:
        # Created on first use so it belongs to the running loop
        _store_lock = asyncio.Lock()
    async with _store_lock:
        if _store_instance is None:
            _store_instance = DuckDBStore()
            await _store_instance.connect()
    return _store_instance


async def close_store() -> None:
    """Close singleton store instance."""
    global _store_instance, _store_lock
    if _store_instance:
        await _store_instance.close()
        _store_instance = None
    _store_lock = None
