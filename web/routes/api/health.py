"""Health check and metrics endpoints."""
import time

from fastapi import APIRouter, Request

from core.config import VERSION
from core.observability import get_correlation_id, metrics, Timer
from web.schemas import HealthResponse, MetricsResponse
from ._deps import limiter, get_store, get_logger, START_TIME, DataStoreError

router = APIRouter()
logger = get_logger(__name__)


@router.get("/health", response_model=HealthResponse)
@limiter.limit("60/minute")
async def health_check(request: Request):
    """Health check endpoint for Docker/load balancer monitoring."""
    uptime_seconds = int(time.time() - START_TIME)

    db_latency_ms = None
    try:
        with Timer("health_check_db") as timer:
            store = await get_store()
            duckdb_stats = await store.get_stats()
        duckdb_status = "connected"
        db_latency_ms = round(timer.elapsed_ms, 2)
    except DataStoreError as e:
        logger.warning(f"Health check could not reach DuckDB: {e}")
        duckdb_stats = None
        duckdb_status = f"error: {e}"

    return {
        "status": "healthy" if duckdb_stats is not None else "degraded",
        "version": VERSION,
        "uptime_seconds": uptime_seconds,
        "correlation_id": get_correlation_id(),
        "duckdb": {
            "status": duckdb_status,
            "latency_ms": db_latency_ms,
            **(duckdb_stats or {})
        },
    }


@router.get("/metrics", response_model=MetricsResponse)
@limiter.limit("60/minute")
async def get_metrics_endpoint(request: Request):
    """Get application metrics (request counts, errors, panel timings)."""
    return {
        "uptime_seconds": int(time.time() - START_TIME),
        "correlation_id": get_correlation_id(),
        **metrics.get_stats(),
    }
