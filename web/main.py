"""
FastAPI web application for the order dashboard.
"""
import os
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.gzip import GZipMiddleware

from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from web.routes import api
from web.routes.api._deps import limiter
from web.middleware import RequestLoggingMiddleware, RequestTimeoutMiddleware
from core.config import config, validate_config, ConfigurationError, VERSION
from core.duckdb_store import get_store, close_store
from core.exceptions import DataStoreError
from core.observability import setup_logging, get_logger

# Configure structured logging
# Use JSON format in production (LOG_FORMAT=json), human-readable otherwise
log_format = os.getenv("LOG_FORMAT", "text")
log_level = os.getenv("LOG_LEVEL", "INFO")
setup_logging(level=log_level, json_format=(log_format == "json"))
logger = get_logger(__name__)

app = FastAPI(
    title="Order Dashboard",
    description="Operational analytics over bank and BIP order streams",
    version=VERSION,
)

# Add rate limiter to app state
app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    logger.warning(f"Rate limit exceeded for {get_remote_address(request)}")
    return JSONResponse(
        status_code=429,
        content={
            "error": "Rate limit exceeded",
            "detail": "Too many requests. Please try again later.",
            "retry_after": exc.detail
        }
    )


@app.exception_handler(DataStoreError)
async def data_store_error_handler(request: Request, exc: DataStoreError):
    logger.error(f"Unhandled data store error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=503,
        content={"error": "Service Unavailable", "detail": exc.message}
    )


# Request logging must wrap the timeout so the correlation id is set when it fires
app.add_middleware(RequestTimeoutMiddleware)
app.add_middleware(RequestLoggingMiddleware)

# Add Gzip compression (min 500 bytes to compress)
app.add_middleware(GZipMiddleware, minimum_size=500)

app.include_router(api.router, prefix="/api")


@app.on_event("startup")
async def startup_event():
    logger.info("Order dashboard starting...")

    # Validate configuration early - fail fast with clear errors
    try:
        validate_config()
        logger.info("Configuration validated")
    except ConfigurationError as e:
        logger.critical(f"Configuration error: {e}")
        raise SystemExit(1)

    try:
        store = await get_store()
        stats = await store.get_stats()
        logger.info(
            f"DuckDB ready: {stats['bank_orders']} bank orders, "
            f"{stats['bip_orders']} BIP orders, "
            f"{stats['shipments']} shipments, "
            f"{stats['banks']} banks"
        )
    except DataStoreError as e:
        logger.error(f"DuckDB initialization failed: {e}", exc_info=True)
        raise  # Fail fast - DuckDB is required

    logger.info("Dashboard ready")


@app.on_event("shutdown")
async def shutdown_event():
    await close_store()
    logger.info("DuckDB closed")
    logger.info("Order dashboard stopped")


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(app, host=config.web.host, port=config.web.port, log_config=None)


if __name__ == "__main__":
    run()
