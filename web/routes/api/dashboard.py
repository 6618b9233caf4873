"""Operational dashboard endpoints: comprehensive panels and overview counts."""
from typing import Optional

from fastapi import APIRouter, Query, Request, HTTPException

from core.config import config
from web.services import dashboard_service
from web.schemas import ComprehensiveStatsResponse, OverviewStatsResponse, ErrorResponse
from ._deps import (
    limiter,
    get_logger,
    validate_date_range,
    validate_order_type,
    ValidationError,
    DataStoreError,
)

router = APIRouter(prefix="/dashboard")
logger = get_logger(__name__)

DASHBOARD_RATE_LIMIT = f"{config.web.rate_limit_per_minute}/minute"
ERROR_RESPONSES = {400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}}


def _unavailable(e: DataStoreError) -> HTTPException:
    logger.warning(f"Dashboard request failed on data store: {e}")
    headers = None
    retry_after = getattr(e, "retry_after", None)
    if retry_after:
        headers = {"Retry-After": str(retry_after)}
    return HTTPException(status_code=503, detail=f"Data store unavailable: {e.message}", headers=headers)


@router.get("/comprehensive-stats", response_model=ComprehensiveStatsResponse, responses=ERROR_RESPONSES)
@limiter.limit(DASHBOARD_RATE_LIMIT)
async def get_comprehensive_stats(
    request: Request,
    startDate: Optional[str] = Query(None, description="Start date (YYYY-MM-DD), inclusive"),
    endDate: Optional[str] = Query(None, description="End date (YYYY-MM-DD), inclusive"),
    orderType: Optional[str] = Query("all", description="Order stream: all, bank_orders or bip_orders"),
):
    """Get every dashboard panel for the requested date range and order stream."""
    try:
        validate_date_range(startDate, endDate)
        order_type = validate_order_type(orderType)
        return await dashboard_service.get_comprehensive_stats(
            start_date=startDate,
            end_date=endDate,
            order_type=order_type,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DataStoreError as e:
        raise _unavailable(e)


@router.get("/stats", response_model=OverviewStatsResponse, responses=ERROR_RESPONSES)
@limiter.limit(DASHBOARD_RATE_LIMIT)
async def get_overview_stats(request: Request):
    """Get headline order, product, vendor and purchase order counts."""
    try:
        return await dashboard_service.get_overview_stats()
    except DataStoreError as e:
        raise _unavailable(e)
