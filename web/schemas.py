"""
Pydantic response models for API endpoints.

Provides type-safe response models with automatic validation and documentation.
"""
from typing import Optional, List, Dict
from pydantic import BaseModel, Field


# ═══════════════════════════════════════════════════════════════════════════════
# COMMON MODELS
# ═══════════════════════════════════════════════════════════════════════════════

class PlaceholderMetricResponse(BaseModel):
    """Metric whose source data is not tracked yet."""
    value: Optional[float] = None
    available: bool = False
    reason: str = Field(description="Why the value cannot be computed")


class ErrorResponse(BaseModel):
    """Error payload for 4xx/5xx responses."""
    detail: str


# ═══════════════════════════════════════════════════════════════════════════════
# HEALTH CHECK
# ═══════════════════════════════════════════════════════════════════════════════

class DuckDBStats(BaseModel):
    """DuckDB statistics."""
    status: str
    latency_ms: Optional[float] = None
    bank_orders: Optional[int] = None
    bip_orders: Optional[int] = None
    shipments: Optional[int] = None
    banks: Optional[int] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field(description="Service status: healthy or degraded")
    version: str = Field(description="Application version")
    uptime_seconds: int = Field(description="Uptime in seconds")
    correlation_id: Optional[str] = Field(None, description="Request correlation ID")
    duckdb: DuckDBStats


class TimingStats(BaseModel):
    """Timing statistics for an operation."""
    count: int
    avg_ms: float
    min_ms: float
    max_ms: float
    p50_ms: Optional[float] = None
    p95_ms: Optional[float] = None


class MetricsResponse(BaseModel):
    """Application metrics response."""
    uptime_seconds: int
    correlation_id: Optional[str] = None
    requests: Dict[str, int] = Field(default_factory=dict)
    errors: Dict[str, int] = Field(default_factory=dict)
    timing: Dict[str, TimingStats] = Field(default_factory=dict)


# ═══════════════════════════════════════════════════════════════════════════════
# COMPREHENSIVE DASHBOARD
# ═══════════════════════════════════════════════════════════════════════════════

class TopCards(BaseModel):
    """Headline counters."""
    totalOrdersToday: int = Field(description="Orders created today (date range ignored)")
    awaitingConfirmation: int = Field(description="Pending orders")
    pendingPurchase: int = Field(description="Confirmed orders not yet purchased")
    pendingDispatch: int = Field(description="Orders in processing")
    deliveredToday: int = Field(description="Delivered orders created today")
    cancelledOrders: int = Field(description="Cancelled orders")


class PipelineStage(BaseModel):
    count: int
    percentage: int = Field(description="Share of imported orders, 0-100")


class Pipeline(BaseModel):
    """Cumulative order funnel."""
    imported: PipelineStage
    confirmed: PipelineStage
    purchased: PipelineStage
    dispatched: PipelineStage
    delivered: PipelineStage


class PendingAging(BaseModel):
    """Pending orders by age."""
    zeroToOneHour: int
    oneToFourHours: int
    fourToTwentyFourHours: int
    moreThanTwentyFourHours: int


class CourierDispatch(BaseModel):
    """Shipment progress for one courier."""
    courierName: Optional[str] = Field(None, description="Courier name, null if unassigned")
    pending: int
    dispatched: int
    avgDispatch: PlaceholderMetricResponse


class BankPerformance(BaseModel):
    """Order outcomes for one bank."""
    bankId: str
    bankName: str
    orders: int
    confirmedPercentage: float
    cancelRate: float
    avgDelivery: PlaceholderMetricResponse


class ProductDelay(BaseModel):
    """Bank-order product waiting on purchase."""
    product: Optional[str] = None
    ordersCount: int
    pendingPurchase: int


class FinancialOverview(BaseModel):
    """Order value totals."""
    totalOrdersValue: float
    pendingPurchaseValue: float
    pendingDispatchValue: float
    deliveredValue: float


class WeeklyDay(BaseModel):
    """Order counts for one order date."""
    date: str = Field(description="Order date (YYYY-MM-DD)")
    total: int
    confirmed: int
    processing: int
    dispatched: int
    cancelled: int


class ComprehensiveStatsResponse(BaseModel):
    """Every panel of the operational dashboard."""
    topCards: TopCards
    pipeline: Pipeline
    pendingAging: PendingAging
    dispatchTeam: List[CourierDispatch]
    bankPerformance: List[BankPerformance]
    topProductsDelays: List[ProductDelay]
    financialOverview: FinancialOverview
    weeklyBreakdown: List[WeeklyDay]


# ═══════════════════════════════════════════════════════════════════════════════
# OVERVIEW STATS
# ═══════════════════════════════════════════════════════════════════════════════

class OrderTotals(BaseModel):
    total: int
    completed: int
    active: int


class ProductTotals(BaseModel):
    total: int
    inStock: int
    active: int


class VendorTotals(BaseModel):
    total: int
    newVendors: int
    active: int


class PurchaseOrderTotals(BaseModel):
    total: int
    capacityPercentage: int
    active: int


class OverviewStatsResponse(BaseModel):
    """Headline entity counts, not date filtered."""
    bankOrders: OrderTotals
    products: ProductTotals
    vendors: VendorTotals
    purchaseOrders: PurchaseOrderTotals
