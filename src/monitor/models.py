"""Structured snapshot types produced by the integration monitor."""

from typing import Literal, NotRequired, TypedDict

from src.store.models import CategoryDistributionRow, ProductRecord, StatusCountRow, TopSellerRow

ServiceName = Literal["woocommerce", "wordpress"]
HealthStatus = Literal["healthy", "warning", "error", "offline"]
CacheStatus = Literal["active", "empty", "expired"]

SERVICES: tuple[ServiceName, ...] = ("woocommerce", "wordpress")

# Numeric severity for the Prometheus gauge and for downgrades
STATUS_SEVERITY: dict[str, int] = {"healthy": 0, "warning": 1, "error": 2, "offline": 3}


class PerformanceSnapshot(TypedDict):
    avg_response_time_ms: int
    success_rate: int  # percent of samples classified healthy
    cache_hit_rate: int  # percent, placeholder value
    sync_frequency: float  # checks per hour


class IntegrationHealth(TypedDict):
    service: ServiceName
    status: HealthStatus
    last_sync: str | None
    last_error: str | None
    sync_count: int
    error_count: int
    response_time_ms: int
    cache_status: CacheStatus
    recommendations: list[str]
    performance: PerformanceSnapshot
    checked_at: NotRequired[str | None]


class PerformanceSample(TypedDict):
    timestamp: float  # Unix seconds
    response_time_ms: int
    status: HealthStatus


class SyncPerformance(TypedDict):
    api_calls_per_hour: float
    error_rate: float  # percent
    uptime: float  # percent of samples not in error


class SyncMetrics(TypedDict):
    total_syncs: int
    successful_syncs: int
    failed_syncs: int
    average_sync_time_ms: int
    last_sync_duration_ms: int
    data_volume: int
    performance: SyncPerformance


class InventoryMetrics(TypedDict):
    total_products: int
    low_stock_count: int
    out_of_stock_count: int
    total_stock_value: float
    stock_turnover_rate: float
    category_distribution: list[CategoryDistributionRow]
    stock_alerts: list[ProductRecord]
    collected_at: str


class OrderMetrics(TypedDict):
    total_orders: int
    orders_today: int
    orders_this_week: int
    orders_this_month: int
    average_order_value: float
    top_selling_products: list[TopSellerRow]
    order_status_distribution: list[StatusCountRow]
    collected_at: str


def empty_performance() -> PerformanceSnapshot:
    return PerformanceSnapshot(avg_response_time_ms=0, success_rate=0, cache_hit_rate=0, sync_frequency=0.0)


def offline_health(service: ServiceName, recommendation: str) -> IntegrationHealth:
    return IntegrationHealth(
        service=service,
        status="offline",
        last_sync=None,
        last_error=None,
        sync_count=0,
        error_count=0,
        response_time_ms=0,
        cache_status="empty",
        recommendations=[recommendation],
        performance=empty_performance(),
        checked_at=None,
    )


def empty_sync_metrics() -> SyncMetrics:
    return SyncMetrics(
        total_syncs=0,
        successful_syncs=0,
        failed_syncs=0,
        average_sync_time_ms=0,
        last_sync_duration_ms=0,
        data_volume=0,
        performance=SyncPerformance(api_calls_per_hour=0.0, error_rate=0.0, uptime=0.0),
    )
