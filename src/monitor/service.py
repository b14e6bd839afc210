"""Integration health monitor for the storefront (WooCommerce) and content (WordPress) APIs.

Polls each service on a fixed interval, classifies health from the probe
result and the persisted integration settings, keeps a bounded rolling
sample history per service, and aggregates catalog/order metrics from the
store.

Every snapshot (health record, sync metrics, inventory, orders) is built in
full and then stored with a single assignment. Readers on the same event
loop therefore only ever see a complete previous or next snapshot.
"""

import asyncio
import calendar
import contextlib
import logging
import sqlite3
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import httpx

from src.clock import Clock, SystemClock
from src.config import Settings, get_settings
from src.monitor import report
from src.monitor.alerts import send_health_alert
from src.monitor.models import (
    SERVICES,
    STATUS_SEVERITY,
    CacheStatus,
    HealthStatus,
    IntegrationHealth,
    InventoryMetrics,
    OrderMetrics,
    PerformanceSample,
    PerformanceSnapshot,
    ServiceName,
    SyncMetrics,
    SyncPerformance,
    empty_performance,
    empty_sync_metrics,
    offline_health,
)
from src.monitor.scheduler import APSchedulerJobScheduler, JobScheduler
from src.observability.metrics import INTEGRATION_STATUS, JOB_RUNS_TOTAL, PROBE_DURATION, REPORTS_TOTAL
from src.store import db
from src.store.models import IntegrationSettingsRecord

logger = logging.getLogger(__name__)

PERFORMANCE_WINDOW = timedelta(hours=24)
STALE_SYNC_AFTER = timedelta(hours=24)

Alerter = Callable[[str, str, str], bool]


@dataclass(frozen=True)
class ServiceProfile:
    """How to probe one integration and how to talk about it."""

    label: str
    url_kind: str  # "store" or "site", used in recommendations
    probe_path: str
    probe_params: dict[str, str]
    send_basic_auth: bool
    cache_hit_rate: int  # placeholder: cache activity is not measured
    count_synced: Callable[[sqlite3.Connection], int]


SERVICE_PROFILES: dict[ServiceName, ServiceProfile] = {
    "woocommerce": ServiceProfile(
        label="WooCommerce",
        url_kind="store",
        probe_path="/wp-json/wc/v3/products",
        probe_params={"per_page": "1"},
        send_basic_auth=True,
        cache_hit_rate=80,
        count_synced=db.count_products,
    ),
    "wordpress": ServiceProfile(
        label="WordPress",
        url_kind="site",
        probe_path="/wp-json/wp/v2/",
        probe_params={},
        send_basic_auth=False,
        cache_hit_rate=75,
        count_synced=db.count_blog_posts,
    ),
}


def _downgrade(status: HealthStatus) -> HealthStatus:
    return "warning" if status == "healthy" else "error"


def _parse_timestamp(value: str) -> datetime:
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=UTC)


def classify_probe(
    *,
    status_code: int,
    latency_ms: int,
    last_error: str | None,
    last_sync: str | None,
    now: datetime,
    slow_response_ms: int = 5000,
) -> tuple[HealthStatus, list[str]]:
    """Classify a completed probe. Returns (status, recommendations).

    Non-2xx is an error, a slow answer is a warning. A recorded sync error or
    a last sync older than 24 hours each downgrade the result by one step.
    """
    status: HealthStatus = "healthy"
    recommendations: list[str] = []

    if not 200 <= status_code < 300:
        status = "error"
        recommendations.append(f"API returned status {status_code}")
    elif latency_ms > slow_response_ms:
        status = "warning"
        recommendations.append(f"API response time is slow (>{slow_response_ms // 1000}s)")

    if last_error:
        status = _downgrade(status)
        recommendations.append("Last sync had errors")

    if last_sync:
        try:
            age = now - _parse_timestamp(last_sync)
        except ValueError:
            logger.warning("Unparseable last_sync timestamp: %r", last_sync)
        else:
            if age > STALE_SYNC_AFTER:
                status = _downgrade(status)
                recommendations.append("No sync in over 24 hours")

    return status, recommendations


class IntegrationHealthMonitor:
    """Process-wide integration monitor, owned by the application's startup routine.

    Collaborators are injected so tests can run the whole thing against a
    temporary SQLite file, respx-mocked HTTP, a fake clock and a virtual
    scheduler.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        connect: Callable[[], sqlite3.Connection] | None = None,
        scheduler: JobScheduler | None = None,
        clock: Clock | None = None,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
        alerter: Alerter | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._connect = connect or (lambda: db.get_connection(self._settings.store_db_path))
        self._scheduler = scheduler or APSchedulerJobScheduler()
        self._clock = clock or SystemClock()
        self._client_factory = client_factory or (lambda: httpx.AsyncClient())
        self._alerter = alerter or send_health_alert

        self._health: dict[str, IntegrationHealth] = {}
        self._metrics: dict[str, SyncMetrics] = {}
        self._inventory: InventoryMetrics | None = None
        self._orders: OrderMetrics | None = None
        self._history: dict[str, deque[PerformanceSample]] = {
            service: deque(maxlen=self._settings.history_max_samples) for service in SERVICES
        }
        self._error_counts: dict[str, int] = dict.fromkeys(SERVICES, 0)
        self._started = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Register the four periodic jobs and start the scheduler."""
        if self._started:
            return
        s = self._settings
        jobs: list[tuple[str, str, float, Callable[[], Awaitable[None]]]] = [
            ("health_checks", "Integration health checks", s.health_check_interval_seconds, self.perform_health_checks),
            ("sync_metrics", "Integration sync metrics", s.metrics_interval_seconds, self.collect_metrics),
            ("inventory_metrics", "Inventory metrics", s.inventory_interval_seconds, self.collect_inventory_metrics),
            ("order_metrics", "Order metrics", s.order_interval_seconds, self.collect_order_metrics),
        ]
        for job_id, name, seconds, func in jobs:
            self._scheduler.add_interval_job(self._guarded_job(job_id, func), seconds=seconds, job_id=job_id, name=name)
        self._scheduler.start()
        self._started = True
        logger.info("Integration monitoring service initialized")

    def stop(self) -> None:
        if self._started:
            self._scheduler.shutdown()
            self._started = False

    def _guarded_job(self, job_id: str, func: Callable[[], Awaitable[None]]) -> Callable[[], Awaitable[None]]:
        async def run() -> None:
            try:
                await func()
            except Exception:
                JOB_RUNS_TOTAL.labels(job=job_id, status="error").inc()
                logger.exception("Monitor job %s failed", job_id)
            else:
                JOB_RUNS_TOTAL.labels(job=job_id, status="success").inc()

        return run

    # ------------------------------------------------------------------
    # Health checks
    # ------------------------------------------------------------------

    async def perform_health_checks(self) -> None:
        """Check both services in turn; a failure in one never blocks the other."""
        for service in SERVICES:
            try:
                await self.check_service_health(service)
            except Exception:
                logger.exception("Error checking %s health", service)
        logger.info("Integration health checks completed")

    async def check_service_health(self, service: ServiceName) -> IntegrationHealth:
        """Probe one service and replace its health record."""
        previous = self._health.get(service)
        record = await self._compute_health(service)

        self._health[service] = record
        INTEGRATION_STATUS.labels(service=service).set(STATUS_SEVERITY[record["status"]])

        status = record["status"]
        if status in ("warning", "error") and (previous is None or previous["status"] != status):
            message = "; ".join(record["recommendations"]) or "No details"
            await self.send_health_alert(service, status, message)
        return record

    async def _compute_health(self, service: ServiceName) -> IntegrationHealth:
        profile = SERVICE_PROFILES[service]
        with contextlib.closing(self._connect()) as conn:
            integration = db.get_integration_settings(conn, service)

        if integration is None or not integration["enabled"]:
            return offline_health(service, f"Enable {profile.label} integration to start monitoring")

        url = f"{integration['base_url'].rstrip('/')}{profile.probe_path}"
        auth = (integration["consumer_key"], integration["consumer_secret"]) if profile.send_basic_auth else None

        start = self._clock.monotonic()
        try:
            async with self._client_factory() as client:
                resp = await client.get(
                    url,
                    params=profile.probe_params,
                    headers={"Content-Type": "application/json"},
                    auth=auth,
                    timeout=self._settings.probe_timeout_seconds,
                )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            latency_ms = self._elapsed_ms(start)
            PROBE_DURATION.labels(service=service).observe(latency_ms / 1000)
            logger.warning("%s probe failed: %s", profile.label, exc)
            return self._build_record(
                service,
                integration,
                status="error",
                latency_ms=latency_ms,
                cache_status="empty",
                recommendations=[f"Check {profile.url_kind} URL and credentials", "Verify API access"],
                last_error=integration["last_error"] or str(exc) or type(exc).__name__,
            )

        latency_ms = self._elapsed_ms(start)
        PROBE_DURATION.labels(service=service).observe(latency_ms / 1000)
        status, recommendations = classify_probe(
            status_code=resp.status_code,
            latency_ms=latency_ms,
            last_error=integration["last_error"],
            last_sync=integration["last_sync"],
            now=self._clock.now(),
            slow_response_ms=self._settings.slow_response_ms,
        )
        return self._build_record(
            service,
            integration,
            status=status,
            latency_ms=latency_ms,
            cache_status="active",
            recommendations=recommendations,
            last_error=integration["last_error"],
        )

    def _build_record(
        self,
        service: ServiceName,
        integration: IntegrationSettingsRecord,
        *,
        status: HealthStatus,
        latency_ms: int,
        cache_status: CacheStatus,
        recommendations: list[str],
        last_error: str | None,
    ) -> IntegrationHealth:
        self._record_sample(service, latency_ms, status)
        if status == "error":
            self._error_counts[service] += 1

        with contextlib.closing(self._connect()) as conn:
            sync_count = SERVICE_PROFILES[service].count_synced(conn)

        return IntegrationHealth(
            service=service,
            status=status,
            last_sync=integration["last_sync"],
            last_error=last_error,
            sync_count=sync_count,
            error_count=self._error_counts[service],
            response_time_ms=latency_ms,
            cache_status=cache_status,
            recommendations=recommendations,
            performance=self.derive_performance(service),
            checked_at=self._clock.now().isoformat(),
        )

    def _elapsed_ms(self, start: float) -> int:
        return int(round((self._clock.monotonic() - start) * 1000))

    def _record_sample(self, service: ServiceName, latency_ms: int, status: HealthStatus) -> None:
        self._history[service].append(
            PerformanceSample(timestamp=self._clock.now().timestamp(), response_time_ms=latency_ms, status=status)
        )

    def _window_samples(self, service: str) -> list[PerformanceSample]:
        cutoff = (self._clock.now() - PERFORMANCE_WINDOW).timestamp()
        return [s for s in self._history.get(service, ()) if s["timestamp"] > cutoff]

    def derive_performance(self, service: ServiceName) -> PerformanceSnapshot:
        """Aggregate the trailing 24 hours of samples. No samples gives all zeros."""
        samples = self._window_samples(service)
        if not samples:
            return empty_performance()

        avg_latency = sum(s["response_time_ms"] for s in samples) / len(samples)
        healthy = sum(1 for s in samples if s["status"] == "healthy")
        return PerformanceSnapshot(
            avg_response_time_ms=round(avg_latency),
            success_rate=round(healthy / len(samples) * 100),
            cache_hit_rate=SERVICE_PROFILES[service].cache_hit_rate,
            sync_frequency=round(len(samples) / 24, 2),
        )

    # ------------------------------------------------------------------
    # Metrics collection
    # ------------------------------------------------------------------

    async def collect_metrics(self) -> None:
        """Refresh sync metrics for every configured service."""
        for service in SERVICES:
            try:
                self._collect_service_metrics(service)
            except Exception:
                logger.exception("Error collecting %s metrics", service)
        logger.info("Metrics collection completed")

    def _collect_service_metrics(self, service: ServiceName) -> None:
        with contextlib.closing(self._connect()) as conn:
            integration = db.get_integration_settings(conn, service)
            if integration is None:
                return
            data_volume = SERVICE_PROFILES[service].count_synced(conn)

        has_error = 1 if integration["last_error"] else 0
        samples = self._window_samples(service)
        errors = sum(1 for s in samples if s["status"] == "error")
        healthy_latencies = [s["response_time_ms"] for s in samples if s["status"] != "error"]

        if samples:
            performance = SyncPerformance(
                api_calls_per_hour=round(len(samples) / 24, 2),
                error_rate=round(errors / len(samples) * 100, 1),
                uptime=round((len(samples) - errors) / len(samples) * 100, 1),
            )
        else:
            performance = SyncPerformance(api_calls_per_hour=0.0, error_rate=0.0, uptime=0.0)

        self._metrics[service] = SyncMetrics(
            total_syncs=1 if integration["last_sync"] else 0,
            successful_syncs=0 if has_error else 1,
            failed_syncs=has_error,
            average_sync_time_ms=round(sum(healthy_latencies) / len(healthy_latencies)) if healthy_latencies else 0,
            last_sync_duration_ms=samples[-1]["response_time_ms"] if samples else 0,
            data_volume=data_volume,
            performance=performance,
        )

    async def collect_inventory_metrics(self) -> None:
        """Snapshot catalog stock levels from the store."""
        with contextlib.closing(self._connect()) as conn:
            low_stock = db.get_low_stock_products(conn)
            snapshot = InventoryMetrics(
                total_products=db.count_products(conn),
                low_stock_count=len(low_stock),
                out_of_stock_count=db.count_out_of_stock(conn),
                total_stock_value=round(db.total_stock_value(conn), 2),
                stock_turnover_rate=0.0,
                category_distribution=db.get_category_distribution(conn),
                stock_alerts=low_stock,
                collected_at=self._clock.now().isoformat(),
            )
        self._inventory = snapshot
        logger.info("Inventory metrics collected successfully")

    async def collect_order_metrics(self) -> None:
        """Snapshot order volume and value from the store."""
        now = self._clock.now()
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        week_ago = today - timedelta(days=7)
        month_ago = _one_month_before(today)

        with contextlib.closing(self._connect()) as conn:
            snapshot = OrderMetrics(
                total_orders=db.count_orders(conn),
                orders_today=db.count_orders(conn, since=today.isoformat()),
                orders_this_week=db.count_orders(conn, since=week_ago.isoformat()),
                orders_this_month=db.count_orders(conn, since=month_ago.isoformat()),
                average_order_value=round(db.average_order_value(conn), 2),
                top_selling_products=db.get_top_selling_products(conn),
                order_status_distribution=db.get_order_status_distribution(conn),
                collected_at=now.isoformat(),
            )
        self._orders = snapshot
        logger.info("Order metrics collected successfully")

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def get_health_status(self, service: ServiceName | None = None) -> IntegrationHealth | dict[str, IntegrationHealth]:
        if service is not None:
            return self._health.get(service) or offline_health(
                service, "Service not configured or monitoring not available"
            )
        return dict(self._health)

    def get_metrics(self, service: ServiceName | None = None) -> SyncMetrics | dict[str, SyncMetrics]:
        if service is not None:
            return self._metrics.get(service) or empty_sync_metrics()
        return dict(self._metrics)

    def get_inventory_metrics(self) -> InventoryMetrics | None:
        return self._inventory

    def get_order_metrics(self) -> OrderMetrics | None:
        return self._orders

    # ------------------------------------------------------------------
    # Reports and alerts
    # ------------------------------------------------------------------

    def generate_health_report(self) -> str:
        REPORTS_TOTAL.labels(kind="health").inc()
        return report.format_health_report(
            list(self._health.values()),
            self._metrics,
            generated_at=self._clock.now().isoformat(),
        )

    def generate_comprehensive_report(self) -> str:
        REPORTS_TOTAL.labels(kind="comprehensive").inc()
        return report.format_comprehensive_report(
            list(self._health.values()),
            self._metrics,
            self._inventory,
            self._orders,
            generated_at=self._clock.now().isoformat(),
        )

    async def send_health_alert(self, service: str, status: str, message: str) -> None:
        try:
            await asyncio.to_thread(self._alerter, service, status, message)
        except Exception:
            logger.exception("Error sending health alert for %s", service)


def _one_month_before(day: datetime) -> datetime:
    """Same day-of-month in the previous month, clamped to that month's length."""
    year, month = (day.year, day.month - 1) if day.month > 1 else (day.year - 1, 12)
    last_day = calendar.monthrange(year, month)[1]
    return day.replace(year=year, month=month, day=min(day.day, last_day))
