"""Integration tests for the monitor: scheduled jobs, snapshot replacement, store metrics.

Uses a temporary SQLite store, respx-mocked HTTP and a virtual scheduler
driven by a fake clock, so no real services or waiting are needed.
"""

import asyncio
import sqlite3
from datetime import timedelta

import httpx
import pytest
import respx

from src.monitor.service import IntegrationHealthMonitor
from src.store import db
from tests.fakes import FakeClock, VirtualScheduler

SHOP_URL = "https://shop.test"


def _seed_store(conn: sqlite3.Connection, now_iso: str, yesterday_iso: str, last_month_iso: str) -> None:
    otc = db.add_category(conn, "OTC")
    vitamins = db.add_category(conn, "Vitamins")
    paracetamol = db.add_product(conn, name="Paracetamol", price=2.5, stock=40, category_id=otc)
    db.add_product(conn, name="Cough Syrup", price=7.0, stock=2, category_id=otc)
    zinc = db.add_product(conn, name="Zinc", price=6.0, stock=0, category_id=vitamins)

    db.add_order(conn, total=10.0, status="completed", created_at=now_iso, items=[(paracetamol, 4, 2.5)])
    db.add_order(conn, total=12.0, status="completed", created_at=yesterday_iso, items=[(zinc, 2, 6.0)])
    db.add_order(conn, total=5.0, status="cancelled", created_at=last_month_iso, items=[(paracetamol, 2, 2.5)])


# ---------------------------------------------------------------------------
# Scheduling
# ---------------------------------------------------------------------------


class TestScheduledJobs:
    @pytest.mark.integration
    def test_start_registers_four_jobs(self, monitor: IntegrationHealthMonitor, scheduler: VirtualScheduler) -> None:
        monitor.start()

        assert scheduler.started
        assert {job_id: job.seconds for job_id, job in scheduler.jobs.items()} == {
            "health_checks": 300,
            "sync_metrics": 900,
            "inventory_metrics": 1800,
            "order_metrics": 3600,
        }

    @pytest.mark.integration
    async def test_jobs_run_on_their_intervals(
        self, monitor: IntegrationHealthMonitor, scheduler: VirtualScheduler
    ) -> None:
        monitor.start()
        await scheduler.advance(3600)

        assert scheduler.runs("health_checks") == 12
        assert scheduler.runs("sync_metrics") == 4
        assert scheduler.runs("inventory_metrics") == 2
        assert scheduler.runs("order_metrics") == 1
        assert monitor.get_inventory_metrics() is not None
        assert monitor.get_order_metrics() is not None

    @pytest.mark.integration
    async def test_failing_job_does_not_stop_the_others(
        self, mock_settings: object, scheduler: VirtualScheduler, fixed_clock: FakeClock
    ) -> None:
        def broken_store() -> sqlite3.Connection:
            raise sqlite3.OperationalError("database is locked")

        monitor = IntegrationHealthMonitor(
            settings=mock_settings,  # type: ignore[arg-type]
            connect=broken_store,
            scheduler=scheduler,
            clock=fixed_clock,
        )
        monitor.start()
        await scheduler.advance(3600)

        assert scheduler.runs("health_checks") == 12
        assert scheduler.runs("order_metrics") == 1
        assert monitor.get_inventory_metrics() is None
        assert monitor.get_order_metrics() is None

    @pytest.mark.integration
    def test_stop_shuts_scheduler_down(self, monitor: IntegrationHealthMonitor, scheduler: VirtualScheduler) -> None:
        monitor.start()
        monitor.stop()
        assert not scheduler.started


# ---------------------------------------------------------------------------
# Snapshot replacement
# ---------------------------------------------------------------------------


class TestSnapshotReplacement:
    @pytest.mark.integration
    @respx.mock
    async def test_readers_see_previous_record_while_probe_is_in_flight(
        self, monitor: IntegrationHealthMonitor, store_conn: sqlite3.Connection
    ) -> None:
        db.save_integration_settings(store_conn, service="woocommerce", enabled=True, base_url=SHOP_URL)
        route = respx.route(method="GET", host="shop.test", path="/wp-json/wc/v3/products")
        route.mock(return_value=httpx.Response(200, json=[]))
        first = await monitor.check_service_health("woocommerce")

        entered = asyncio.Event()
        release = asyncio.Event()

        async def blocked(request: httpx.Request) -> httpx.Response:
            entered.set()
            await release.wait()
            return httpx.Response(500)

        route.mock(side_effect=blocked)
        task = asyncio.create_task(monitor.check_service_health("woocommerce"))
        await entered.wait()

        assert monitor.get_health_status("woocommerce") is first

        release.set()
        second = await task
        assert monitor.get_health_status("woocommerce") is second
        assert second["status"] == "error"
        assert first["status"] == "healthy"


# ---------------------------------------------------------------------------
# Store-derived metrics
# ---------------------------------------------------------------------------


class TestStoreMetrics:
    @pytest.mark.integration
    async def test_inventory_metrics(
        self, monitor: IntegrationHealthMonitor, store_conn: sqlite3.Connection, fixed_clock: FakeClock
    ) -> None:
        now = fixed_clock.now()
        _seed_store(
            store_conn,
            now.isoformat(),
            (now - timedelta(days=1)).isoformat(),
            (now - timedelta(days=40)).isoformat(),
        )

        await monitor.collect_inventory_metrics()
        inventory = monitor.get_inventory_metrics()

        assert inventory is not None
        assert inventory["total_products"] == 3
        assert inventory["low_stock_count"] == 1
        assert inventory["out_of_stock_count"] == 1
        assert inventory["total_stock_value"] == pytest.approx(2.5 * 40 + 7.0 * 2)
        assert inventory["stock_turnover_rate"] == 0.0
        assert [p["name"] for p in inventory["stock_alerts"]] == ["Cough Syrup"]
        assert inventory["category_distribution"][0]["name"] == "OTC"

    @pytest.mark.integration
    async def test_order_metrics(
        self, monitor: IntegrationHealthMonitor, store_conn: sqlite3.Connection, fixed_clock: FakeClock
    ) -> None:
        now = fixed_clock.now()
        _seed_store(
            store_conn,
            now.isoformat(),
            (now - timedelta(days=1)).isoformat(),
            (now - timedelta(days=40)).isoformat(),
        )

        await monitor.collect_order_metrics()
        orders = monitor.get_order_metrics()

        assert orders is not None
        assert orders["total_orders"] == 3
        assert orders["orders_today"] == 1
        assert orders["orders_this_week"] == 2
        assert orders["orders_this_month"] == 2
        assert orders["average_order_value"] == pytest.approx(9.0)
        assert orders["top_selling_products"][0]["name"] == "Paracetamol"
        assert orders["top_selling_products"][0]["total_sold"] == 6
        assert {row["status"]: row["count"] for row in orders["order_status_distribution"]} == {
            "completed": 2,
            "cancelled": 1,
        }

    @pytest.mark.integration
    async def test_sync_metrics_skip_unconfigured_services(self, monitor: IntegrationHealthMonitor) -> None:
        await monitor.collect_metrics()
        assert monitor.get_metrics() == {}

    @pytest.mark.integration
    @respx.mock
    async def test_sync_metrics_from_settings_and_samples(
        self, monitor: IntegrationHealthMonitor, store_conn: sqlite3.Connection, fixed_clock: FakeClock
    ) -> None:
        db.save_integration_settings(
            store_conn,
            service="woocommerce",
            enabled=True,
            base_url=SHOP_URL,
            last_sync=fixed_clock.now().isoformat(),
        )
        db.add_product(store_conn, name="Aspirin", price=3.0, stock=10)
        route = respx.route(method="GET", host="shop.test", path="/wp-json/wc/v3/products")
        route.mock(return_value=httpx.Response(200, json=[]))
        await monitor.check_service_health("woocommerce")
        route.mock(return_value=httpx.Response(502))
        await monitor.check_service_health("woocommerce")

        await monitor.collect_metrics()
        metrics = monitor.get_metrics("woocommerce")

        assert metrics["total_syncs"] == 1  # type: ignore[index]
        assert metrics["successful_syncs"] == 1  # type: ignore[index]
        assert metrics["failed_syncs"] == 0  # type: ignore[index]
        assert metrics["data_volume"] == 1  # type: ignore[index]
        assert metrics["performance"] == {  # type: ignore[index]
            "api_calls_per_hour": round(2 / 24, 2),
            "error_rate": 50.0,
            "uptime": 50.0,
        }


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


class TestMonitorReports:
    @pytest.mark.integration
    async def test_comprehensive_report_after_one_round(
        self, monitor: IntegrationHealthMonitor, store_conn: sqlite3.Connection
    ) -> None:
        db.add_product(store_conn, name="Plasters", price=1.5, stock=3)
        await monitor.perform_health_checks()
        await monitor.collect_metrics()
        await monitor.collect_inventory_metrics()
        await monitor.collect_order_metrics()

        report = monitor.generate_comprehensive_report()

        assert report.startswith("Comprehensive Integration Health Report")
        assert "Offline: 2" in report
        assert "Enable WooCommerce integration to start monitoring" in report
        assert "Low Stock: 1" in report
        assert "Total Orders: 0" in report

    @pytest.mark.integration
    async def test_health_report_without_data(self, monitor: IntegrationHealthMonitor) -> None:
        report = monitor.generate_health_report()
        assert "Healthy: 0" in report
        assert "No sync metrics collected yet." in report
