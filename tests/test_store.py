"""Tests for the SQLite store queries backing the monitor."""

import contextlib
import sqlite3
from pathlib import Path

import pytest

from src.store import db


class TestConnection:
    def test_empty_path_rejected(self) -> None:
        with pytest.raises(ValueError, match="not configured"):
            db.get_connection("")

    def test_creates_parent_directory_and_schema(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "dir" / "store.db"
        with contextlib.closing(db.get_connection(str(path))) as conn:
            tables = {r["name"] for r in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
        assert path.exists()
        assert {"integration_settings", "products", "orders", "order_items", "blog_posts"} <= tables

    def test_schema_init_is_idempotent(self, store_conn: sqlite3.Connection) -> None:
        db.init_schema(store_conn)
        db.init_schema(store_conn)


class TestIntegrationSettings:
    def test_absent_service(self, store_conn: sqlite3.Connection) -> None:
        assert db.get_integration_settings(store_conn, "woocommerce") is None

    def test_save_and_read(self, store_conn: sqlite3.Connection) -> None:
        db.save_integration_settings(
            store_conn,
            service="woocommerce",
            enabled=True,
            base_url="https://shop.test/",
            consumer_key="ck_1",
            consumer_secret="cs_1",
        )
        record = db.get_integration_settings(store_conn, "woocommerce")
        assert record is not None
        assert record["enabled"] is True
        assert record["base_url"] == "https://shop.test"
        assert record["consumer_key"] == "ck_1"
        assert record["last_sync"] is None

    def test_save_is_upsert(self, store_conn: sqlite3.Connection) -> None:
        db.save_integration_settings(store_conn, service="wordpress", enabled=True, base_url="https://a.test")
        db.save_integration_settings(
            store_conn, service="wordpress", enabled=False, base_url="https://b.test", last_error="timeout"
        )
        record = db.get_integration_settings(store_conn, "wordpress")
        assert record is not None
        assert record["enabled"] is False
        assert record["base_url"] == "https://b.test"
        assert record["last_error"] == "timeout"


class TestCatalog:
    def test_stock_queries(self, store_conn: sqlite3.Connection) -> None:
        vitamins = db.add_category(store_conn, "Vitamins")
        db.add_product(store_conn, name="Vitamin C", price=10.0, stock=3, category_id=vitamins)
        db.add_product(store_conn, name="Vitamin D", price=5.0, stock=5, category_id=vitamins)
        db.add_product(store_conn, name="Zinc", price=8.0, stock=0)
        db.add_product(store_conn, name="Ibuprofen", price=4.0, stock=100)

        assert db.count_products(store_conn) == 4
        assert [p["name"] for p in db.get_low_stock_products(store_conn)] == ["Vitamin C", "Vitamin D"]
        assert db.count_out_of_stock(store_conn) == 1
        assert db.total_stock_value(store_conn) == pytest.approx(10.0 * 3 + 5.0 * 5 + 4.0 * 100)

    def test_empty_catalog(self, store_conn: sqlite3.Connection) -> None:
        assert db.total_stock_value(store_conn) == 0.0
        assert db.get_low_stock_products(store_conn) == []
        assert db.get_category_distribution(store_conn) == []

    def test_category_distribution_includes_empty_categories(self, store_conn: sqlite3.Connection) -> None:
        pain = db.add_category(store_conn, "Pain Relief")
        db.add_category(store_conn, "Skincare")
        db.add_product(store_conn, name="Paracetamol", price=2.0, stock=40, category_id=pain)
        db.add_product(store_conn, name="Aspirin", price=3.0, stock=10, category_id=pain)

        rows = db.get_category_distribution(store_conn)
        assert rows[0] == {"name": "Pain Relief", "product_count": 2, "total_stock": 50}
        assert rows[1] == {"name": "Skincare", "product_count": 0, "total_stock": 0}


class TestOrders:
    def test_counts_and_averages(self, store_conn: sqlite3.Connection) -> None:
        db.add_order(store_conn, total=20.0, status="completed", created_at="2026-03-01T10:00:00+00:00")
        db.add_order(store_conn, total=40.0, status="completed", created_at="2026-03-15T09:00:00+00:00")
        db.add_order(store_conn, total=60.0, status="pending", created_at="2026-03-15T11:00:00+00:00")

        assert db.count_orders(store_conn) == 3
        assert db.count_orders(store_conn, since="2026-03-15T00:00:00+00:00") == 2
        assert db.average_order_value(store_conn) == pytest.approx(40.0)
        assert db.get_order_status_distribution(store_conn) == [
            {"status": "completed", "count": 2},
            {"status": "pending", "count": 1},
        ]

    def test_no_orders(self, store_conn: sqlite3.Connection) -> None:
        assert db.count_orders(store_conn) == 0
        assert db.average_order_value(store_conn) == 0.0
        assert db.get_top_selling_products(store_conn) == []

    def test_top_sellers_by_quantity(self, store_conn: sqlite3.Connection) -> None:
        cream = db.add_product(store_conn, name="Hand Cream", price=6.0, stock=10)
        spray = db.add_product(store_conn, name="Nasal Spray", price=9.5, stock=10)
        db.add_order(store_conn, total=21.0, items=[(cream, 2, 6.0), (spray, 1, 9.0)])
        db.add_order(store_conn, total=18.0, items=[(cream, 3, 6.0)])

        top = db.get_top_selling_products(store_conn)
        assert top[0] == {"name": "Hand Cream", "total_sold": 5, "total_revenue": 30.0}
        assert top[1] == {"name": "Nasal Spray", "total_sold": 1, "total_revenue": 9.0}


class TestContent:
    def test_blog_posts(self, store_conn: sqlite3.Connection) -> None:
        assert db.count_blog_posts(store_conn) == 0
        db.add_blog_post(store_conn, "Winter flu guide", published_at="2026-01-10T00:00:00+00:00")
        db.add_blog_post(store_conn, "Draft")
        assert db.count_blog_posts(store_conn) == 2
