"""SQLite store: connection management, schema init, and the queries the monitor needs.

All database operations use parameterized queries to prevent SQL injection.
Connections are created per-operation with check_same_thread=False for async
compatibility. The schema is auto-created on first access via CREATE TABLE
IF NOT EXISTS (idempotent). Timestamps are ISO 8601 UTC strings, so string
comparison orders them correctly.
"""

import logging
import sqlite3
from datetime import UTC, datetime
from pathlib import Path

from src.config import get_settings
from src.store.models import (
    CategoryDistributionRow,
    IntegrationSettingsRecord,
    ProductRecord,
    StatusCountRow,
    TopSellerRow,
)

logger = logging.getLogger(__name__)

LOW_STOCK_THRESHOLD = 5

_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS integration_settings (
    service         TEXT PRIMARY KEY,
    enabled         INTEGER NOT NULL DEFAULT 0,
    base_url        TEXT NOT NULL DEFAULT '',
    consumer_key    TEXT NOT NULL DEFAULT '',
    consumer_secret TEXT NOT NULL DEFAULT '',
    last_sync       TEXT,
    last_error      TEXT
);

CREATE TABLE IF NOT EXISTS categories (
    id   INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS products (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    name        TEXT NOT NULL,
    price       REAL NOT NULL DEFAULT 0.0,
    stock       INTEGER NOT NULL DEFAULT 0,
    category_id INTEGER REFERENCES categories(id)
);
CREATE INDEX IF NOT EXISTS idx_products_stock ON products(stock);

CREATE TABLE IF NOT EXISTS orders (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    status     TEXT NOT NULL DEFAULT 'pending',
    total      REAL NOT NULL DEFAULT 0.0,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_orders_created ON orders(created_at);

CREATE TABLE IF NOT EXISTS order_items (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    order_id   INTEGER NOT NULL REFERENCES orders(id),
    product_id INTEGER NOT NULL REFERENCES products(id),
    quantity   INTEGER NOT NULL,
    price      REAL NOT NULL
);

CREATE TABLE IF NOT EXISTS blog_posts (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    title        TEXT NOT NULL,
    published_at TEXT
);
"""


def get_connection(db_path: str | None = None) -> sqlite3.Connection:
    """Open a SQLite connection with WAL mode for concurrent reads.

    Args:
        db_path: Explicit path to the database file. If None, reads from settings.

    Returns:
        A new sqlite3.Connection with row_factory set to sqlite3.Row.

    Raises:
        ValueError: If the store is not configured (empty db path).
    """
    if db_path is None:
        db_path = get_settings().store_db_path
    if not db_path:
        msg = "Store not configured (STORE_DB_PATH is empty)"
        raise ValueError(msg)

    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    init_schema(conn)
    return conn


def init_schema(conn: sqlite3.Connection) -> None:
    """Create tables and indexes if they don't exist (idempotent)."""
    conn.executescript(_SCHEMA_SQL)


# ---------------------------------------------------------------------------
# Integration settings
# ---------------------------------------------------------------------------


def get_integration_settings(conn: sqlite3.Connection, service: str) -> IntegrationSettingsRecord | None:
    row = conn.execute("SELECT * FROM integration_settings WHERE service = ?", (service,)).fetchone()
    if row is None:
        return None
    return IntegrationSettingsRecord(
        service=row["service"],
        enabled=bool(row["enabled"]),
        base_url=row["base_url"],
        consumer_key=row["consumer_key"],
        consumer_secret=row["consumer_secret"],
        last_sync=row["last_sync"],
        last_error=row["last_error"],
    )


def save_integration_settings(
    conn: sqlite3.Connection,
    *,
    service: str,
    enabled: bool,
    base_url: str,
    consumer_key: str = "",
    consumer_secret: str = "",
    last_sync: str | None = None,
    last_error: str | None = None,
) -> None:
    """Insert or replace the settings row for a service."""
    conn.execute(
        """INSERT INTO integration_settings
           (service, enabled, base_url, consumer_key, consumer_secret, last_sync, last_error)
           VALUES (?, ?, ?, ?, ?, ?, ?)
           ON CONFLICT(service) DO UPDATE SET
             enabled = excluded.enabled,
             base_url = excluded.base_url,
             consumer_key = excluded.consumer_key,
             consumer_secret = excluded.consumer_secret,
             last_sync = excluded.last_sync,
             last_error = excluded.last_error""",
        (service, int(enabled), base_url.rstrip("/"), consumer_key, consumer_secret, last_sync, last_error),
    )
    conn.commit()


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


def add_category(conn: sqlite3.Connection, name: str) -> int:
    cursor = conn.execute("INSERT INTO categories (name) VALUES (?)", (name,))
    conn.commit()
    return cursor.lastrowid or 0


def add_product(
    conn: sqlite3.Connection,
    *,
    name: str,
    price: float,
    stock: int,
    category_id: int | None = None,
) -> int:
    cursor = conn.execute(
        "INSERT INTO products (name, price, stock, category_id) VALUES (?, ?, ?, ?)",
        (name, price, stock, category_id),
    )
    conn.commit()
    return cursor.lastrowid or 0


def count_products(conn: sqlite3.Connection) -> int:
    return int(conn.execute("SELECT COUNT(*) FROM products").fetchone()[0])


def get_low_stock_products(conn: sqlite3.Connection, threshold: int = LOW_STOCK_THRESHOLD) -> list[ProductRecord]:
    """Products with 0 < stock <= threshold, lowest stock first."""
    rows = conn.execute(
        "SELECT * FROM products WHERE stock > 0 AND stock <= ? ORDER BY stock ASC, id ASC",
        (threshold,),
    ).fetchall()
    return [_row_to_product(r) for r in rows]


def count_out_of_stock(conn: sqlite3.Connection) -> int:
    return int(conn.execute("SELECT COUNT(*) FROM products WHERE stock = 0").fetchone()[0])


def total_stock_value(conn: sqlite3.Connection) -> float:
    return float(conn.execute("SELECT COALESCE(SUM(price * stock), 0) FROM products").fetchone()[0])


def get_category_distribution(conn: sqlite3.Connection) -> list[CategoryDistributionRow]:
    rows = conn.execute(
        """SELECT c.name AS name,
                  COUNT(p.id) AS product_count,
                  COALESCE(SUM(p.stock), 0) AS total_stock
           FROM categories c
           LEFT JOIN products p ON c.id = p.category_id
           GROUP BY c.id, c.name
           ORDER BY total_stock DESC"""
    ).fetchall()
    return [
        CategoryDistributionRow(name=r["name"], product_count=r["product_count"], total_stock=r["total_stock"])
        for r in rows
    ]


def _row_to_product(row: sqlite3.Row) -> ProductRecord:
    return ProductRecord(
        id=row["id"],
        name=row["name"],
        price=row["price"],
        stock=row["stock"],
        category_id=row["category_id"],
    )


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


def add_order(
    conn: sqlite3.Connection,
    *,
    total: float,
    status: str = "pending",
    created_at: str | None = None,
    items: list[tuple[int, int, float]] | None = None,
) -> int:
    """Record an order. ``items`` are (product_id, quantity, unit_price) tuples."""
    created_at = created_at or datetime.now(UTC).isoformat()
    cursor = conn.execute(
        "INSERT INTO orders (status, total, created_at) VALUES (?, ?, ?)",
        (status, total, created_at),
    )
    order_id = cursor.lastrowid or 0
    for product_id, quantity, price in items or []:
        conn.execute(
            "INSERT INTO order_items (order_id, product_id, quantity, price) VALUES (?, ?, ?, ?)",
            (order_id, product_id, quantity, price),
        )
    conn.commit()
    return order_id


def count_orders(conn: sqlite3.Connection, since: str | None = None) -> int:
    if since is None:
        return int(conn.execute("SELECT COUNT(*) FROM orders").fetchone()[0])
    return int(conn.execute("SELECT COUNT(*) FROM orders WHERE created_at >= ?", (since,)).fetchone()[0])


def average_order_value(conn: sqlite3.Connection) -> float:
    return float(conn.execute("SELECT COALESCE(AVG(total), 0) FROM orders").fetchone()[0])


def get_top_selling_products(conn: sqlite3.Connection, limit: int = 10) -> list[TopSellerRow]:
    rows = conn.execute(
        """SELECT p.name AS name,
                  SUM(oi.quantity) AS total_sold,
                  SUM(oi.quantity * oi.price) AS total_revenue
           FROM products p
           JOIN order_items oi ON p.id = oi.product_id
           GROUP BY p.id, p.name
           ORDER BY total_sold DESC
           LIMIT ?""",
        (limit,),
    ).fetchall()
    return [
        TopSellerRow(name=r["name"], total_sold=r["total_sold"], total_revenue=round(r["total_revenue"], 2))
        for r in rows
    ]


def get_order_status_distribution(conn: sqlite3.Connection) -> list[StatusCountRow]:
    rows = conn.execute(
        "SELECT status, COUNT(*) AS count FROM orders GROUP BY status ORDER BY count DESC, status ASC"
    ).fetchall()
    return [StatusCountRow(status=r["status"], count=r["count"]) for r in rows]


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------


def add_blog_post(conn: sqlite3.Connection, title: str, published_at: str | None = None) -> int:
    cursor = conn.execute("INSERT INTO blog_posts (title, published_at) VALUES (?, ?)", (title, published_at))
    conn.commit()
    return cursor.lastrowid or 0


def count_blog_posts(conn: sqlite3.Connection) -> int:
    return int(conn.execute("SELECT COUNT(*) FROM blog_posts").fetchone()[0])
