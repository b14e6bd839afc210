"""TypedDict models for store records."""

from typing import TypedDict


class IntegrationSettingsRecord(TypedDict):
    service: str  # woocommerce | wordpress
    enabled: bool
    base_url: str  # store URL (WooCommerce) or site URL (WordPress)
    consumer_key: str
    consumer_secret: str
    last_sync: str | None  # ISO 8601
    last_error: str | None


class ProductRecord(TypedDict):
    id: int
    name: str
    price: float
    stock: int
    category_id: int | None


class CategoryDistributionRow(TypedDict):
    name: str
    product_count: int
    total_stock: int


class TopSellerRow(TypedDict):
    name: str
    total_sold: int
    total_revenue: float


class StatusCountRow(TypedDict):
    status: str
    count: int
