"""Plain-text integration health reports for operators.

Pure formatting: every function takes snapshots and returns a string.
"""

from collections.abc import Mapping

from src.monitor.models import IntegrationHealth, InventoryMetrics, OrderMetrics, SyncMetrics

STATUS_ORDER = ("healthy", "warning", "error", "offline")


def _format_plain_table(
    headers: list[str],
    rows: list[list[str]],
    right_align: set[int] | None = None,
    indent: str = "   ",
) -> str:
    """Format a plain-text table with aligned columns (no pipe characters).

    Args:
        headers: Column header strings.
        rows: List of rows, each a list of cell strings.
        right_align: Set of column indices (0-based) to right-align.
        indent: Prefix added to every line.

    Returns:
        Multi-line string with padded columns separated by two spaces.
    """
    right_align = right_align or set()
    if not rows:
        return ""
    all_data = [headers, *rows]
    col_widths = [max(len(row[i]) for row in all_data) for i in range(len(headers))]

    def fmt_row(cells: list[str]) -> str:
        parts: list[str] = []
        for i, cell in enumerate(cells):
            width = col_widths[i]
            parts.append(cell.rjust(width) if i in right_align else cell.ljust(width))
        return indent + "  ".join(parts).rstrip()

    lines = [fmt_row(headers)]
    lines.append(indent + "  ".join("-" * w for w in col_widths))
    for row in rows:
        lines.append(fmt_row(row))
    return "\n".join(lines)


def _status_summary(health: list[IntegrationHealth]) -> list[str]:
    counts = {status: sum(1 for h in health if h["status"] == status) for status in STATUS_ORDER}
    return [
        "Health Summary:",
        f"   Healthy: {counts['healthy']}",
        f"   Warning: {counts['warning']}",
        f"   Error: {counts['error']}",
        f"   Offline: {counts['offline']}",
        "",
    ]


def _service_details(h: IntegrationHealth, include_performance: bool) -> list[str]:
    lines = [
        f"{h['service'].upper()}:",
        f"   Status: {h['status']}",
        f"   Last Sync: {h['last_sync'] or 'Never'}",
        f"   Sync Count: {h['sync_count']}",
        f"   Error Count: {h['error_count']}",
        f"   Response Time: {h['response_time_ms']}ms",
        f"   Cache Status: {h['cache_status']}",
    ]
    if h["last_error"]:
        lines.append(f"   Last Error: {h['last_error']}")
    if include_performance:
        perf = h["performance"]
        lines.append("   Performance:")
        lines.append(f"     - Avg Response Time: {perf['avg_response_time_ms']}ms")
        lines.append(f"     - Success Rate: {perf['success_rate']}%")
        lines.append(f"     - Cache Hit Rate: {perf['cache_hit_rate']}%")
        lines.append(f"     - Sync Frequency: {perf['sync_frequency']}/hr")
    if h["recommendations"]:
        lines.append("   Recommendations:")
        lines.extend(f"     - {rec}" for rec in h["recommendations"])
    lines.append("")
    return lines


def _sync_metrics_section(metrics: Mapping[str, SyncMetrics]) -> list[str]:
    lines = ["Performance Metrics:"]
    if not metrics:
        lines.append("   No sync metrics collected yet.")
        lines.append("")
        return lines

    rows: list[list[str]] = []
    for service, m in sorted(metrics.items()):
        success = f"{m['successful_syncs'] / m['total_syncs'] * 100:.1f}%" if m["total_syncs"] > 0 else "0.0%"
        rows.append(
            [
                service,
                str(m["total_syncs"]),
                success,
                f"{m['data_volume']:,}",
                f"{m['performance']['uptime']:.1f}%",
            ]
        )
    lines.append(
        _format_plain_table(
            ["Service", "Total Syncs", "Success Rate", "Data Volume", "Uptime"],
            rows,
            right_align={1, 2, 3, 4},
        )
    )
    lines.append("")
    return lines


def format_health_report(
    health: list[IntegrationHealth],
    metrics: Mapping[str, SyncMetrics],
    *,
    generated_at: str,
) -> str:
    """Status counts, per-service detail and sync metrics."""
    lines = ["Integration Health Report", f"Generated: {generated_at}", ""]
    lines.extend(_status_summary(health))
    for h in health:
        lines.extend(_service_details(h, include_performance=False))
    lines.extend(_sync_metrics_section(metrics))
    return "\n".join(lines).rstrip() + "\n"


def format_comprehensive_report(
    health: list[IntegrationHealth],
    metrics: Mapping[str, SyncMetrics],
    inventory: InventoryMetrics | None,
    orders: OrderMetrics | None,
    *,
    generated_at: str,
) -> str:
    """Health report plus per-service performance, inventory and order summaries."""
    lines = ["Comprehensive Integration Health Report", f"Generated: {generated_at}", ""]
    lines.extend(_status_summary(health))
    for h in health:
        lines.extend(_service_details(h, include_performance=True))
    lines.extend(_sync_metrics_section(metrics))

    if inventory is not None:
        lines.append("Inventory Metrics:")
        lines.append(f"   Total Products: {inventory['total_products']}")
        lines.append(f"   Low Stock: {inventory['low_stock_count']}")
        lines.append(f"   Out of Stock: {inventory['out_of_stock_count']}")
        lines.append(f"   Total Stock Value: ${inventory['total_stock_value']:,.2f}")
        if inventory["category_distribution"]:
            lines.append("")
            lines.append(
                _format_plain_table(
                    ["Category", "Products", "Stock"],
                    [
                        [row["name"], str(row["product_count"]), str(row["total_stock"])]
                        for row in inventory["category_distribution"]
                    ],
                    right_align={1, 2},
                )
            )
        lines.append("")

    if orders is not None:
        lines.append("Order Metrics:")
        lines.append(f"   Total Orders: {orders['total_orders']}")
        lines.append(f"   Orders Today: {orders['orders_today']}")
        lines.append(f"   Orders This Week: {orders['orders_this_week']}")
        lines.append(f"   Orders This Month: {orders['orders_this_month']}")
        lines.append(f"   Average Order Value: ${orders['average_order_value']:,.2f}")
        if orders["top_selling_products"]:
            lines.append("")
            lines.append(
                _format_plain_table(
                    ["Product", "Sold", "Revenue"],
                    [
                        [row["name"], str(row["total_sold"]), f"${row['total_revenue']:,.2f}"]
                        for row in orders["top_selling_products"]
                    ],
                    right_align={1, 2},
                )
            )
        lines.append("")

    return "\n".join(lines).rstrip() + "\n"
