from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from functools import reduce
from typing import List, Tuple

from storefront.categories import LOW_STOCK, OUT_OF_STOCK, derive_status
from storefront.config import StorefrontConfig
from storefront.currency import CurrencyContext, format_amount, format_change
from storefront.domain import Customer, Order, Product
from storefront.logging import get_logger
from storefront.order_status import CANCELLED, PENDING, format_order_id

from .aggregation import (
    DateWindow,
    category_sales,
    city_distribution,
    daily_series,
    hourly_distribution,
    iter_orders_in_window,
    kpi_deltas,
    local_time,
    order_revenue,
    period_totals,
    resolve_timezone,
    status_breakdown,
    top_customers,
    top_products,
)

log = get_logger("report")


# ============ Dashboard ============


def recent_orders(
    orders: Tuple[Order, ...], ctx: CurrencyContext, limit: int = 5, tz: tzinfo = timezone.utc
) -> List[dict]:
    """Newest first"""
    newest = sorted(orders, key=lambda o: local_time(o.created_at, tz), reverse=True)[:limit]
    return [
        {
            "id": o.id,
            "display_id": format_order_id(o.id),
            "customer": o.shipping.name or "Customer",
            "total": order_revenue(o, ctx),
            "status": o.status,
            "created_at": o.created_at,
        }
        for o in newest
    ]


def dashboard_report(
    orders: Tuple[Order, ...],
    previous_orders: Tuple[Order, ...],
    window: DateWindow,
    ctx: CurrencyContext,
    config: StorefrontConfig = StorefrontConfig(),
) -> dict:
    """
    Every dashboard figure for `window`, compared against the window of the
    same length right before it. Orders outside the respective window are
    ignored, so callers may pass a wider fetch.
    """
    analytics = config.analytics
    tz = resolve_timezone(analytics.timezone)

    current = tuple(iter_orders_in_window(orders, window, tz))
    previous = tuple(iter_orders_in_window(previous_orders, window.previous(), tz))

    totals = period_totals(current, ctx)
    deltas = kpi_deltas(totals, period_totals(previous, ctx))
    log.debug(
        "dashboard %s..%s: %d orders (%d in previous window)",
        window.start, window.end, len(current), len(previous),
    )

    return {
        "window": {"start": window.start.isoformat(), "end": window.end.isoformat()},
        "currency": ctx.admin,
        "totals": totals,
        "deltas": deltas,
        "kpis": kpi_cards(totals, deltas, ctx),
        "daily": daily_series(current, window, ctx, tz),
        "hourly": hourly_distribution(current, ctx, tz),
        "categories": category_sales(current, ctx, analytics.palette, analytics.top_categories),
        "cities": city_distribution(current, ctx, analytics.top_cities),
        "top_products": top_products(current, ctx, analytics.top_products),
        "top_customers": top_customers(current, ctx, analytics.top_customers, tz),
        "statuses": status_breakdown(current),
        "recent_orders": recent_orders(current, ctx, analytics.recent_orders, tz),
    }


def kpi_cards(totals: dict, deltas: dict, ctx: CurrencyContext) -> List[dict]:
    cards = (
        ("revenue", "Revenue", format_amount(totals["revenue"], ctx.admin), deltas["revenue_change"]),
        ("orders", "Orders", str(totals["orders"]), deltas["orders_change"]),
        (
            "avg_order_value",
            "Average order",
            format_amount(totals["avg_order_value"], ctx.admin),
            deltas["avg_order_value_change"],
        ),
    )
    return [
        {"key": key, "label": label, "value": value, "change": format_change(change)}
        for key, label, value, change in cards
    ]


# ============ Order stats ============


def order_stats(
    orders: Tuple[Order, ...],
    now: datetime,
    ctx: CurrencyContext,
    tz: tzinfo = timezone.utc,
) -> dict:
    """Status counts plus revenue overall and for the current local day."""
    today = local_time(now, tz).date()
    todays = tuple(o for o in orders if local_time(o.created_at, tz).date() == today)

    def revenue(selected: Tuple[Order, ...]) -> float:
        return reduce(lambda acc, o: acc + order_revenue(o, ctx), selected, 0.0)

    return {
        "total": len(orders),
        **status_breakdown(orders),
        "total_revenue": revenue(orders),
        "today_orders": len(todays),
        "today_revenue": revenue(todays),
    }


# ============ Smart alerts ============

CRITICAL = "critical"
WARNING = "warning"
INFO = "info"
SUCCESS = "success"

ALERT_PRIORITY = {CRITICAL: 0, WARNING: 1, INFO: 2, SUCCESS: 3}

ALERT_COLORS = {
    CRITICAL: "#EF4444",
    WARNING: "#F59E0B",
    INFO: "#6366F1",
    SUCCESS: "#10B981",
}


@dataclass(frozen=True)
class Alert:
    id: str
    type: str
    title: str
    message: str
    action: str

    @property
    def color(self) -> str:
        return ALERT_COLORS[self.type]


def _pending_alert(orders, config: StorefrontConfig) -> List[Alert]:
    pending = sum(1 for o in orders if o.status == PENDING)
    if pending == 0:
        return []
    critical = pending >= config.alert_pending_critical
    return [
        Alert(
            "pending_orders",
            CRITICAL if critical else WARNING,
            f"{pending} pending orders",
            "Many orders need immediate handling" if critical else "New orders waiting for confirmation",
            "/admin/orders",
        )
    ]


def _today_alert(orders, today, ctx: CurrencyContext, tz: tzinfo) -> List[Alert]:
    todays = tuple(o for o in orders if local_time(o.created_at, tz).date() == today)
    if not todays:
        return []
    revenue = reduce(lambda acc, o: acc + order_revenue(o, ctx), todays, 0.0)
    return [
        Alert(
            "today_orders",
            SUCCESS,
            f"{len(todays)} orders today",
            f"Today's revenue: {format_amount(revenue, ctx.admin)}",
            "/admin/orders",
        )
    ]


def _stock_alert(products: Tuple[Product, ...]) -> List[Alert]:
    statuses = tuple(map(derive_status, products))
    out = statuses.count(OUT_OF_STOCK)
    low = statuses.count(LOW_STOCK)
    # out of stock supersedes low stock
    if out:
        return [
            Alert("out_of_stock", CRITICAL, f"{out} products out of stock", "Restock needed", "/admin/products")
        ]
    if low:
        return [
            Alert("low_stock", WARNING, f"{low} products low on stock", "Only a few units left", "/admin/products")
        ]
    return []


def _new_customers_alert(customers: Tuple[Customer, ...], today, tz: tzinfo) -> List[Alert]:
    new = sum(
        1 for c in customers if c.created_at is not None and local_time(c.created_at, tz).date() == today
    )
    if not new:
        return []
    return [Alert("new_customers", INFO, f"{new} new customers", "Signed up today", "/admin/customers")]


def _cancelled_alert(orders, now: datetime, config: StorefrontConfig, tz: tzinfo) -> List[Alert]:
    since = local_time(now, tz) - timedelta(days=7)
    cancelled = sum(
        1 for o in orders if o.status == CANCELLED and local_time(o.created_at, tz) >= since
    )
    if cancelled < config.alert_cancelled_warning:
        return []
    return [
        Alert(
            "cancelled_orders",
            WARNING,
            f"{cancelled} cancelled orders",
            "In the last 7 days, review the reasons",
            "/admin/orders",
        )
    ]


def smart_alerts(
    orders: Tuple[Order, ...],
    products: Tuple[Product, ...],
    customers: Tuple[Customer, ...],
    now: datetime,
    ctx: CurrencyContext,
    config: StorefrontConfig = StorefrontConfig(),
) -> List[Alert]:
    """Business-health alerts, most urgent first."""
    tz = resolve_timezone(config.analytics.timezone)
    today = local_time(now, tz).date()
    alerts = (
        _pending_alert(orders, config)
        + _today_alert(orders, today, ctx, tz)
        + _stock_alert(products)
        + _new_customers_alert(customers, today, tz)
        + _cancelled_alert(orders, now, config, tz)
    )
    return sorted(alerts, key=lambda a: ALERT_PRIORITY[a.type])


def critical_alert_count(alerts: List[Alert]) -> int:
    return sum(1 for a in alerts if a.type == CRITICAL)
