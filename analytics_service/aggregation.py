"""
Chart-ready rollups over already-fetched orders.

Every function here is pure: the same input tuple gives the same output,
and time only enters through an explicit DateWindow or timezone argument.
Revenue is always reported in the admin currency.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from functools import reduce
from typing import Dict, Iterable, Iterator, List, Tuple
from zoneinfo import ZoneInfo

from storefront.currency import CurrencyContext, convert_to_admin
from storefront.domain import LineItem, Order
from storefront.order_status import STATUS_CONFIG

WEEKDAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
OTHER_CATEGORY = "other"
UNKNOWN_CITY = "Unknown"


# ============ Windows ============


@dataclass(frozen=True)
class DateWindow:
    """`days` consecutive calendar days starting at `start`."""

    start: date
    days: int

    @property
    def end(self) -> date:
        return self.start + timedelta(days=self.days - 1)

    def dates(self) -> Tuple[date, ...]:
        return tuple(self.start + timedelta(days=i) for i in range(self.days))

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def previous(self) -> "DateWindow":
        """Window of the same length immediately before this one"""
        return DateWindow(self.start - timedelta(days=self.days), self.days)


def resolve_timezone(name: str) -> tzinfo:
    return timezone.utc if name.upper() == "UTC" else ZoneInfo(name)


def local_time(ts: datetime, tz: tzinfo) -> datetime:
    """
    `ts` as an aware timestamp in `tz`. Naive timestamps are taken as already
    local, so naive and aware values can be compared after passing through here.
    """
    return ts.astimezone(tz) if ts.tzinfo is not None else ts.replace(tzinfo=tz)


def window_ending(now: datetime, days: int, tz: tzinfo = timezone.utc) -> DateWindow:
    """Last `days` days, today included."""
    if days < 1:
        raise ValueError("a window needs at least one day")
    today = local_time(now, tz).date()
    return DateWindow(today - timedelta(days=days - 1), days)


DATE_RANGES = ("today", "yesterday", "last_7_days", "last_30_days", "this_month", "this_year")


def window_for_range(name: str, now: datetime, tz: tzinfo = timezone.utc) -> DateWindow:
    today = local_time(now, tz).date()
    if name == "today":
        return DateWindow(today, 1)
    if name == "yesterday":
        return DateWindow(today - timedelta(days=1), 1)
    if name == "last_7_days":
        return window_ending(now, 7, tz)
    if name == "last_30_days":
        return window_ending(now, 30, tz)
    if name == "this_month":
        return DateWindow(today.replace(day=1), today.day)
    if name == "this_year":
        start = today.replace(month=1, day=1)
        return DateWindow(start, (today - start).days + 1)
    raise ValueError(f"unknown date range: {name}")


def iter_orders_in_window(
    orders: Iterable[Order], window: DateWindow, tz: tzinfo = timezone.utc
) -> Iterator[Order]:
    for order in orders:
        if window.contains(local_time(order.created_at, tz).date()):
            yield order


# ============ Money ============


def order_revenue(order: Order, ctx: CurrencyContext) -> float:
    return convert_to_admin(order.total, order.currency, ctx)


def item_revenue(item: LineItem, order: Order, ctx: CurrencyContext) -> float:
    return convert_to_admin(item.subtotal, order.currency, ctx)


# ============ Series ============


def daily_series(
    orders: Tuple[Order, ...],
    window: DateWindow,
    ctx: CurrencyContext,
    tz: tzinfo = timezone.utc,
) -> List[dict]:
    """
    One bucket per day of the window, empty days included, so the result
    always has window.days entries.
    """
    empty = {
        d: {
            "date": d.isoformat(),
            "day_label": WEEKDAY_NAMES[d.weekday()],
            "order_count": 0,
            "revenue": 0.0,
            "delivered": 0,
            "cancelled": 0,
        }
        for d in window.dates()
    }

    def accumulate(acc: dict, order: Order) -> dict:
        day = local_time(order.created_at, tz).date()
        if day not in acc:
            return acc
        bucket = acc[day]
        return {
            **acc,
            day: {
                **bucket,
                "order_count": bucket["order_count"] + 1,
                "revenue": bucket["revenue"] + order_revenue(order, ctx),
                "delivered": bucket["delivered"] + (order.status == "delivered"),
                "cancelled": bucket["cancelled"] + (order.status == "cancelled"),
            },
        }

    buckets = reduce(accumulate, orders, empty)
    return [buckets[d] for d in window.dates()]


def hourly_distribution(
    orders: Tuple[Order, ...], ctx: CurrencyContext, tz: tzinfo = timezone.utc
) -> List[dict]:
    """24 hour-of-day slots in local time, zero-filled."""
    counts = [0] * 24
    revenue = [0.0] * 24
    for order in orders:
        hour = local_time(order.created_at, tz).hour
        counts[hour] += 1
        revenue[hour] += order_revenue(order, ctx)

    return [
        {"hour": h, "label": f"{h}:00", "orders": counts[h], "revenue": revenue[h]}
        for h in range(24)
    ]


# ============ Distributions ============


def category_sales(
    orders: Tuple[Order, ...],
    ctx: CurrencyContext,
    palette: Tuple[str, ...],
    top: int = 5,
) -> List[dict]:
    """
    Line-item sales per category, largest first. Beyond the top entries
    everything is folded into a single "other" entry; a tail that sums to
    zero adds no "other" entry.
    """
    totals: Dict[str, float] = {}
    for order in orders:
        for item in order.items:
            key = item.category or OTHER_CATEGORY
            totals[key] = totals.get(key, 0.0) + item_revenue(item, order, ctx)

    ranked = sorted(totals.items(), key=lambda kv: kv[1], reverse=True)
    head, tail = ranked[:top], ranked[top:]
    remainder = sum(value for _, value in tail)

    if remainder > 0:
        if any(name == OTHER_CATEGORY for name, _ in head):
            head = [(n, v + remainder if n == OTHER_CATEGORY else v) for n, v in head]
        else:
            head = head + [(OTHER_CATEGORY, remainder)]

    grand_total = sum(totals.values())
    return [
        {
            "category": name,
            "value": value,
            "share": round(value / grand_total * 100, 1) if grand_total > 0 else 0.0,
            "color": palette[rank % len(palette)],
        }
        for rank, (name, value) in enumerate(head)
    ]


def city_distribution(
    orders: Tuple[Order, ...], ctx: CurrencyContext, top: int = 10
) -> List[dict]:
    """Orders per shipping city; grouping ignores case, display keeps first-seen casing."""

    def accumulate(acc: dict, order: Order) -> dict:
        name = (order.shipping.city or "").strip() or UNKNOWN_CITY
        key = name.lower()
        current = acc.get(key, {"id": key, "name": name, "count": 0, "revenue": 0.0})
        return {
            **acc,
            key: {
                **current,
                "count": current["count"] + 1,
                "revenue": current["revenue"] + order_revenue(order, ctx),
            },
        }

    cities = reduce(accumulate, orders, {})
    return sorted(cities.values(), key=lambda c: c["count"], reverse=True)[:top]


PRODUCT_RANKINGS = ("quantity", "revenue")


def top_products(
    orders: Tuple[Order, ...], ctx: CurrencyContext, limit: int = 5, by: str = "quantity"
) -> List[dict]:
    """Best sellers by quantity or by revenue, ranked from 1; items without a product id group by name."""
    if by not in PRODUCT_RANKINGS:
        raise ValueError(f"cannot rank products by {by!r}")
    products: Dict[str, dict] = {}
    for order in orders:
        for item in order.items:
            key = item.product_id or item.name
            entry = products.setdefault(
                key, {"id": key, "name": item.name, "quantity": 0, "revenue": 0.0}
            )
            entry["quantity"] += item.quantity
            entry["revenue"] += item_revenue(item, order, ctx)

    ranked = sorted(products.values(), key=lambda p: p[by], reverse=True)[:limit]
    return [{**p, "rank": i + 1} for i, p in enumerate(ranked)]


def top_customers(
    orders: Tuple[Order, ...], ctx: CurrencyContext, limit: int = 5, tz: tzinfo = timezone.utc
) -> List[dict]:
    """Biggest spenders seen in the orders, ranked from 1."""
    customers: Dict[str, dict] = {}
    for order in orders:
        key = order.shipping.email or order.customer_id or "unknown"
        entry = customers.setdefault(
            key,
            {
                "id": key,
                "name": order.shipping.name or "Customer",
                "orders_count": 0,
                "total_spent": 0.0,
                "last_order": order.created_at,
            },
        )
        entry["orders_count"] += 1
        entry["total_spent"] += order_revenue(order, ctx)
        if local_time(order.created_at, tz) > local_time(entry["last_order"], tz):
            entry["last_order"] = order.created_at

    ranked = sorted(customers.values(), key=lambda c: c["total_spent"], reverse=True)[:limit]
    return [{**c, "rank": i + 1} for i, c in enumerate(ranked)]


def status_breakdown(orders: Tuple[Order, ...]) -> Dict[str, int]:
    base = {status: 0 for status in STATUS_CONFIG}
    return reduce(lambda acc, o: {**acc, o.status: acc.get(o.status, 0) + 1}, orders, base)


# ============ KPIs ============


def period_totals(orders: Tuple[Order, ...], ctx: CurrencyContext) -> dict:
    revenue = reduce(lambda acc, o: acc + order_revenue(o, ctx), orders, 0.0)
    count = len(orders)
    return {
        "orders": count,
        "revenue": revenue,
        "avg_order_value": revenue / count if count else 0.0,
    }


def percent_change(current: float, previous: float) -> float:
    """Signed change in percent; no prior activity counts as no change."""
    if not previous:
        return 0.0
    return round((current - previous) / previous * 100, 1)


def kpi_deltas(current: dict, previous: dict) -> dict:
    return {
        "orders_change": percent_change(current["orders"], previous["orders"]),
        "revenue_change": percent_change(current["revenue"], previous["revenue"]),
        "avg_order_value_change": percent_change(
            current["avg_order_value"], previous["avg_order_value"]
        ),
    }
