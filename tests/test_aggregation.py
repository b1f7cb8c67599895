import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
import types
from datetime import date, datetime, timedelta, timezone

import pytest
from analytics_service.aggregation import (
    DATE_RANGES,
    DateWindow,
    category_sales,
    city_distribution,
    daily_series,
    hourly_distribution,
    iter_orders_in_window,
    kpi_deltas,
    percent_change,
    period_totals,
    resolve_timezone,
    status_breakdown,
    top_customers,
    top_products,
    window_ending,
    window_for_range,
)
from storefront.config import AnalyticsConfig
from storefront.currency import CurrencyContext
from storefront.domain import LineItem, Order, ShippingInfo

# Sunday
NOW = datetime(2025, 6, 22, 12, 0, tzinfo=timezone.utc)
PALETTE = AnalyticsConfig().palette


@pytest.fixture
def ctx():
    # admin == base, so revenue equals stored totals
    return CurrencyContext(base="MAD", admin="MAD", display="MAD")


def make_order(oid, created_at, total=100, city=None, items=(), status="delivered", email=None, currency="MAD"):
    return Order(
        id=oid,
        status=status,
        total=total,
        items=tuple(items),
        created_at=created_at,
        shipping=ShippingInfo(city=city, name=f"name-{oid}", email=email),
        currency=currency,
    )


def item(name, price, quantity=1, category=None, pid=None):
    return LineItem(product_id=pid, name=name, price=price, quantity=quantity, category=category)


# ============ Windows ============


def test_window_ending_includes_today():
    window = window_ending(NOW, 7)

    assert window.start == date(2025, 6, 16)
    assert window.end == date(2025, 6, 22)
    assert len(window.dates()) == 7
    assert window.previous() == DateWindow(date(2025, 6, 9), 7)


def test_window_ending_rejects_empty_window():
    with pytest.raises(ValueError):
        window_ending(NOW, 0)


def test_window_ending_respects_timezone():
    late = datetime(2025, 6, 22, 22, 30, tzinfo=timezone.utc)
    plus_three = timezone(timedelta(hours=3))

    assert window_ending(late, 1, plus_three).start == date(2025, 6, 23)


def test_named_ranges():
    assert window_for_range("today", NOW) == DateWindow(date(2025, 6, 22), 1)
    assert window_for_range("yesterday", NOW) == DateWindow(date(2025, 6, 21), 1)
    assert window_for_range("last_30_days", NOW).days == 30
    assert window_for_range("this_month", NOW) == DateWindow(date(2025, 6, 1), 22)
    assert window_for_range("this_year", NOW) == DateWindow(date(2025, 1, 1), 173)
    with pytest.raises(ValueError):
        window_for_range("forever", NOW)


def test_resolve_timezone():
    assert resolve_timezone("UTC") is timezone.utc
    assert resolve_timezone("utc") is timezone.utc


def test_iter_orders_in_window_is_lazy():
    orders = (
        make_order("in", NOW - timedelta(days=2)),
        make_order("out", NOW - timedelta(days=10)),
    )

    result = iter_orders_in_window(orders, window_ending(NOW, 7))

    assert isinstance(result, types.GeneratorType)
    assert [o.id for o in result] == ["in"]


# ============ Series ============


def test_daily_series_is_zero_filled(ctx):
    series = daily_series((), window_ending(NOW, 7), ctx)

    assert len(series) == 7
    assert [b["day_label"] for b in series] == ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    assert all(b["order_count"] == 0 and b["revenue"] == 0 for b in series)
    assert series[0]["date"] == "2025-06-16"


def test_daily_series_buckets_orders(ctx):
    orders = (
        make_order("a", datetime(2025, 6, 20, 9, tzinfo=timezone.utc), total=100),
        make_order("b", datetime(2025, 6, 20, 18, tzinfo=timezone.utc), total=50, status="cancelled"),
        make_order("c", datetime(2025, 6, 1, 9, tzinfo=timezone.utc), total=999),
    )

    series = daily_series(orders, window_ending(NOW, 7), ctx)

    friday = series[4]
    assert friday["order_count"] == 2
    assert friday["revenue"] == 150
    assert friday["delivered"] == 1
    assert friday["cancelled"] == 1
    assert sum(b["order_count"] for b in series) == 2


def test_daily_series_uses_local_day(ctx):
    late = make_order("late", datetime(2025, 6, 21, 22, 30, tzinfo=timezone.utc))
    plus_three = timezone(timedelta(hours=3))

    utc_series = daily_series((late,), window_ending(NOW, 7), ctx)
    local_series = daily_series((late,), window_ending(NOW, 7, plus_three), ctx, plus_three)

    assert utc_series[5]["order_count"] == 1
    assert local_series[6]["order_count"] == 1


def test_daily_series_converts_to_admin_currency():
    ctx = CurrencyContext(admin="KWD")
    orders = (make_order("a", NOW, total=1000),)

    series = daily_series(orders, window_ending(NOW, 7), ctx)

    assert series[-1]["revenue"] == pytest.approx(30.0)


def test_hourly_distribution(ctx):
    orders = (
        make_order("a", datetime(2025, 6, 22, 9, 30, tzinfo=timezone.utc), total=10),
        make_order("b", datetime(2025, 6, 21, 9, 5, tzinfo=timezone.utc), total=20),
        make_order("c", datetime(2025, 6, 21, 22, 30, tzinfo=timezone.utc), total=5),
    )

    hours = hourly_distribution(orders, ctx)
    shifted = hourly_distribution(orders, ctx, timezone(timedelta(hours=3)))

    assert len(hours) == 24
    assert hours[9] == {"hour": 9, "label": "9:00", "orders": 2, "revenue": 30}
    assert hours[22]["orders"] == 1
    assert shifted[1]["orders"] == 1
    assert shifted[12]["orders"] == 2


# ============ Distributions ============


def test_category_sales_top_five_plus_other(ctx):
    values = {"a": 70, "b": 60, "c": 50, "d": 40, "e": 30, "f": 20, "g": 10}
    order = make_order("o", NOW, items=[item(k, v, category=k) for k, v in values.items()])

    result = category_sales((order,), ctx, PALETTE)

    assert [r["category"] for r in result] == ["a", "b", "c", "d", "e", "other"]
    assert result[-1]["value"] == 30
    assert result[0]["share"] == 25.0
    assert [r["color"] for r in result] == list(PALETTE)


def test_category_sales_merges_into_existing_other(ctx):
    items = [item("x", 100)] + [item(k, v, category=k) for k, v in (("s", 50), ("t", 40), ("u", 30), ("v", 20), ("w", 10), ("y", 5))]
    order = make_order("o", NOW, items=items)

    result = category_sales((order,), ctx, PALETTE)

    assert len(result) == 5
    assert result[0] == {"category": "other", "value": 115, "share": pytest.approx(45.1), "color": PALETTE[0]}
    assert sum(1 for r in result if r["category"] == "other") == 1


def test_category_sales_empty(ctx):
    assert category_sales((), ctx, PALETTE) == []


def test_city_distribution_groups_case_insensitively(ctx):
    cities = ["Casablanca", "Rabat", "Casablanca", "casablanca", "Casablanca"]
    orders = tuple(make_order(str(i), NOW, total=10, city=c) for i, c in enumerate(cities))

    result = city_distribution(orders, ctx)

    assert [(r["name"], r["count"]) for r in result] == [("Casablanca", 4), ("Rabat", 1)]
    assert result[0]["revenue"] == 40


def test_city_distribution_unknown_and_limit(ctx):
    orders = tuple(make_order(str(i), NOW, city=f"City{i}") for i in range(12)) + (
        make_order("x", NOW, city=None),
        make_order("y", NOW, city="  "),
    )

    result = city_distribution(orders, ctx)

    assert len(result) == 10
    assert result[0] == {"id": "unknown", "name": "Unknown", "count": 2, "revenue": 200}


def test_top_products_by_quantity(ctx):
    orders = (
        make_order("1", NOW, items=[item("Serum", 100, 1, pid="p1"), item("Toner", 50, 3, pid="p2")]),
        make_order("2", NOW, items=[item("Serum", 100, 1, pid="p1"), item("Free sample", 0, 1)]),
    )

    result = top_products(orders, ctx)

    assert [(r["id"], r["quantity"]) for r in result] == [("p2", 3), ("p1", 2), ("Free sample", 1)]
    assert result[1]["revenue"] == 200
    assert len(top_products(orders, ctx, limit=1)) == 1


def test_top_products_by_revenue(ctx):
    orders = (
        make_order("1", NOW, items=[item("Serum", 100, 2, pid="p1"), item("Toner", 50, 3, pid="p2")]),
        make_order("2", NOW, items=[item("Cream", 300, 1, pid="p3")]),
    )

    by_revenue = top_products(orders, ctx, by="revenue")
    by_quantity = top_products(orders, ctx)

    assert [(r["id"], r["rank"]) for r in by_revenue] == [("p3", 1), ("p1", 2), ("p2", 3)]
    assert by_revenue[0]["revenue"] == 300
    assert [r["id"] for r in by_quantity] == ["p2", "p1", "p3"]
    with pytest.raises(ValueError):
        top_products(orders, ctx, by="margin")


def test_category_sales_zero_tail_adds_no_other(ctx):
    values = {"a": 50, "b": 40, "c": 30, "d": 20, "e": 10, "f": 0}
    order = make_order("o", NOW, items=[item(k, v, category=k) for k, v in values.items()])

    result = category_sales((order,), ctx, PALETTE)

    assert [r["category"] for r in result] == ["a", "b", "c", "d", "e"]


def test_naive_and_aware_orders_mix(ctx):
    orders = (
        make_order("naive", datetime(2025, 6, 21, 9), total=100, email="a@x"),
        make_order("aware", datetime(2025, 6, 22, 10, tzinfo=timezone.utc), total=200, email="a@x"),
    )

    series = daily_series(orders, window_ending(datetime(2025, 6, 22, 12), 7), ctx)
    customers = top_customers(orders, ctx)

    assert [b["order_count"] for b in series[-2:]] == [1, 1]
    assert customers[0]["orders_count"] == 2
    assert customers[0]["last_order"] == orders[1].created_at


def test_top_customers(ctx):
    orders = (
        make_order("1", NOW - timedelta(days=1), total=100, email="a@x"),
        make_order("2", NOW, total=300, email="b@x"),
        make_order("3", NOW, total=250, email="a@x"),
    )

    result = top_customers(orders, ctx)

    assert [(c["id"], c["rank"]) for c in result] == [("a@x", 1), ("b@x", 2)]
    assert result[0]["orders_count"] == 2
    assert result[0]["total_spent"] == 350
    assert result[0]["last_order"] == NOW


def test_status_breakdown_lists_every_status():
    orders = (make_order("1", NOW, status="pending"), make_order("2", NOW, status="pending"))

    counts = status_breakdown(orders)

    assert counts["pending"] == 2
    assert counts["delivered"] == 0
    assert "refunded" in counts


# ============ KPIs ============


def test_percent_change():
    assert percent_change(150, 100) == 50.0
    assert percent_change(50, 100) == -50.0
    assert percent_change(1, 3) == -66.7
    assert percent_change(0, 0) == 0.0
    assert percent_change(10, 0) == 0.0


def test_period_totals_and_deltas(ctx):
    current = (make_order("1", NOW, total=100), make_order("2", NOW, total=300))
    previous = (make_order("3", NOW, total=100),)

    totals = period_totals(current, ctx)
    deltas = kpi_deltas(totals, period_totals(previous, ctx))

    assert totals == {"orders": 2, "revenue": 400, "avg_order_value": 200}
    assert deltas == {"orders_change": 100.0, "revenue_change": 300.0, "avg_order_value_change": 100.0}
    assert period_totals((), ctx)["avg_order_value"] == 0.0


def test_aggregations_are_deterministic(ctx):
    orders = tuple(
        make_order(str(i), NOW - timedelta(hours=7 * i), total=10 * i, city=("Fes", "Rabat")[i % 2],
                   items=[item(f"n{i % 3}", i, category=f"c{i % 4}")])
        for i in range(20)
    )
    window = window_ending(NOW, 7)

    def run():
        return (
            daily_series(orders, window, ctx),
            category_sales(orders, ctx, PALETTE),
            city_distribution(orders, ctx),
            top_products(orders, ctx),
            hourly_distribution(orders, ctx),
        )

    assert run() == run()


def test_every_named_range_resolves():
    for name in DATE_RANGES:
        window = window_for_range(name, NOW)
        assert window.end == date(2025, 6, 22) or name == "yesterday"
        assert window.days >= 1
