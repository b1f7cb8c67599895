import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
import json
from datetime import datetime, timezone

import pytest
from storefront.errors import RecordShapeError, StorefrontError
from storefront.schemas import (
    load_seed,
    parse_coupon,
    parse_customer,
    parse_order,
    parse_product,
)

NOON = datetime(2025, 6, 22, 12, 0, tzinfo=timezone.utc)


def test_order_with_legacy_shipping_address():
    order = parse_order(
        {
            "id": "o1",
            "status": "pending",
            "amount": 250,
            "shippingAddress": {"city": " Casablanca ", "fullName": "Salma", "phone": "0600"},
            "createdAt": {"seconds": 1750593600, "nanoseconds": 0},
            "items": [{"productId": 7, "name": "Serum", "price": 125, "quantity": 2}],
        }
    )

    assert order.total == 250
    assert order.shipping.city == "Casablanca"
    assert order.shipping.name == "Salma"
    assert order.created_at == NOON
    assert order.items[0].product_id == "7"
    assert order.items[0].subtotal == 250
    assert order.currency == "MAD"


def test_order_with_snake_case_shipping_info():
    order = parse_order(
        {
            "id": "o2",
            "total": 99,
            "shipping_info": {"city": "Rabat"},
            "customerName": "Youssef",
            "createdAt": "2025-06-22T12:00:00",
            "statusHistory": [{"status": "pending", "timestamp": "2025-06-22T12:00:00Z"}],
        }
    )

    assert order.shipping.city == "Rabat"
    assert order.shipping.name == "Youssef"
    assert order.created_at == NOON
    assert order.status == "pending"
    assert order.status_history[0].timestamp == NOON


def test_order_without_shipping_or_items():
    order = parse_order({"id": 12, "createdAt": "2025-06-22T12:00:00Z", "shippingInfo": None, "items": None})

    assert order.id == "12"
    assert order.items == ()
    assert order.shipping.city is None


def test_order_without_timestamp_is_rejected():
    with pytest.raises(RecordShapeError) as err:
        parse_order({"id": "broken", "total": 10})

    assert "broken" in str(err.value)
    assert isinstance(err.value, StorefrontError)


def test_customer_average_is_derived_when_missing():
    customer = parse_customer(
        {"id": "u1", "orderCount": 4, "totalSpent": 1000, "lastOrderDate": "2025-06-20T08:00:00Z"}
    )

    assert customer.avg_order_value == 250
    assert customer.last_order_date.tzinfo is not None


def test_customer_stored_average_wins():
    customer = parse_customer({"id": "u1", "orderCount": 4, "totalSpent": 1000, "avgOrderValue": 83})
    assert customer.avg_order_value == 83


def test_coupon_code_is_normalized():
    coupon = parse_coupon(
        {
            "id": "c1",
            "code": " save20 ",
            "type": "percentage",
            "value": 20,
            "minOrder": None,
            "maxDiscount": 30,
            "expiryDate": "2025-12-31T23:59:59Z",
        }
    )

    assert coupon.code == "SAVE20"
    assert coupon.min_order == 0.0
    assert coupon.max_discount == 30
    assert coupon.expiry.year == 2025


def test_product_images_and_legacy_fields():
    product = parse_product(
        {
            "id": "p1",
            "name": "Toner",
            "price": 80,
            "quantity": 4,
            "categories": [{"id": 3, "name": "تونر"}],
            "images": [{"src": "https://cdn/a.jpg"}, "https://cdn/b.jpg", {"alt": "x"}],
            "isPublished": True,
        }
    )

    assert product.stock == 4
    assert product.category == "تونر"
    assert product.images == ("https://cdn/a.jpg", "https://cdn/b.jpg")
    assert product.is_published


def test_product_negative_price_is_rejected():
    with pytest.raises(RecordShapeError):
        parse_product({"id": "p1", "name": "x", "price": -1})


def test_load_seed(tmp_path):
    seed = {
        "orders": [{"id": "o1", "total": 10, "createdAt": "2025-06-22T12:00:00Z"}],
        "customers": [{"id": "u1"}],
        "coupons": [{"id": "c1", "code": "a", "type": "fixed", "value": 5}],
        "products": [{"id": "p1", "name": "Serum", "stock": 2}],
    }
    path = tmp_path / "seed.json"
    path.write_text(json.dumps(seed), encoding="utf-8")

    orders, customers, coupons, products = load_seed(str(path))

    assert isinstance(orders, tuple)
    assert orders[0].id == "o1"
    assert customers[0].order_count == 0
    assert coupons[0].code == "A"
    assert products[0].stock == 2
