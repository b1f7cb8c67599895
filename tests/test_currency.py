import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
import logging

import pytest
from storefront.currency import (
    CurrencyContext,
    available_currencies,
    convert,
    convert_to_admin,
    format_admin_price,
    format_amount,
    format_change,
    format_compact,
    format_price,
    load_display_currency,
    resolve_rate,
    save_display_currency,
    to_base,
)
from storefront.stores import InMemoryPreferenceStore


@pytest.fixture
def ctx():
    return CurrencyContext(base="MAD", admin="KWD", display="KWD")


def test_convert_uses_fixed_rate():
    assert convert(1000, "KWD") == pytest.approx(30.0)
    assert convert(1000, "MAD") == 1000.0
    assert convert(250, "USD") == pytest.approx(25.0)


def test_convert_blank_amounts_are_zero():
    assert convert(0, "KWD") == 0.0
    assert convert(None, "KWD") == 0.0
    assert convert(float("nan"), "USD") == 0.0


def test_unknown_currency_falls_back_to_rate_one(caplog):
    with caplog.at_level(logging.WARNING, logger="storefront"):
        assert convert(100, "XYZ") == 100.0
    assert resolve_rate("XYZ") == (1.0, True)
    assert resolve_rate("KWD") == (0.030, False)
    assert "XYZ" in caplog.text


def test_convert_to_admin_passthrough(ctx):
    """Amounts already in the admin currency are not converted again"""
    assert convert_to_admin(30.0, "KWD", ctx) == 30.0


def test_convert_to_admin_from_other_currencies(ctx):
    assert convert_to_admin(100, "MAD", ctx) == pytest.approx(3.0)
    assert convert_to_admin(10, "USD", ctx) == pytest.approx(3.0)
    assert to_base(10, "USD") == pytest.approx(100.0)


def test_round_trip_when_admin_is_base():
    ctx = CurrencyContext(base="MAD", admin="MAD", display="USD")
    for amount in (1, 250, 999.5):
        assert convert_to_admin(convert(amount, "USD"), "USD", ctx) == pytest.approx(amount)


def test_round_trip_lands_in_admin_currency(ctx):
    assert convert_to_admin(convert(1000, "EUR"), "EUR", ctx) == pytest.approx(convert(1000, "KWD"))


def test_format_amount_decimals_and_symbols():
    assert format_amount(30, "KWD") == "30.000 د.ك"
    assert format_amount(1234.5, "USD") == "$1,234.50"
    assert format_amount(0, "MAD") == "0 د.م."
    assert format_amount(None, "USD") == "$0.00"
    assert format_amount(-5, "EUR") == "-5.00 €"


def test_format_unknown_currency_uses_code(caplog):
    with caplog.at_level(logging.WARNING, logger="storefront"):
        assert format_amount(12, "XYZ") == "12.00 XYZ"


def test_format_prices_convert_from_base(ctx):
    assert format_admin_price(1000, ctx) == "30.000 د.ك"
    usd = CurrencyContext(display="USD")
    assert format_price(1000, usd) == "$100.00"


def test_format_compact():
    assert format_compact(12500) == "12.5K"
    assert format_compact(3200000) == "3.2M"
    assert format_compact(950) == "950"


def test_format_change():
    up = format_change(12.5)
    down = format_change(-3.0)

    assert up["text"] == "+12.5%"
    assert up["icon"] == "trending-up"
    assert down["text"] == "-3%"
    assert down["color"] == "#EF4444"


def test_available_currencies():
    codes = [c["code"] for c in available_currencies()]
    assert "KWD" in codes
    assert "MAD" in codes
    assert len(codes) == len(set(codes))


def test_display_currency_preference(ctx):
    store = InMemoryPreferenceStore()

    saved = save_display_currency(store, "USD", ctx)

    assert saved.is_right
    assert saved.value.display == "USD"
    assert store.get("currency") == "USD"
    assert load_display_currency(store, ctx).display == "USD"
    # admin currency is untouched by the customer preference
    assert saved.value.admin == "KWD"


def test_display_currency_rejects_unknown_code(ctx):
    store = InMemoryPreferenceStore({"currency": "XYZ"})

    assert save_display_currency(store, "ABC", ctx).is_left
    assert load_display_currency(store, ctx) == ctx
