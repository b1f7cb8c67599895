"""
Currency normalization.

Every persisted amount is in the base currency. Display paths convert
through this module using a fixed rate table; the currently selected
display currency travels as an explicit CurrencyContext value.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Protocol, Tuple

from .ftypes import Either
from .logging import get_logger

log = get_logger("currency")

# 1 unit of base currency (MAD) expressed in each currency
EXCHANGE_RATES: Dict[str, float] = {
    "MAD": 1.0,
    "KWD": 0.030,
    "USD": 0.10,
    "EUR": 0.091,
    "SAR": 0.37,
    "QAR": 0.36,
    "AED": 0.36,
    "SYP": 125.0,
}


@dataclass(frozen=True)
class CurrencyInfo:
    code: str
    symbol: str
    name: str
    decimals: int
    symbol_first: bool = False


CURRENCIES: Dict[str, CurrencyInfo] = {
    "MAD": CurrencyInfo("MAD", "د.م.", "Moroccan Dirham", 0),
    "KWD": CurrencyInfo("KWD", "د.ك", "Kuwaiti Dinar", 3),
    "USD": CurrencyInfo("USD", "$", "US Dollar", 2, symbol_first=True),
    "EUR": CurrencyInfo("EUR", "€", "Euro", 2),
    "SAR": CurrencyInfo("SAR", "ر.س", "Saudi Riyal", 2),
    "QAR": CurrencyInfo("QAR", "ر.ق", "Qatari Riyal", 2),
    "AED": CurrencyInfo("AED", "د.إ", "UAE Dirham", 2),
    "SYP": CurrencyInfo("SYP", "ل.س", "Syrian Pound", 0),
}

DISPLAY_CURRENCY_KEY = "currency"


@dataclass(frozen=True)
class CurrencyContext:
    """Base (storage), admin (dashboard) and display (customer) currencies."""

    base: str = "MAD"
    admin: str = "KWD"
    display: str = "KWD"

    @staticmethod
    def from_config(cfg) -> "CurrencyContext":
        return CurrencyContext(base=cfg.base, admin=cfg.admin, display=cfg.display)


class PreferenceStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


# ============ Conversion ============


def resolve_rate(code: str) -> Tuple[float, bool]:
    """
    Rate for `code` and whether the rate-1 fallback was used.
    Unknown codes are treated as the base currency.
    """
    if code in EXCHANGE_RATES:
        return EXCHANGE_RATES[code], False
    log.warning("unknown currency %r, converting at rate 1", code)
    return 1.0, True


def _is_blank(amount) -> bool:
    return not amount or (isinstance(amount, float) and math.isnan(amount))


def convert(amount: float, target_currency: str) -> float:
    """Base-currency amount -> target currency."""
    if _is_blank(amount):
        return 0.0
    rate, _ = resolve_rate(target_currency)
    return float(amount) * rate


def to_base(amount: float, from_currency: str) -> float:
    if _is_blank(amount):
        return 0.0
    rate, _ = resolve_rate(from_currency)
    return float(amount) / rate


def convert_to_admin(amount: float, from_currency: str, ctx: CurrencyContext) -> float:
    """
    Amount expressed in `from_currency` -> admin currency.
    Amounts already in the admin currency pass through unchanged.
    """
    if _is_blank(amount):
        return 0.0
    if from_currency == ctx.admin:
        return float(amount)
    return convert(to_base(amount, from_currency), ctx.admin)


# ============ Formatting ============


def format_amount(amount: Optional[float], currency_code: str) -> str:
    """
    Render an amount already expressed in `currency_code`.
    Blank amounts render as zero.
    """
    info = CURRENCIES.get(currency_code)
    if info is None:
        log.warning("unknown currency %r, formatting with code as symbol", currency_code)
        info = CurrencyInfo(currency_code, currency_code, currency_code, 2)

    value = 0.0 if _is_blank(amount) else round(float(amount), info.decimals)
    number = f"{abs(value):,.{info.decimals}f}"
    sign = "-" if value < 0 else ""
    if info.symbol_first:
        return f"{sign}{info.symbol}{number}"
    return f"{sign}{number} {info.symbol}"


def format_admin_price(amount_in_base: float, ctx: CurrencyContext) -> str:
    return format_amount(convert(amount_in_base, ctx.admin), ctx.admin)


def format_price(amount_in_base: float, ctx: CurrencyContext) -> str:
    """Customer-facing price in the selected display currency."""
    return format_amount(convert(amount_in_base, ctx.display), ctx.display)


def format_compact(value: float) -> str:
    """12500 -> '12.5K', 3200000 -> '3.2M'"""
    if value >= 1_000_000:
        return f"{value / 1_000_000:.1f}M"
    if value >= 1_000:
        return f"{value / 1_000:.1f}K"
    return f"{value:g}"


def format_change(percent: float) -> dict:
    positive = percent >= 0
    return {
        "text": f"{'+' if positive else ''}{percent:g}%",
        "color": "#10B981" if positive else "#EF4444",
        "icon": "trending-up" if positive else "trending-down",
    }


def available_currencies() -> List[dict]:
    """Picker entries for the settings screen."""
    return [
        {
            "code": info.code,
            "symbol": info.symbol,
            "name": info.name,
            "label": f"{info.name} ({info.symbol})",
        }
        for info in CURRENCIES.values()
    ]


# ============ Display preference ============


def load_display_currency(store: PreferenceStore, ctx: CurrencyContext) -> CurrencyContext:
    """Context with the persisted display currency, if a valid one is stored."""
    stored = store.get(DISPLAY_CURRENCY_KEY)
    if stored and stored in CURRENCIES:
        return replace(ctx, display=stored)
    if stored:
        log.warning("ignoring stored display currency %r", stored)
    return ctx


def save_display_currency(
    store: PreferenceStore, code: str, ctx: CurrencyContext
) -> Either[str, CurrencyContext]:
    if code not in CURRENCIES:
        return Either.left(f"Unsupported currency: {code}")
    store.set(DISPLAY_CURRENCY_KEY, code)
    log.info("display currency set to %s", code)
    return Either.right(replace(ctx, display=code))
