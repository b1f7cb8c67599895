import asyncio
from datetime import datetime, time, timedelta, tzinfo
from typing import Optional, Protocol, Sequence, Tuple

from storefront.config import StorefrontConfig
from storefront.currency import CurrencyContext
from storefront.domain import Order
from storefront.logging import get_logger

from .aggregation import DateWindow, resolve_timezone, window_ending
from .report import dashboard_report

log = get_logger("async_ops")


class OrderSource(Protocol):
    async def fetch_orders(self, start: datetime, end: datetime) -> Sequence[Order]:
        """Orders with start <= created_at < end."""
        ...


def window_bounds(window: DateWindow, tz: tzinfo) -> Tuple[datetime, datetime]:
    """Half-open datetime range covering every day of the window"""
    start = datetime.combine(window.start, time.min, tzinfo=tz)
    end = datetime.combine(window.end + timedelta(days=1), time.min, tzinfo=tz)
    return start, end


# ============ Dashboard pipeline ============


async def fetch_window(source: OrderSource, window: DateWindow, tz: tzinfo) -> Tuple[Order, ...]:
    start, end = window_bounds(window, tz)
    orders = await source.fetch_orders(start, end)
    log.debug("fetched %d orders for %s..%s", len(orders), window.start, window.end)
    return tuple(orders)


async def build_dashboard(
    source: OrderSource,
    now: datetime,
    ctx: CurrencyContext,
    config: StorefrontConfig = StorefrontConfig(),
    days: Optional[int] = None,
) -> dict:
    """
    Fetches the current and the previous window at the same time, then
    aggregates both into one dashboard report.
    """
    tz = resolve_timezone(config.analytics.timezone)
    window = window_ending(now, config.analytics.window_days if days is None else days, tz)

    current, previous = await asyncio.gather(
        fetch_window(source, window, tz),
        fetch_window(source, window.previous(), tz),
    )
    return dashboard_report(current, previous, window, ctx, config)


# ============ Sync wrappers ============


def run_dashboard(
    source: OrderSource,
    now: datetime,
    ctx: CurrencyContext,
    config: StorefrontConfig = StorefrontConfig(),
    days: Optional[int] = None,
) -> dict:
    """Sync wrapper for callers outside an event loop"""
    return asyncio.run(build_dashboard(source, now, ctx, config, days))
