"""In-process stand-ins for the document store: coupon counters, orders, settings."""

import asyncio
import threading
from dataclasses import replace
from datetime import datetime, timezone, tzinfo
from typing import Dict, List, Optional, Tuple

from .domain import Coupon, Order


class InMemoryCouponLedger:
    """
    Usage counters keyed by coupon id. increment() is atomic, so concurrent
    redemptions never lose an update.
    """

    def __init__(self, coupons=()):
        self._lock = threading.Lock()
        self._counts: Dict[str, int] = {c.id: c.usage_count for c in coupons}

    def increment(self, coupon_id: str, by: int = 1) -> int:
        if by < 0:
            raise ValueError("usage counters only move forward")
        with self._lock:
            self._counts[coupon_id] = self._counts.get(coupon_id, 0) + by
            return self._counts[coupon_id]

    def count(self, coupon_id: str) -> int:
        with self._lock:
            return self._counts.get(coupon_id, 0)

    def snapshot(self, coupon: Coupon) -> Coupon:
        """Coupon record carrying the current counter value."""
        return replace(coupon, usage_count=self.count(coupon.id))


def _in_zone(ts: datetime, tz: tzinfo) -> datetime:
    return ts.astimezone(tz) if ts.tzinfo is not None else ts.replace(tzinfo=tz)


class InMemoryOrderSource:
    """
    Serves orders from a tuple through the async fetch interface. Naive
    timestamps, on orders or bounds, are read in the zone of `start`.
    """

    def __init__(self, orders: Tuple[Order, ...] = ()):
        self.orders = tuple(orders)
        self.calls: List[Tuple[datetime, datetime]] = []

    async def fetch_orders(self, start: datetime, end: datetime) -> Tuple[Order, ...]:
        self.calls.append((start, end))
        await asyncio.sleep(0)
        tz = start.tzinfo or timezone.utc
        lower, upper = _in_zone(start, tz), _in_zone(end, tz)
        return tuple(o for o in self.orders if lower <= _in_zone(o.created_at, tz) < upper)


class InMemoryPreferenceStore:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
