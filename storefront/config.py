from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True, slots=True)
class CurrencyConfig:
    base: str = "MAD"
    admin: str = "KWD"
    display: str = "KWD"


@dataclass(frozen=True, slots=True)
class ScoringWeights:
    # Hand-tuned; changing any of these shifts every customer's score.
    order_count: float = 10
    total_spent: float = 0.01
    recency: float = 20
    avg_order_value: float = 0.05
    order_count_cap: float = 30
    total_spent_cap: float = 30
    avg_order_value_cap: float = 20
    recency_tiers: Tuple[Tuple[int, float], ...] = ((7, 1.0), (30, 0.7), (60, 0.3))


@dataclass(frozen=True, slots=True)
class SegmentThresholds:
    inactive_days: int = 90
    at_risk_days: int = 60
    vip_orders: int = 5
    vip_spent: float = 2000
    returning_orders: int = 2


@dataclass(frozen=True, slots=True)
class AnalyticsConfig:
    window_days: int = 7
    top_categories: int = 5
    top_cities: int = 10
    top_products: int = 5
    top_customers: int = 5
    recent_orders: int = 5
    timezone: str = "UTC"
    palette: Tuple[str, ...] = (
        "#6366F1",
        "#F59E0B",
        "#10B981",
        "#EC4899",
        "#8B5CF6",
        "#3B82F6",
    )


@dataclass(frozen=True, slots=True)
class InventoryConfig:
    low_stock_threshold: int = 5


@dataclass(frozen=True, slots=True)
class StorefrontConfig:
    currency: CurrencyConfig = CurrencyConfig()
    scoring: ScoringWeights = ScoringWeights()
    segments: SegmentThresholds = SegmentThresholds()
    analytics: AnalyticsConfig = AnalyticsConfig()
    inventory: InventoryConfig = InventoryConfig()
    alert_pending_critical: int = 5
    alert_cancelled_warning: int = 3
