import math
from dataclasses import dataclass
from datetime import datetime
from functools import reduce
from typing import Dict, Iterable, Tuple

from .config import ScoringWeights, SegmentThresholds
from .domain import Customer, LineItem, Product

NEW = "new"
RETURNING = "returning"
VIP = "vip"
AT_RISK = "at_risk"
INACTIVE = "inactive"

SEGMENTS: Tuple[str, ...] = (NEW, RETURNING, VIP, AT_RISK, INACTIVE)

SEGMENT_CONFIG: Dict[str, dict] = {
    NEW: {
        "label": "New",
        "color": "#3B82F6",
        "icon": "person-add",
        "description": "New customer (fewer than 2 orders)",
    },
    RETURNING: {
        "label": "Returning",
        "color": "#10B981",
        "icon": "refresh",
        "description": "Returning customer (2-4 orders)",
    },
    VIP: {
        "label": "VIP",
        "color": "#F59E0B",
        "icon": "star",
        "description": "VIP (5+ orders or 2000+ spent)",
    },
    AT_RISK: {
        "label": "At risk",
        "color": "#EF4444",
        "icon": "warning",
        "description": "No purchase for 60+ days",
    },
    INACTIVE: {
        "label": "Inactive",
        "color": "#6B7280",
        "icon": "time",
        "description": "No purchase for 90+ days",
    },
}

DEFAULT_WEIGHTS = ScoringWeights()
DEFAULT_THRESHOLDS = SegmentThresholds()


@dataclass(frozen=True)
class CustomerInsight:
    customer: Customer
    segment: str
    score: int


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def days_since_last_order(customer: Customer, now: datetime) -> float:
    """Whole days since the last order; infinite when there is none."""
    if customer.last_order_date is None:
        return math.inf
    return (now - customer.last_order_date).days


# ============ Segment ============


def calculate_segment(
    customer: Customer,
    now: datetime,
    thresholds: SegmentThresholds = DEFAULT_THRESHOLDS,
) -> str:
    """
    First match wins: recency is checked before value, so a big spender
    who has gone quiet is INACTIVE, not VIP.
    """
    days = days_since_last_order(customer, now)

    if days > thresholds.inactive_days:
        return INACTIVE
    if days > thresholds.at_risk_days:
        return AT_RISK
    if (
        customer.order_count >= thresholds.vip_orders
        or customer.total_spent >= thresholds.vip_spent
    ):
        return VIP
    if customer.order_count >= thresholds.returning_orders:
        return RETURNING
    return NEW


# ============ Score ============


def _recency_points(days: float, weights: ScoringWeights) -> float:
    for limit, factor in weights.recency_tiers:
        if days < limit:
            return weights.recency * factor
    return 0.0


def calculate_score(
    customer: Customer,
    now: datetime,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> int:
    """Score in [0, 100]; each term is capped before summing."""
    terms = (
        min(customer.order_count * weights.order_count, weights.order_count_cap),
        min(customer.total_spent * weights.total_spent, weights.total_spent_cap),
        _recency_points(days_since_last_order(customer, now), weights),
        min(customer.avg_order_value * weights.avg_order_value, weights.avg_order_value_cap),
    )
    total = max(sum(terms), 0.0)
    return _round_half_up(min(total, 100))


# ============ Bulk helpers ============


def enrich_customers(
    customers: Tuple[Customer, ...],
    now: datetime,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    thresholds: SegmentThresholds = DEFAULT_THRESHOLDS,
) -> Tuple[CustomerInsight, ...]:
    """Segment and score are recomputed on every read, never stored."""
    return tuple(
        CustomerInsight(
            customer=c,
            segment=calculate_segment(c, now, thresholds),
            score=calculate_score(c, now, weights),
        )
        for c in customers
    )


def filter_by_segment(
    insights: Tuple[CustomerInsight, ...], segment: str
) -> Tuple[CustomerInsight, ...]:
    if segment in ("", "all"):
        return insights
    return tuple(filter(lambda i: i.segment == segment, insights))


def customer_stats(insights: Tuple[CustomerInsight, ...]) -> dict:
    def accumulate(acc: dict, insight: CustomerInsight) -> dict:
        return {
            **acc,
            insight.segment: acc[insight.segment] + 1,
            "score_sum": acc["score_sum"] + insight.score,
            "total_revenue": acc["total_revenue"] + insight.customer.total_spent,
        }

    start = {**{s: 0 for s in SEGMENTS}, "score_sum": 0, "total_revenue": 0.0}
    totals = reduce(accumulate, insights, start)
    count = len(insights)

    return {
        "total": count,
        **{s: totals[s] for s in SEGMENTS},
        "avg_score": _round_half_up(totals["score_sum"] / count) if count else 0,
        "total_revenue": totals["total_revenue"],
    }


def customer_ltv(customer: Customer, now: datetime) -> dict:
    """Lifetime value with a monthly run-rate projected over a year."""
    avg_order_value = (
        customer.total_spent / customer.order_count if customer.order_count > 0 else 0
    )
    months = 1
    if customer.created_at is not None:
        months = max(1, (now - customer.created_at).days // 30)

    monthly_value = customer.total_spent / months
    return {
        "total_spent": customer.total_spent,
        "avg_order_value": _round_half_up(avg_order_value),
        "monthly_value": _round_half_up(monthly_value),
        "projected_annual_value": _round_half_up(monthly_value * 12),
    }


# ============ Recommendations ============

PREFERRED_REASON = "Based on your previous purchases"
DEFAULT_REASON = "You might like this"


@dataclass(frozen=True)
class Recommendation:
    product: Product
    reason: str


def recommend_products(
    history: Iterable[LineItem],
    products: Tuple[Product, ...],
    preferred_categories: Tuple[str, ...] = (),
    limit: int = 5,
) -> Tuple[Recommendation, ...]:
    """
    Products the customer has not bought yet. Those in a preferred category
    come first; otherwise catalog order is kept.
    """
    purchased = {item.product_id for item in history if item.product_id}
    candidates = [p for p in products if p.id not in purchased]
    ranked = sorted(candidates, key=lambda p: p.category not in preferred_categories)

    def reason(product: Product) -> str:
        return PREFERRED_REASON if product.category in preferred_categories else DEFAULT_REASON

    return tuple(Recommendation(p, reason(p)) for p in ranked[:limit])
