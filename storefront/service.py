from dataclasses import replace
from datetime import datetime
from functools import reduce
from typing import Dict, Optional, Tuple

from .categories import CategoryMatch, normalize_category, stock_summary
from .config import StorefrontConfig
from .domain import Customer, Order, Product
from .ftypes import Either, Maybe
from .order_status import advance, cancel, refund
from .segmentation import (
    CustomerInsight,
    Recommendation,
    customer_ltv,
    customer_stats,
    enrich_customers,
    filter_by_segment,
    recommend_products,
)


class CustomerService:
    """Facade over customer records"""

    def __init__(self, customers: Tuple[Customer, ...], config: StorefrontConfig = StorefrontConfig()):
        self.customers = customers
        self.config = config

    def insights(self, now: datetime) -> Tuple[CustomerInsight, ...]:
        return enrich_customers(self.customers, now, self.config.scoring, self.config.segments)

    def by_segment(self, segment: str, now: datetime) -> Tuple[CustomerInsight, ...]:
        return filter_by_segment(self.insights(now), segment)

    def top_scored(self, now: datetime, k: int = 5) -> Tuple[CustomerInsight, ...]:
        return tuple(sorted(self.insights(now), key=lambda i: i.score, reverse=True)[:k])

    def stats(self, now: datetime) -> dict:
        return customer_stats(self.insights(now))

    def find(self, customer_id: str) -> Maybe[Customer]:
        return Maybe.of(next((c for c in self.customers if c.id == customer_id), None))

    def lifetime_value(self, customer_id: str, now: datetime) -> Maybe[dict]:
        return self.find(customer_id).map(lambda c: customer_ltv(c, now))

    def recommendations(
        self, history, products: Tuple[Product, ...], preferred_categories: Tuple[str, ...] = ()
    ) -> Tuple[Recommendation, ...]:
        return recommend_products(history, products, preferred_categories)

    def _with(self, updated: Customer) -> "CustomerService":
        return CustomerService(
            tuple(updated if c.id == updated.id else c for c in self.customers), self.config
        )

    def update_notes(self, customer_id: str, notes: str) -> Either[str, "CustomerService"]:
        """Admin notes are the only customer field edited here; returns a new service."""
        return (
            self.find(customer_id)
            .to_either(f"Customer {customer_id} not found")
            .map(lambda c: replace(c, notes=notes.strip()))
            .map(self._with)
        )


class CatalogService:
    """Facade over the product catalog"""

    def __init__(self, products: Tuple[Product, ...]):
        self.products = products

    def categorized(self) -> Tuple[Tuple[Product, CategoryMatch], ...]:
        return tuple((p, normalize_category(p)) for p in self.products)

    def products_by_category(self, category_id: str) -> Tuple[Product, ...]:
        return tuple(p for p, match in self.categorized() if match.id == category_id)

    def category_counts(self) -> Dict[str, int]:
        def count(acc: dict, pair: Tuple[Product, CategoryMatch]) -> dict:
            key = pair[1].id or "uncategorized"
            return {**acc, key: acc.get(key, 0) + 1}

        return reduce(count, self.categorized(), {})

    def unmapped(self) -> Tuple[Product, ...]:
        """Products whose category could not be resolved"""
        return tuple(p for p, match in self.categorized() if match.is_fallback)

    def stock_report(self) -> dict:
        return stock_summary(self.products)

    def filter_products(self, predicate) -> Tuple[Product, ...]:
        return tuple(filter(predicate, self.products))


class OrderService:
    """
    Facade over orders. Immutable: every admin action returns
    Either an error message or a new OrderService holding the updated order.
    """

    def __init__(self, orders: Tuple[Order, ...]):
        self.orders = orders

    def find(self, order_id: str) -> Maybe[Order]:
        return Maybe.of(next((o for o in self.orders if o.id == order_id), None))

    def by_status(self, status: Optional[str]) -> Tuple[Order, ...]:
        if not status or status == "all":
            return self.orders
        return tuple(filter(lambda o: o.status == status, self.orders))

    def _with(self, updated: Order) -> "OrderService":
        return OrderService(tuple(updated if o.id == updated.id else o for o in self.orders))

    def _act(self, order_id: str, action) -> Either[str, "OrderService"]:
        return (
            self.find(order_id)
            .to_either(f"Order {order_id} not found")
            .bind(action)
            .map(self._with)
        )

    def advance(self, order_id: str, now: datetime, note: str = "") -> Either[str, "OrderService"]:
        return self._act(order_id, lambda o: advance(o, now, note))

    def cancel(self, order_id: str, reason: str, now: datetime) -> Either[str, "OrderService"]:
        return self._act(order_id, lambda o: cancel(o, reason, now))

    def refund(self, order_id: str, reason: str, now: datetime) -> Either[str, "OrderService"]:
        return self._act(order_id, lambda o: refund(o, reason, now))
