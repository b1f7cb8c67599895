from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

BASE_CURRENCY = "MAD"


@dataclass(frozen=True)
class LineItem:
    product_id: Optional[str]
    name: str
    price: float
    quantity: int = 1
    category: Optional[str] = None

    @property
    def subtotal(self) -> float:
        return self.price * self.quantity


@dataclass(frozen=True)
class ShippingInfo:
    city: Optional[str] = None
    phone: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None


@dataclass(frozen=True)
class StatusChange:
    status: str
    timestamp: datetime
    note: str = ""


@dataclass(frozen=True)
class Order:
    id: str
    status: str
    total: float  # in `currency`, base currency unless stated otherwise
    items: Tuple[LineItem, ...]
    created_at: datetime
    shipping: ShippingInfo = ShippingInfo()
    status_history: Tuple[StatusChange, ...] = ()
    currency: str = BASE_CURRENCY
    customer_id: Optional[str] = None


@dataclass(frozen=True)
class Customer:
    id: str
    order_count: int = 0
    total_spent: float = 0.0
    last_order_date: Optional[datetime] = None
    avg_order_value: float = 0.0
    name: str = ""
    email: str = ""
    city: Optional[str] = None
    notes: str = ""
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Coupon:
    id: str
    code: str
    type: str  # "percentage" | "fixed" | "free_shipping"
    value: Optional[float]
    min_order: float = 0.0
    max_discount: Optional[float] = None
    usage_limit: Optional[int] = None
    usage_count: int = 0
    expiry: Optional[datetime] = None
    is_active: bool = True


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    price: float
    stock: int = 0
    category: Optional[str] = None
    low_stock_threshold: int = 5
    is_published: bool = False
    status: Optional[str] = None  # as stored; see categories.derive_status
    images: Tuple[str, ...] = ()
