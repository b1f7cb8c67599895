"""
Raw document schemas.

Documents come out of the document store with field names that changed
over the life of the checkout flow (``shippingInfo`` vs ``shippingAddress``,
``total`` vs ``amount``, Firestore timestamps vs ISO strings). Each model
below accepts every known variant and maps it onto one domain record via
``to_domain()``; nothing downstream ever sees a legacy field name.
"""

import json
from datetime import datetime, timezone
from typing import Annotated, Any, List, Optional, Tuple, Type, TypeVar

from pydantic import (
    AfterValidator,
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from .domain import (
    BASE_CURRENCY,
    Coupon,
    Customer,
    LineItem,
    Order,
    Product,
    ShippingInfo,
    StatusChange,
)
from .errors import RecordShapeError


def _from_store_timestamp(value: Any) -> Any:
    # Firestore Timestamp serialized as {"seconds": ..., "nanoseconds": ...}
    if isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        if seconds is not None:
            nanos = value.get("nanoseconds", value.get("_nanoseconds", 0))
            return datetime.fromtimestamp(seconds + nanos / 1e9, tz=timezone.utc)
    return value


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def _to_str(value: Any) -> Any:
    return value if value is None or isinstance(value, str) else str(value)


Timestamp = Annotated[datetime, BeforeValidator(_from_store_timestamp), AfterValidator(_as_utc)]
Identifier = Annotated[str, BeforeValidator(_to_str)]
OptionalIdentifier = Annotated[Optional[str], BeforeValidator(_to_str)]


class Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class LineItemDocument(Document):
    product_id: OptionalIdentifier = Field(
        None, validation_alias=AliasChoices("productId", "product_id", "id")
    )
    name: str = Field("", description="Product name at purchase time")
    price: float = Field(0, ge=0, description="Unit price")
    quantity: int = Field(1, ge=0)
    category: Optional[str] = None

    def to_domain(self) -> LineItem:
        return LineItem(
            product_id=self.product_id,
            name=self.name,
            price=self.price,
            quantity=self.quantity,
            category=self.category,
        )


class ShippingDocument(Document):
    city: Optional[str] = None
    phone: Optional[str] = None
    name: Optional[str] = Field(
        None, validation_alias=AliasChoices("fullName", "full_name", "name")
    )
    email: Optional[str] = None

    @field_validator("city")
    @classmethod
    def _strip_city(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        return value.strip() or None

    def to_domain(self) -> ShippingInfo:
        return ShippingInfo(city=self.city, phone=self.phone, name=self.name, email=self.email)


class StatusChangeDocument(Document):
    status: str
    timestamp: Timestamp
    note: str = ""

    def to_domain(self) -> StatusChange:
        return StatusChange(status=self.status, timestamp=self.timestamp, note=self.note)


class OrderDocument(Document):
    id: Identifier
    status: str = "pending"
    total: float = Field(0, validation_alias=AliasChoices("total", "amount"))
    items: List[LineItemDocument] = Field(default_factory=list)
    shipping: ShippingDocument = Field(
        default_factory=ShippingDocument,
        validation_alias=AliasChoices(
            "shippingInfo", "shipping_info", "shippingAddress", "shipping", "address"
        ),
    )
    customer_name: Optional[str] = Field(
        None, validation_alias=AliasChoices("customerName", "customer_name")
    )
    created_at: Timestamp = Field(validation_alias=AliasChoices("createdAt", "created_at"))
    status_history: List[StatusChangeDocument] = Field(
        default_factory=list, validation_alias=AliasChoices("statusHistory", "status_history")
    )
    currency: str = BASE_CURRENCY
    customer_id: OptionalIdentifier = Field(
        None, validation_alias=AliasChoices("customerId", "customer_id", "userId")
    )

    @field_validator("items", mode="before")
    @classmethod
    def _items_or_empty(cls, value: Any) -> Any:
        return value if isinstance(value, list) else []

    @field_validator("shipping", mode="before")
    @classmethod
    def _shipping_or_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    def to_domain(self) -> Order:
        shipping = self.shipping.to_domain()
        if shipping.name is None and self.customer_name:
            shipping = ShippingInfo(
                city=shipping.city, phone=shipping.phone, name=self.customer_name, email=shipping.email
            )
        return Order(
            id=self.id,
            status=self.status,
            total=self.total,
            items=tuple(i.to_domain() for i in self.items),
            created_at=self.created_at,
            shipping=shipping,
            status_history=tuple(s.to_domain() for s in self.status_history),
            currency=self.currency,
            customer_id=self.customer_id,
        )


class CustomerDocument(Document):
    id: Identifier
    order_count: int = Field(0, ge=0, validation_alias=AliasChoices("orderCount", "order_count"))
    total_spent: float = Field(0, validation_alias=AliasChoices("totalSpent", "total_spent"))
    last_order_date: Optional[Timestamp] = Field(
        None, validation_alias=AliasChoices("lastOrderDate", "last_order_date")
    )
    avg_order_value: Optional[float] = Field(
        None, validation_alias=AliasChoices("avgOrderValue", "avg_order_value")
    )
    name: str = Field("", validation_alias=AliasChoices("displayName", "fullName", "name"))
    email: str = ""
    city: Optional[str] = None
    notes: str = ""
    created_at: Optional[Timestamp] = Field(
        None, validation_alias=AliasChoices("createdAt", "created_at")
    )

    def to_domain(self) -> Customer:
        avg = self.avg_order_value
        if avg is None:
            avg = self.total_spent / self.order_count if self.order_count else 0.0
        return Customer(
            id=self.id,
            order_count=self.order_count,
            total_spent=self.total_spent,
            last_order_date=self.last_order_date,
            avg_order_value=avg,
            name=self.name,
            email=self.email,
            city=self.city,
            notes=self.notes,
            created_at=self.created_at,
        )


class CouponDocument(Document):
    id: Identifier
    code: str
    type: str = "percentage"
    value: Optional[float] = None
    min_order: Optional[float] = Field(0, validation_alias=AliasChoices("minOrder", "min_order"))
    max_discount: Optional[float] = Field(
        None, validation_alias=AliasChoices("maxDiscount", "max_discount")
    )
    usage_limit: Optional[int] = Field(
        None, validation_alias=AliasChoices("usageLimit", "usage_limit")
    )
    usage_count: int = Field(0, ge=0, validation_alias=AliasChoices("usageCount", "usage_count"))
    expiry: Optional[Timestamp] = Field(
        None, validation_alias=AliasChoices("expiryDate", "expiry", "expiry_date")
    )
    is_active: bool = Field(True, validation_alias=AliasChoices("isActive", "is_active"))

    @field_validator("code")
    @classmethod
    def _normalize_code(cls, value: str) -> str:
        return value.strip().upper()

    def to_domain(self) -> Coupon:
        return Coupon(
            id=self.id,
            code=self.code,
            type=self.type,
            value=self.value,
            min_order=self.min_order or 0.0,
            max_discount=self.max_discount,
            usage_limit=self.usage_limit,
            usage_count=self.usage_count,
            expiry=self.expiry,
            is_active=self.is_active,
        )


def _image_sources(value: Any) -> Any:
    """Images stored either as {"src": url} objects or as bare URL strings."""
    if value is None:
        return []
    if not isinstance(value, list):
        return value
    return [img.get("src") if isinstance(img, dict) else img for img in value]


class ProductDocument(Document):
    id: Identifier
    name: str
    price: float = Field(0, ge=0)
    stock: int = Field(0, validation_alias=AliasChoices("stock", "quantity"))
    category: Optional[str] = None
    categories: List[Any] = Field(default_factory=list)
    low_stock_threshold: int = Field(
        5, ge=0, validation_alias=AliasChoices("lowStockThreshold", "low_stock_threshold")
    )
    is_published: bool = Field(False, validation_alias=AliasChoices("isPublished", "is_published"))
    status: Optional[str] = None
    images: Annotated[List[Optional[str]], BeforeValidator(_image_sources)] = Field(
        default_factory=list
    )

    def _raw_category(self) -> Optional[str]:
        if self.category:
            return self.category
        # shop-synced products carry [{"id": ..., "name": ...}]
        first = self.categories[0] if self.categories else None
        if isinstance(first, dict):
            return first.get("name")
        return first

    def to_domain(self) -> Product:
        return Product(
            id=self.id,
            name=self.name,
            price=self.price,
            stock=max(self.stock, 0),
            category=self._raw_category(),
            low_stock_threshold=self.low_stock_threshold,
            is_published=self.is_published,
            status=self.status,
            images=tuple(src for src in self.images if src),
        )


# ============ Parsing ============

D = TypeVar("D", bound=Document)


def _parse(model: Type[D], raw: dict) -> D:
    try:
        return model.model_validate(raw)
    except ValidationError as err:
        ident = raw.get("id", "?") if isinstance(raw, dict) else "?"
        raise RecordShapeError(f"invalid {model.__name__} {ident}: {err}") from err


def parse_order(raw: dict) -> Order:
    return _parse(OrderDocument, raw).to_domain()


def parse_customer(raw: dict) -> Customer:
    return _parse(CustomerDocument, raw).to_domain()


def parse_coupon(raw: dict) -> Coupon:
    return _parse(CouponDocument, raw).to_domain()


def parse_product(raw: dict) -> Product:
    return _parse(ProductDocument, raw).to_domain()


def load_seed(
    path: str,
) -> Tuple[
    Tuple[Order, ...], Tuple[Customer, ...], Tuple[Coupon, ...], Tuple[Product, ...]
]:
    """Reads a JSON export and returns immutable domain records"""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    orders = tuple(map(parse_order, data.get("orders", [])))
    customers = tuple(map(parse_customer, data.get("customers", [])))
    coupons = tuple(map(parse_coupon, data.get("coupons", [])))
    products = tuple(map(parse_product, data.get("products", [])))
    return orders, customers, coupons, products
