from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Protocol

from .domain import Coupon
from .ftypes import Either, Maybe
from .logging import get_logger

log = get_logger("coupons")

PERCENTAGE = "percentage"
FIXED = "fixed"
FREE_SHIPPING = "free_shipping"

COUPON_TYPES = (PERCENTAGE, FIXED, FREE_SHIPPING)

NOT_FOUND = "Coupon code not found or inactive"
EXPIRED = "Coupon has expired"
EXHAUSTED = "Coupon usage limit reached"


@dataclass(frozen=True)
class CouponResult:
    valid: bool
    reason: Optional[str] = None
    discount_amount: float = 0.0
    coupon_id: Optional[str] = None
    code: Optional[str] = None
    type: Optional[str] = None
    free_shipping: bool = False

    @staticmethod
    def rejected(reason: str) -> "CouponResult":
        return CouponResult(valid=False, reason=reason)


class UsageLedger(Protocol):
    def increment(self, coupon_id: str, by: int = 1) -> int:
        """Atomically add `by` to the usage counter and return the new count."""
        ...


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def find_coupon(code: str, coupons: Iterable[Coupon]) -> Maybe[Coupon]:
    """Active coupon whose code matches case-insensitively."""
    wanted = normalize_code(code)
    found = next(
        (c for c in coupons if c.is_active and normalize_code(c.code) == wanted), None
    )
    return Maybe.of(found)


# ============ Ordered checks ============


def _check_expiry(now: datetime):
    def check(coupon: Coupon) -> Either[str, Coupon]:
        if coupon.expiry is not None and now > coupon.expiry:
            return Either.left(EXPIRED)
        return Either.right(coupon)

    return check


def _check_usage(coupon: Coupon) -> Either[str, Coupon]:
    if coupon.usage_limit and coupon.usage_count >= coupon.usage_limit:
        return Either.left(EXHAUSTED)
    return Either.right(coupon)


def _check_min_order(cart_total: float):
    def check(coupon: Coupon) -> Either[str, Coupon]:
        if coupon.min_order and cart_total < coupon.min_order:
            return Either.left(f"Minimum order of {coupon.min_order:g} not met")
        return Either.right(coupon)

    return check


def _check_shape(coupon: Coupon) -> Either[str, Coupon]:
    if coupon.type not in COUPON_TYPES:
        return Either.left(f"Unsupported coupon type: {coupon.type}")
    if coupon.type != FREE_SHIPPING and coupon.value is None:
        return Either.left("Coupon has no discount value")
    return Either.right(coupon)


# ============ Discount ============


def calculate_discount(coupon: Coupon, cart_total: float) -> float:
    """
    Discount against the cart total; never negative, never above the total.
    Free-shipping coupons discount the shipping fee instead (see apply_to_shipping).
    """
    if coupon.type == PERCENTAGE:
        discount = cart_total * coupon.value / 100
        if coupon.max_discount and discount > coupon.max_discount:
            discount = coupon.max_discount
    elif coupon.type == FIXED:
        # max_discount is only defined for percentage coupons
        discount = coupon.value
    else:
        discount = 0.0
    return max(0.0, min(discount, cart_total))


def validate_coupon(
    code: str, cart_total: float, coupons: Iterable[Coupon], now: datetime
) -> CouponResult:
    """
    Checks run in a fixed order and stop at the first failure:
    existence, expiry, usage cap, minimum order, then record shape.
    """
    checked = (
        find_coupon(code, coupons)
        .to_either(NOT_FOUND)
        .bind(_check_expiry(now))
        .bind(_check_usage)
        .bind(_check_min_order(cart_total))
        .bind(_check_shape)
    )

    def accept(coupon: Coupon) -> CouponResult:
        return CouponResult(
            valid=True,
            discount_amount=calculate_discount(coupon, cart_total),
            coupon_id=coupon.id,
            code=normalize_code(coupon.code),
            type=coupon.type,
            free_shipping=coupon.type == FREE_SHIPPING,
        )

    def reject(reason: str) -> CouponResult:
        log.debug("coupon %r rejected: %s", code, reason)
        return CouponResult.rejected(reason)

    return checked.fold(reject, accept)


def apply_to_shipping(shipping_fee: float, result: CouponResult) -> float:
    return 0.0 if result.valid and result.free_shipping else shipping_fee


def record_usage(ledger: UsageLedger, coupon_id: str) -> int:
    """One redemption; the increment itself is done atomically by the ledger."""
    count = ledger.increment(coupon_id, 1)
    log.info("coupon %s redeemed, usage count %d", coupon_id, count)
    return count


# ============ Admin helpers ============


def coupon_status(coupon: Coupon, now: datetime) -> str:
    """Read-time status for listings: inactive, expired, exhausted or active."""
    if not coupon.is_active:
        return "inactive"
    if _check_expiry(now)(coupon).is_left:
        return "expired"
    if _check_usage(coupon).is_left:
        return "exhausted"
    return "active"


def create_coupon(
    coupon_id: str,
    code: str,
    type: str,
    value: Optional[float],
    min_order: float = 0.0,
    max_discount: Optional[float] = None,
    usage_limit: Optional[int] = None,
    expiry: Optional[datetime] = None,
) -> Either[str, Coupon]:
    """New coupon record: upper-cased code and a zero usage counter."""
    if not normalize_code(code):
        return Either.left("Coupon code is required")

    coupon = Coupon(
        id=coupon_id,
        code=normalize_code(code),
        type=type,
        value=value,
        min_order=min_order,
        max_discount=max_discount if type == PERCENTAGE else None,
        usage_limit=usage_limit,
        usage_count=0,
        expiry=expiry,
        is_active=True,
    )
    return _check_shape(coupon)
