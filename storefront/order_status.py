from dataclasses import dataclass, replace
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from .domain import Order, StatusChange
from .ftypes import Either
from .logging import get_logger

log = get_logger("orders")

PENDING = "pending"
CONFIRMED = "confirmed"
PROCESSING = "processing"
SHIPPED = "shipped"
OUT_FOR_DELIVERY = "out_for_delivery"
DELIVERED = "delivered"
CANCELLED = "cancelled"
REFUNDED = "refunded"


@dataclass(frozen=True)
class StatusConfig:
    label: str
    color: str
    icon: str
    next_status: Optional[str]
    can_cancel: bool


STATUS_CONFIG: Dict[str, StatusConfig] = {
    PENDING: StatusConfig("Pending", "#F59E0B", "time-outline", CONFIRMED, True),
    CONFIRMED: StatusConfig("Confirmed", "#3B82F6", "checkmark-circle-outline", PROCESSING, True),
    PROCESSING: StatusConfig("Processing", "#8B5CF6", "cube-outline", SHIPPED, True),
    SHIPPED: StatusConfig("Shipped", "#0EA5E9", "airplane-outline", OUT_FOR_DELIVERY, False),
    OUT_FOR_DELIVERY: StatusConfig("Out for delivery", "#14B8A6", "car-outline", DELIVERED, False),
    DELIVERED: StatusConfig("Delivered", "#10B981", "checkmark-done-circle", None, False),
    CANCELLED: StatusConfig("Cancelled", "#EF4444", "close-circle-outline", None, False),
    REFUNDED: StatusConfig("Refunded", "#6B7280", "refresh-circle-outline", None, False),
}

STATUS_FLOW: Tuple[str, ...] = (
    PENDING,
    CONFIRMED,
    PROCESSING,
    SHIPPED,
    OUT_FOR_DELIVERY,
    DELIVERED,
)

# absorbing: nothing leaves these
TERMINAL_STATUSES = (CANCELLED, REFUNDED)


def _config(status: str) -> Either[str, StatusConfig]:
    cfg = STATUS_CONFIG.get(status)
    return Either.right(cfg) if cfg else Either.left(f"Unknown order status: {status}")


def next_status(status: str) -> Optional[str]:
    return _config(status).map(lambda c: c.next_status).get_or_else(None)


def can_cancel(status: str) -> bool:
    return _config(status).map(lambda c: c.can_cancel).get_or_else(False)


def transition(order: Order, status: str, now: datetime, note: str = "") -> Order:
    """New order in `status` with one entry appended to its history."""
    entry = StatusChange(status=status, timestamp=now, note=note)
    log.info("order %s: %s -> %s", order.id, order.status, status)
    return replace(order, status=status, status_history=order.status_history + (entry,))


# ============ Admin actions ============


def advance(order: Order, now: datetime, note: str = "") -> Either[str, Order]:
    """Move to the single legal next status; fails once the flow has ended."""

    def step(cfg: StatusConfig) -> Either[str, Order]:
        if cfg.next_status is None:
            return Either.left(f"Order in status '{order.status}' cannot be advanced")
        return Either.right(transition(order, cfg.next_status, now, note))

    return _config(order.status).bind(step)


def cancel(order: Order, reason: str, now: datetime) -> Either[str, Order]:
    if not can_cancel(order.status):
        return Either.left(f"Order in status '{order.status}' can no longer be cancelled")
    return Either.right(transition(order, CANCELLED, now, reason))


def refund(order: Order, reason: str, now: datetime) -> Either[str, Order]:
    """Allowed from any status except the absorbing ones."""
    if order.status in TERMINAL_STATUSES:
        return Either.left(f"Order in status '{order.status}' cannot be refunded")
    return _config(order.status).map(lambda _: transition(order, REFUNDED, now, reason))


# ============ Timeline ============


def get_status_flow(current_status: str) -> List[dict]:
    """
    The six flow steps annotated by position relative to `current_status`.
    Statuses outside the flow mark every step as upcoming.
    """
    current = STATUS_FLOW.index(current_status) if current_status in STATUS_FLOW else -1

    return [
        {
            "status": status,
            "label": STATUS_CONFIG[status].label,
            "color": STATUS_CONFIG[status].color,
            "icon": STATUS_CONFIG[status].icon,
            "is_completed": index < current,
            "is_current": index == current,
            "is_upcoming": index > current,
        }
        for index, status in enumerate(STATUS_FLOW)
    ]


def format_order_id(order_id: str) -> str:
    return f"ORD-{order_id[:6].upper()}" if order_id else ""
