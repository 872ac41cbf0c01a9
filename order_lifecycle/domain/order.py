import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Iterable, Optional, Union

CENT = Decimal("0.01")
# largest value a NUMERIC(18, 2) column holds
MAX_MONEY = Decimal("9999999999999999.99")


class OrderStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


# Shipped and Delivered are resting states here: nothing moves an order into them.
ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset(),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


class OrderInvariantError(ValueError):
    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


class OrderTransitionError(Exception):
    def __init__(self, action: str, current: OrderStatus) -> None:
        self.action = action
        self.current = current
        super().__init__(f"Cannot {action} order with status {current.value}")


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_money(value: Union[Decimal, int, float, str], field_name: str = "unit_price") -> Decimal:
    # floats go through str so 10.1 stays 10.1 instead of its binary expansion
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise OrderInvariantError(field_name, f"Invalid monetary value: {value!r}") from e

    if not amount.is_finite():
        raise OrderInvariantError(field_name, f"Invalid monetary value: {value!r}")
    if abs(amount) > MAX_MONEY:
        raise OrderInvariantError(field_name, f"Monetary value cannot exceed {MAX_MONEY}")
    if amount != amount.quantize(CENT):
        raise OrderInvariantError(field_name, "Monetary value cannot have more than 2 decimal places")
    return amount.quantize(CENT)


@dataclass(frozen=True)
class NewOrderItem:
    product_name: str
    product_sku: str
    quantity: int
    unit_price: Union[Decimal, int, float, str]


@dataclass
class OrderItem:
    id: str
    product_name: str
    product_sku: str
    quantity: int
    unit_price: Decimal

    @property
    def total_price(self) -> Decimal:
        return self.quantity * self.unit_price

    @classmethod
    def create(cls, line: NewOrderItem) -> "OrderItem":
        if not line.product_name or not line.product_name.strip():
            raise OrderInvariantError("product_name", "Product name is required")
        if not line.product_sku or not line.product_sku.strip():
            raise OrderInvariantError("product_sku", "Product SKU is required")
        if isinstance(line.quantity, bool) or not isinstance(line.quantity, int) or line.quantity < 1:
            raise OrderInvariantError("quantity", "Quantity must be at least 1")

        unit_price = to_money(line.unit_price)
        if unit_price <= 0:
            raise OrderInvariantError("unit_price", "Unit price must be greater than 0")

        return cls(
            id=new_id(),
            product_name=line.product_name,
            product_sku=line.product_sku,
            quantity=line.quantity,
            unit_price=unit_price,
        )


@dataclass
class Order:
    id: str
    customer_name: str
    customer_email: str
    order_date: datetime
    items: list[OrderItem] = field(default_factory=list)
    status: OrderStatus = OrderStatus.PENDING
    confirmed_at: Optional[datetime] = None
    confirmed_by: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None

    @classmethod
    def place(
        cls,
        customer_name: str,
        customer_email: str,
        items: Iterable[Union[NewOrderItem, tuple]],
        order_date: Optional[datetime] = None,
    ) -> "Order":
        lines = [
            OrderItem.create(item if isinstance(item, NewOrderItem) else NewOrderItem(*item))
            for item in items
        ]
        if not lines:
            raise OrderInvariantError("items", "Order must contain at least one item")
        if sum((line.total_price for line in lines), Decimal("0.00")) > MAX_MONEY:
            raise OrderInvariantError("items", f"Order total cannot exceed {MAX_MONEY}")

        return cls(
            id=new_id(),
            customer_name=customer_name,
            customer_email=customer_email,
            order_date=order_date or utcnow(),
            items=lines,
        )

    @property
    def total_amount(self) -> Decimal:
        return sum((item.total_price for item in self.items), Decimal("0.00"))

    @property
    def is_terminal(self) -> bool:
        return not ALLOWED_TRANSITIONS[self.status]

    def can_transition_to(self, target: OrderStatus) -> bool:
        return target in ALLOWED_TRANSITIONS[self.status]

    def confirm(self, confirmed_by: str, at: Optional[datetime] = None) -> None:
        self._ensure_transition("confirm", OrderStatus.CONFIRMED)
        if not confirmed_by or not confirmed_by.strip():
            raise OrderInvariantError("confirmed_by", "Confirming actor is required")

        self.status = OrderStatus.CONFIRMED
        self.confirmed_at = at or utcnow()
        self.confirmed_by = confirmed_by

    def cancel(self, reason: str, at: Optional[datetime] = None) -> None:
        self._ensure_transition("cancel", OrderStatus.CANCELLED)
        if not reason or not reason.strip():
            raise OrderInvariantError("reason", "Cancellation reason is required")

        self.status = OrderStatus.CANCELLED
        self.cancelled_at = at or utcnow()
        self.cancellation_reason = reason

    def _ensure_transition(self, action: str, target: OrderStatus) -> None:
        if not self.can_transition_to(target):
            raise OrderTransitionError(action, self.status)
