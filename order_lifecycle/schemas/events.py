from datetime import datetime
from typing import ClassVar, List
from pydantic import BaseModel

from order_lifecycle.domain.order import Order
from order_lifecycle.schemas.order import Money


class OrderItemPayload(BaseModel):
    id: str
    product_name: str
    product_sku: str
    quantity: int
    unit_price: Money
    total_price: Money

    model_config = {"from_attributes": True}


class OrderLifecycleEvent(BaseModel):
    event_type: ClassVar[str]

    order_id: str
    status: str


class OrderCreatedEvent(OrderLifecycleEvent):
    event_type: ClassVar[str] = "order.created"

    customer_name: str
    customer_email: str
    items: List[OrderItemPayload]
    total_amount: Money
    order_date: datetime

    @classmethod
    def from_order(cls, order: Order) -> "OrderCreatedEvent":
        return cls(
            order_id=order.id,
            status=order.status.value,
            customer_name=order.customer_name,
            customer_email=order.customer_email,
            items=[OrderItemPayload.model_validate(item) for item in order.items],
            total_amount=order.total_amount,
            order_date=order.order_date,
        )


class OrderConfirmedEvent(OrderLifecycleEvent):
    event_type: ClassVar[str] = "order.confirmed"

    confirmed_by: str
    confirmed_at: datetime

    @classmethod
    def from_order(cls, order: Order) -> "OrderConfirmedEvent":
        return cls(
            order_id=order.id,
            status=order.status.value,
            confirmed_by=order.confirmed_by,
            confirmed_at=order.confirmed_at,
        )


class OrderCancelledEvent(OrderLifecycleEvent):
    event_type: ClassVar[str] = "order.cancelled"

    cancellation_reason: str
    cancelled_at: datetime

    @classmethod
    def from_order(cls, order: Order) -> "OrderCancelledEvent":
        return cls(
            order_id=order.id,
            status=order.status.value,
            cancellation_reason=order.cancellation_reason,
            cancelled_at=order.cancelled_at,
        )
