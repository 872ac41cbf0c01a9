from order_lifecycle.domain.order import (
    NewOrderItem,
    Order,
    OrderInvariantError,
    OrderItem,
    OrderStatus,
    OrderTransitionError,
)

__all__ = [
    "NewOrderItem",
    "Order",
    "OrderInvariantError",
    "OrderItem",
    "OrderStatus",
    "OrderTransitionError",
]
