from order_lifecycle.repositories.order import (
    DuplicateOrderError,
    InMemoryOrderRepository,
    OrderNotStoredError,
    OrderRepository,
    OrderStorageError,
    SqlAlchemyOrderRepository,
)
from order_lifecycle.repositories.outbox import OutboxRepository

__all__ = [
    "DuplicateOrderError",
    "InMemoryOrderRepository",
    "OrderNotStoredError",
    "OrderRepository",
    "OrderStorageError",
    "OutboxRepository",
    "SqlAlchemyOrderRepository",
]
