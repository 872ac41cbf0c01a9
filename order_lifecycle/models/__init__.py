from order_lifecycle.core.database import Base
from order_lifecycle.models.order import OrderItemRecord, OrderRecord
from order_lifecycle.models.outbox import OutboxEvent

__all__ = ["Base", "OrderItemRecord", "OrderRecord", "OutboxEvent"]
