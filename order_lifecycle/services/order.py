import logging
from typing import Callable, Iterable, List, Optional, Type, Union

from order_lifecycle.domain.order import (
    NewOrderItem,
    Order,
    OrderInvariantError,
    OrderTransitionError,
)
from order_lifecycle.repositories.order import OrderRepository
from order_lifecycle.repositories.outbox import OutboxRepository
from order_lifecycle.schemas.events import (
    OrderCancelledEvent,
    OrderConfirmedEvent,
    OrderCreatedEvent,
    OrderLifecycleEvent,
)
from order_lifecycle.services.results import (
    InvalidTransition,
    LookupResult,
    NotFound,
    Ok,
    OrderResult,
    ValidationFailure,
)

logger = logging.getLogger(__name__)


class OrderService:
    def __init__(
        self,
        repository: OrderRepository,
        outbox_repository: Optional[OutboxRepository] = None
    ) -> None:
        self.repository = repository
        self.outbox_repository = outbox_repository

    async def create(
        self,
        customer_name: str,
        customer_email: str,
        items: Iterable[Union[NewOrderItem, tuple]]
    ) -> OrderResult:
        try:
            order = Order.place(customer_name, customer_email, items)
        except OrderInvariantError as e:
            logger.warning(f"Rejected order for {customer_email}: {e.message}")
            return ValidationFailure(field=e.field, message=e.message)

        await self._record(OrderCreatedEvent.from_order(order))
        created_order = await self.repository.create(order)

        logger.info(f"Order created: {created_order.id}, total: {created_order.total_amount}")
        return Ok(created_order)

    async def get_by_id(self, order_id: str) -> LookupResult:
        order = await self.repository.get_by_id(order_id)
        if order is None:
            return NotFound(order_id)
        return Ok(order)

    async def get_all(self) -> List[Order]:
        return await self.repository.get_all()

    async def confirm(self, order_id: str, confirmed_by: str) -> OrderResult:
        return await self._transition(
            order_id,
            lambda order: order.confirm(confirmed_by),
            OrderConfirmedEvent
        )

    async def cancel(self, order_id: str, reason: str) -> OrderResult:
        return await self._transition(
            order_id,
            lambda order: order.cancel(reason),
            OrderCancelledEvent
        )

    async def _transition(
        self,
        order_id: str,
        apply: Callable[[Order], None],
        event_type: Type[Union[OrderConfirmedEvent, OrderCancelledEvent]]
    ) -> OrderResult:
        order = await self.repository.get_by_id(order_id)
        if order is None:
            logger.warning(f"Order not found: {order_id}")
            return NotFound(order_id)

        # the loaded order is a detached copy; a rejected change never reaches storage
        try:
            apply(order)
        except OrderTransitionError as e:
            logger.warning(f"Rejected transition for order {order_id}: {e}")
            return InvalidTransition(order_id=order_id, action=e.action, current=e.current)
        except OrderInvariantError as e:
            logger.warning(f"Rejected transition for order {order_id}: {e.message}")
            return ValidationFailure(field=e.field, message=e.message)

        await self._record(event_type.from_order(order))
        updated_order = await self.repository.update(order)

        logger.info(f"Order updated: {updated_order.id}, status: {updated_order.status.value}")
        return Ok(updated_order)

    async def _record(self, event: OrderLifecycleEvent) -> None:
        if self.outbox_repository is None:
            return
        await self.outbox_repository.add_event(event)
