import copy
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from order_lifecycle.domain.order import CENT, Order, OrderItem, OrderStatus
from order_lifecycle.models.order import OrderItemRecord, OrderRecord


class OrderStorageError(Exception):
    pass


class OrderNotStoredError(OrderStorageError, LookupError):
    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order {order_id} is not stored")
        self.order_id = order_id


class DuplicateOrderError(OrderStorageError):
    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order {order_id} already exists")
        self.order_id = order_id


class OrderRepository(ABC):
    @abstractmethod
    async def get_all(self) -> List[Order]:
        ...

    @abstractmethod
    async def get_by_id(self, order_id: str) -> Optional[Order]:
        ...

    @abstractmethod
    async def create(self, order: Order) -> Order:
        ...

    @abstractmethod
    async def update(self, order: Order) -> Order:
        ...

    @abstractmethod
    async def delete(self, order_id: str) -> bool:
        ...

    @abstractmethod
    async def exists(self, order_id: str) -> bool:
        ...


class InMemoryOrderRepository(OrderRepository):
    def __init__(self) -> None:
        self._orders: dict[str, Order] = {}

    async def get_all(self) -> List[Order]:
        # same ordering as the SQL backend: order_date, then id, both descending
        ranked = sorted(
            self._orders.values(),
            key=lambda order: (order.order_date, order.id),
            reverse=True,
        )
        return [copy.deepcopy(order) for order in ranked]

    async def get_by_id(self, order_id: str) -> Optional[Order]:
        order = self._orders.get(order_id)
        return copy.deepcopy(order) if order else None

    async def create(self, order: Order) -> Order:
        if order.id in self._orders:
            raise DuplicateOrderError(order.id)
        self._orders[order.id] = copy.deepcopy(order)
        return copy.deepcopy(order)

    async def update(self, order: Order) -> Order:
        if order.id not in self._orders:
            raise OrderNotStoredError(order.id)
        self._orders[order.id] = copy.deepcopy(order)
        return copy.deepcopy(order)

    async def delete(self, order_id: str) -> bool:
        return self._orders.pop(order_id, None) is not None

    async def exists(self, order_id: str) -> bool:
        return order_id in self._orders


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _to_domain(record: OrderRecord) -> Order:
    return Order(
        id=record.id,
        customer_name=record.customer_name,
        customer_email=record.customer_email,
        order_date=_as_utc(record.order_date),
        status=OrderStatus(record.status),
        items=[
            OrderItem(
                id=item.id,
                product_name=item.product_name,
                product_sku=item.product_sku,
                quantity=item.quantity,
                unit_price=Decimal(item.unit_price).quantize(CENT),
            )
            for item in record.items
        ],
        confirmed_at=_as_utc(record.confirmed_at),
        confirmed_by=record.confirmed_by,
        cancelled_at=_as_utc(record.cancelled_at),
        cancellation_reason=record.cancellation_reason,
    )


def _apply_state(record: OrderRecord, order: Order) -> None:
    record.status = order.status.value
    record.total_amount = order.total_amount
    record.confirmed_at = order.confirmed_at
    record.confirmed_by = order.confirmed_by
    record.cancelled_at = order.cancelled_at
    record.cancellation_reason = order.cancellation_reason


class SqlAlchemyOrderRepository(OrderRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_all(self) -> List[Order]:
        result = await self.session.execute(
            select(OrderRecord)
            .options(selectinload(OrderRecord.items))
            .order_by(OrderRecord.order_date.desc(), OrderRecord.id.desc())
            .execution_options(populate_existing=True)
        )
        return [_to_domain(record) for record in result.scalars().all()]

    async def get_by_id(self, order_id: str) -> Optional[Order]:
        record = await self._load(order_id)
        return _to_domain(record) if record else None

    async def create(self, order: Order) -> Order:
        record = OrderRecord(
            id=order.id,
            customer_name=order.customer_name,
            customer_email=order.customer_email,
            order_date=order.order_date,
            items=[
                OrderItemRecord(
                    id=item.id,
                    position=position,
                    product_name=item.product_name,
                    product_sku=item.product_sku,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                )
                for position, item in enumerate(order.items)
            ],
        )
        _apply_state(record, order)

        self.session.add(record)
        await self._commit()
        return await self._reload(order.id)

    async def update(self, order: Order) -> Order:
        record = await self._load(order.id)
        if record is None:
            raise OrderNotStoredError(order.id)

        _apply_state(record, order)
        await self._commit()
        return await self._reload(order.id)

    async def delete(self, order_id: str) -> bool:
        record = await self._load(order_id)
        if record is None:
            return False

        await self.session.delete(record)
        await self._commit()
        return True

    async def exists(self, order_id: str) -> bool:
        result = await self.session.execute(
            select(OrderRecord.id).where(OrderRecord.id == order_id)
        )
        return result.scalar_one_or_none() is not None

    async def _load(self, order_id: str) -> Optional[OrderRecord]:
        result = await self.session.execute(
            select(OrderRecord)
            .options(selectinload(OrderRecord.items))
            .where(OrderRecord.id == order_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _reload(self, order_id: str) -> Order:
        record = await self._load(order_id)
        if record is None:
            raise OrderNotStoredError(order_id)
        return _to_domain(record)

    async def _commit(self) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise
