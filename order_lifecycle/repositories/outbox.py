from datetime import datetime, timedelta, timezone
from typing import List
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from order_lifecycle.models.outbox import OutboxEvent
from order_lifecycle.schemas.events import OrderLifecycleEvent


class OutboxRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # flush only: the order repository's commit carries the event with it
    async def add_event(self, event: OrderLifecycleEvent) -> OutboxEvent:
        outbox_event = OutboxEvent(
            order_id=event.order_id,
            event_type=event.event_type,
            payload=event.model_dump_json(),
            created_at=datetime.now(timezone.utc)
        )
        self.session.add(outbox_event)
        await self.session.flush()
        return outbox_event

    async def get_pending(self, max_attempts: int, limit: int = 100) -> List[OutboxEvent]:
        result = await self.session.execute(
            select(OutboxEvent)
            .where(OutboxEvent.published_at.is_(None))
            .where(OutboxEvent.attempts < max_attempts)
            .order_by(OutboxEvent.created_at, OutboxEvent.id)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_pending(self) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(OutboxEvent).where(OutboxEvent.published_at.is_(None))
        )
        return result.scalar_one()

    async def get_for_order(self, order_id: str) -> List[OutboxEvent]:
        result = await self.session.execute(
            select(OutboxEvent)
            .where(OutboxEvent.order_id == order_id)
            .order_by(OutboxEvent.id)
        )
        return list(result.scalars().all())

    async def mark_published(self, outbox_event: OutboxEvent) -> None:
        now = datetime.now(timezone.utc)
        outbox_event.attempts += 1
        outbox_event.last_attempt_at = now
        outbox_event.published_at = now
        outbox_event.last_error = None
        await self.session.flush()

    async def mark_failed(self, outbox_event: OutboxEvent, error: str) -> None:
        outbox_event.attempts += 1
        outbox_event.last_attempt_at = datetime.now(timezone.utc)
        outbox_event.last_error = error
        await self.session.flush()

    async def purge_published(self, older_than: timedelta) -> int:
        cutoff = datetime.now(timezone.utc) - older_than
        result = await self.session.execute(
            select(OutboxEvent)
            .where(OutboxEvent.published_at.isnot(None))
            .where(OutboxEvent.published_at < cutoff)
        )
        stale = result.scalars().all()

        for outbox_event in stale:
            await self.session.delete(outbox_event)

        await self.session.flush()
        return len(stale)
