import asyncio
import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from order_lifecycle.core.broker import broker
from order_lifecycle.models.outbox import OutboxEvent
from order_lifecycle.repositories.outbox import OutboxRepository

logger = logging.getLogger(__name__)


class OutboxProcessor:
    # events that used up max_attempts stay in the table with last_error set

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        poll_interval: int = 5,
        batch_size: int = 100,
        max_attempts: int = 3,
        retention: timedelta = timedelta(hours=24)
    ) -> None:
        self.session_maker = session_maker
        self.poll_interval = poll_interval
        self.batch_size = batch_size
        self.max_attempts = max_attempts
        self.retention = retention
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.is_running:
            logger.warning("Outbox processor is already running")
            return

        self._task = asyncio.create_task(self._run())
        logger.info(
            f"Outbox processor started (interval={self.poll_interval}s, "
            f"batch={self.batch_size}, max_attempts={self.max_attempts})"
        )

    async def stop(self) -> None:
        if self._task is None:
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Outbox processor stopped")

    async def _run(self) -> None:
        while True:
            try:
                published = await self.process_batch()
                if published < self.batch_size:
                    await self.purge_published()
            except Exception as e:
                logger.error(f"Outbox processor iteration failed: {e}", exc_info=True)

            await asyncio.sleep(self.poll_interval)

    async def process_batch(self) -> int:
        async with self.session_maker() as session:
            repository = OutboxRepository(session)
            pending = await repository.get_pending(self.max_attempts, limit=self.batch_size)
            if not pending:
                return 0

            published = 0
            for outbox_event in pending:
                if await self._publish(outbox_event, repository):
                    published += 1

            await session.commit()

        logger.debug(f"Outbox batch done: {published}/{len(pending)} events published")
        return published

    async def _publish(self, outbox_event: OutboxEvent, repository: OutboxRepository) -> bool:
        try:
            await broker.publish(outbox_event.event_type, outbox_event.payload.encode())
        except Exception as e:
            await repository.mark_failed(outbox_event, f"{type(e).__name__}: {e}")
            level = logging.ERROR if outbox_event.attempts >= self.max_attempts else logging.WARNING
            logger.log(
                level,
                f"Publishing {outbox_event.event_type} for order {outbox_event.order_id} failed "
                f"(attempt {outbox_event.attempts}/{self.max_attempts}): {e}"
            )
            return False

        await repository.mark_published(outbox_event)
        logger.info(f"Published {outbox_event.event_type} for order {outbox_event.order_id}")
        return True

    async def purge_published(self) -> int:
        async with self.session_maker() as session:
            deleted = await OutboxRepository(session).purge_published(self.retention)
            await session.commit()

        if deleted:
            logger.info(f"Purged {deleted} published outbox events")
        return deleted
