import logging
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from order_lifecycle.core.broker import broker
from order_lifecycle.core.config import settings
from order_lifecycle.core.database import get_db
from order_lifecycle.repositories.outbox import OutboxRepository

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def check_database(db: AsyncSession) -> dict[str, str]:
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {"status": "down", "detail": str(e)}
    return {"status": "up"}


async def check_outbox(db: AsyncSession) -> dict[str, str | int]:
    try:
        pending = await OutboxRepository(db).count_pending()
    except Exception as e:
        logger.error(f"Outbox health check failed: {e}")
        return {"status": "down", "detail": str(e)}
    return {"status": "up", "pending_events": pending}


def check_broker() -> dict[str, str]:
    if broker.is_connected:
        return {"status": "up"}
    return {"status": "down", "detail": "not connected"}


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)) -> dict:
    checks = {
        "database": await check_database(db),
        "outbox": await check_outbox(db),
        "rabbitmq": check_broker(),
    }

    if checks["database"]["status"] == "down":
        overall = "unhealthy"
    elif any(check["status"] == "down" for check in checks.values()):
        # writes still succeed, events queue up in the outbox
        overall = "degraded"
    else:
        overall = "healthy"

    return {"service": settings.service_name, "status": overall, "checks": checks}
