import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from order_lifecycle.core.logging import setup_logging
from order_lifecycle.core.broker import broker
from order_lifecycle.core.config import settings
from order_lifecycle.core.database import engine, async_session_maker
from order_lifecycle.models import Base
from order_lifecycle.repositories.order import OrderStorageError
from order_lifecycle.schemas.order import ErrorResponse
from order_lifecycle.api.orders import router as orders_router
from order_lifecycle.api.health import router as health_router
from order_lifecycle.services.outbox_processor import OutboxProcessor

logger = logging.getLogger(__name__)

outbox_processor = OutboxProcessor(
    async_session_maker,
    poll_interval=settings.outbox_poll_interval,
    batch_size=settings.outbox_batch_size,
    max_attempts=settings.outbox_max_attempts,
    retention=timedelta(hours=settings.outbox_retention_hours)
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # orders are still accepted without a broker; events wait in the outbox
    try:
        await broker.connect()
    except Exception as e:
        logger.error(f"Could not connect to RabbitMQ: {e}", exc_info=True)

    await outbox_processor.start()

    yield

    await outbox_processor.stop()
    await broker.close()
    await engine.dispose()


app = FastAPI(
    title="Order Lifecycle Service",
    description="Order creation, confirmation and cancellation",
    version="0.1.0",
    lifespan=lifespan
)

cors_origins = settings.cors_origins.split(",") if settings.cors_origins else ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SQLAlchemyError)
@app.exception_handler(OrderStorageError)
async def storage_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Storage failure on {request.method} {request.url.path}: {exc}", exc_info=exc)
    body = ErrorResponse(
        message="An error occurred while processing your request",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        timestamp=datetime.now(timezone.utc)
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body.model_dump(mode="json")
    )


app.include_router(health_router)
app.include_router(orders_router)
