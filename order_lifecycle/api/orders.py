import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from order_lifecycle.core.database import get_db
from order_lifecycle.repositories.order import SqlAlchemyOrderRepository
from order_lifecycle.repositories.outbox import OutboxRepository
from order_lifecycle.services.order import OrderService
from order_lifecycle.services.results import (
    InvalidTransition,
    NotFound,
    Ok,
    OrderResult,
    ValidationFailure,
)
from order_lifecycle.schemas.order import (
    CancelOrderRequest,
    ConfirmOrderRequest,
    OrderCreate,
    OrderResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["orders"])


def get_order_service(db: AsyncSession = Depends(get_db)) -> OrderService:
    repository = SqlAlchemyOrderRepository(db)
    outbox_repository = OutboxRepository(db)
    return OrderService(repository, outbox_repository)


def to_response(result: OrderResult) -> OrderResponse:
    if isinstance(result, Ok):
        return OrderResponse.model_validate(result.order)
    if isinstance(result, NotFound):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result.message)
    if isinstance(result, InvalidTransition):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.message)
    if isinstance(result, ValidationFailure):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.message)
    raise TypeError(f"Unexpected order result: {result!r}")


@router.get("", response_model=List[OrderResponse])
async def list_orders(
    service: OrderService = Depends(get_order_service)
) -> List[OrderResponse]:
    orders = await service.get_all()
    return [OrderResponse.model_validate(order) for order in orders]


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    service: OrderService = Depends(get_order_service)
) -> OrderResponse:
    return to_response(await service.get_by_id(order_id))


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    order_data: OrderCreate,
    service: OrderService = Depends(get_order_service)
) -> OrderResponse:
    logger.info(f"Creating order for customer: {order_data.customer_email}")
    result = await service.create(
        order_data.customer_name,
        order_data.customer_email,
        [item.to_new_item() for item in order_data.items]
    )
    return to_response(result)


@router.post("/{order_id}/confirm", response_model=OrderResponse)
async def confirm_order(
    order_id: str,
    request: ConfirmOrderRequest,
    service: OrderService = Depends(get_order_service)
) -> OrderResponse:
    return to_response(await service.confirm(order_id, request.confirmed_by))


@router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: str,
    request: CancelOrderRequest,
    service: OrderService = Depends(get_order_service)
) -> OrderResponse:
    return to_response(await service.cancel(order_id, request.reason))
