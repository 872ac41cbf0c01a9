from datetime import datetime
from decimal import Decimal
from typing import Annotated, List
from pydantic import BaseModel, EmailStr, Field, PlainSerializer, field_validator

from order_lifecycle.domain.order import NewOrderItem, OrderStatus


# Decimal on the way in, JSON number on the way out
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class OrderItemCreate(BaseModel):
    product_name: str = Field(min_length=1, max_length=200)
    product_sku: str = Field(min_length=1, max_length=50)
    quantity: int = Field(gt=0)
    unit_price: Decimal = Field(gt=0, max_digits=18, decimal_places=2)

    def to_new_item(self) -> NewOrderItem:
        return NewOrderItem(
            product_name=self.product_name,
            product_sku=self.product_sku,
            quantity=self.quantity,
            unit_price=self.unit_price,
        )


class OrderCreate(BaseModel):
    customer_name: str = Field(min_length=1, max_length=100)
    customer_email: EmailStr
    items: List[OrderItemCreate] = Field(min_length=1)

    @field_validator("customer_name")
    @classmethod
    def validate_customer_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Customer name is required")
        return v


class ConfirmOrderRequest(BaseModel):
    confirmed_by: str = Field(min_length=1, max_length=100)


class CancelOrderRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=500)


class OrderItemResponse(BaseModel):
    id: str
    product_name: str
    product_sku: str
    quantity: int
    unit_price: Money
    total_price: Money

    model_config = {"from_attributes": True}


class OrderResponse(BaseModel):
    id: str
    customer_name: str
    customer_email: str
    order_date: datetime
    status: OrderStatus
    total_amount: Money
    items: List[OrderItemResponse]
    confirmed_at: datetime | None = None
    confirmed_by: str | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None

    model_config = {"from_attributes": True}


class ErrorResponse(BaseModel):
    message: str
    status_code: int
    timestamp: datetime
