from dataclasses import dataclass
from typing import Union

from order_lifecycle.domain.order import Order, OrderStatus


@dataclass(frozen=True)
class Ok:
    order: Order


@dataclass(frozen=True)
class NotFound:
    order_id: str

    @property
    def message(self) -> str:
        return f"Order with ID {self.order_id} not found"


@dataclass(frozen=True)
class InvalidTransition:
    order_id: str
    action: str
    current: OrderStatus

    @property
    def message(self) -> str:
        return f"Cannot {self.action} order with status {self.current.value}"


@dataclass(frozen=True)
class ValidationFailure:
    field: str
    message: str


OrderResult = Union[Ok, NotFound, InvalidTransition, ValidationFailure]
LookupResult = Union[Ok, NotFound]
