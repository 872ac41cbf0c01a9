import pytest
from httpx import AsyncClient

from order_lifecycle.api.orders import get_order_service
from order_lifecycle.core.broker import RabbitMQBroker
from order_lifecycle.core.config import settings
from order_lifecycle.main import app
from order_lifecycle.repositories.order import InMemoryOrderRepository, OrderStorageError
from order_lifecycle.services.order import OrderService


ORDER_PAYLOAD = {
    "customer_name": "Jane Doe",
    "customer_email": "jane.doe@acme-shop.com",
    "items": [
        {"product_name": "Product 1", "product_sku": "SKU1", "quantity": 2, "unit_price": 10.50},
        {"product_name": "Product 2", "product_sku": "SKU2", "quantity": 1, "unit_price": 15.25}
    ]
}


async def create_order(client: AsyncClient) -> dict:
    response = await client.post("/api/orders", json=ORDER_PAYLOAD)
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_create_order_success(client: AsyncClient):
    response = await client.post("/api/orders", json=ORDER_PAYLOAD)

    assert response.status_code == 201
    data = response.json()

    assert data["customer_name"] == "Jane Doe"
    assert data["customer_email"] == "jane.doe@acme-shop.com"
    assert data["total_amount"] == 36.25
    assert data["status"] == "Pending"
    assert data["cancelled_at"] is None
    assert data["cancellation_reason"] is None
    assert "id" in data
    assert "order_date" in data
    assert [item["total_price"] for item in data["items"]] == [21.0, 15.25]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {**ORDER_PAYLOAD, "items": []},
        {**ORDER_PAYLOAD, "customer_email": "not-an-email"},
        {**ORDER_PAYLOAD, "customer_name": ""},
        {**ORDER_PAYLOAD, "customer_name": "x" * 101},
        {key: value for key, value in ORDER_PAYLOAD.items() if key != "customer_name"},
        {**ORDER_PAYLOAD, "items": [{"product_name": "P", "product_sku": "S", "quantity": 0, "unit_price": 10.50}]},
        {**ORDER_PAYLOAD, "items": [{"product_name": "P", "product_sku": "S", "quantity": -1, "unit_price": 10.50}]},
        {**ORDER_PAYLOAD, "items": [{"product_name": "P", "product_sku": "S", "quantity": 1, "unit_price": 0}]},
        {**ORDER_PAYLOAD, "items": [{"product_name": "P", "product_sku": "S", "quantity": 1, "unit_price": -10.50}]},
        {**ORDER_PAYLOAD, "items": [{"product_name": "", "product_sku": "S", "quantity": 1, "unit_price": 1}]},
        {**ORDER_PAYLOAD, "items": [{"product_name": "P", "product_sku": "S" * 51, "quantity": 1, "unit_price": 1}]},
    ],
)
async def test_create_order_invalid_payload(client: AsyncClient, payload):
    response = await client.post("/api/orders", json=payload)

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_get_order_success(client: AsyncClient):
    created = await create_order(client)

    response = await client.get(f"/api/orders/{created['id']}")

    assert response.status_code == 200
    assert response.json() == created


@pytest.mark.asyncio
async def test_get_order_not_found(client: AsyncClient):
    response = await client.get("/api/orders/non-existent-id")

    assert response.status_code == 404
    assert response.json()["detail"] == "Order with ID non-existent-id not found"


@pytest.mark.asyncio
async def test_list_orders_newest_first(client: AsyncClient):
    first = await create_order(client)
    second = await create_order(client)

    response = await client.get("/api/orders")

    assert response.status_code == 200
    assert [order["id"] for order in response.json()] == [second["id"], first["id"]]


@pytest.mark.asyncio
async def test_confirm_order(client: AsyncClient):
    created = await create_order(client)

    response = await client.post(
        f"/api/orders/{created['id']}/confirm",
        json={"confirmed_by": "manager@acme-shop.com"}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "Confirmed"
    assert data["confirmed_by"] == "manager@acme-shop.com"
    assert data["confirmed_at"] is not None


@pytest.mark.asyncio
async def test_confirm_twice_is_rejected(client: AsyncClient):
    created = await create_order(client)
    await client.post(f"/api/orders/{created['id']}/confirm", json={"confirmed_by": "manager"})

    response = await client.post(f"/api/orders/{created['id']}/confirm", json={"confirmed_by": "manager"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot confirm order with status Confirmed"


@pytest.mark.asyncio
async def test_cancel_confirmed_order(client: AsyncClient):
    created = await create_order(client)
    await client.post(f"/api/orders/{created['id']}/confirm", json={"confirmed_by": "manager"})

    response = await client.post(
        f"/api/orders/{created['id']}/cancel",
        json={"reason": "Customer request"}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "Cancelled"
    assert data["cancellation_reason"] == "Customer request"
    assert data["cancelled_at"] is not None
    assert data["confirmed_by"] == "manager"


@pytest.mark.asyncio
async def test_cancel_cancelled_order_is_rejected(client: AsyncClient):
    created = await create_order(client)
    await client.post(f"/api/orders/{created['id']}/cancel", json={"reason": "Customer request"})

    response = await client.post(f"/api/orders/{created['id']}/cancel", json={"reason": "Again"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot cancel order with status Cancelled"

    stored = (await client.get(f"/api/orders/{created['id']}")).json()
    assert stored["cancellation_reason"] == "Customer request"


@pytest.mark.asyncio
async def test_cancel_with_blank_reason(client: AsyncClient):
    created = await create_order(client)

    empty = await client.post(f"/api/orders/{created['id']}/cancel", json={"reason": ""})
    blank = await client.post(f"/api/orders/{created['id']}/cancel", json={"reason": "   "})

    assert empty.status_code == 422
    assert blank.status_code == 400
    assert blank.json()["detail"] == "Cancellation reason is required"


@pytest.mark.asyncio
async def test_cancel_unknown_order(client: AsyncClient):
    response = await client.post("/api/orders/non-existent-id/cancel", json={"reason": "Customer request"})

    assert response.status_code == 404

    listing = await client.get("/api/orders")
    assert listing.json() == []


@pytest.mark.asyncio
async def test_storage_failure_returns_server_error(client: AsyncClient):
    class UnavailableRepository(InMemoryOrderRepository):
        async def get_all(self):
            raise OrderStorageError("connection refused")

    app.dependency_overrides[get_order_service] = lambda: OrderService(UnavailableRepository())

    response = await client.get("/api/orders")

    assert response.status_code == 500
    data = response.json()
    assert data["status_code"] == 500
    assert data["message"] == "An error occurred while processing your request"
    assert "timestamp" in data


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()

    assert data["service"] == settings.service_name
    assert data["checks"]["database"] == {"status": "up"}
    assert data["checks"]["outbox"] == {"status": "up", "pending_events": 0}
    assert data["checks"]["rabbitmq"]["status"] == "down"
    assert data["status"] == "degraded"


@pytest.mark.asyncio
async def test_health_check_reports_outbox_backlog(client: AsyncClient, monkeypatch):
    monkeypatch.setattr(RabbitMQBroker, "is_connected", property(lambda self: True))
    await client.post("/api/orders", json=ORDER_PAYLOAD)

    response = await client.get("/health")

    data = response.json()
    assert data["status"] == "healthy"
    assert data["checks"]["outbox"]["pending_events"] == 1
