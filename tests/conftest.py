import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import NullPool

from order_lifecycle.main import app
from order_lifecycle.core.database import get_db
from order_lifecycle.core.broker import broker
from order_lifecycle.models import Base
from order_lifecycle.repositories.order import InMemoryOrderRepository
from order_lifecycle.services.order import OrderService


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}",
        poolclass=NullPool,
        echo=False
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def test_async_session_maker(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )


@pytest_asyncio.fixture
async def db_session(test_async_session_maker):
    async with test_async_session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def client(test_async_session_maker):
    async def override_get_db():
        async with test_async_session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def memory_repository():
    return InMemoryOrderRepository()


@pytest.fixture
def service(memory_repository):
    return OrderService(memory_repository)


@pytest.fixture
def mock_broker(monkeypatch):
    published_messages = []

    async def mock_publish(routing_key: str, message: bytes):
        published_messages.append({
            "routing_key": routing_key,
            "message": message
        })

    monkeypatch.setattr(broker, "publish", mock_publish)

    return published_messages
