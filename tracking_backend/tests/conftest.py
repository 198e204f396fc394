"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from tracking_backend.app.main import app
from tracking_backend.app.db.session import get_db, Base
from tracking_backend.app.core.jwt import create_access_token
import tracking_backend.app.core.redis_client as redis_client_module
from tracking_backend.app.domain.workflow.aggregate_resolver import AggregateStatusResolver
from tracking_backend.app.domain.workflow.update_transaction import PackageUpdateTransaction
from tracking_backend.app.models.enums import ActorRole
from tracking_backend.app.models.package_status import PackageStatus
from tracking_backend.app.schemas.order import OrderRecord
from tracking_backend.app.schemas.package import PackageRecord
from tracking_backend.app.services.dual_store import SqlAlchemyDualStore

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}

    async def ping(self):
        return True

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value
        return True

    async def delete(self, key):
        if key in self.store:
            del self.store[key]
            return 1
        return 0

    async def flushdb(self):
        self.store = {}


mock_redis = MockRedis()


@pytest.fixture(scope="session", autouse=True)
def apply_overrides():
    """Apply overrides once for the session."""
    original_client = redis_client_module.redis_client
    redis_client_module.redis_client = mock_redis

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield

    # Restore and clear
    app.dependency_overrides = {}
    redis_client_module.redis_client = original_client


@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await mock_redis.flushdb()

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def repository(db_session):
    return SqlAlchemyDualStore(db_session)


@pytest.fixture
def transaction(repository):
    return PackageUpdateTransaction(repository)


@pytest.fixture
def seed_order(repository):
    """
    Factory writing an order (and its normalized packages) with one package
    per given status. Package ids are "<order_id>-p<n>".
    """
    async def _seed(order_id="order-1", statuses=(PackageStatus.PURCHASED_FROM_SELLER,), mirror=True):
        packages = [
            PackageRecord(
                id=f"{order_id}-p{index}",
                order_id=order_id,
                current_status=status,
                tracking_number=f"TRK-{order_id}-{index}",
            )
            for index, status in enumerate(statuses, start=1)
        ]
        order = OrderRecord(
            id=order_id,
            customer_id="customer-1",
            customer_name="Test Customer",
            packages=packages,
            status=AggregateStatusResolver.resolve(packages),
        )
        if mirror:
            return await repository.create_order(order)
        # Order-only write: packages exist solely as embedded snapshots
        return await repository.put_order(order)

    return _seed


def make_token(role: ActorRole, user_id: str = "user-1", username: str = "tester") -> str:
    return create_access_token(data={"sub": username, "user_id": user_id, "role": role.value})


@pytest.fixture
def auth_headers():
    """Factory for Authorization headers asserting a role."""
    def _headers(role: ActorRole, user_id: str = "user-1"):
        return {"Authorization": f"Bearer {make_token(role, user_id)}"}

    return _headers
