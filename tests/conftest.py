import pytest
from typing import AsyncGenerator, Iterable
from httpx import AsyncClient, ASGITransport
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool
from main import app
from app.api.dependencies import get_notification_dispatcher
from app.auth.jwt_handler import create_access_token
from app.core.database import build_engine, get_async_session
from app.db.base import Base
from app.models import Product, Supplier
from app.models.shared.enums import PrincipalRole
from app.services.catalog.supplier_resolver import SupplierRanking

# In-memory database shared by every session of one test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

ADMIN_ID = "900001"
STAFF_ID = "100001"
OTHER_STAFF_ID = "100002"


class DispatchRecorder:
    """Stands in for the Celery post-commit hook"""

    def __init__(self):
        self.calls = []

    def __call__(self, notification_id: int) -> None:
        self.calls.append(notification_id)


@pytest.fixture
async def engine():
    test_engine = build_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()

@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

@pytest.fixture
async def session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as db:
        yield db

@pytest.fixture
def dispatched() -> DispatchRecorder:
    return DispatchRecorder()

@pytest.fixture
async def client(session_maker, dispatched) -> AsyncGenerator[AsyncClient, None]:
    """Create test client"""
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as db:
            yield db

    app.dependency_overrides[get_async_session] = override_get_db
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatched
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()

@pytest.fixture
def admin_headers() -> dict:
    token = create_access_token(ADMIN_ID, PrincipalRole.ADMIN)
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture
def staff_headers() -> dict:
    token = create_access_token(STAFF_ID, PrincipalRole.STAFF)
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture
def make_supplier(session):
    async def _make(name: str, active: bool = True) -> Supplier:
        supplier = Supplier(name=name, active=active)
        session.add(supplier)
        await session.commit()
        return supplier
    return _make

@pytest.fixture
def make_product(session):
    async def _make(
        name: str,
        unit: str = "kg",
        suppliers: Iterable[Supplier] = (),
        active: bool = True
    ) -> Product:
        product = Product(name=name, unit=unit, category="General", active=active, supplier_links=[])
        ranking = SupplierRanking(product)
        for supplier in suppliers:
            ranking.append(supplier)
        session.add(product)
        await session.commit()
        return product
    return _make

@pytest.fixture
def count_rows(session):
    async def _count(model) -> int:
        result = await session.execute(select(func.count()).select_from(model))
        return result.scalar_one()
    return _count
