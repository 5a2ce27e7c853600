import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from lubri_entitlements.config import Settings
from lubri_entitlements.domain.entitlements import EntitlementResolver, TrialTerms
from lubri_entitlements.infrastructure.db.models import Base
from lubri_entitlements.infrastructure.plans.static_catalog import StaticPlanCatalog
from lubri_entitlements.infrastructure.repositories.memory_store import InMemoryTenantStore
from lubri_entitlements.infrastructure.repositories.tenants_repository import (
    SqlAlchemyTenantStore,
)
from lubri_entitlements.wiring import create_app
from tests.fixtures.factories import NOW, TEST_JWT_SECRET, FixedClock


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def catalog():
    return StaticPlanCatalog()


@pytest.fixture
def trial_terms():
    return TrialTerms(days=7, services=10, users=2)


@pytest.fixture
def resolver(catalog, trial_terms):
    return EntitlementResolver(catalog, trial_terms)


@pytest.fixture
def memory_store():
    return InMemoryTenantStore()


@pytest.fixture
async def session_factory(tmp_path):
    """Sessionmaker over a throwaway sqlite file with the schema created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{(tmp_path / 'tenants.db').as_posix()}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    AsyncSessionLocal = sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    yield AsyncSessionLocal
    await engine.dispose()


@pytest.fixture
async def sql_store(session_factory):
    return SqlAlchemyTenantStore(session_factory)


@pytest.fixture
def test_settings():
    return Settings(
        store_backend="memory",
        jwt_secret=TEST_JWT_SECRET,
        jwt_algorithm="HS256",
        sweep_interval_seconds=0,
        plan_catalog_file="",
    )


@pytest.fixture
async def test_app(test_settings, memory_store, catalog, clock):
    """Return (client, store, clock) for an app wired to the in-memory store."""
    app = create_app(test_settings, store=memory_store, catalog=catalog, clock=clock)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client, memory_store, clock
