import pytest

from lubri_entitlements import composition
from lubri_entitlements.infrastructure.repositories.guarded import GuardedTenantStore
from lubri_entitlements.infrastructure.repositories.tenants_repository import (
    SqlAlchemyTenantStore,
)
from lubri_entitlements.wiring import create_app


@pytest.mark.asyncio
async def test_wire_app_with_memory_backend(test_settings):
    app = create_app(test_settings)

    wired = await composition.wire_app(app)
    try:
        assert isinstance(app.state.tenant_store, GuardedTenantStore)
        created = await app.state.lifecycle_manager.register_trial("Taller Uno")
        assert (await app.state.tenant_store.get(created.id)).state == "trial"
        assert wired.engine is None
    finally:
        await wired.teardown()


@pytest.mark.asyncio
async def test_wire_app_with_sql_backend_creates_schema(test_settings, tmp_path):
    url = f"sqlite+aiosqlite:///{(tmp_path / 'wired.db').as_posix()}"
    settings = test_settings.model_copy(update={"store_backend": "sql", "database_url": url})
    app = create_app(settings)

    wired = await composition.wire_app(app)
    try:
        assert isinstance(app.state.tenant_store.inner, SqlAlchemyTenantStore)
        created = await app.state.lifecycle_manager.register_trial("Taller Dos", tenant_id="dos")
        assert created.id == "dos"
        assert await app.state.tenant_store.list_by_state("trial")
    finally:
        await wired.teardown()


@pytest.mark.asyncio
async def test_wire_app_loads_plan_file(test_settings, tmp_path):
    plans = tmp_path / "plans.json"
    plans.write_text(
        '[{"id": "solo", "max_users": 1, "max_monthly_services": 5}]', encoding="utf-8"
    )
    app = create_app(test_settings.model_copy(update={"plan_catalog_file": str(plans)}))

    wired = await composition.wire_app(app)
    try:
        assert [p.id for p in app.state.plan_catalog.list()] == ["solo"]
    finally:
        await wired.teardown()
