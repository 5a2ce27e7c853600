from datetime import timedelta

import pytest

from lubri_entitlements.domain.plan import DEFAULT_PLANS
from lubri_entitlements.services import ReportingService
from lubri_entitlements.services.reporting_service import monthly_revenue
from tests.fixtures.factories import NOW, make_tenant


@pytest.fixture
def reporting(memory_store, catalog, resolver, clock):
    return ReportingService(memory_store, catalog, resolver, clock=clock)


@pytest.fixture
async def portfolio(memory_store):
    await memory_store.create(make_tenant("starter-co", state="active", services=10))
    await memory_store.create(
        make_tenant("premium-co", state="active", plan_id="premium", renewal_type="semiannual")
    )
    await memory_store.create(make_tenant("trial-co", state="trial", services=2))
    await memory_store.create(make_tenant("gone-co", state="inactive"))
    return memory_store


def test_monthly_revenue_spreads_semiannual_price():
    starter = DEFAULT_PLANS[0]
    assert monthly_revenue(starter, "monthly") == 2500.0
    assert monthly_revenue(starter, "semiannual") == 2000.0
    assert monthly_revenue(None, "monthly") == 0.0


@pytest.mark.asyncio
async def test_overview(reporting, portfolio):
    rows = {o.tenant_id: o for o in await reporting.overview()}

    assert set(rows) == {"starter-co", "premium-co", "trial-co", "gone-co"}
    starter = rows["starter-co"]
    assert starter.plan_name == "Plan Starter"
    assert starter.services_used == 10
    assert starter.max_services == 50
    assert starter.days_remaining == 20
    assert starter.monthly_revenue == 2500.0
    assert starter.needs_attention is False
    assert rows["premium-co"].monthly_revenue == 3750.0
    trial = rows["trial-co"]
    assert trial.is_expiring is True
    assert trial.monthly_revenue == 0.0
    gone = rows["gone-co"]
    assert gone.is_expiring is False
    assert gone.needs_attention is True


@pytest.mark.asyncio
async def test_tenants_needing_attention(reporting, portfolio):
    flagged = await reporting.tenants_needing_attention()

    assert sorted(o.tenant_id for o in flagged) == ["gone-co", "trial-co"]


@pytest.mark.asyncio
async def test_global_stats(reporting, portfolio):
    stats = await reporting.global_stats()

    assert stats.total_tenants == 4
    assert (stats.trial_tenants, stats.active_tenants, stats.inactive_tenants) == (1, 2, 1)
    assert stats.plan_distribution == {"starter": 1, "premium": 1}
    assert stats.revenue_by_plan == {"starter": 2500.0, "premium": 3750.0}
    assert stats.total_monthly_revenue == 6250.0
    assert stats.average_revenue_per_tenant == 3125.0
    assert stats.conversion_rate == 66.67
    assert stats.expiring_count == 1


@pytest.mark.asyncio
async def test_global_stats_empty_store(reporting):
    stats = await reporting.global_stats()

    assert stats.total_tenants == 0
    assert stats.conversion_rate == 0.0
    assert stats.average_revenue_per_tenant == 0.0


@pytest.mark.asyncio
async def test_unresolvable_tenant_is_flagged_not_raised(reporting, memory_store):
    await memory_store.create(make_tenant("broken", state="active", plan_id="gold"))

    [row] = await reporting.overview()

    assert row.plan_name == "Unknown"
    assert row.needs_attention is True
    assert row.monthly_revenue == 0.0


@pytest.mark.asyncio
async def test_subscription_close_to_end_is_expiring(reporting, memory_store):
    await memory_store.create(
        make_tenant("soon", state="active", subscription_end_date=NOW + timedelta(days=5))
    )

    [row] = await reporting.overview()

    assert row.is_expiring is True
    assert row.needs_attention is True
