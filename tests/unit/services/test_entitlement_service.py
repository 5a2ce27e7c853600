"""Unit tests for EntitlementService decisions."""

import asyncio
from datetime import timedelta

import pytest

from lubri_entitlements.domain.decisions import ActionContext, ActionKind
from lubri_entitlements.domain.principal import Principal
from lubri_entitlements.exceptions import ConfigurationError, TenantNotFoundError
from lubri_entitlements.infrastructure.repositories.guarded import GuardedTenantStore
from lubri_entitlements.services import EntitlementService
from tests.fixtures.factories import NOW, admin, employee, make_tenant, superadmin


class CountingStore:
    def __init__(self, inner):
        self.inner = inner
        self.reads = 0

    async def get(self, tenant_id):
        self.reads += 1
        return await self.inner.get(tenant_id)


class BrokenStore:
    async def get(self, tenant_id):
        raise RuntimeError("connection reset")


class HangingStore:
    async def get(self, tenant_id):
        await asyncio.sleep(10)


@pytest.fixture
def service(memory_store, resolver, clock):
    return EntitlementService(memory_store, resolver, clock=clock)


def ctx(principal, action=ActionKind.CREATE_SERVICE, tenant_id=None):
    return ActionContext(principal=principal, action_kind=action, tenant_id=tenant_id)


@pytest.mark.asyncio
async def test_trial_with_one_service_left_is_allowed(service, memory_store):
    await memory_store.create(make_tenant(state="trial", services=9))

    result = await service.validate(ctx(admin()))

    assert result.is_valid is True
    assert result.can_proceed is True
    assert result.remaining_services == 1
    assert result.error_kind is None


@pytest.mark.asyncio
async def test_trial_at_service_limit_is_denied(service, memory_store):
    await memory_store.create(make_tenant(state="trial", services=10))

    result = await service.validate(ctx(admin()))

    assert result.is_valid is False
    assert result.can_proceed is False
    assert result.error_kind == "QuotaExceededError"
    assert result.suggested_action == "contact_support"
    assert result.details["current_services"] == 10


@pytest.mark.asyncio
async def test_active_plan_user_limit_denies_create_user(service, memory_store):
    await memory_store.create(make_tenant(state="active", users=2))

    result = await service.validate(ctx(admin(), ActionKind.CREATE_USER))

    assert result.is_valid is False
    assert result.error_kind == "QuotaExceededError"
    assert result.details["can_add_users"] is False
    assert result.details["max_users"] == 2


@pytest.mark.asyncio
async def test_active_plan_service_limit_suggests_upgrade(service, memory_store):
    await memory_store.create(make_tenant(state="active", services=50))

    result = await service.validate(ctx(employee()))

    assert result.error_kind == "QuotaExceededError"
    assert result.suggested_action == "upgrade_plan"


@pytest.mark.asyncio
async def test_unlimited_plan_has_no_remaining_count(service, memory_store):
    await memory_store.create(make_tenant(state="active", plan_id="enterprise", services=5000))

    result = await service.validate(ctx(admin()))

    assert result.is_valid is True
    assert result.remaining_services is None


@pytest.mark.asyncio
async def test_superadmin_bypasses_tenant_checks(service):
    result = await service.validate(ctx(superadmin()))

    assert result.is_valid is True
    assert result.remaining_services is None


@pytest.mark.asyncio
async def test_missing_principal_requires_login(service):
    result = await service.validate(ctx(None))

    assert result.error_kind == "AuthenticationError"
    assert result.suggested_action == "login_required"


@pytest.mark.asyncio
async def test_pending_account_is_rejected(service, memory_store):
    await memory_store.create(make_tenant(state="trial"))
    pending = Principal(id="u2", role="admin", account_status="pending", tenant_id="t1")

    result = await service.validate(ctx(pending))

    assert result.error_kind == "AuthenticationError"
    assert result.details == {"account_status": "pending"}


@pytest.mark.asyncio
async def test_user_role_cannot_create_users(service, memory_store):
    await memory_store.create(make_tenant(state="trial"))

    result = await service.validate(ctx(employee(), ActionKind.CREATE_USER))

    assert result.error_kind == "PermissionError"


@pytest.mark.asyncio
async def test_unknown_action_is_denied(service):
    result = await service.validate(ctx(admin(), "launch_rocket"))

    assert result.error_kind == "PermissionError"
    assert result.message == "unrecognized action"


@pytest.mark.asyncio
async def test_expired_trial_suggests_extension(service, memory_store):
    await memory_store.create(
        make_tenant(state="trial", services=2, trial_end_date=NOW - timedelta(hours=2))
    )

    result = await service.validate(ctx(admin()))

    assert result.error_kind == "SubscriptionExpiredError"
    assert result.suggested_action == "extend_trial"


@pytest.mark.asyncio
async def test_inactive_tenant_is_told_to_contact_support(service, memory_store):
    await memory_store.create(make_tenant(state="inactive"))

    result = await service.validate(ctx(admin(), ActionKind.CREATE_USER))

    assert result.error_kind == "SubscriptionExpiredError"
    assert result.suggested_action == "contact_support"


@pytest.mark.asyncio
async def test_acting_on_another_tenant_is_denied(service, memory_store):
    await memory_store.create(make_tenant("t1", state="trial"))
    await memory_store.create(make_tenant("t2", state="trial"))

    result = await service.validate(ctx(admin("t1"), tenant_id="t2"))

    assert result.error_kind == "PermissionError"
    assert result.message == "Users can only act on their own tenant"


@pytest.mark.asyncio
async def test_principal_without_tenant_is_denied(service):
    orphan = Principal(id="u3", role="admin")

    result = await service.validate(ctx(orphan))

    assert result.error_kind == "PermissionError"
    assert result.message == "User is not associated with a tenant"


@pytest.mark.asyncio
async def test_dangling_tenant_reference_is_configuration_error(service):
    result = await service.validate(ctx(admin("ghost")))

    assert result.error_kind == "ConfigurationError"
    assert result.details == {"tenant_id": "ghost"}


@pytest.mark.asyncio
async def test_active_tenant_with_unknown_plan(service, memory_store):
    await memory_store.create(make_tenant(state="active", plan_id="gold"))

    result = await service.validate(ctx(admin()))

    assert result.is_valid is False
    assert result.error_kind == "ConfigurationError"


@pytest.mark.asyncio
async def test_store_timeout_fails_closed(resolver, clock):
    store = GuardedTenantStore(HangingStore(), timeout=0.01)
    service = EntitlementService(store, resolver, clock=clock)

    result = await service.validate(ctx(admin()))

    assert result.is_valid is False
    assert result.error_kind == "SystemError"


@pytest.mark.asyncio
async def test_unexpected_store_failure_fails_closed(resolver, clock):
    service = EntitlementService(BrokenStore(), resolver, clock=clock)

    result = await service.validate(ctx(admin()))

    assert result.is_valid is False
    assert result.error_kind == "SystemError"
    assert result.suggested_action == "contact_support"


@pytest.mark.asyncio
async def test_view_reports_does_not_read_the_store(memory_store, resolver, clock):
    store = CountingStore(memory_store)
    service = EntitlementService(store, resolver, clock=clock)

    result = await service.validate(ctx(employee(), ActionKind.VIEW_REPORTS))

    assert result.is_valid is True
    assert store.reads == 0


@pytest.mark.asyncio
async def test_authorize_checks_ownership_without_quota(service, memory_store):
    await memory_store.create(make_tenant(state="trial", services=10))

    own = await service.authorize(ctx(employee("t1"), ActionKind.CREATE_SERVICE, "t1"))
    other = await service.authorize(ctx(employee("t1"), ActionKind.VIEW_REPORTS, "t2"))

    assert own.is_valid is True
    assert other.error_kind == "PermissionError"


@pytest.mark.asyncio
async def test_validate_does_not_mutate_the_tenant(service, memory_store):
    await memory_store.create(make_tenant(state="trial", services=4))

    await service.validate(ctx(admin()))
    await service.validate(ctx(admin()))

    tenant = await memory_store.get("t1")
    assert tenant.version == 0
    assert tenant.services_used_this_month == 4


@pytest.mark.asyncio
async def test_resolve_limits(service, memory_store):
    await memory_store.create(make_tenant(state="active", services=12, users=1))

    first = await service.resolve_limits("t1")
    second = await service.resolve_limits("t1")

    assert first == second
    assert first.plan_name == "Plan Starter"
    assert first.remaining_services == 38
    assert first.days_remaining == 20


@pytest.mark.asyncio
async def test_resolve_limits_errors_propagate(service, memory_store):
    await memory_store.create(make_tenant(state="active", plan_id="gold"))

    with pytest.raises(TenantNotFoundError):
        await service.resolve_limits("missing")
    with pytest.raises(ConfigurationError):
        await service.resolve_limits("t1")
