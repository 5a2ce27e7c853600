"""Unit tests for EntitlementResolver and the expiry/quota predicates."""

from datetime import timedelta

import pytest

from lubri_entitlements.domain.entitlements import (
    EntitlementResolver,
    TrialTerms,
    is_expired,
    is_over_quota,
)
from lubri_entitlements.domain.plan import Plan
from lubri_entitlements.exceptions import ConfigurationError
from lubri_entitlements.infrastructure.plans.static_catalog import StaticPlanCatalog
from tests.fixtures.factories import NOW, make_tenant


def test_trial_limits_with_one_service_left(resolver):
    tenant = make_tenant(state="trial", services=9, users=1)

    limits = resolver.resolve(tenant, NOW)

    assert limits.plan_name == "Trial"
    assert limits.max_services == 10
    assert limits.max_users == 2
    assert limits.current_services == 9
    assert limits.days_remaining == 1
    assert limits.can_add_services is True
    assert limits.can_add_users is True
    assert limits.remaining_services == 1
    assert limits.is_unlimited is False


@pytest.mark.parametrize("services", [10, 11, 25])
def test_trial_at_or_over_limit_cannot_add_services(resolver, services):
    tenant = make_tenant(state="trial", services=services)
    assert resolver.resolve(tenant, NOW).can_add_services is False


@pytest.mark.parametrize("days_ago", [0, 1, 3, 400])
def test_days_remaining_never_negative(resolver, days_ago):
    tenant = make_tenant(state="trial", trial_end_date=NOW - timedelta(days=days_ago))

    limits = resolver.resolve(tenant, NOW)

    assert limits.days_remaining == 0
    assert limits.can_add_services is False


def test_days_remaining_rounds_partial_days_up(resolver):
    tenant = make_tenant(state="trial", trial_end_date=NOW + timedelta(days=1, hours=12))
    assert resolver.resolve(tenant, NOW).days_remaining == 2


def test_active_limits_come_from_plan(resolver):
    tenant = make_tenant(state="active", services=12, users=1)

    limits = resolver.resolve(tenant, NOW)

    assert limits.plan_name == "Plan Starter"
    assert limits.max_services == 50
    assert limits.max_users == 2
    assert limits.days_remaining == 20
    assert limits.can_add_services is True
    assert limits.remaining_services == 38


def test_active_unlimited_plan_always_allows_services(resolver):
    tenant = make_tenant(state="active", plan_id="enterprise", services=10_000)

    limits = resolver.resolve(tenant, NOW)

    assert limits.is_unlimited is True
    assert limits.max_services is None
    assert limits.remaining_services is None
    assert limits.can_add_services is True


def test_active_tenant_with_unknown_plan_is_configuration_error(resolver):
    tenant = make_tenant(state="active", plan_id="gold")

    with pytest.raises(ConfigurationError) as exc:
        resolver.resolve(tenant, NOW)
    assert exc.value.details["plan_id"] == "gold"


@pytest.mark.parametrize("services,users", [(0, 0), (3, 1), (500, 9)])
def test_inactive_tenant_can_add_nothing(resolver, services, users):
    tenant = make_tenant(state="inactive", services=services, users=users)

    limits = resolver.resolve(tenant, NOW)

    assert limits.plan_name == "Inactive"
    assert limits.can_add_services is False
    assert limits.can_add_users is False
    assert limits.max_services == 0
    assert limits.max_users == 0


def test_unknown_state_is_configuration_error(resolver):
    tenant = make_tenant(state="frozen")
    with pytest.raises(ConfigurationError):
        resolver.resolve(tenant, NOW)


def test_counter_from_previous_month_counts_as_zero(resolver):
    tenant = make_tenant(state="trial", services=10, usage_period="2025-02")

    limits = resolver.resolve(tenant, NOW)

    assert limits.current_services == 0
    assert limits.can_add_services is True


def test_resolve_is_idempotent(resolver):
    tenant = make_tenant(state="active", services=7)
    assert resolver.resolve(tenant, NOW) == resolver.resolve(tenant, NOW)


def test_custom_trial_terms_and_catalog():
    catalog = StaticPlanCatalog([Plan("solo", "Solo", 1, 5, 100, 500)])
    resolver = EntitlementResolver(catalog, TrialTerms(days=14, services=3, users=1))

    trial = resolver.resolve(make_tenant(state="trial", services=3), NOW)
    active = resolver.resolve(make_tenant(state="active", plan_id="solo", services=4), NOW)

    assert trial.max_services == 3
    assert trial.can_add_services is False
    assert active.remaining_services == 1


def test_expired_and_over_quota_are_independent(resolver):
    over_quota = make_tenant(state="trial", services=10)
    lapsed = make_tenant(state="trial", services=0, trial_end_date=NOW - timedelta(days=2))

    over_limits = resolver.resolve(over_quota, NOW)
    lapsed_limits = resolver.resolve(lapsed, NOW)

    assert is_expired(over_quota, over_limits) is False
    assert is_over_quota(over_limits, "create_service") is True
    assert is_expired(lapsed, lapsed_limits) is True
    assert is_over_quota(lapsed_limits, "create_service") is False


def test_inactive_is_expired_and_active_is_not(resolver):
    inactive = make_tenant(state="inactive")
    active = make_tenant(state="active")

    assert is_expired(inactive, resolver.resolve(inactive, NOW)) is True
    assert is_expired(active, resolver.resolve(active, NOW)) is False


def test_over_quota_for_users_and_unmetered_actions(resolver):
    limits = resolver.resolve(make_tenant(state="active", users=2), NOW)

    assert is_over_quota(limits, "create_user") is True
    assert is_over_quota(limits, "view_reports") is False
