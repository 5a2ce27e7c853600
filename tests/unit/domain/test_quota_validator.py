"""Unit tests for QuotaValidator."""

from datetime import timedelta

from lubri_entitlements.domain.quota import QuotaValidator
from tests.fixtures.factories import NOW, make_tenant


def test_trial_service_denial_suggests_contact_support(resolver):
    limits = resolver.resolve(make_tenant(state="trial", services=10), NOW)

    decision = QuotaValidator().check_quota(limits, "create_service")

    assert not decision.ok
    assert decision.details["current_services"] == 10
    assert decision.details["max_services"] == 10
    assert decision.details["plan_name"] == "Trial"
    assert decision.details["suggested_action"] == "contact_support"
    assert "trial" in decision.reason


def test_expired_trial_message_mentions_expiry(resolver):
    tenant = make_tenant(state="trial", trial_end_date=NOW - timedelta(days=1))
    limits = resolver.resolve(tenant, NOW)

    decision = QuotaValidator().check_quota(limits, "create_service")

    assert not decision.ok
    assert "expired" in decision.reason


def test_plan_service_denial_suggests_upgrade(resolver):
    limits = resolver.resolve(make_tenant(state="active", services=50), NOW)

    decision = QuotaValidator().check_quota(limits, "create_service")

    assert not decision.ok
    assert decision.details["suggested_action"] == "upgrade_plan"
    assert "Plan Starter" in decision.reason


def test_user_denial_reports_can_add_users_false(resolver):
    limits = resolver.resolve(make_tenant(state="active", users=2), NOW)

    decision = QuotaValidator().check_quota(limits, "create_user")

    assert not decision.ok
    assert decision.details["can_add_users"] is False
    assert decision.details["current_users"] == 2
    assert decision.details["max_users"] == 2


def test_inactive_denial_suggests_contact_support(resolver):
    limits = resolver.resolve(make_tenant(state="inactive"), NOW)

    decision = QuotaValidator().check_quota(limits, "create_user")

    assert decision.details["suggested_action"] == "contact_support"


def test_allowed_carries_remaining_counts(resolver):
    limits = resolver.resolve(make_tenant(state="active", services=45, users=1), NOW)

    services = QuotaValidator().check_quota(limits, "create_service")
    users = QuotaValidator().check_quota(limits, "create_user")

    assert services.ok and services.details["remaining_services"] == 5
    assert users.ok and users.details["remaining_users"] == 1


def test_actions_without_quota_always_pass(resolver):
    limits = resolver.resolve(make_tenant(state="inactive"), NOW)
    assert QuotaValidator().check_quota(limits, "view_reports").ok
