"""Unit tests for RolePermissionGate."""

import pytest

from lubri_entitlements.domain.decisions import ActionKind
from lubri_entitlements.domain.permission import RolePermissionGate
from lubri_entitlements.domain.principal import Principal, Role
from lubri_entitlements.exceptions import AuthenticationError, SuggestedAction
from tests.fixtures.factories import admin, employee, superadmin


@pytest.mark.parametrize("action", [k.value for k in ActionKind])
def test_superadmin_is_allowed_everything(action):
    assert RolePermissionGate().check_role(superadmin(), action).ok


@pytest.mark.parametrize(
    "action,expected",
    [
        ("create_service", True),
        ("view_reports", True),
        ("create_user", False),
        ("manage_users", False),
        ("admin_action", False),
    ],
)
def test_user_role_table(action, expected):
    assert RolePermissionGate().check_role(employee(), action).ok is expected


@pytest.mark.parametrize("action", [k.value for k in ActionKind])
def test_admin_is_allowed_every_known_action(action):
    assert RolePermissionGate().check_role(admin(), action).ok


def test_unknown_action_is_denied():
    decision = RolePermissionGate().check_role(admin(), "delete_everything")

    assert not decision.ok
    assert decision.reason == "unrecognized action"


def test_enum_action_kind_is_accepted():
    assert RolePermissionGate().check_role(employee(), ActionKind.CREATE_SERVICE).ok


def test_missing_principal_raises_authentication_error():
    with pytest.raises(AuthenticationError) as exc:
        RolePermissionGate().check_role(None, "view_reports")
    assert exc.value.suggested_action == SuggestedAction.LOGIN_REQUIRED


@pytest.mark.parametrize("status", ["pending", "inactive"])
def test_inactive_account_raises_before_role_evaluation(status):
    principal = Principal(id="u1", role=Role.SUPERADMIN, account_status=status)
    with pytest.raises(AuthenticationError):
        RolePermissionGate().check_role(principal, "view_reports")


def test_custom_action_table():
    gate = RolePermissionGate({"export_invoices": frozenset({"user"})})

    assert gate.check_role(employee(), "export_invoices").ok
    assert not gate.check_role(admin(), "export_invoices").ok
    assert not gate.check_role(employee(), "create_service").ok
