from typing import FrozenSet, Mapping, Optional

from ..exceptions import AuthenticationError, SuggestedAction
from .decisions import ActionKind, Allowed, Decision, Denied, action_name
from .principal import Principal, Role

DEFAULT_ACTION_ROLES: Mapping[str, FrozenSet[str]] = {
    ActionKind.CREATE_SERVICE.value: frozenset({Role.ADMIN.value, Role.USER.value}),
    ActionKind.VIEW_REPORTS.value: frozenset({Role.ADMIN.value, Role.USER.value}),
    ActionKind.CREATE_USER.value: frozenset({Role.ADMIN.value}),
    ActionKind.MANAGE_USERS.value: frozenset({Role.ADMIN.value}),
    ActionKind.ADMIN_ACTION.value: frozenset({Role.ADMIN.value}),
}


def require_authenticated(principal: Optional[Principal]) -> Principal:
    """Principal must exist and have an active account."""
    if principal is None:
        raise AuthenticationError(
            "Authentication required", suggested_action=SuggestedAction.LOGIN_REQUIRED
        )
    if not principal.is_active:
        raise AuthenticationError(
            "Account is not active",
            details={"account_status": principal.account_status},
            suggested_action=SuggestedAction.LOGIN_REQUIRED,
        )
    return principal


class RolePermissionGate:
    """Decide whether a role may attempt an action, independent of quota.

    The action table is static; superadmin is allowed everything.
    """

    def __init__(self, action_roles: Mapping[str, FrozenSet[str]] | None = None):
        self.action_roles = dict(action_roles or DEFAULT_ACTION_ROLES)

    def check_role(self, principal: Optional[Principal], action_kind: str) -> Decision:
        principal = require_authenticated(principal)
        if principal.is_superadmin:
            return Allowed()
        action = action_name(action_kind)
        allowed_roles = self.action_roles.get(action)
        if allowed_roles is None:
            return Denied("unrecognized action", {"action_kind": action})
        if principal.role not in allowed_roles:
            return Denied(
                f"role {principal.role!r} may not perform {action}",
                {"action_kind": action, "role": principal.role},
            )
        return Allowed()


__all__ = ["DEFAULT_ACTION_ROLES", "RolePermissionGate", "require_authenticated"]
