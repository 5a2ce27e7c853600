"""Decision types exchanged between the gate, the validator and the orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union

from ..exceptions import EntitlementError
from .principal import Principal


class ActionKind(str, Enum):
    CREATE_SERVICE = "create_service"
    CREATE_USER = "create_user"
    VIEW_REPORTS = "view_reports"
    MANAGE_USERS = "manage_users"
    ADMIN_ACTION = "admin_action"


# actions whose quota depends on a tenant's entitlements
TENANT_SCOPED_ACTIONS = frozenset({ActionKind.CREATE_SERVICE.value, ActionKind.CREATE_USER.value})


def action_name(kind: Union[str, ActionKind]) -> str:
    # Enum members hash by name, so table lookups always use the plain value
    return kind.value if isinstance(kind, Enum) else str(kind)


@dataclass(frozen=True)
class Allowed:
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Denied:
    reason: str
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return False


Decision = Union[Allowed, Denied]


@dataclass(frozen=True)
class ActionContext:
    principal: Optional[Principal]
    action_kind: str
    tenant_id: Optional[str] = None


@dataclass
class ValidationResult:
    is_valid: bool
    can_proceed: bool
    error_kind: Optional[str] = None
    message: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    suggested_action: Optional[str] = None
    remaining_services: Optional[int] = None
    remaining_users: Optional[int] = None

    @classmethod
    def allowed(
        cls,
        details: Optional[Dict[str, Any]] = None,
        remaining_services: Optional[int] = None,
        remaining_users: Optional[int] = None,
    ) -> "ValidationResult":
        return cls(
            is_valid=True,
            can_proceed=True,
            details=details or {},
            remaining_services=remaining_services,
            remaining_users=remaining_users,
        )

    @classmethod
    def from_error(cls, error: EntitlementError) -> "ValidationResult":
        suggested = error.suggested_action.value if error.suggested_action else None
        return cls(
            is_valid=False,
            can_proceed=False,
            error_kind=error.kind.value,
            message=error.message,
            details=dict(error.details),
            suggested_action=suggested,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "can_proceed": self.can_proceed,
            "error_kind": self.error_kind,
            "message": self.message,
            "details": self.details,
            "suggested_action": self.suggested_action,
            "remaining_services": self.remaining_services,
            "remaining_users": self.remaining_users,
        }


__all__ = [
    "ActionKind",
    "TENANT_SCOPED_ACTIONS",
    "action_name",
    "Allowed",
    "Denied",
    "Decision",
    "ActionContext",
    "ValidationResult",
]
