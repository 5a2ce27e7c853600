"""Error taxonomy shared by the entitlement engine and its adapters."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Stable identifiers callers branch on (``ValidationResult.error_kind``)."""

    AUTHENTICATION = "AuthenticationError"
    PERMISSION = "PermissionError"
    QUOTA_EXCEEDED = "QuotaExceededError"
    SUBSCRIPTION_EXPIRED = "SubscriptionExpiredError"
    CONFIGURATION = "ConfigurationError"
    SYSTEM = "SystemError"


class SuggestedAction(str, Enum):
    CONTACT_SUPPORT = "contact_support"
    UPGRADE_PLAN = "upgrade_plan"
    EXTEND_TRIAL = "extend_trial"
    LOGIN_REQUIRED = "login_required"


class EntitlementError(Exception):
    """Base class for every denial or failure the orchestrator can report."""

    kind: ErrorKind = ErrorKind.SYSTEM
    # operational errors are alerted on; the rest are routine denials
    operational: bool = False

    def __init__(
        self,
        message: str,
        *,
        details: Optional[Dict[str, Any]] = None,
        suggested_action: Optional[SuggestedAction] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.suggested_action = suggested_action


class AuthenticationError(EntitlementError):
    kind = ErrorKind.AUTHENTICATION


class PermissionDeniedError(EntitlementError):
    kind = ErrorKind.PERMISSION


class QuotaExceededError(EntitlementError):
    kind = ErrorKind.QUOTA_EXCEEDED


class SubscriptionExpiredError(EntitlementError):
    kind = ErrorKind.SUBSCRIPTION_EXPIRED


class ConfigurationError(EntitlementError):
    """Persisted data references configuration that does not exist (e.g. a plan)."""

    kind = ErrorKind.CONFIGURATION
    operational = True


class StoreUnavailableError(EntitlementError):
    """The tenant store could not be reached or did not answer in time."""

    kind = ErrorKind.SYSTEM
    operational = True


class TenantNotFoundError(LookupError):
    def __init__(self, tenant_id: Any):
        super().__init__(f"Tenant {tenant_id} not found")
        self.tenant_id = tenant_id


class InvalidTransitionError(ValueError):
    """A lifecycle operation is not allowed from the tenant's current state."""


class TenantAlreadyExistsError(ValueError):
    def __init__(self, tenant_id: Any):
        super().__init__(f"Tenant {tenant_id} already exists")
        self.tenant_id = tenant_id


__all__ = [
    "ErrorKind",
    "SuggestedAction",
    "EntitlementError",
    "AuthenticationError",
    "PermissionDeniedError",
    "QuotaExceededError",
    "SubscriptionExpiredError",
    "ConfigurationError",
    "StoreUnavailableError",
    "TenantNotFoundError",
    "InvalidTransitionError",
    "TenantAlreadyExistsError",
]
