"""Dependency injection for FastAPI.

- providers: settings and the services installed on app.state
- auth: bearer-token principal and authorization dependencies
"""

from .auth import bearer_scheme, decode_principal, get_principal, require_action, require_superadmin
from .providers import (
    get_app_settings,
    get_entitlement_service,
    get_lifecycle_manager,
    get_reporting_service,
    get_settings,
    get_usage_updater,
)

__all__ = [
    # Providers
    "get_settings",
    "get_app_settings",
    "get_entitlement_service",
    "get_usage_updater",
    "get_lifecycle_manager",
    "get_reporting_service",
    # Auth
    "bearer_scheme",
    "decode_principal",
    "get_principal",
    "require_action",
    "require_superadmin",
]
