"""Providers for settings and the services installed on ``app.state``.

Services are built once by the composition root and attached to the FastAPI
app; handlers receive them through these functions rather than module globals.
"""

from typing import Any

from fastapi import HTTPException, Request

from ..config import Settings
from ..services import EntitlementService, LifecycleManager, ReportingService, UsageCounterUpdater

# Lazy singleton to avoid import-time side-effects
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create singleton Settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def get_app_settings(request: Request) -> Settings:
    """Prefer the settings the app was created with; tests pass their own."""
    s = getattr(request.app.state, "settings", None)
    return s if s is not None else get_settings()


def _from_state(request: Request, name: str) -> Any:
    svc = getattr(request.app.state, name, None)
    if svc is None:
        raise HTTPException(status_code=503, detail="Service is starting up")
    return svc


def get_entitlement_service(request: Request) -> EntitlementService:
    return _from_state(request, "entitlement_service")  # type: ignore[no-any-return]


def get_usage_updater(request: Request) -> UsageCounterUpdater:
    return _from_state(request, "usage_updater")  # type: ignore[no-any-return]


def get_lifecycle_manager(request: Request) -> LifecycleManager:
    return _from_state(request, "lifecycle_manager")  # type: ignore[no-any-return]


def get_reporting_service(request: Request) -> ReportingService:
    return _from_state(request, "reporting_service")  # type: ignore[no-any-return]
