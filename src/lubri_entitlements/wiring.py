from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from .config import Settings
from .domain.dates import Clock, utcnow
from .domain.entitlements import EntitlementResolver, TrialTerms
from .exceptions import (
    ConfigurationError,
    InvalidTransitionError,
    StoreUnavailableError,
    TenantAlreadyExistsError,
    TenantNotFoundError,
)
from .infrastructure.plans.static_catalog import StaticPlanCatalog
from .logging_config import get_logger
from .ports.plan_catalog import PlanCatalog
from .ports.tenant_store import TenantStore
from .services import EntitlementService, LifecycleManager, ReportingService, UsageCounterUpdater

logger = get_logger(__name__)


def load_plan_catalog(settings: Settings) -> StaticPlanCatalog:
    if settings.plan_catalog_file:
        return StaticPlanCatalog.from_file(settings.plan_catalog_file)
    return StaticPlanCatalog()


def install_services(
    app: FastAPI,
    settings: Settings,
    store: TenantStore,
    catalog: PlanCatalog | None = None,
    clock: Clock | None = None,
) -> None:
    """Build the engine's services around ``store`` and attach them to app.state.

    Every service shares the same store, catalog and clock; nothing is kept in
    module globals.
    """
    catalog = catalog if catalog is not None else load_plan_catalog(settings)
    clock = clock or utcnow
    trial = TrialTerms(
        days=settings.trial_days, services=settings.trial_services, users=settings.trial_users
    )
    resolver = EntitlementResolver(catalog, trial)

    app.state.settings = settings
    app.state.tenant_store = store
    app.state.plan_catalog = catalog
    app.state.entitlement_service = EntitlementService(store, resolver, clock=clock)
    app.state.usage_updater = UsageCounterUpdater(
        store, resolver, clock=clock, max_attempts=settings.increment_max_attempts
    )
    app.state.lifecycle_manager = LifecycleManager(
        store,
        catalog,
        trial=trial,
        clock=clock,
        payment_due_warning_days=settings.payment_due_warning_days,
        max_attempts=settings.increment_max_attempts,
    )
    app.state.reporting_service = ReportingService(
        store,
        catalog,
        resolver,
        clock=clock,
        expiring_warning_days=settings.expiring_warning_days,
    )
    logger.info(
        "entitlement_services_installed",
        store=type(store).__name__,
        plans=[p.id for p in catalog.list()],
    )


def _error_body(exc: Any, error_kind: str | None = None) -> dict:
    body = {"detail": getattr(exc, "message", None) or str(exc)}
    if error_kind:
        body["error_kind"] = error_kind
    return body


def create_app(
    settings: Settings | None = None,
    store: TenantStore | None = None,
    catalog: PlanCatalog | None = None,
    clock: Clock | None = None,
) -> FastAPI:
    """Create a fully routed app.

    When ``store`` is given the services are installed immediately (tests);
    otherwise the composition root installs them at startup.
    """
    if settings is None:
        settings = Settings()

    app = FastAPI(title="Lubricentro Entitlements")
    app.state.settings = settings
    app.state.tenant_store = None
    if store is not None:
        install_services(app, settings, store, catalog=catalog, clock=clock)

    from .metrics import metrics_response
    from .middleware.metrics_middleware import MetricsMiddleware
    from .routers import admin, entitlements, health, tenants

    app.include_router(health.router)
    app.include_router(entitlements.router)
    app.include_router(tenants.router)
    app.include_router(admin.router)

    app.add_middleware(MetricsMiddleware)

    @app.get("/metrics")
    async def _metrics():
        data, content_type = metrics_response()
        return Response(content=data, media_type=content_type)

    @app.exception_handler(TenantNotFoundError)
    async def _not_found_handler(request: Request, exc: TenantNotFoundError):
        return JSONResponse(status_code=404, content=_error_body(exc))

    @app.exception_handler(InvalidTransitionError)
    async def _invalid_transition_handler(request: Request, exc: InvalidTransitionError):
        return JSONResponse(status_code=409, content=_error_body(exc))

    @app.exception_handler(TenantAlreadyExistsError)
    async def _already_exists_handler(request: Request, exc: TenantAlreadyExistsError):
        return JSONResponse(status_code=409, content=_error_body(exc))

    @app.exception_handler(ConfigurationError)
    async def _configuration_error_handler(request: Request, exc: ConfigurationError):
        logger.error("configuration_error", path=request.url.path, error=exc.message)
        return JSONResponse(status_code=500, content=_error_body(exc, exc.kind.value))

    @app.exception_handler(StoreUnavailableError)
    async def _store_unavailable_handler(request: Request, exc: StoreUnavailableError):
        return JSONResponse(status_code=503, content=_error_body(exc, exc.kind.value))

    @app.exception_handler(ValueError)
    async def _value_error_handler(request: Request, exc: ValueError):
        return JSONResponse(status_code=400, content=_error_body(exc))

    return app


__all__ = ["create_app", "install_services", "load_plan_catalog"]
