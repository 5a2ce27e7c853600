"""Tenant store adapters.

Call `build_tenant_store(settings, session_factory=None)` to obtain the store the
engine should use.
"""


def build_tenant_store(settings, session_factory=None):
    """Return the configured tenant store wrapped with timeout handling.

    ``store_backend="memory"`` ignores the session factory; the SQL backend
    requires one.
    """
    # import concrete implementations lazily so callers obtain stores
    # only via the factory API rather than top-level imports
    from .guarded import GuardedTenantStore

    if settings.store_backend == "memory":
        from .memory_store import InMemoryTenantStore

        inner = InMemoryTenantStore()
    else:
        if session_factory is None:
            raise ValueError("A session factory is required for the sql tenant store")
        from .tenants_repository import SqlAlchemyTenantStore

        inner = SqlAlchemyTenantStore(session_factory)  # type: ignore[assignment]

    return GuardedTenantStore(inner, timeout=settings.store_timeout_seconds)


__all__ = ["build_tenant_store"]
