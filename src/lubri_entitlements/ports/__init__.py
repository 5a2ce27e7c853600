"""Public API for the engine's collaborator protocols.

This module provides a single import point for the ports the engine depends on.
"""

from .plan_catalog import PlanCatalog
from .tenant_store import StoreCondition, TenantStore

__all__ = [
    "PlanCatalog",
    "StoreCondition",
    "TenantStore",
]
