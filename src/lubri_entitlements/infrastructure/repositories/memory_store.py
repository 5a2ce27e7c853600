"""In-process tenant store used by tests and local development."""

import asyncio
import copy
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List

from ...domain.tenant import Tenant as DomainTenant
from ...exceptions import TenantAlreadyExistsError, TenantNotFoundError
from ...ports.tenant_store import StoreCondition
from .tenants_repository import GUARDABLE_FIELDS, WRITABLE_FIELDS


class InMemoryTenantStore:
    """Dict-backed store with the same atomicity as the SQL adapter.

    A single lock serializes every mutation, so the guard check and the write in
    ``update_conditional`` cannot interleave with another writer. Callers only
    ever see copies.
    """

    def __init__(self):
        self._tenants: Dict[str, DomainTenant] = {}
        self._lock = asyncio.Lock()

    def _apply(self, tenant: DomainTenant, fields: dict) -> None:
        unknown = set(fields) - WRITABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown tenant fields: {sorted(unknown)}")
        for key, value in fields.items():
            if isinstance(value, Enum):
                value = value.value
            setattr(tenant, key, copy.deepcopy(value))
        tenant.version += 1
        tenant.updated_at = datetime.now(timezone.utc)

    async def get(self, tenant_id: str) -> DomainTenant:
        tenant = self._tenants.get(str(tenant_id))
        if tenant is None:
            raise TenantNotFoundError(tenant_id)
        return copy.deepcopy(tenant)

    async def create(self, tenant: DomainTenant) -> DomainTenant:
        async with self._lock:
            stored = copy.deepcopy(tenant)
            stored.id = tenant.id or uuid.uuid4().hex
            if stored.id in self._tenants:
                raise TenantAlreadyExistsError(stored.id)
            stored.version = 0
            self._tenants[stored.id] = stored
            return copy.deepcopy(stored)

    async def update(self, tenant_id: str, **fields) -> DomainTenant:
        async with self._lock:
            tenant = self._tenants.get(str(tenant_id))
            if tenant is None:
                raise TenantNotFoundError(tenant_id)
            self._apply(tenant, fields)
            return copy.deepcopy(tenant)

    async def update_conditional(
        self, tenant_id: str, condition: StoreCondition, **fields
    ) -> bool:
        async with self._lock:
            tenant = self._tenants.get(str(tenant_id))
            if tenant is None:
                return False
            if (
                condition.expected_version is not None
                and tenant.version != condition.expected_version
            ):
                return False
            if condition.state_in is not None and tenant.state not in condition.state_in:
                return False
            for column_name, bound in condition.below.items():
                if column_name not in GUARDABLE_FIELDS:
                    raise ValueError(f"Cannot guard on column {column_name!r}")
                if getattr(tenant, column_name) >= bound:
                    return False
            self._apply(tenant, fields)
            return True

    async def list_by_state(self, state: str) -> List[DomainTenant]:
        return [copy.deepcopy(t) for t in self._tenants.values() if t.state == state]

    async def list_all(self) -> List[DomainTenant]:
        return [copy.deepcopy(t) for t in self._tenants.values()]
