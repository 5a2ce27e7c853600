"""Timeout and failure translation around any TenantStore."""

import asyncio
import time
from typing import Any, List

from sqlalchemy.exc import SQLAlchemyError

from ...domain.tenant import Tenant as DomainTenant
from ...exceptions import StoreUnavailableError
from ...logging_config import get_logger
from ...metrics import STORE_ERRORS, STORE_OPERATION_DURATION
from ...ports.tenant_store import StoreCondition


class GuardedTenantStore:
    """Decorator bounding every store call by ``timeout`` seconds.

    Timeouts, driver errors and connection errors surface as
    ``StoreUnavailableError``; ``TenantNotFoundError`` and validation errors
    pass through unchanged.
    """

    def __init__(self, inner: Any, timeout: float = 5.0):
        self.inner = inner
        self.timeout = float(timeout)
        self.logger = get_logger(__name__)

    async def _call(self, operation: str, coro) -> Any:
        start = time.time()
        try:
            return await asyncio.wait_for(coro, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            STORE_ERRORS.labels(operation=operation, error_type="timeout").inc()
            self.logger.error("tenant_store_timeout", operation=operation, timeout=self.timeout)
            raise StoreUnavailableError(
                "Tenant store did not respond in time",
                details={"operation": operation},
            ) from e
        except (SQLAlchemyError, OSError) as e:
            STORE_ERRORS.labels(operation=operation, error_type=type(e).__name__).inc()
            self.logger.exception("tenant_store_failed", operation=operation, error=str(e))
            raise StoreUnavailableError(
                "Tenant store is unavailable",
                details={"operation": operation},
            ) from e
        finally:
            STORE_OPERATION_DURATION.labels(operation=operation).observe(time.time() - start)

    async def get(self, tenant_id: str) -> DomainTenant:
        return await self._call("get", self.inner.get(tenant_id))

    async def create(self, tenant: DomainTenant) -> DomainTenant:
        return await self._call("create", self.inner.create(tenant))

    async def update(self, tenant_id: str, **fields) -> DomainTenant:
        return await self._call("update", self.inner.update(tenant_id, **fields))

    async def update_conditional(
        self, tenant_id: str, condition: StoreCondition, **fields
    ) -> bool:
        return await self._call(
            "update_conditional", self.inner.update_conditional(tenant_id, condition, **fields)
        )

    async def list_by_state(self, state: str) -> List[DomainTenant]:
        return await self._call("list_by_state", self.inner.list_by_state(state))

    async def list_all(self) -> List[DomainTenant]:
        return await self._call("list_all", self.inner.list_all())
