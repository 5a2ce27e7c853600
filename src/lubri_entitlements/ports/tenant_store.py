from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Protocol

from ..domain.tenant import Tenant


@dataclass(frozen=True)
class StoreCondition:
    """Guard evaluated by the store in the same atomic step as the write.

    - expected_version: the tenant's ``version`` must still equal this value
    - state_in: the tenant's state must be one of these
    - below: each named integer column must be strictly below its bound
    """

    expected_version: Optional[int] = None
    state_in: Optional[FrozenSet[str]] = None
    below: Dict[str, int] = field(default_factory=dict)


class TenantStore(Protocol):
    """Persistence boundary for the Tenant aggregate.

    Every successful write increments ``Tenant.version``.
    """

    async def get(self, tenant_id: str) -> Tenant: ...

    async def create(self, tenant: Tenant) -> Tenant: ...

    async def update(self, tenant_id: str, **fields) -> Tenant: ...

    async def update_conditional(
        self, tenant_id: str, condition: StoreCondition, **fields
    ) -> bool: ...

    async def list_by_state(self, state: str) -> List[Tenant]: ...

    async def list_all(self) -> List[Tenant]: ...
