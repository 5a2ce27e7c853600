from typing import List, Optional, Protocol

from ..domain.plan import Plan


class PlanCatalog(Protocol):
    """Read-only plan table."""

    def get(self, plan_id: str) -> Optional[Plan]: ...

    def list(self) -> List[Plan]: ...
