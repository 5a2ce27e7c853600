import json
from typing import Dict, Iterable, List, Optional

from ...domain.plan import DEFAULT_PLANS, Plan
from ...logging_config import get_logger

logger = get_logger(__name__)


class StaticPlanCatalog:
    """Plan table held in memory.

    ``reload`` swaps the whole table in one assignment, so readers see either
    the old table or the new one, never a mix.
    """

    def __init__(self, plans: Iterable[Plan] = DEFAULT_PLANS):
        self._plans: Dict[str, Plan] = {p.id: p for p in plans}

    def get(self, plan_id: str) -> Optional[Plan]:
        return self._plans.get(plan_id)

    def list(self) -> List[Plan]:
        return list(self._plans.values())

    def reload(self, plans: Iterable[Plan]) -> None:
        self._plans = {p.id: p for p in plans}
        logger.info("plan_catalog_reloaded", plans=sorted(self._plans))

    @classmethod
    def from_file(cls, path: str) -> "StaticPlanCatalog":
        """Load a JSON list of plan objects (see ``Plan.from_dict``)."""
        with open(path, encoding="utf-8") as fh:
            raw = json.load(fh)
        if not isinstance(raw, list):
            raise ValueError(f"Plan catalog file {path} must contain a JSON list")
        plans = [Plan.from_dict(item) for item in raw]
        logger.info("plan_catalog_loaded", path=path, plans=[p.id for p in plans])
        return cls(plans)
