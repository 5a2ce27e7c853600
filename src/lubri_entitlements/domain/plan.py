from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Plan:
    id: str
    name: str
    max_users: int
    # None means unlimited
    max_monthly_services: Optional[int]
    monthly_price: float
    semiannual_price: float

    @property
    def is_unlimited(self) -> bool:
        return self.max_monthly_services is None

    def price_for(self, renewal_type: str) -> float:
        return self.semiannual_price if renewal_type == "semiannual" else self.monthly_price

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Plan":
        max_services = data.get("max_monthly_services")
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or data["id"]),
            max_users=int(data["max_users"]),
            max_monthly_services=None if max_services is None else int(max_services),
            monthly_price=float(data.get("monthly_price", 0)),
            semiannual_price=float(data.get("semiannual_price", 0)),
        )


DEFAULT_PLANS = (
    Plan("starter", "Plan Starter", 2, 50, 2500, 12000),
    Plan("plus", "Plan Plus", 3, 100, 3500, 17500),
    Plan("premium", "Plan Premium", 5, 150, 4500, 22500),
    Plan("enterprise", "Plan Enterprise", 999, None, 7500, 37500),
)


__all__ = ["Plan", "DEFAULT_PLANS"]
