import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .dates import ensure_aware, month_key


class TenantState(str, Enum):
    TRIAL = "trial"
    ACTIVE = "active"
    INACTIVE = "inactive"


class PaymentStatus(str, Enum):
    PAID = "paid"
    PENDING = "pending"
    OVERDUE = "overdue"


class RenewalType(str, Enum):
    MONTHLY = "monthly"
    SEMIANNUAL = "semiannual"

    @property
    def months(self) -> int:
        return 1 if self is RenewalType.MONTHLY else 6


@dataclass
class PaymentRecord:
    date: datetime.datetime
    amount: float
    method: str
    reference: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "amount": self.amount,
            "method": self.method,
            "reference": self.reference,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PaymentRecord":
        raw = data.get("date")
        date = raw if isinstance(raw, datetime.datetime) else datetime.datetime.fromisoformat(raw)
        return cls(
            date=ensure_aware(date),
            amount=float(data.get("amount", 0)),
            method=str(data.get("method", "")),
            reference=str(data.get("reference", "")),
        )


@dataclass
class Tenant:
    """A subscribing lubricentro; the unit of billing and quota."""

    id: Optional[str]
    name: str
    state: str = TenantState.TRIAL.value
    plan_id: Optional[str] = None
    trial_end_date: Optional[datetime.datetime] = None
    subscription_start_date: Optional[datetime.datetime] = None
    subscription_end_date: Optional[datetime.datetime] = None
    next_payment_date: Optional[datetime.datetime] = None
    last_payment_date: Optional[datetime.datetime] = None
    renewal_type: Optional[str] = None
    payment_status: Optional[str] = None
    auto_renewal: bool = False
    # maintained by the user lifecycle elsewhere; read-only here
    active_user_count: int = 0
    services_used_this_month: int = 0
    # "YYYY-MM" the counter above belongs to
    usage_period: Optional[str] = None
    services_used_history: Dict[str, int] = field(default_factory=dict)
    payment_history: List[PaymentRecord] = field(default_factory=list)
    version: int = 0
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None

    def __post_init__(self):
        for attr in ("state", "payment_status", "renewal_type"):
            value = getattr(self, attr)
            if isinstance(value, Enum):
                setattr(self, attr, value.value)
        if self.created_at is None:
            self.created_at = datetime.datetime.now(datetime.timezone.utc)
        if self.updated_at is None:
            self.updated_at = self.created_at

    def current_services(self, now: datetime.datetime) -> int:
        """Services consumed in the calendar month containing ``now``.

        A counter left over from a previous month counts as zero until the
        next increment or rollover persists the reset.
        """
        if self.usage_period is not None and self.usage_period != month_key(now):
            return 0
        return max(0, self.services_used_this_month)

    def can_transition_to(self, target: str) -> bool:
        """Return whether the lifecycle allows moving from the current state to target.

        - any state -> active (activation, plan change)
        - trial, active, inactive -> inactive (deactivate is idempotent)
        - trial, inactive -> trial (trial extension)
        """
        src = (self.state or "").lower()
        tgt = (target or "").lower()
        if tgt == TenantState.ACTIVE:
            return True
        if tgt == TenantState.INACTIVE:
            return src in (TenantState.TRIAL, TenantState.ACTIVE, TenantState.INACTIVE)
        if tgt == TenantState.TRIAL:
            return src in (TenantState.TRIAL, TenantState.INACTIVE)
        return False


__all__ = ["Tenant", "TenantState", "PaymentStatus", "RenewalType", "PaymentRecord"]
