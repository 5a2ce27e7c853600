"""Entitlement resolution: turn a tenant's persisted fields into usable limits.

Everything in this module is a pure function of the tenant snapshot, the plan
catalog and the supplied ``now``; no I/O happens here.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from ..exceptions import ConfigurationError
from ..ports.plan_catalog import PlanCatalog
from .dates import days_until
from .tenant import Tenant, TenantState

TRIAL_PLAN_NAME = "Trial"
INACTIVE_PLAN_NAME = "Inactive"


@dataclass(frozen=True)
class TrialTerms:
    days: int = 7
    services: int = 10
    users: int = 2


@dataclass(frozen=True)
class SubscriptionLimits:
    max_users: int
    # None means unlimited
    max_services: Optional[int]
    current_users: int
    current_services: int
    days_remaining: Optional[int]
    plan_name: str
    is_unlimited: bool
    can_add_services: bool
    can_add_users: bool

    @property
    def remaining_services(self) -> Optional[int]:
        if self.max_services is None:
            return None
        return max(0, self.max_services - self.current_services)

    @property
    def remaining_users(self) -> int:
        return max(0, self.max_users - self.current_users)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["remaining_services"] = self.remaining_services
        data["remaining_users"] = self.remaining_users
        return data


class EntitlementResolver:
    def __init__(self, catalog: PlanCatalog, trial: TrialTerms | None = None):
        self.catalog = catalog
        self.trial = trial or TrialTerms()

    def resolve(self, tenant: Tenant, now: datetime) -> SubscriptionLimits:
        if tenant.state == TenantState.TRIAL:
            return self._trial_limits(tenant, now)
        if tenant.state == TenantState.ACTIVE:
            return self._plan_limits(tenant, now)
        if tenant.state == TenantState.INACTIVE:
            return self._inactive_limits()
        raise ConfigurationError(
            f"Tenant {tenant.id} has unknown lifecycle state {tenant.state!r}",
            details={"tenant_id": tenant.id, "state": tenant.state},
        )

    def _trial_limits(self, tenant: Tenant, now: datetime) -> SubscriptionLimits:
        days_remaining = days_until(tenant.trial_end_date, now)
        current_services = tenant.current_services(now)
        current_users = max(0, tenant.active_user_count)
        return SubscriptionLimits(
            max_users=self.trial.users,
            max_services=self.trial.services,
            current_users=current_users,
            current_services=current_services,
            days_remaining=days_remaining,
            plan_name=TRIAL_PLAN_NAME,
            is_unlimited=False,
            can_add_services=current_services < self.trial.services and days_remaining > 0,
            can_add_users=current_users < self.trial.users,
        )

    def _plan_limits(self, tenant: Tenant, now: datetime) -> SubscriptionLimits:
        plan = self.catalog.get(tenant.plan_id) if tenant.plan_id else None
        if plan is None:
            raise ConfigurationError(
                f"Active tenant {tenant.id} references unknown plan {tenant.plan_id!r}",
                details={"tenant_id": tenant.id, "plan_id": tenant.plan_id},
            )
        current_services = tenant.current_services(now)
        current_users = max(0, tenant.active_user_count)
        days_remaining = (
            days_until(tenant.subscription_end_date, now)
            if tenant.subscription_end_date is not None
            else None
        )
        return SubscriptionLimits(
            max_users=plan.max_users,
            max_services=plan.max_monthly_services,
            current_users=current_users,
            current_services=current_services,
            days_remaining=days_remaining,
            plan_name=plan.name,
            is_unlimited=plan.is_unlimited,
            can_add_services=plan.is_unlimited or current_services < plan.max_monthly_services,
            can_add_users=current_users < plan.max_users,
        )

    @staticmethod
    def _inactive_limits() -> SubscriptionLimits:
        return SubscriptionLimits(
            max_users=0,
            max_services=0,
            current_users=0,
            current_services=0,
            days_remaining=None,
            plan_name=INACTIVE_PLAN_NAME,
            is_unlimited=False,
            can_add_services=False,
            can_add_users=False,
        )


def is_expired(tenant: Tenant, limits: SubscriptionLimits) -> bool:
    """Lifecycle lapse, independent of any counter."""
    if tenant.state == TenantState.INACTIVE:
        return True
    if tenant.state == TenantState.TRIAL:
        return (limits.days_remaining or 0) == 0
    return False


def is_over_quota(limits: SubscriptionLimits, action_kind: str) -> bool:
    """Counter exhaustion, independent of expiry."""
    if action_kind == "create_service":
        if limits.max_services is None:
            return False
        return limits.current_services >= limits.max_services
    if action_kind == "create_user":
        return limits.current_users >= limits.max_users
    return False


__all__ = [
    "TRIAL_PLAN_NAME",
    "INACTIVE_PLAN_NAME",
    "TrialTerms",
    "SubscriptionLimits",
    "EntitlementResolver",
    "is_expired",
    "is_over_quota",
]
