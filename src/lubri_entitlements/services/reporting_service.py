"""Read-only subscription reporting for administrative dashboards."""

from collections import Counter, defaultdict
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..domain.dates import Clock, utcnow
from ..domain.entitlements import EntitlementResolver, SubscriptionLimits
from ..domain.plan import Plan
from ..domain.tenant import RenewalType, Tenant, TenantState
from ..exceptions import ConfigurationError
from ..logging_config import get_logger
from ..ports.plan_catalog import PlanCatalog
from ..ports.tenant_store import TenantStore

logger = get_logger(__name__)


@dataclass
class SubscriptionOverview:
    tenant_id: str
    name: str
    state: str
    plan_id: Optional[str]
    plan_name: str
    days_remaining: Optional[int]
    services_used: int
    max_services: Optional[int]
    active_users: int
    max_users: int
    payment_status: Optional[str]
    next_payment_date: Optional[datetime]
    monthly_revenue: float
    is_expiring: bool
    needs_attention: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class GlobalStats:
    total_tenants: int = 0
    trial_tenants: int = 0
    active_tenants: int = 0
    inactive_tenants: int = 0
    total_monthly_revenue: float = 0.0
    average_revenue_per_tenant: float = 0.0
    # active / (trial + active), percent
    conversion_rate: float = 0.0
    expiring_count: int = 0
    plan_distribution: Dict[str, int] = field(default_factory=dict)
    revenue_by_plan: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def monthly_revenue(plan: Optional[Plan], renewal_type: Optional[str]) -> float:
    """Revenue normalized to one month; semiannual prices are spread over six."""
    if plan is None:
        return 0.0
    if renewal_type == RenewalType.SEMIANNUAL:
        return round(plan.semiannual_price / RenewalType.SEMIANNUAL.months, 2)
    return float(plan.monthly_price)


class ReportingService:
    def __init__(
        self,
        store: TenantStore,
        catalog: PlanCatalog,
        resolver: EntitlementResolver,
        clock: Clock = utcnow,
        expiring_warning_days: int = 7,
    ):
        self.store = store
        self.catalog = catalog
        self.resolver = resolver
        self.clock = clock
        self.expiring_warning_days = expiring_warning_days

    def _overview_for(self, tenant: Tenant, now: datetime) -> SubscriptionOverview:
        limits: Optional[SubscriptionLimits]
        try:
            limits = self.resolver.resolve(tenant, now)
        except ConfigurationError as e:
            logger.error(
                "subscription_overview_unresolvable",
                extra={"tenant_id": tenant.id, "error": e.message},
            )
            limits = None

        plan = self.catalog.get(tenant.plan_id) if tenant.plan_id else None
        is_active = tenant.state == TenantState.ACTIVE
        days_remaining = limits.days_remaining if limits else None
        is_expiring = (
            tenant.state != TenantState.INACTIVE
            and days_remaining is not None
            and days_remaining <= self.expiring_warning_days
        )
        needs_attention = (
            limits is None
            or is_expiring
            or tenant.state == TenantState.INACTIVE
            or (tenant.state == TenantState.TRIAL and days_remaining == 0)
        )
        return SubscriptionOverview(
            tenant_id=str(tenant.id),
            name=tenant.name,
            state=tenant.state,
            plan_id=tenant.plan_id,
            plan_name=limits.plan_name if limits else "Unknown",
            days_remaining=days_remaining,
            services_used=tenant.current_services(now),
            max_services=limits.max_services if limits else None,
            active_users=tenant.active_user_count,
            max_users=limits.max_users if limits else 0,
            payment_status=tenant.payment_status,
            next_payment_date=tenant.next_payment_date,
            monthly_revenue=monthly_revenue(plan, tenant.renewal_type) if is_active else 0.0,
            is_expiring=is_expiring,
            needs_attention=needs_attention,
        )

    async def overview(self) -> List[SubscriptionOverview]:
        now = self.clock()
        tenants = await self.store.list_all()
        return [self._overview_for(t, now) for t in tenants]

    async def tenants_needing_attention(self) -> List[SubscriptionOverview]:
        return [o for o in await self.overview() if o.needs_attention]

    async def global_stats(self) -> GlobalStats:
        rows = await self.overview()
        stats = GlobalStats(total_tenants=len(rows))
        states = Counter(r.state for r in rows)
        stats.trial_tenants = states[TenantState.TRIAL.value]
        stats.active_tenants = states[TenantState.ACTIVE.value]
        stats.inactive_tenants = states[TenantState.INACTIVE.value]

        distribution: Dict[str, int] = defaultdict(int)
        revenue: Dict[str, float] = defaultdict(float)
        for r in rows:
            if r.state == TenantState.ACTIVE and r.plan_id:
                distribution[r.plan_id] += 1
                revenue[r.plan_id] += r.monthly_revenue
        stats.plan_distribution = dict(distribution)
        stats.revenue_by_plan = {k: round(v, 2) for k, v in revenue.items()}
        stats.total_monthly_revenue = round(sum(revenue.values()), 2)
        if stats.active_tenants:
            stats.average_revenue_per_tenant = round(
                stats.total_monthly_revenue / stats.active_tenants, 2
            )
        converted_pool = stats.trial_tenants + stats.active_tenants
        if converted_pool:
            stats.conversion_rate = round(stats.active_tenants / converted_pool * 100, 2)
        stats.expiring_count = sum(1 for r in rows if r.is_expiring)
        return stats
