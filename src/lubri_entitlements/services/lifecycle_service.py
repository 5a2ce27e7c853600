"""Service layer for subscription lifecycle operations."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from ..domain.dates import Clock, add_months, days_until, month_key, utcnow
from ..domain.entitlements import TrialTerms
from ..domain.plan import Plan
from ..domain.tenant import PaymentRecord, PaymentStatus, RenewalType, Tenant, TenantState
from ..exceptions import (
    ConfigurationError,
    EntitlementError,
    InvalidTransitionError,
    TenantNotFoundError,
)
from ..logging_config import get_logger
from ..metrics import LIFECYCLE_TRANSITIONS
from ..ports.plan_catalog import PlanCatalog
from ..ports.tenant_store import StoreCondition, TenantStore

logger = get_logger(__name__)

REASON_MANUAL = "manual"
REASON_SUBSCRIPTION_EXPIRED = "subscription_expired"
REASON_TRIAL_EXPIRED = "trial_expired"


@dataclass
class SweepReport:
    expired: List[str] = field(default_factory=list)
    trials_expired: List[str] = field(default_factory=list)
    payment_due: List[str] = field(default_factory=list)
    counters_reset: int = 0
    failed: List[Dict[str, str]] = field(default_factory=list)


@dataclass
class BatchAction:
    action: str
    tenant_id: str
    plan_id: Optional[str] = None
    renewal_type: Optional[str] = None
    days: Optional[int] = None
    reason: Optional[str] = None


@dataclass
class BatchResult:
    successful: List[str] = field(default_factory=list)
    failed: List[Dict[str, str]] = field(default_factory=list)


class LifecycleManager:
    """Encapsulates subscription state transitions.

    Every write is a compare-and-swap on the tenant version: the transition is
    rebuilt from a fresh read when a concurrent writer (usually a usage
    increment) got there first.
    """

    def __init__(
        self,
        store: TenantStore,
        catalog: PlanCatalog,
        trial: TrialTerms | None = None,
        clock: Clock = utcnow,
        payment_due_warning_days: int = 7,
        max_attempts: int = 5,
    ):
        self.store = store
        self.catalog = catalog
        self.trial = trial or TrialTerms()
        self.clock = clock
        self.payment_due_warning_days = payment_due_warning_days
        self.max_attempts = max(1, int(max_attempts))

    async def _mutate(
        self,
        tenant_id: str,
        operation: str,
        build: Callable[[Tenant, datetime], Optional[Dict[str, Any]]],
    ) -> Optional[Tenant]:
        """Apply ``build(tenant, now)`` atomically; None from build means nothing to do."""
        for _ in range(self.max_attempts):
            tenant = await self.store.get(tenant_id)
            fields = build(tenant, self.clock())
            if fields is None:
                return None
            ok = await self.store.update_conditional(
                tenant_id, StoreCondition(expected_version=tenant.version), **fields
            )
            if ok:
                LIFECYCLE_TRANSITIONS.labels(operation=operation).inc()
                return await self.store.get(tenant_id)
        logger.error(
            "lifecycle_write_conflicts_exhausted",
            extra={"tenant_id": tenant_id, "operation": operation},
        )
        raise InvalidTransitionError(
            f"Tenant {tenant_id} changed concurrently during {operation}; retry the operation"
        )

    @staticmethod
    def _counter_reset(tenant: Tenant, now: datetime) -> Dict[str, Any]:
        period = month_key(now)
        history = dict(tenant.services_used_history)
        history[period] = 0
        return {
            "services_used_this_month": 0,
            "usage_period": period,
            "services_used_history": history,
        }

    def _require_plan(self, plan_id: str) -> Plan:
        plan = self.catalog.get(plan_id)
        if plan is None:
            raise ConfigurationError(f"Unknown plan {plan_id!r}", details={"plan_id": plan_id})
        return plan

    async def register_trial(
        self, name: str, tenant_id: Optional[str] = None, active_user_count: int = 0
    ) -> Tenant:
        now = self.clock()
        tenant = Tenant(
            id=tenant_id,
            name=name,
            state=TenantState.TRIAL,
            trial_end_date=now + timedelta(days=self.trial.days),
            active_user_count=active_user_count,
            services_used_this_month=0,
            usage_period=month_key(now),
            created_at=now,
            updated_at=now,
        )
        created = await self.store.create(tenant)
        LIFECYCLE_TRANSITIONS.labels(operation="register_trial").inc()
        logger.info(
            "tenant_trial_registered",
            extra={"tenant_id": created.id, "trial_end_date": created.trial_end_date.isoformat()},
        )
        return created

    async def activate(
        self, tenant_id: str, plan_id: str, renewal_type: str = RenewalType.MONTHLY.value
    ) -> Tenant:
        """
        Put a tenant on a paid plan, from any state.

        Raises:
            ConfigurationError: plan_id is not in the catalog
            TenantNotFoundError: unknown tenant
        """
        self._require_plan(plan_id)
        renewal = RenewalType(renewal_type)
        logger.info(
            "activating_tenant",
            extra={"tenant_id": tenant_id, "plan_id": plan_id, "renewal_type": renewal.value},
        )

        def build(tenant: Tenant, now: datetime) -> Dict[str, Any]:
            end = add_months(now, renewal.months)
            return {
                "state": TenantState.ACTIVE,
                "plan_id": plan_id,
                "trial_end_date": None,
                "subscription_start_date": now,
                "subscription_end_date": end,
                "next_payment_date": end,
                "renewal_type": renewal,
                "payment_status": PaymentStatus.PAID,
                "auto_renewal": True,
                **self._counter_reset(tenant, now),
            }

        updated = await self._mutate(tenant_id, "activate", build)
        logger.info("tenant_activated", extra={"tenant_id": tenant_id, "plan_id": plan_id})
        assert updated is not None
        return updated

    async def deactivate(self, tenant_id: str, reason: str = REASON_MANUAL) -> Tenant:
        """Move a tenant to inactive. Calling it on an inactive tenant is a no-op."""

        def build(tenant: Tenant, now: datetime) -> Optional[Dict[str, Any]]:
            if (
                tenant.state == TenantState.INACTIVE
                and not tenant.auto_renewal
                and tenant.payment_status == PaymentStatus.OVERDUE
            ):
                return None
            return self._inactive_fields()

        updated = await self._mutate(tenant_id, "deactivate", build)
        if updated is None:
            logger.debug("deactivate_tenant_noop", extra={"tenant_id": tenant_id})
            return await self.store.get(tenant_id)
        logger.info("tenant_deactivated", extra={"tenant_id": tenant_id, "reason": reason})
        return updated

    @staticmethod
    def _inactive_fields() -> Dict[str, Any]:
        return {
            "state": TenantState.INACTIVE,
            "plan_id": None,
            "trial_end_date": None,
            "auto_renewal": False,
            "payment_status": PaymentStatus.OVERDUE,
        }

    async def extend_trial(self, tenant_id: str, additional_days: int) -> Tenant:
        """
        Extend (or restart) a trial by ``additional_days``.

        Raises:
            ValueError: additional_days is not positive
            InvalidTransitionError: tenant is active
        """
        if additional_days <= 0:
            raise ValueError("additional_days must be positive")

        def build(tenant: Tenant, now: datetime) -> Dict[str, Any]:
            if not tenant.can_transition_to(TenantState.TRIAL):
                logger.warning(
                    "extend_trial_invalid_transition",
                    extra={"tenant_id": tenant_id, "current_state": tenant.state},
                )
                raise InvalidTransitionError(
                    f"Cannot extend trial of tenant in {tenant.state} state"
                )
            base = now
            if tenant.trial_end_date and tenant.trial_end_date > now:
                base = tenant.trial_end_date
            return {
                "state": TenantState.TRIAL,
                "plan_id": None,
                "trial_end_date": base + timedelta(days=additional_days),
                **self._counter_reset(tenant, now),
            }

        updated = await self._mutate(tenant_id, "extend_trial", build)
        assert updated is not None
        logger.info(
            "tenant_trial_extended",
            extra={
                "tenant_id": tenant_id,
                "additional_days": additional_days,
                "trial_end_date": (
                    updated.trial_end_date.isoformat() if updated.trial_end_date else None
                ),
            },
        )
        return updated

    async def record_payment(
        self, tenant_id: str, amount: float, method: str, reference: str
    ) -> Tenant:
        """Append a payment and push the next payment date one renewal period forward."""
        if amount <= 0:
            raise ValueError("amount must be positive")

        def build(tenant: Tenant, now: datetime) -> Dict[str, Any]:
            renewal = RenewalType(tenant.renewal_type or RenewalType.MONTHLY.value)
            # paying early extends from the current due date, paying late from today
            base = (
                tenant.next_payment_date
                if tenant.next_payment_date and tenant.next_payment_date > now
                else now
            )
            record = PaymentRecord(
                date=now, amount=float(amount), method=method, reference=reference
            )
            return {
                "payment_history": [*tenant.payment_history, record],
                "last_payment_date": now,
                "next_payment_date": add_months(base, renewal.months),
                "payment_status": PaymentStatus.PAID,
            }

        updated = await self._mutate(tenant_id, "record_payment", build)
        assert updated is not None
        logger.info(
            "tenant_payment_recorded",
            extra={"tenant_id": tenant_id, "amount": amount, "method": method},
        )
        return updated

    async def change_plan(
        self, tenant_id: str, plan_id: str, renewal_type: Optional[str] = None
    ) -> Tenant:
        """
        Switch an active tenant to another plan, keeping its usage and billing dates.

        Raises:
            ConfigurationError: plan_id is not in the catalog
            InvalidTransitionError: tenant is not active, is already on plan_id, or
                current usage exceeds the new plan's monthly limit
        """
        plan = self._require_plan(plan_id)
        renewal = RenewalType(renewal_type) if renewal_type else None

        def build(tenant: Tenant, now: datetime) -> Dict[str, Any]:
            if tenant.state != TenantState.ACTIVE:
                raise InvalidTransitionError(
                    f"Cannot change plan of tenant in {tenant.state} state; activate it instead"
                )
            if tenant.plan_id == plan.id:
                raise InvalidTransitionError(f"Tenant is already on {plan.name}")
            used = tenant.current_services(now)
            if not plan.is_unlimited and used > plan.max_monthly_services:
                raise InvalidTransitionError(
                    f"Tenant has used {used} services this month; "
                    f"{plan.name} allows {plan.max_monthly_services}"
                )
            fields: Dict[str, Any] = {"plan_id": plan.id}
            if renewal is not None:
                fields["renewal_type"] = renewal
            return fields

        updated = await self._mutate(tenant_id, "change_plan", build)
        assert updated is not None
        logger.info("tenant_plan_changed", extra={"tenant_id": tenant_id, "plan_id": plan_id})
        return updated

    async def reset_services_counter(self, tenant_id: str, reason: str = REASON_MANUAL) -> Tenant:
        updated = await self._mutate(tenant_id, "reset_services", self._counter_reset)
        assert updated is not None
        logger.info("tenant_services_reset", extra={"tenant_id": tenant_id, "reason": reason})
        return updated

    async def rollover_usage(self) -> int:
        """Persist the monthly reset for tenants whose counter belongs to a past month."""
        now = self.clock()
        period = month_key(now)
        reset = 0
        for tenant in await self.store.list_all():
            if tenant.usage_period is None or tenant.usage_period == period:
                continue
            history = dict(tenant.services_used_history)
            history[period] = 0
            # a concurrent increment already rolled the counter over
            ok = await self.store.update_conditional(
                tenant.id,
                StoreCondition(expected_version=tenant.version),
                services_used_this_month=0,
                usage_period=period,
                services_used_history=history,
            )
            if ok:
                reset += 1
        if reset:
            LIFECYCLE_TRANSITIONS.labels(operation="rollover_usage").inc(reset)
            logger.info("usage_rolled_over", extra={"period": period, "tenants": reset})
        return reset

    async def _expire(
        self, tenant_id: str, reason: str, lapsed: Callable[[Tenant, datetime], bool]
    ) -> bool:
        def build(tenant: Tenant, now: datetime) -> Optional[Dict[str, Any]]:
            # re-checked on every attempt: the tenant may have been renewed meanwhile
            if not lapsed(tenant, now):
                return None
            return self._inactive_fields()

        updated = await self._mutate(tenant_id, "deactivate", build)
        if updated is None:
            return False
        logger.info("tenant_deactivated", extra={"tenant_id": tenant_id, "reason": reason})
        return True

    async def sweep_expired(self) -> SweepReport:
        """Deactivate lapsed subscriptions and trials, flag payments coming due,
        and persist the monthly usage rollover.

        A failure on one tenant is recorded in the report and does not stop the
        sweep.
        """
        report = SweepReport()
        now = self.clock()

        def subscription_lapsed(t: Tenant, at: datetime) -> bool:
            return (
                t.state == TenantState.ACTIVE
                and t.subscription_end_date is not None
                and t.subscription_end_date < at
            )

        def trial_lapsed(t: Tenant, at: datetime) -> bool:
            return (
                t.state == TenantState.TRIAL
                and t.trial_end_date is not None
                and t.trial_end_date < at
            )

        for tenant in await self.store.list_by_state(TenantState.ACTIVE.value):
            if subscription_lapsed(tenant, now):
                await self._sweep_one(
                    report,
                    report.expired,
                    tenant.id,
                    REASON_SUBSCRIPTION_EXPIRED,
                    subscription_lapsed,
                )
            elif (
                tenant.next_payment_date is not None
                and days_until(tenant.next_payment_date, now) <= self.payment_due_warning_days
            ):
                report.payment_due.append(tenant.id)

        for tenant in await self.store.list_by_state(TenantState.TRIAL.value):
            if trial_lapsed(tenant, now):
                await self._sweep_one(
                    report, report.trials_expired, tenant.id, REASON_TRIAL_EXPIRED, trial_lapsed
                )

        report.counters_reset = await self.rollover_usage()
        logger.info(
            "expiration_sweep_completed",
            extra={
                "expired": len(report.expired),
                "trials_expired": len(report.trials_expired),
                "payment_due": len(report.payment_due),
                "counters_reset": report.counters_reset,
                "failed": len(report.failed),
            },
        )
        return report

    async def _sweep_one(self, report, bucket, tenant_id, reason, lapsed) -> None:
        try:
            if await self._expire(tenant_id, reason, lapsed):
                bucket.append(tenant_id)
        except (EntitlementError, TenantNotFoundError, InvalidTransitionError) as e:
            logger.error(
                "sweep_deactivate_failed",
                extra={"tenant_id": tenant_id, "reason": reason, "error": str(e)},
            )
            report.failed.append({"tenant_id": tenant_id, "error": str(e)})

    async def execute_batch(self, actions: List[BatchAction]) -> BatchResult:
        """Run administrative actions one by one; failures are collected, not raised."""
        result = BatchResult()
        for item in actions:
            try:
                await self._dispatch(item)
                result.successful.append(item.tenant_id)
            except (EntitlementError, LookupError, ValueError) as e:
                logger.warning(
                    "batch_action_failed",
                    extra={"tenant_id": item.tenant_id, "action": item.action, "error": str(e)},
                )
                result.failed.append(
                    {"tenant_id": item.tenant_id, "action": item.action, "error": str(e)}
                )
        logger.info(
            "batch_actions_executed",
            extra={"successful": len(result.successful), "failed": len(result.failed)},
        )
        return result

    async def _dispatch(self, item: BatchAction) -> Tenant:
        if item.action == "activate":
            if not item.plan_id:
                raise ValueError("activate requires plan_id")
            return await self.activate(
                item.tenant_id, item.plan_id, item.renewal_type or RenewalType.MONTHLY.value
            )
        if item.action == "deactivate":
            return await self.deactivate(item.tenant_id, item.reason or REASON_MANUAL)
        if item.action == "extend_trial":
            return await self.extend_trial(item.tenant_id, item.days or self.trial.days)
        if item.action == "change_plan":
            if not item.plan_id:
                raise ValueError("change_plan requires plan_id")
            return await self.change_plan(item.tenant_id, item.plan_id, item.renewal_type)
        if item.action == "reset_services":
            return await self.reset_services_counter(item.tenant_id, item.reason or REASON_MANUAL)
        raise ValueError(f"Unknown batch action {item.action!r}")
