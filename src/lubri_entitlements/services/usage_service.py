"""Monthly service counter updates."""

from ..domain.dates import Clock, month_key, utcnow
from ..domain.entitlements import EntitlementResolver
from ..logging_config import get_logger
from ..metrics import USAGE_INCREMENTS
from ..ports.tenant_store import StoreCondition, TenantStore

logger = get_logger(__name__)


class UsageCounterUpdater:
    """Consume one service from a tenant's monthly quota.

    Called after the service record is durably stored. The quota is re-resolved
    from a fresh read and the write is a compare-and-swap on the tenant's
    version, so two concurrent increments can never both pass the last free
    slot: the loser sees a version mismatch, re-reads, and is denied.
    """

    def __init__(
        self,
        store: TenantStore,
        resolver: EntitlementResolver,
        clock: Clock = utcnow,
        max_attempts: int = 5,
    ):
        self.store = store
        self.resolver = resolver
        self.clock = clock
        self.max_attempts = max(1, int(max_attempts))

    async def increment(self, tenant_id: str) -> bool:
        """
        Increment the tenant's service counter for the current month.

        Returns:
            True if the counter was incremented, False if the quota is exhausted
            or the write kept losing to concurrent writers.

        Raises:
            TenantNotFoundError: unknown tenant
            ConfigurationError: active tenant references a missing plan
            StoreUnavailableError: the store failed or timed out
        """
        for attempt in range(1, self.max_attempts + 1):
            tenant = await self.store.get(tenant_id)
            now = self.clock()
            limits = self.resolver.resolve(tenant, now)
            if not limits.can_add_services:
                USAGE_INCREMENTS.labels(result="denied").inc()
                logger.info(
                    "usage_increment_denied",
                    extra={
                        "tenant_id": tenant_id,
                        "current_services": limits.current_services,
                        "max_services": limits.max_services,
                        "plan_name": limits.plan_name,
                    },
                )
                return False

            period = month_key(now)
            # current_services is already 0 when the stored counter belongs to a past month
            new_count = limits.current_services + 1
            history = dict(tenant.services_used_history)
            history[period] = new_count

            below = {}
            if limits.max_services is not None and tenant.usage_period == period:
                below["services_used_this_month"] = limits.max_services
            condition = StoreCondition(
                expected_version=tenant.version,
                state_in=frozenset({tenant.state}),
                below=below,
            )
            updated = await self.store.update_conditional(
                tenant_id,
                condition,
                services_used_this_month=new_count,
                usage_period=period,
                services_used_history=history,
            )
            if updated:
                USAGE_INCREMENTS.labels(result="success").inc()
                logger.debug(
                    "usage_incremented",
                    extra={"tenant_id": tenant_id, "period": period, "count": new_count},
                )
                return True
            logger.debug(
                "usage_increment_conflict", extra={"tenant_id": tenant_id, "attempt": attempt}
            )

        USAGE_INCREMENTS.labels(result="conflict_exhausted").inc()
        logger.warning(
            "usage_increment_conflicts_exhausted",
            extra={"tenant_id": tenant_id, "attempts": self.max_attempts},
        )
        return False
