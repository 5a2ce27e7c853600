"""Single decision point for "may this principal do this action now?"."""

from typing import Optional

from ..domain.dates import Clock, utcnow
from ..domain.decisions import (
    TENANT_SCOPED_ACTIONS,
    ActionContext,
    ActionKind,
    ValidationResult,
    action_name,
)
from ..domain.entitlements import EntitlementResolver, SubscriptionLimits, is_expired
from ..domain.permission import RolePermissionGate, require_authenticated
from ..domain.principal import Principal, Role
from ..domain.quota import QuotaValidator
from ..domain.tenant import Tenant, TenantState
from ..exceptions import (
    ConfigurationError,
    EntitlementError,
    ErrorKind,
    PermissionDeniedError,
    QuotaExceededError,
    SubscriptionExpiredError,
    SuggestedAction,
    TenantNotFoundError,
)
from ..logging_config import get_logger
from ..metrics import ENTITLEMENT_DECISIONS
from ..ports.tenant_store import TenantStore

logger = get_logger(__name__)

_KNOWN_ACTIONS = frozenset(k.value for k in ActionKind)
_ADMIN_OR_ABOVE = frozenset({Role.ADMIN.value, Role.SUPERADMIN.value})


class EntitlementService:
    """Composes the role gate, the entitlement resolver and the quota validator.

    ``validate`` never raises an ``EntitlementError``: every denial or failure
    comes back as a ``ValidationResult`` whose ``error_kind`` callers branch on.
    Store failures produce a ``SystemError`` result, never an allowed one.
    """

    def __init__(
        self,
        store: TenantStore,
        resolver: EntitlementResolver,
        gate: RolePermissionGate | None = None,
        quota: QuotaValidator | None = None,
        clock: Clock = utcnow,
    ):
        self.store = store
        self.resolver = resolver
        self.gate = gate or RolePermissionGate()
        self.quota = quota or QuotaValidator()
        self.clock = clock

    async def validate(self, context: ActionContext) -> ValidationResult:
        """Full decision: authentication, role, tenant lifecycle and quota."""
        return await self._decide(context, self._validate)

    async def authorize(self, context: ActionContext) -> ValidationResult:
        """Authentication, role and tenant ownership only; no quota evaluation.

        Used by read paths and by the usage endpoint, where the quota decision
        belongs to the counter update itself.
        """

        async def check(ctx: ActionContext, action: str) -> ValidationResult:
            self._authorize(ctx, action)
            return ValidationResult.allowed()

        return await self._decide(context, check)

    async def _decide(self, context: ActionContext, check) -> ValidationResult:
        action = action_name(context.action_kind)
        try:
            result = await check(context, action)
        except EntitlementError as e:
            if e.operational:
                logger.error(
                    "entitlement_validation_failed",
                    extra={
                        "action": action,
                        "tenant_id": context.tenant_id,
                        "error_kind": e.kind.value,
                        "error": e.message,
                        "details": e.details,
                    },
                )
            else:
                logger.info(
                    "entitlement_denied",
                    extra={
                        "action": action,
                        "tenant_id": context.tenant_id,
                        "error_kind": e.kind.value,
                    },
                )
            result = ValidationResult.from_error(e)
        except Exception:
            # unexpected failures still fail closed
            logger.exception(
                "entitlement_validation_crashed",
                extra={"action": action, "tenant_id": context.tenant_id},
            )
            result = ValidationResult(
                is_valid=False,
                can_proceed=False,
                error_kind=ErrorKind.SYSTEM.value,
                message="The action could not be validated. Please try again later.",
                suggested_action=SuggestedAction.CONTACT_SUPPORT.value,
            )

        ENTITLEMENT_DECISIONS.labels(
            action=action if action in _KNOWN_ACTIONS else "unrecognized",
            result="allowed" if result.is_valid else "denied",
            error_kind=result.error_kind or "",
        ).inc()
        return result

    def _authorize(self, context: ActionContext, action: str) -> Principal:
        principal = require_authenticated(context.principal)

        decision = self.gate.check_role(principal, action)
        if not decision.ok:
            raise PermissionDeniedError(decision.reason, details=decision.details)
        if context.tenant_id and not principal.is_superadmin:
            self._tenant_for(principal, context.tenant_id)
        return principal

    async def _validate(self, context: ActionContext, action: str) -> ValidationResult:
        principal = self._authorize(context, action)

        remaining_services: Optional[int] = None
        remaining_users: Optional[int] = None
        if action in TENANT_SCOPED_ACTIONS and not principal.is_superadmin:
            tenant_id = self._tenant_for(principal, context.tenant_id)
            tenant = await self._fetch(tenant_id)
            limits = self.resolver.resolve(tenant, self.clock())
            self._check_lifecycle(tenant, limits)
            quota = self.quota.check_quota(limits, action)
            if not quota.ok:
                raise QuotaExceededError(
                    quota.reason,
                    details=quota.details,
                    suggested_action=SuggestedAction(quota.details["suggested_action"]),
                )
            remaining_services = limits.remaining_services
            remaining_users = limits.remaining_users

        if action == ActionKind.CREATE_USER.value:
            if not (context.tenant_id or principal.tenant_id):
                raise PermissionDeniedError(
                    "A tenant is required to create users", details={"action_kind": action}
                )
            if principal.role not in _ADMIN_OR_ABOVE:
                raise PermissionDeniedError(
                    "Only administrators can create users",
                    details={"action_kind": action, "role": principal.role},
                )

        return ValidationResult.allowed(
            remaining_services=remaining_services, remaining_users=remaining_users
        )

    @staticmethod
    def _tenant_for(principal: Principal, requested: Optional[str]) -> str:
        if not principal.tenant_id:
            raise PermissionDeniedError(
                "User is not associated with a tenant", details={"principal_id": principal.id}
            )
        if requested and str(requested) != str(principal.tenant_id):
            raise PermissionDeniedError(
                "Users can only act on their own tenant",
                details={"tenant_id": requested},
            )
        return principal.tenant_id

    async def _fetch(self, tenant_id: str) -> Tenant:
        try:
            return await self.store.get(tenant_id)
        except TenantNotFoundError as e:
            # principals only carry tenant ids we issued; a dangling one is a data problem
            raise ConfigurationError(
                "Tenant referenced by the current user does not exist",
                details={"tenant_id": tenant_id},
            ) from e

    @staticmethod
    def _check_lifecycle(tenant: Tenant, limits: SubscriptionLimits) -> None:
        if not is_expired(tenant, limits):
            return
        if tenant.state == TenantState.TRIAL:
            raise SubscriptionExpiredError(
                "Your trial period has expired. Contact support to activate your subscription.",
                details={"state": tenant.state, "days_remaining": limits.days_remaining},
                suggested_action=SuggestedAction.EXTEND_TRIAL,
            )
        raise SubscriptionExpiredError(
            "Your subscription is inactive. Contact support to reactivate your account.",
            details={"state": tenant.state, "plan_name": limits.plan_name},
            suggested_action=SuggestedAction.CONTACT_SUPPORT,
        )

    async def resolve_limits(self, tenant_id: str) -> SubscriptionLimits:
        """Read-only usage snapshot for dashboards.

        Raises:
            TenantNotFoundError: unknown tenant
            ConfigurationError: active tenant references a missing plan
            StoreUnavailableError: the store failed or timed out
        """
        tenant = await self.store.get(tenant_id)
        return self.resolver.resolve(tenant, self.clock())
