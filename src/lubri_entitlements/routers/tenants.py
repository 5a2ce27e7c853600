from fastapi import APIRouter, Depends

from ..deps import get_entitlement_service, get_usage_updater, require_action
from ..domain.decisions import ActionKind
from ..logging_config import get_logger
from ..schemas.entitlement import LimitsResponse, UsageIncrementResponse
from ..services import EntitlementService, UsageCounterUpdater

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/tenants", tags=["tenants"])


@router.get(
    "/{tenant_id}/limits",
    response_model=LimitsResponse,
    dependencies=[Depends(require_action(ActionKind.VIEW_REPORTS.value))],
)
async def get_limits(
    tenant_id: str,
    service: EntitlementService = Depends(get_entitlement_service),
):
    limits = await service.resolve_limits(tenant_id)
    return LimitsResponse(**limits.to_dict())


@router.post(
    "/{tenant_id}/usage/services",
    response_model=UsageIncrementResponse,
    dependencies=[Depends(require_action(ActionKind.CREATE_SERVICE.value))],
)
async def record_service_usage(
    tenant_id: str,
    updater: UsageCounterUpdater = Depends(get_usage_updater),
):
    """Count one created service against the tenant's monthly quota.

    Call after the service record is stored; ``incremented`` is false when the
    quota was already exhausted.
    """
    incremented = await updater.increment(tenant_id)
    logger.debug(
        "service_usage_recorded", extra={"tenant_id": tenant_id, "incremented": incremented}
    )
    return UsageIncrementResponse(incremented=incremented)
