from typing import Optional

from fastapi import APIRouter, Depends

from ..deps import get_entitlement_service, get_principal
from ..domain.decisions import ActionContext
from ..domain.principal import Principal
from ..logging_config import get_logger
from ..schemas.entitlement import ValidateRequest, ValidationResponse
from ..services import EntitlementService

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/entitlements", tags=["entitlements"])


@router.post("/validate", response_model=ValidationResponse)
async def validate_action(
    req: ValidateRequest,
    principal: Optional[Principal] = Depends(get_principal),
    service: EntitlementService = Depends(get_entitlement_service),
):
    """Decide whether the caller may perform ``action_kind`` right now.

    Always answers 200; denials are reported through ``error_kind``.
    """
    result = await service.validate(
        ActionContext(principal=principal, action_kind=req.action_kind, tenant_id=req.tenant_id)
    )
    return ValidationResponse(**result.to_dict())
