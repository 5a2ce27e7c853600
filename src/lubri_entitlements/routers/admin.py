from typing import List

from fastapi import APIRouter, Depends, status

from ..deps import get_lifecycle_manager, get_reporting_service, require_superadmin
from ..logging_config import get_logger
from ..schemas.tenant import (
    ActivateRequest,
    BatchFailure,
    BatchRequest,
    BatchResponse,
    ChangePlanRequest,
    DeactivateRequest,
    ExtendTrialRequest,
    GlobalStatsResponse,
    PaymentRequest,
    ResetServicesRequest,
    SubscriptionOverviewResponse,
    SweepFailure,
    SweepResponse,
    TenantCreateRequest,
    TenantResponse,
    tenant_to_response,
)
from ..services import BatchAction, LifecycleManager, ReportingService

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api/v1/admin",
    tags=["admin"],
    dependencies=[Depends(require_superadmin)],
)


@router.post("/tenants", response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
async def register_tenant(
    req: TenantCreateRequest,
    lifecycle: LifecycleManager = Depends(get_lifecycle_manager),
):
    logger.info("registering_tenant", extra={"name": req.name})
    created = await lifecycle.register_trial(
        req.name, tenant_id=req.tenant_id, active_user_count=req.active_user_count
    )
    return tenant_to_response(created)


@router.post("/tenants/batch", response_model=BatchResponse)
async def run_batch(
    req: BatchRequest,
    lifecycle: LifecycleManager = Depends(get_lifecycle_manager),
):
    result = await lifecycle.execute_batch([BatchAction(**a.model_dump()) for a in req.actions])
    return BatchResponse(
        successful=result.successful,
        failed=[BatchFailure(**f) for f in result.failed],
    )


@router.post("/tenants/{tenant_id}/activate", response_model=TenantResponse)
async def activate_tenant(
    tenant_id: str,
    req: ActivateRequest,
    lifecycle: LifecycleManager = Depends(get_lifecycle_manager),
):
    updated = await lifecycle.activate(tenant_id, req.plan_id, req.renewal_type)
    return tenant_to_response(updated)


@router.post("/tenants/{tenant_id}/change-plan", response_model=TenantResponse)
async def change_tenant_plan(
    tenant_id: str,
    req: ChangePlanRequest,
    lifecycle: LifecycleManager = Depends(get_lifecycle_manager),
):
    updated = await lifecycle.change_plan(tenant_id, req.plan_id, req.renewal_type)
    return tenant_to_response(updated)


@router.post("/tenants/{tenant_id}/deactivate", response_model=TenantResponse)
async def deactivate_tenant(
    tenant_id: str,
    req: DeactivateRequest,
    lifecycle: LifecycleManager = Depends(get_lifecycle_manager),
):
    updated = await lifecycle.deactivate(tenant_id, req.reason)
    return tenant_to_response(updated)


@router.post("/tenants/{tenant_id}/extend-trial", response_model=TenantResponse)
async def extend_trial(
    tenant_id: str,
    req: ExtendTrialRequest,
    lifecycle: LifecycleManager = Depends(get_lifecycle_manager),
):
    updated = await lifecycle.extend_trial(tenant_id, req.additional_days)
    return tenant_to_response(updated)


@router.post("/tenants/{tenant_id}/payments", response_model=TenantResponse)
async def record_payment(
    tenant_id: str,
    req: PaymentRequest,
    lifecycle: LifecycleManager = Depends(get_lifecycle_manager),
):
    updated = await lifecycle.record_payment(tenant_id, req.amount, req.method, req.reference)
    return tenant_to_response(updated)


@router.post("/tenants/{tenant_id}/reset-services", response_model=TenantResponse)
async def reset_services(
    tenant_id: str,
    req: ResetServicesRequest,
    lifecycle: LifecycleManager = Depends(get_lifecycle_manager),
):
    updated = await lifecycle.reset_services_counter(tenant_id, req.reason)
    return tenant_to_response(updated)


@router.post("/sweep", response_model=SweepResponse)
async def run_sweep(lifecycle: LifecycleManager = Depends(get_lifecycle_manager)):
    report = await lifecycle.sweep_expired()
    return SweepResponse(
        expired=report.expired,
        trials_expired=report.trials_expired,
        payment_due=report.payment_due,
        counters_reset=report.counters_reset,
        failed=[SweepFailure(**f) for f in report.failed],
    )


@router.get("/subscriptions", response_model=List[SubscriptionOverviewResponse])
async def list_subscriptions(
    needs_attention: bool = False,
    reporting: ReportingService = Depends(get_reporting_service),
):
    rows = (
        await reporting.tenants_needing_attention()
        if needs_attention
        else await reporting.overview()
    )
    return [SubscriptionOverviewResponse(**r.to_dict()) for r in rows]


@router.get("/subscriptions/stats", response_model=GlobalStatsResponse)
async def subscription_stats(reporting: ReportingService = Depends(get_reporting_service)):
    stats = await reporting.global_stats()
    return GlobalStatsResponse(**stats.to_dict())
