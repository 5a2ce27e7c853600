from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from ..domain.tenant import Tenant

RenewalLiteral = Literal["monthly", "semiannual"]
BatchActionLiteral = Literal[
    "activate", "deactivate", "extend_trial", "change_plan", "reset_services"
]


class TenantCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    tenant_id: Optional[str] = None
    active_user_count: int = Field(default=0, ge=0)


class ActivateRequest(BaseModel):
    plan_id: str
    renewal_type: RenewalLiteral = "monthly"


class ChangePlanRequest(BaseModel):
    plan_id: str
    renewal_type: Optional[RenewalLiteral] = None


class DeactivateRequest(BaseModel):
    reason: str = "manual"


class ExtendTrialRequest(BaseModel):
    additional_days: int = Field(gt=0)


class PaymentRequest(BaseModel):
    amount: float = Field(gt=0)
    method: str
    reference: str


class ResetServicesRequest(BaseModel):
    reason: str = "manual"


class PaymentResponse(BaseModel):
    date: datetime
    amount: float
    method: str
    reference: str


class TenantResponse(BaseModel):
    id: str
    name: str
    state: str
    plan_id: Optional[str] = None
    trial_end_date: Optional[datetime] = None
    subscription_start_date: Optional[datetime] = None
    subscription_end_date: Optional[datetime] = None
    next_payment_date: Optional[datetime] = None
    last_payment_date: Optional[datetime] = None
    renewal_type: Optional[str] = None
    payment_status: Optional[str] = None
    auto_renewal: bool
    active_user_count: int
    services_used_this_month: int
    usage_period: Optional[str] = None
    services_used_history: Dict[str, int] = {}
    payment_history: List[PaymentResponse] = []
    version: int


def tenant_to_response(t: Tenant) -> TenantResponse:
    assert t.id is not None
    return TenantResponse(
        id=str(t.id),
        name=t.name,
        state=t.state,
        plan_id=t.plan_id,
        trial_end_date=t.trial_end_date,
        subscription_start_date=t.subscription_start_date,
        subscription_end_date=t.subscription_end_date,
        next_payment_date=t.next_payment_date,
        last_payment_date=t.last_payment_date,
        renewal_type=t.renewal_type,
        payment_status=t.payment_status,
        auto_renewal=t.auto_renewal,
        active_user_count=t.active_user_count,
        services_used_this_month=t.services_used_this_month,
        usage_period=t.usage_period,
        services_used_history=dict(t.services_used_history),
        payment_history=[
            PaymentResponse(date=p.date, amount=p.amount, method=p.method, reference=p.reference)
            for p in t.payment_history
        ],
        version=t.version,
    )


class BatchActionRequest(BaseModel):
    action: BatchActionLiteral
    tenant_id: str
    plan_id: Optional[str] = None
    renewal_type: Optional[RenewalLiteral] = None
    days: Optional[int] = Field(default=None, gt=0)
    reason: Optional[str] = None


class BatchRequest(BaseModel):
    actions: List[BatchActionRequest] = Field(min_length=1)


class BatchFailure(BaseModel):
    tenant_id: str
    action: str
    error: str


class BatchResponse(BaseModel):
    successful: List[str]
    failed: List[BatchFailure]


class SweepFailure(BaseModel):
    tenant_id: str
    error: str


class SweepResponse(BaseModel):
    expired: List[str]
    trials_expired: List[str]
    payment_due: List[str]
    counters_reset: int
    failed: List[SweepFailure]


class SubscriptionOverviewResponse(BaseModel):
    tenant_id: str
    name: str
    state: str
    plan_id: Optional[str] = None
    plan_name: str
    days_remaining: Optional[int] = None
    services_used: int
    max_services: Optional[int] = None
    active_users: int
    max_users: int
    payment_status: Optional[str] = None
    next_payment_date: Optional[datetime] = None
    monthly_revenue: float
    is_expiring: bool
    needs_attention: bool


class GlobalStatsResponse(BaseModel):
    total_tenants: int
    trial_tenants: int
    active_tenants: int
    inactive_tenants: int
    total_monthly_revenue: float
    average_revenue_per_tenant: float
    conversion_rate: float
    expiring_count: int
    plan_distribution: Dict[str, int]
    revenue_by_plan: Dict[str, float]
