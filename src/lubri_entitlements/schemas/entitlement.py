from typing import Any, Dict, Optional

from pydantic import BaseModel


class ValidateRequest(BaseModel):
    action_kind: str
    tenant_id: Optional[str] = None


class ValidationResponse(BaseModel):
    is_valid: bool
    can_proceed: bool
    error_kind: Optional[str] = None
    message: Optional[str] = None
    details: Dict[str, Any] = {}
    suggested_action: Optional[str] = None
    remaining_services: Optional[int] = None
    remaining_users: Optional[int] = None


class LimitsResponse(BaseModel):
    max_users: int
    max_services: Optional[int] = None
    current_users: int
    current_services: int
    days_remaining: Optional[int] = None
    plan_name: str
    is_unlimited: bool
    can_add_services: bool
    can_add_users: bool
    remaining_services: Optional[int] = None
    remaining_users: int


class UsageIncrementResponse(BaseModel):
    incremented: bool
