"""Bearer-token principal resolution and authorization dependencies.

Tokens are issued by the identity provider; this module only decodes them. All
allow/deny decisions are delegated to the EntitlementService.
"""

from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from starlette import status

from ..config import Settings
from ..domain.decisions import ActionContext, ActionKind, ValidationResult
from ..domain.principal import AccountStatus, Principal
from ..exceptions import ErrorKind
from ..logging_config import get_logger
from ..services import EntitlementService
from .providers import get_app_settings, get_entitlement_service

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def decode_principal(token: str, secret: str, algorithm: str) -> Optional[Principal]:
    """Map token claims (sub, role, account_status, tenant_id) to a Principal.

    An invalid, expired or incomplete token yields None.
    """
    try:
        claims = jwt.decode(token, secret, algorithms=[algorithm])
    except JWTError as e:
        logger.debug("bearer_token_rejected", error=str(e))
        return None
    subject = claims.get("sub")
    role = claims.get("role")
    if not subject or not role:
        logger.debug("bearer_token_incomplete", has_sub=bool(subject), has_role=bool(role))
        return None
    tenant_id = claims.get("tenant_id")
    return Principal(
        id=str(subject),
        role=str(role),
        account_status=str(claims.get("account_status") or AccountStatus.ACTIVE.value),
        tenant_id=str(tenant_id) if tenant_id is not None else None,
    )


async def get_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_app_settings),
) -> Optional[Principal]:
    if credentials is None:
        return None
    return decode_principal(credentials.credentials, settings.jwt_secret, settings.jwt_algorithm)


_STATUS_BY_KIND = {
    ErrorKind.AUTHENTICATION.value: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.CONFIGURATION.value: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.SYSTEM.value: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _denial(result: ValidationResult) -> HTTPException:
    code = _STATUS_BY_KIND.get(result.error_kind or "", status.HTTP_403_FORBIDDEN)
    headers = {"WWW-Authenticate": "Bearer"} if code == status.HTTP_401_UNAUTHORIZED else None
    return HTTPException(
        status_code=code,
        detail={
            "error_kind": result.error_kind,
            "message": result.message,
            "suggested_action": result.suggested_action,
        },
        headers=headers,
    )


def require_action(action_kind: str):
    """Dependency that authorizes the current principal for ``action_kind``.

    The ``tenant_id`` path parameter, when present, is checked against the
    principal's own tenant.
    """

    async def dependency(
        request: Request,
        principal: Optional[Principal] = Depends(get_principal),
        service: EntitlementService = Depends(get_entitlement_service),
    ) -> Principal:
        tenant_id = request.path_params.get("tenant_id")
        result = await service.authorize(
            ActionContext(principal=principal, action_kind=action_kind, tenant_id=tenant_id)
        )
        if not result.is_valid:
            raise _denial(result)
        assert principal is not None
        return principal

    return dependency


async def require_superadmin(
    principal: Principal = Depends(require_action(ActionKind.ADMIN_ACTION.value)),
) -> Principal:
    """Administrative tooling is reserved to platform superadmins."""
    if not principal.is_superadmin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error_kind": ErrorKind.PERMISSION.value,
                "message": "Superadmin role required",
                "suggested_action": None,
            },
        )
    return principal
