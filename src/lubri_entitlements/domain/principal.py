from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Role(str, Enum):
    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    USER = "user"


class AccountStatus(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"
    INACTIVE = "inactive"


@dataclass(frozen=True)
class Principal:
    """The requesting user as supplied by the identity provider."""

    id: str
    role: str
    account_status: str = AccountStatus.ACTIVE.value
    # absent for superadmin
    tenant_id: Optional[str] = None

    def __post_init__(self):
        # store plain values so set/dict lookups behave
        for attr in ("role", "account_status"):
            value = getattr(self, attr)
            if isinstance(value, Enum):
                object.__setattr__(self, attr, value.value)

    @property
    def is_superadmin(self) -> bool:
        return self.role == Role.SUPERADMIN

    @property
    def is_active(self) -> bool:
        return self.account_status == AccountStatus.ACTIVE


__all__ = ["Principal", "Role", "AccountStatus"]
