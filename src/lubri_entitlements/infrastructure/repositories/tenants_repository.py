import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from ...domain.dates import ensure_aware
from ...domain.tenant import PaymentRecord
from ...domain.tenant import Tenant as DomainTenant
from ...exceptions import TenantAlreadyExistsError, TenantNotFoundError
from ...ports.tenant_store import StoreCondition
from ..db import models

# Columns callers may write; id, version and created_at are managed here
WRITABLE_FIELDS = frozenset(
    {
        "name",
        "state",
        "plan_id",
        "trial_end_date",
        "subscription_start_date",
        "subscription_end_date",
        "next_payment_date",
        "last_payment_date",
        "renewal_type",
        "payment_status",
        "auto_renewal",
        "active_user_count",
        "services_used_this_month",
        "usage_period",
        "services_used_history",
        "payment_history",
    }
)

# Integer columns usable in StoreCondition.below
GUARDABLE_FIELDS = frozenset({"services_used_this_month", "active_user_count"})


def to_domain(row: Any) -> DomainTenant:
    return DomainTenant(
        id=str(row.id),
        name=row.name,
        state=row.state,
        plan_id=row.plan_id,
        trial_end_date=ensure_aware(row.trial_end_date),
        subscription_start_date=ensure_aware(row.subscription_start_date),
        subscription_end_date=ensure_aware(row.subscription_end_date),
        next_payment_date=ensure_aware(row.next_payment_date),
        last_payment_date=ensure_aware(row.last_payment_date),
        renewal_type=row.renewal_type,
        payment_status=row.payment_status,
        auto_renewal=bool(row.auto_renewal),
        active_user_count=int(row.active_user_count or 0),
        services_used_this_month=int(row.services_used_this_month or 0),
        usage_period=row.usage_period,
        services_used_history={k: int(v) for k, v in (row.services_used_history or {}).items()},
        payment_history=[PaymentRecord.from_dict(p) for p in (row.payment_history or [])],
        version=int(row.version or 0),
        created_at=ensure_aware(row.created_at),
        updated_at=ensure_aware(row.updated_at),
    )


def to_columns(fields: Dict[str, Any]) -> Dict[str, Any]:
    unknown = set(fields) - WRITABLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown tenant fields: {sorted(unknown)}")
    values: Dict[str, Any] = {}
    for key, value in fields.items():
        if isinstance(value, Enum):
            value = value.value
        if key == "payment_history":
            value = [p.to_dict() if isinstance(p, PaymentRecord) else p for p in value or []]
        elif key == "services_used_history":
            value = dict(value or {})
        values[key] = value
    return values


class SqlAlchemyTenantStore:
    """Tenant store backed by an async SQLAlchemy engine.

    Each call runs in its own session and transaction, so concurrent requests
    never share a session. Conditional writes are a single
    ``UPDATE ... WHERE`` statement; the database applies the guard and the
    write atomically.
    """

    def __init__(self, session_factory: Any):
        self.session_factory = session_factory

    async def get(self, tenant_id: str) -> DomainTenant:
        async with self.session_factory() as db_session:
            q = await db_session.execute(
                select(models.TenantModel).where(models.TenantModel.id == str(tenant_id))
            )
            row = q.scalars().first()
        if not row:
            raise TenantNotFoundError(tenant_id)
        return to_domain(row)

    async def create(self, tenant: DomainTenant) -> DomainTenant:
        tenant_id = tenant.id or uuid.uuid4().hex
        values = to_columns(
            {
                "name": tenant.name,
                "state": tenant.state,
                "plan_id": tenant.plan_id,
                "trial_end_date": tenant.trial_end_date,
                "subscription_start_date": tenant.subscription_start_date,
                "subscription_end_date": tenant.subscription_end_date,
                "next_payment_date": tenant.next_payment_date,
                "last_payment_date": tenant.last_payment_date,
                "renewal_type": tenant.renewal_type,
                "payment_status": tenant.payment_status,
                "auto_renewal": tenant.auto_renewal,
                "active_user_count": tenant.active_user_count,
                "services_used_this_month": tenant.services_used_this_month,
                "usage_period": tenant.usage_period,
                "services_used_history": tenant.services_used_history,
                "payment_history": tenant.payment_history,
            }
        )
        m = models.TenantModel(
            id=tenant_id,
            version=0,
            created_at=tenant.created_at,
            updated_at=tenant.updated_at,
            **values,
        )
        try:
            async with self.session_factory() as db_session:
                async with db_session.begin():
                    db_session.add(m)
        except IntegrityError as e:
            # primary key is the only unique constraint on tenants
            raise TenantAlreadyExistsError(tenant_id) from e
        return await self.get(tenant_id)

    async def update(self, tenant_id: str, **fields) -> DomainTenant:
        values = to_columns(fields)
        values["updated_at"] = datetime.now(timezone.utc)
        values["version"] = models.TenantModel.version + 1
        async with self.session_factory() as db_session:
            async with db_session.begin():
                result = await db_session.execute(
                    update(models.TenantModel)
                    .where(models.TenantModel.id == str(tenant_id))
                    .values(**values)
                )
        if result.rowcount == 0:
            raise TenantNotFoundError(tenant_id)
        return await self.get(tenant_id)

    async def update_conditional(
        self, tenant_id: str, condition: StoreCondition, **fields
    ) -> bool:
        values = to_columns(fields)
        values["updated_at"] = datetime.now(timezone.utc)
        values["version"] = models.TenantModel.version + 1

        stmt = update(models.TenantModel).where(models.TenantModel.id == str(tenant_id))
        if condition.expected_version is not None:
            stmt = stmt.where(models.TenantModel.version == condition.expected_version)
        if condition.state_in is not None:
            stmt = stmt.where(models.TenantModel.state.in_(sorted(condition.state_in)))
        for column_name, bound in condition.below.items():
            if column_name not in GUARDABLE_FIELDS:
                raise ValueError(f"Cannot guard on column {column_name!r}")
            stmt = stmt.where(getattr(models.TenantModel, column_name) < bound)

        async with self.session_factory() as db_session:
            async with db_session.begin():
                result = await db_session.execute(stmt.values(**values))
        return result.rowcount == 1

    async def list_by_state(self, state: str) -> List[DomainTenant]:
        async with self.session_factory() as db_session:
            q = await db_session.execute(
                select(models.TenantModel)
                .where(models.TenantModel.state == state)
                .order_by(models.TenantModel.created_at.desc())
            )
            rows = q.scalars().all()
        return [to_domain(r) for r in rows]

    async def list_all(self) -> List[DomainTenant]:
        async with self.session_factory() as db_session:
            q = await db_session.execute(
                select(models.TenantModel).order_by(models.TenantModel.created_at.desc())
            )
            rows = q.scalars().all()
        return [to_domain(r) for r in rows]
