from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Boolean, Column, DateTime, Index, Integer, String
from sqlalchemy.orm import declarative_base

Base: Any = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TenantModel(Base):
    __tablename__ = "tenants"
    id = Column(String(64), primary_key=True)
    name = Column(String, nullable=False)
    state = Column(String, nullable=False, default="trial")
    plan_id = Column(String, nullable=True)
    trial_end_date = Column(DateTime(timezone=True), nullable=True)
    subscription_start_date = Column(DateTime(timezone=True), nullable=True)
    subscription_end_date = Column(DateTime(timezone=True), nullable=True)
    next_payment_date = Column(DateTime(timezone=True), nullable=True)
    last_payment_date = Column(DateTime(timezone=True), nullable=True)
    renewal_type = Column(String, nullable=True)
    payment_status = Column(String, nullable=True)
    auto_renewal = Column(Boolean, nullable=False, default=False)
    active_user_count = Column(Integer, nullable=False, default=0)
    services_used_this_month = Column(Integer, nullable=False, default=0)
    usage_period = Column(String(7), nullable=True)
    services_used_history = Column(JSON, nullable=False, default=dict)
    payment_history = Column(JSON, nullable=False, default=list)
    # bumped on every write; compare-and-swap token
    version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (Index("idx_tenants_state", "state"),)

