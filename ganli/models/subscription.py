"""Subscription model — the tenant's plan and analysis quota."""

import uuid
from datetime import datetime
from enum import StrEnum

from sqlalchemy import CheckConstraint
from sqlmodel import Field, SQLModel

from ganli.models.base import TimestampMixin, new_uuid


class PlanType(StrEnum):
    FREE = "free"
    BASIC = "basic"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class SubscriptionStatus(StrEnum):
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class Subscription(TimestampMixin, SQLModel, table=True):
    __tablename__ = "subscriptions"
    __table_args__ = (
        CheckConstraint("quota_used >= 0", name="ck_subscriptions_quota_used_non_negative"),
        CheckConstraint("quota_used <= quota_total", name="ck_subscriptions_quota_within_total"),
    )

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)

    plan_type: PlanType = Field(default=PlanType.FREE)
    quota_total: int = Field(default=0, nullable=False)
    quota_used: int = Field(default=0, nullable=False)
    status: SubscriptionStatus = Field(default=SubscriptionStatus.ACTIVE, index=True)

    start_date: datetime = Field(nullable=False)
    end_date: datetime | None = Field(default=None)
    auto_renew: bool = Field(default=False)

    @property
    def remaining(self) -> int:
        return self.quota_total - self.quota_used


# ── Pydantic schemas ─────────────────────────────────────────

class QuotaRead(SQLModel):
    remaining: int
    total: int
    used: int
    plan_type: PlanType
    end_date: datetime | None = None


class QuotaRecharge(SQLModel):
    amount: int = Field(gt=0, le=100000)
    plan_type: PlanType | None = None
    description: str = Field(default="", max_length=500)
