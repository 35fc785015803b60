"""Tenant model — one customer organisation, root of every business row."""

import uuid
from enum import StrEnum

from sqlmodel import Field, SQLModel

from ganli.models.base import TimestampMixin, new_uuid


class TenantStatus(StrEnum):
    ACTIVE = "active"
    SUSPENDED = "suspended"


class Tenant(TimestampMixin, SQLModel, table=True):
    __tablename__ = "tenants"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    name: str = Field(max_length=255, nullable=False)
    slug: str = Field(max_length=100, unique=True, nullable=False, index=True)
    status: TenantStatus = Field(default=TenantStatus.ACTIVE)

    # Mirrors the plan of the active subscription
    plan_type: str = Field(default="free", max_length=50)


# ── Pydantic schemas ─────────────────────────────────────────

class TenantRead(SQLModel):
    id: uuid.UUID
    name: str
    slug: str
    status: TenantStatus
    plan_type: str
