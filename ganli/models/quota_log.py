"""QuotaLog model — append-only ledger of balance changes."""

import uuid
from datetime import datetime
from enum import StrEnum

from sqlmodel import Field, SQLModel

from ganli.models.base import TimestampMixin, new_uuid


class QuotaOperation(StrEnum):
    ANALYSIS = "analysis"
    RECHARGE = "recharge"
    REFUND = "refund"


class QuotaLog(TimestampMixin, SQLModel, table=True):
    __tablename__ = "quota_logs"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    subscription_id: uuid.UUID = Field(foreign_key="subscriptions.id", nullable=False, index=True)
    # NULL for system grants (signup free plan)
    user_id: uuid.UUID | None = Field(default=None, foreign_key="users.id", nullable=True)

    operation: QuotaOperation = Field(nullable=False)
    quota_change: int = Field(nullable=False)
    balance_before: int = Field(nullable=False)
    balance_after: int = Field(nullable=False)

    # Candidate the entry belongs to, when there is one
    related_id: uuid.UUID | None = Field(default=None, index=True)
    description: str = Field(default="", max_length=500)


# ── Pydantic schemas ─────────────────────────────────────────

class QuotaLogRead(SQLModel):
    id: uuid.UUID
    operation: QuotaOperation
    quota_change: int
    balance_before: int
    balance_after: int
    related_id: uuid.UUID | None
    description: str
    user_id: uuid.UUID | None
    created_at: datetime
