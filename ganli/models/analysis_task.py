"""AnalysisTask model — lifecycle of one analysis run."""

import uuid
from datetime import datetime

from sqlmodel import Field, SQLModel

from ganli.models.base import TimestampMixin, new_uuid
from ganli.models.report import AnalysisStatus


class AnalysisTask(TimestampMixin, SQLModel, table=True):
    __tablename__ = "analysis_tasks"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    candidate_id: uuid.UUID = Field(foreign_key="candidates.id", nullable=False, index=True)
    created_by: uuid.UUID = Field(foreign_key="users.id", nullable=False)

    status: AnalysisStatus = Field(default=AnalysisStatus.PENDING, index=True)
    report_id: uuid.UUID | None = Field(default=None, foreign_key="reports.id", nullable=True)
    error_message: str | None = Field(default=None, max_length=2000)
    completed_at: datetime | None = Field(default=None)


# ── Pydantic schemas ─────────────────────────────────────────

class AnalysisTaskCreate(SQLModel):
    name: str = Field(max_length=100)
    source_text: str
    position: str | None = Field(default=None, max_length=100)


class AnalysisTaskRead(SQLModel):
    id: uuid.UUID
    candidate_id: uuid.UUID
    status: AnalysisStatus
    report_id: uuid.UUID | None
    error_message: str | None
    created_at: datetime
    completed_at: datetime | None
