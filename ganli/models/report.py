"""Report model — the scored outcome of one successful analysis."""

import uuid
from datetime import datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import Text
from sqlmodel import Column, Field, SQLModel

from ganli.models.base import TimestampMixin, new_uuid


class AnalysisStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Report(TimestampMixin, SQLModel, table=True):
    __tablename__ = "reports"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    # One report per candidate
    candidate_id: uuid.UUID = Field(foreign_key="candidates.id", nullable=False, unique=True)
    created_by: uuid.UUID = Field(foreign_key="users.id", nullable=False)

    personality_type: str = Field(max_length=20, nullable=False, index=True)
    dimension1: str = Field(max_length=20, nullable=False)
    dimension2: str = Field(max_length=20, nullable=False)
    maturity_score: float = Field(nullable=False)
    match_score: int = Field(nullable=False)
    risk_level: str = Field(max_length=10, nullable=False, index=True)
    confidence: float = Field(default=0.0)

    # JSON-encoded list of strings
    risk_factors: str = Field(default="[]", sa_column=Column(Text, nullable=False, server_default="[]"))
    clues: str = Field(default="", sa_column=Column(Text, nullable=False, server_default=""))
    # JSON-encoded full report payload
    report_data: str = Field(default="{}", sa_column=Column(Text, nullable=False, server_default="{}"))

    analysis_status: AnalysisStatus = Field(default=AnalysisStatus.COMPLETED)


# ── Pydantic schemas ─────────────────────────────────────────

class ReportSummary(SQLModel):
    """List row: report scores joined with the candidate's name and status."""
    id: uuid.UUID
    candidate_id: uuid.UUID
    candidate_name: str
    position: str | None
    is_hired: bool
    personality_type: str
    maturity_score: float
    match_score: int
    risk_level: str
    created_at: datetime


class ReportRead(ReportSummary):
    dimension1: str
    dimension2: str
    confidence: float
    risk_factors: list[str]
    clues: str
    report_data: dict[str, Any]
    analysis_status: AnalysisStatus


class ReportPage(SQLModel):
    items: list[ReportSummary]
    total: int
    page: int
    limit: int
