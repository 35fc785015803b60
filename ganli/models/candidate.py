"""Candidate model — a person whose text was submitted for analysis."""

import uuid
from datetime import datetime
from enum import StrEnum

from sqlalchemy import Text
from sqlmodel import Column, Field, SQLModel

from ganli.models.base import TimestampMixin, new_uuid


class CandidateSourceType(StrEnum):
    TEXT = "text"
    FILE = "file"
    CHAT = "chat"


class Candidate(TimestampMixin, SQLModel, table=True):
    __tablename__ = "candidates"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    created_by: uuid.UUID = Field(foreign_key="users.id", nullable=False)

    name: str = Field(max_length=100, nullable=False)
    position: str | None = Field(default=None, max_length=100, index=True)
    source_text: str = Field(sa_column=Column(Text, nullable=False))
    source_type: CandidateSourceType = Field(default=CandidateSourceType.TEXT)

    is_hired: bool = Field(default=False)
    hired_at: datetime | None = Field(default=None)


# ── Pydantic schemas ─────────────────────────────────────────

class CandidateRead(SQLModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    name: str
    position: str | None
    source_type: CandidateSourceType
    is_hired: bool
    hired_at: datetime | None
    created_at: datetime


class CandidateDetail(CandidateRead):
    source_text: str
