"""Recruiter accounts — every user belongs to one hiring team (tenant).

The same email may hold accounts in several teams; within a team it is
unique.
"""

import uuid
from datetime import datetime
from enum import StrEnum

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from ganli.models.base import TimestampMixin, new_uuid


class UserRole(StrEnum):
    OWNER = "owner"    # opened the team account
    ADMIN = "admin"    # HR lead: recharges quota
    MEMBER = "member"  # recruiter: submits and reads analyses


# Roles allowed to spend money on the team's behalf
QUOTA_MANAGERS = (UserRole.OWNER, UserRole.ADMIN)


class User(TimestampMixin, SQLModel, table=True):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("tenant_id", "email", name="uq_users_tenant_email"),)

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    email: str = Field(max_length=320, nullable=False, index=True)
    password_hash: str = Field(nullable=False)
    display_name: str = Field(default="", max_length=255)
    role: UserRole = Field(default=UserRole.MEMBER)
    is_active: bool = Field(default=True)
    last_login_at: datetime | None = Field(default=None)


# ── Pydantic schemas ─────────────────────────────────────────

class UserRead(SQLModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    email: str
    display_name: str
    role: UserRole
    is_active: bool
    last_login_at: datetime | None = None
