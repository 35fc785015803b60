"""API key model — bearer keys for programmatic access."""

import uuid
from datetime import datetime

from sqlmodel import Field, SQLModel

from ganli.models.base import TimestampMixin, new_uuid


class ApiKey(TimestampMixin, SQLModel, table=True):
    __tablename__ = "api_keys"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)

    name: str = Field(max_length=255, nullable=False)

    # SHA-256 hash of the raw key — raw value is shown only once at creation
    key_hash: str = Field(nullable=False, unique=True, index=True)
    key_prefix: str = Field(max_length=12, nullable=False)

    is_active: bool = Field(default=True)
    last_used_at: datetime | None = Field(default=None)
