"""Tenant signup (bootstrap) endpoint."""

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, EmailStr, Field
from sqlmodel import select

from ganli.api.deps import Auth, Session
from ganli.core.security import generate_api_key, hash_api_key, hash_password
from ganli.models.api_key import ApiKey
from ganli.models.tenant import Tenant, TenantRead
from ganli.models.user import User, UserRole
from ganli.services.quota import create_free_subscription

router = APIRouter(prefix="/tenants", tags=["tenants"])


# ── Bootstrap request / response schemas ──────────────────────

class TenantBootstrapRequest(BaseModel):
    """Everything needed to open a new team account in one call."""
    tenant_name: str = Field(max_length=255)
    tenant_slug: str = Field(max_length=100, pattern=r"^[a-z0-9\-]+$")
    owner_email: EmailStr
    owner_password: str = Field(min_length=8, max_length=128)
    owner_display_name: str = Field(default="", max_length=255)


class TenantBootstrapResponse(BaseModel):
    tenant: TenantRead
    api_key: str = Field(description="Shown once — store it securely")
    key_prefix: str
    quota_total: int


# ── Routes ────────────────────────────────────────────────────

@router.post(
    "",
    response_model=TenantBootstrapResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new tenant (bootstrap)",
)
async def bootstrap_tenant(
    body: TenantBootstrapRequest,
    session: Session,
) -> TenantBootstrapResponse:
    """Create a tenant, its owner, an API key and the free plan.

    This is the only unauthenticated write endpoint.
    The raw API key is returned once — the caller must store it.
    """
    existing = await session.execute(
        select(Tenant).where(Tenant.slug == body.tenant_slug)
    )
    if existing.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Slug '{body.tenant_slug}' is already taken",
        )

    # 1. Tenant
    tenant = Tenant(name=body.tenant_name, slug=body.tenant_slug)
    session.add(tenant)
    await session.flush()

    # 2. Owner
    user = User(
        tenant_id=tenant.id,
        email=body.owner_email,
        password_hash=hash_password(body.owner_password),
        display_name=body.owner_display_name,
        role=UserRole.OWNER,
    )
    session.add(user)
    await session.flush()

    # 3. First API key
    raw_key = generate_api_key()
    prefix = raw_key[:8]
    session.add(ApiKey(
        tenant_id=tenant.id,
        user_id=user.id,
        name="default",
        key_hash=hash_api_key(raw_key),
        key_prefix=prefix,
    ))

    # 4. Free plan grant
    sub = await create_free_subscription(session, tenant)
    await session.commit()
    await session.refresh(tenant)

    return TenantBootstrapResponse(
        tenant=TenantRead.model_validate(tenant),
        api_key=raw_key,
        key_prefix=prefix,
        quota_total=sub.quota_total,
    )


@router.get(
    "/me",
    response_model=TenantRead,
    summary="Get current tenant info",
)
async def get_current_tenant(auth: Auth, session: Session) -> TenantRead:
    """Returns the tenant associated with the authenticated credential."""
    tenant = await session.get(Tenant, auth.tenant_id)
    if tenant is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")
    return TenantRead.model_validate(tenant)
