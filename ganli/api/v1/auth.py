"""Recruiter sign-in — email + password to a team-scoped JWT.

One email can hold accounts in several hiring teams. Login picks the account
whose password matches, narrowed by ``tenant_slug`` when the caller names a
team.
"""

import logging

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, EmailStr, Field
from sqlmodel import select

from ganli.api.deps import Auth, Session
from ganli.core.security import create_jwt, verify_password
from ganli.models.base import utcnow
from ganli.models.tenant import Tenant, TenantRead, TenantStatus
from ganli.models.user import User, UserRead

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


# ── Schemas ──────────────────────────────────────────────────

class LoginRequest(BaseModel):
    email: EmailStr
    password: str
    tenant_slug: str | None = Field(
        default=None, max_length=100, description="Team to sign in to, if the email has several",
    )


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserRead
    tenant: TenantRead


class MeResponse(BaseModel):
    user: UserRead
    tenant: TenantRead


# ── Routes ───────────────────────────────────────────────────

@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, session: Session) -> LoginResponse:
    """Authenticate a recruiter and issue a JWT for their team."""
    stmt = (
        select(User, Tenant)
        .join(Tenant, Tenant.id == User.tenant_id)
        .where(User.email == body.email)
        .order_by(User.created_at)  # type: ignore[arg-type]
    )
    if body.tenant_slug:
        stmt = stmt.where(Tenant.slug == body.tenant_slug)
    accounts = (await session.execute(stmt)).all()

    match = next(
        ((user, tenant) for user, tenant in accounts
         if verify_password(body.password, user.password_hash)),
        None,
    )
    if match is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    user, tenant = match

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is disabled",
        )
    if tenant.status != TenantStatus.ACTIVE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Tenant is suspended",
        )

    user.last_login_at = utcnow()
    session.add(user)
    await session.commit()
    logger.info("User %s signed in to tenant %s", user.id, tenant.slug)

    token = create_jwt(
        subject=str(user.id),
        tenant_id=str(user.tenant_id),
        role=user.role,
    )
    return LoginResponse(
        access_token=token,
        user=UserRead.model_validate(user),
        tenant=TenantRead.model_validate(tenant),
    )


@router.get("/me", response_model=MeResponse)
async def get_me(auth: Auth, session: Session) -> MeResponse:
    """The signed-in recruiter and their team."""
    user = await session.get(User, auth.user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    tenant = await session.get(Tenant, auth.tenant_id)
    if tenant is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")

    return MeResponse(
        user=UserRead.model_validate(user),
        tenant=TenantRead.model_validate(tenant),
    )
