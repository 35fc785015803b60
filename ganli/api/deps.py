"""FastAPI dependencies for authentication and tenant resolution."""

import uuid
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ganli.core.database import get_session
from ganli.core.errors import Forbidden
from ganli.core.security import decode_jwt, hash_api_key
from ganli.models.api_key import ApiKey
from ganli.models.base import utcnow
from ganli.models.tenant import Tenant, TenantStatus
from ganli.models.user import QUOTA_MANAGERS, User, UserRole
from ganli.services.llm_gateway import LLMGateway, get_llm_gateway

bearer_scheme = HTTPBearer()


class AuthContext:
    """Resolved identity carried through a request."""

    __slots__ = ("tenant_id", "user_id", "key_id", "user_role")

    def __init__(
        self,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        user_role: str,
        key_id: uuid.UUID | None = None,
    ) -> None:
        self.tenant_id = tenant_id
        self.user_id = user_id
        self.user_role = user_role
        self.key_id = key_id


async def _resolve_api_key(raw_key: str, session: AsyncSession) -> AuthContext:
    """Look up an API key by its SHA-256 hash."""
    stmt = select(ApiKey).where(
        ApiKey.key_hash == hash_api_key(raw_key),
        ApiKey.is_active.is_(True),  # type: ignore[union-attr]
    )
    result = await session.execute(stmt)
    api_key = result.scalar_one_or_none()

    if api_key is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or revoked API key",
        )

    user = await session.get(User, api_key.user_id)
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Key owner account is disabled",
        )

    api_key.last_used_at = utcnow()
    session.add(api_key)
    await session.commit()

    return AuthContext(
        tenant_id=api_key.tenant_id,
        user_id=api_key.user_id,
        user_role=user.role,
        key_id=api_key.id,
    )


async def _resolve_jwt(token: str) -> AuthContext:
    """Decode a JWT and extract tenant_id + user_id."""
    try:
        payload = decode_jwt(token)
    except JWTError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired JWT",
        ) from exc

    try:
        return AuthContext(
            tenant_id=uuid.UUID(payload["tid"]),
            user_id=uuid.UUID(payload["sub"]),
            user_role=payload.get("role", UserRole.MEMBER),
        )
    except (KeyError, ValueError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Malformed JWT payload",
        ) from exc


async def get_auth_context(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> AuthContext:
    """Resolve a bearer credential to an AuthContext.

    Supports two credential types:
    - API keys (opaque, ``gl_`` + token_urlsafe(32))
    - JWTs (contain dots: header.payload.signature)

    Requests whose tenant is missing or suspended are rejected here, before
    any business logic runs.
    """
    raw = credentials.credentials

    if "." in raw:
        auth = await _resolve_jwt(raw)
    else:
        auth = await _resolve_api_key(raw, session)

    tenant = await session.get(Tenant, auth.tenant_id)
    if tenant is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown tenant",
        )
    if tenant.status != TenantStatus.ACTIVE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Tenant is suspended",
        )
    return auth


def require_admin(auth: Annotated[AuthContext, Depends(get_auth_context)]) -> AuthContext:
    if auth.user_role not in QUOTA_MANAGERS:
        raise Forbidden("Only owners and admins can do this")
    return auth


# Typed shorthand for use in route signatures
Auth = Annotated[AuthContext, Depends(get_auth_context)]
AdminAuth = Annotated[AuthContext, Depends(require_admin)]
Session = Annotated[AsyncSession, Depends(get_session)]
Gateway = Annotated[LLMGateway, Depends(get_llm_gateway)]
