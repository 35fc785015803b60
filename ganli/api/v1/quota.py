"""Quota endpoints — balance, ledger, admin recharge."""

from fastapi import APIRouter, Query

from ganli.api.deps import AdminAuth, Auth, Session
from ganli.models.quota_log import QuotaLogRead
from ganli.models.subscription import QuotaRead, QuotaRecharge
from ganli.services import quota as quota_service

router = APIRouter(prefix="/quota", tags=["quota"])


async def _read(session, tenant_id) -> QuotaRead:
    status = await quota_service.get_remaining_quota(session, tenant_id)
    return QuotaRead(
        remaining=status.remaining,
        total=status.total,
        used=status.used,
        plan_type=status.plan_type,
        end_date=status.end_date,
    )


@router.get("", response_model=QuotaRead)
async def get_quota(auth: Auth, session: Session) -> QuotaRead:
    return await _read(session, auth.tenant_id)


@router.get("/logs", response_model=list[QuotaLogRead])
async def list_quota_logs(
    auth: Auth,
    session: Session,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> list[QuotaLogRead]:
    logs = await quota_service.list_quota_logs(session, auth.tenant_id, limit=limit, offset=offset)
    return [QuotaLogRead.model_validate(log) for log in logs]


@router.post("/recharge", response_model=QuotaRead)
async def recharge(body: QuotaRecharge, auth: AdminAuth, session: Session) -> QuotaRead:
    """Add analyses to the tenant's plan. Owners and admins only."""
    await quota_service.recharge_quota(
        session,
        auth.tenant_id,
        auth.user_id,
        body.amount,
        plan_type=body.plan_type,
        description=body.description,
    )
    await session.commit()
    return await _read(session, auth.tenant_id)
