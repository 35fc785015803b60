"""Quota Ledger — per-tenant analysis allowance with an audit trail.

Every balance change is a single conditional UPDATE on the active
subscription row followed by one QuotaLog entry. Functions here only flush;
the caller owns the transaction and commits.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ganli.core.config import get_settings
from ganli.core.errors import NotFound, QuotaExceeded
from ganli.models.base import utcnow
from ganli.models.quota_log import QuotaLog, QuotaOperation
from ganli.models.subscription import PlanType, Subscription, SubscriptionStatus
from ganli.models.tenant import Tenant

logger = logging.getLogger(__name__)


@dataclass
class QuotaStatus:
    remaining: int
    total: int
    used: int
    plan_type: PlanType
    end_date: datetime | None = None


def _is_current(now: datetime):
    return or_(Subscription.end_date.is_(None), Subscription.end_date > now)  # type: ignore[union-attr]


async def get_active_subscription(
    session: AsyncSession, tenant_id: uuid.UUID,
) -> Subscription | None:
    stmt = (
        select(Subscription)
        .where(
            Subscription.tenant_id == tenant_id,
            Subscription.status == SubscriptionStatus.ACTIVE,
            _is_current(utcnow()),
        )
        .order_by(Subscription.created_at.desc())  # type: ignore[union-attr]
        .limit(1)
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_remaining_quota(session: AsyncSession, tenant_id: uuid.UUID) -> QuotaStatus:
    sub = await get_active_subscription(session, tenant_id)
    if sub is None:
        return QuotaStatus(remaining=0, total=0, used=0, plan_type=PlanType.FREE)
    return QuotaStatus(
        remaining=sub.remaining,
        total=sub.quota_total,
        used=sub.quota_used,
        plan_type=sub.plan_type,
        end_date=sub.end_date,
    )


async def create_free_subscription(session: AsyncSession, tenant: Tenant) -> Subscription:
    """Grant the signup plan and record it as a recharge."""
    settings = get_settings()
    now = utcnow()
    sub = Subscription(
        tenant_id=tenant.id,
        plan_type=PlanType.FREE,
        quota_total=settings.free_plan_quota,
        quota_used=0,
        start_date=now,
        end_date=now + timedelta(days=settings.free_plan_days),
    )
    session.add(sub)
    await session.flush()
    session.add(QuotaLog(
        tenant_id=tenant.id,
        subscription_id=sub.id,
        operation=QuotaOperation.RECHARGE,
        quota_change=sub.quota_total,
        balance_before=0,
        balance_after=sub.quota_total,
        description="Free plan grant",
    ))
    await session.flush()
    return sub


async def consume_quota(
    session: AsyncSession,
    tenant_id: uuid.UUID,
    user_id: uuid.UUID,
    related_id: uuid.UUID | None = None,
) -> QuotaLog:
    """Debit one analysis from the tenant's active subscription.

    The debit is a compare-and-decrement; if a concurrent request took the
    last unit first, no row matches and ``QuotaExceeded`` is raised.
    """
    sub = await get_active_subscription(session, tenant_id)
    if sub is None:
        raise QuotaExceeded()

    stmt = (
        update(Subscription)
        .where(
            Subscription.id == sub.id,
            Subscription.status == SubscriptionStatus.ACTIVE,
            Subscription.quota_used < Subscription.quota_total,
        )
        .values(quota_used=Subscription.quota_used + 1, updated_at=utcnow())
        .returning(Subscription.quota_total, Subscription.quota_used)
        .execution_options(synchronize_session=False)
    )
    row = (await session.execute(stmt)).first()
    if row is None:
        logger.info("Quota exhausted for tenant %s", tenant_id)
        raise QuotaExceeded()

    total, used = row
    entry = QuotaLog(
        tenant_id=tenant_id,
        subscription_id=sub.id,
        user_id=user_id,
        operation=QuotaOperation.ANALYSIS,
        quota_change=-1,
        balance_before=total - used + 1,
        balance_after=total - used,
        related_id=related_id,
        description="Personality analysis",
    )
    session.add(entry)
    await session.flush()
    logger.info("Debited 1 quota for tenant %s, %d left", tenant_id, entry.balance_after)
    return entry


async def refund_quota(
    session: AsyncSession,
    tenant_id: uuid.UUID,
    related_id: uuid.UUID,
    description: str = "Refund for failed analysis",
) -> QuotaLog | None:
    """Credit back the analysis debit recorded for *related_id*.

    Idempotent: returns None when there is no debit or it was already
    refunded.
    """
    logs = (await session.execute(
        select(QuotaLog).where(
            QuotaLog.tenant_id == tenant_id,
            QuotaLog.related_id == related_id,
        )
    )).scalars().all()
    debit = next((log for log in logs if log.operation == QuotaOperation.ANALYSIS), None)
    if debit is None or any(log.operation == QuotaOperation.REFUND for log in logs):
        return None

    stmt = (
        update(Subscription)
        .where(Subscription.id == debit.subscription_id, Subscription.quota_used > 0)
        .values(quota_used=Subscription.quota_used - 1, updated_at=utcnow())
        .returning(Subscription.quota_total, Subscription.quota_used)
        .execution_options(synchronize_session=False)
    )
    row = (await session.execute(stmt)).first()
    if row is None:
        logger.warning("Nothing to refund on subscription %s", debit.subscription_id)
        return None

    total, used = row
    entry = QuotaLog(
        tenant_id=tenant_id,
        subscription_id=debit.subscription_id,
        user_id=debit.user_id,
        operation=QuotaOperation.REFUND,
        quota_change=1,
        balance_before=total - used - 1,
        balance_after=total - used,
        related_id=related_id,
        description=description,
    )
    session.add(entry)
    await session.flush()
    logger.info("Refunded 1 quota to tenant %s for %s", tenant_id, related_id)
    return entry


async def recharge_quota(
    session: AsyncSession,
    tenant_id: uuid.UUID,
    user_id: uuid.UUID | None,
    amount: int,
    plan_type: PlanType | None = None,
    description: str = "",
) -> QuotaLog:
    """Add *amount* analyses to the active subscription (opening one if needed)."""
    if amount <= 0:
        raise ValueError("Recharge amount must be positive")

    sub = await get_active_subscription(session, tenant_id)
    if sub is None:
        sub = Subscription(
            tenant_id=tenant_id,
            plan_type=plan_type or PlanType.FREE,
            quota_total=0,
            quota_used=0,
            start_date=utcnow(),
        )
        session.add(sub)
        await session.flush()

    values: dict = {"quota_total": Subscription.quota_total + amount, "updated_at": utcnow()}
    if plan_type is not None:
        values["plan_type"] = plan_type
    stmt = (
        update(Subscription)
        .where(Subscription.id == sub.id)
        .values(**values)
        .returning(Subscription.quota_total, Subscription.quota_used)
        .execution_options(synchronize_session=False)
    )
    total, used = (await session.execute(stmt)).one()

    if plan_type is not None:
        tenant = await session.get(Tenant, tenant_id)
        if tenant is None:
            raise NotFound("Tenant not found")
        tenant.plan_type = str(plan_type)
        session.add(tenant)

    entry = QuotaLog(
        tenant_id=tenant_id,
        subscription_id=sub.id,
        user_id=user_id,
        operation=QuotaOperation.RECHARGE,
        quota_change=amount,
        balance_before=total - used - amount,
        balance_after=total - used,
        description=description or f"Recharge {amount}",
    )
    session.add(entry)
    await session.flush()
    logger.info("Recharged %d quota for tenant %s", amount, tenant_id)
    return entry


async def list_quota_logs(
    session: AsyncSession, tenant_id: uuid.UUID, limit: int = 50, offset: int = 0,
) -> list[QuotaLog]:
    stmt = (
        select(QuotaLog)
        .where(QuotaLog.tenant_id == tenant_id)
        .order_by(QuotaLog.created_at.desc())  # type: ignore[union-attr]
        .offset(offset)
        .limit(limit)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())
