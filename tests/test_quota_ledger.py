"""Tests for the quota ledger: atomic debit, refund, recharge, audit trail."""

import asyncio
from datetime import timedelta

import pytest
from sqlmodel import select

from ganli.core.errors import QuotaExceeded
from ganli.models.base import utcnow
from ganli.models.quota_log import QuotaLog, QuotaOperation
from ganli.models.subscription import PlanType, Subscription
from ganli.models.tenant import Tenant
from ganli.models.user import User, UserRole
from ganli.services.quota import (
    consume_quota,
    create_free_subscription,
    get_remaining_quota,
    list_quota_logs,
    recharge_quota,
    refund_quota,
)


async def _seed(session, slug: str, quota: int = 3) -> tuple[Tenant, User]:
    tenant = Tenant(name=slug, slug=slug)
    session.add(tenant)
    await session.flush()
    user = User(
        tenant_id=tenant.id, email=f"{slug}@test.com", password_hash="x", role=UserRole.OWNER,
    )
    session.add(user)
    session.add(Subscription(
        tenant_id=tenant.id, quota_total=quota, quota_used=0, start_date=utcnow(),
    ))
    await session.commit()
    return tenant, user


@pytest.mark.asyncio
async def test_free_subscription_grant_is_logged(session):
    tenant = Tenant(name="Free Co", slug="free-co")
    session.add(tenant)
    await session.flush()
    sub = await create_free_subscription(session, tenant)
    await session.commit()

    assert sub.quota_total == 3
    assert sub.end_date is not None

    status = await get_remaining_quota(session, tenant.id)
    assert (status.remaining, status.total, status.plan_type) == (3, 3, PlanType.FREE)

    logs = await list_quota_logs(session, tenant.id)
    assert len(logs) == 1
    assert logs[0].operation == QuotaOperation.RECHARGE
    assert logs[0].user_id is None
    assert (logs[0].balance_before, logs[0].balance_after) == (0, 3)


@pytest.mark.asyncio
async def test_consume_decrements_and_records_balance(session):
    tenant, user = await _seed(session, "debit", quota=2)

    entry = await consume_quota(session, tenant.id, user.id)
    await session.commit()

    assert entry.operation == QuotaOperation.ANALYSIS
    assert entry.quota_change == -1
    assert (entry.balance_before, entry.balance_after) == (2, 1)
    assert (await get_remaining_quota(session, tenant.id)).remaining == 1


@pytest.mark.asyncio
async def test_consume_at_zero_raises_without_side_effects(session):
    tenant, user = await _seed(session, "empty", quota=1)
    # rollback expires loaded rows
    tenant_id, user_id = tenant.id, user.id
    await consume_quota(session, tenant_id, user_id)
    await session.commit()

    with pytest.raises(QuotaExceeded):
        await consume_quota(session, tenant_id, user_id)
    await session.rollback()

    status = await get_remaining_quota(session, tenant_id)
    assert status.remaining == 0
    assert status.used == 1
    logs = await list_quota_logs(session, tenant_id)
    assert [log.operation for log in logs] == [QuotaOperation.ANALYSIS]


@pytest.mark.asyncio
async def test_expired_subscription_has_no_quota(session):
    tenant, user = await _seed(session, "expired", quota=5)
    sub = (await session.execute(
        select(Subscription).where(Subscription.tenant_id == tenant.id)
    )).scalar_one()
    sub.end_date = utcnow() - timedelta(days=1)
    session.add(sub)
    await session.commit()

    assert (await get_remaining_quota(session, tenant.id)).remaining == 0
    with pytest.raises(QuotaExceeded):
        await consume_quota(session, tenant.id, user.id)


@pytest.mark.asyncio
async def test_concurrent_debits_never_exceed_quota(session, test_session_factory):
    tenant, user = await _seed(session, "race", quota=3)

    async def _attempt() -> bool:
        async with test_session_factory() as own_session:
            try:
                await consume_quota(own_session, tenant.id, user.id)
            except QuotaExceeded:
                await own_session.rollback()
                return False
            await own_session.commit()
            return True

    results = await asyncio.gather(*[_attempt() for _ in range(8)])

    assert sum(results) == 3
    status = await get_remaining_quota(session, tenant.id)
    assert status.remaining == 0
    assert status.used == 3


@pytest.mark.asyncio
async def test_refund_restores_balance_once(session):
    tenant, user = await _seed(session, "refund", quota=2)
    candidate_ref = tenant.id  # any id works as the related row
    await consume_quota(session, tenant.id, user.id, related_id=candidate_ref)
    await session.commit()

    entry = await refund_quota(session, tenant.id, candidate_ref)
    await session.commit()
    assert entry is not None
    assert entry.operation == QuotaOperation.REFUND
    assert (entry.balance_before, entry.balance_after) == (1, 2)

    # Second refund for the same debit is a no-op
    assert await refund_quota(session, tenant.id, candidate_ref) is None
    assert (await get_remaining_quota(session, tenant.id)).remaining == 2


@pytest.mark.asyncio
async def test_refund_without_debit_is_noop(session):
    tenant, _ = await _seed(session, "no-debit", quota=2)
    assert await refund_quota(session, tenant.id, tenant.id) is None
    assert (await get_remaining_quota(session, tenant.id)).remaining == 2


@pytest.mark.asyncio
async def test_recharge_adds_quota_and_upgrades_plan(session):
    tenant, user = await _seed(session, "recharge", quota=1)
    await consume_quota(session, tenant.id, user.id)
    await session.commit()

    entry = await recharge_quota(session, tenant.id, user.id, 10, plan_type=PlanType.PRO)
    await session.commit()

    assert (entry.balance_before, entry.balance_after) == (0, 10)
    status = await get_remaining_quota(session, tenant.id)
    assert (status.remaining, status.total, status.plan_type) == (10, 11, PlanType.PRO)

    await session.refresh(tenant)
    assert tenant.plan_type == PlanType.PRO


@pytest.mark.asyncio
async def test_ledger_is_tenant_scoped(session):
    tenant_a, user_a = await _seed(session, "ledger-a")
    tenant_b, _ = await _seed(session, "ledger-b")
    await consume_quota(session, tenant_a.id, user_a.id)
    await session.commit()

    assert len(await list_quota_logs(session, tenant_a.id)) == 1
    assert await list_quota_logs(session, tenant_b.id) == []
    assert (await get_remaining_quota(session, tenant_b.id)).remaining == 3

    rows = (await session.execute(select(QuotaLog))).scalars().all()
    assert {row.tenant_id for row in rows} == {tenant_a.id}
