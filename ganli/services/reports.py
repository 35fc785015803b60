"""Candidate / report queries and team statistics.

Every query filters by tenant. A row belonging to another tenant is
indistinguishable from a missing one (NotFound, never Forbidden).
"""

import logging
import uuid

from pydantic import BaseModel
from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ganli.core import cache
from ganli.core.errors import NotFound
from ganli.models.analysis_task import AnalysisTask
from ganli.models.base import utcnow
from ganli.models.candidate import Candidate
from ganli.models.report import Report
from ganli.services.personality import PersonalityType, RiskLevel

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


class TeamStats(BaseModel):
    total_candidates: int
    hired_count: int
    personality_distribution: dict[str, int]
    risk_distribution: dict[str, int]
    avg_maturity_score: float
    avg_match_score: float


def _escape_like(value: str) -> str:
    """Make LIKE wildcards in user input match literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# ── Lookups ───────────────────────────────────────────────────

async def get_report(
    session: AsyncSession, report_id: uuid.UUID, tenant_id: uuid.UUID,
) -> Report:
    result = await session.execute(
        select(Report).where(Report.id == report_id, Report.tenant_id == tenant_id)
    )
    report = result.scalar_one_or_none()
    if report is None:
        raise NotFound("Report not found")
    return report


async def get_candidate(
    session: AsyncSession, candidate_id: uuid.UUID, tenant_id: uuid.UUID,
) -> Candidate:
    result = await session.execute(
        select(Candidate)
        .where(Candidate.id == candidate_id, Candidate.tenant_id == tenant_id)
        .execution_options(populate_existing=True)
    )
    candidate = result.scalar_one_or_none()
    if candidate is None:
        raise NotFound("Candidate not found")
    return candidate


async def get_report_for_candidate(
    session: AsyncSession, candidate_id: uuid.UUID, tenant_id: uuid.UUID,
) -> Report | None:
    result = await session.execute(
        select(Report).where(
            Report.candidate_id == candidate_id, Report.tenant_id == tenant_id,
        )
    )
    return result.scalar_one_or_none()


async def list_reports(
    session: AsyncSession,
    tenant_id: uuid.UUID,
    *,
    position: str | None = None,
    risk_level: RiskLevel | None = None,
    personality_type: PersonalityType | None = None,
    name: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[tuple[Report, Candidate]], int]:
    """Filtered page of reports, newest first, with the matching total."""
    page = max(page, 1)
    limit = max(1, min(limit, MAX_PAGE_SIZE))

    conditions = [Report.tenant_id == tenant_id]
    if position:
        conditions.append(Candidate.position == position)
    if risk_level:
        conditions.append(Report.risk_level == str(risk_level))
    if personality_type:
        conditions.append(Report.personality_type == str(personality_type))
    if name:
        conditions.append(
            Candidate.name.ilike(f"%{_escape_like(name)}%", escape="\\")  # type: ignore[union-attr]
        )

    total = (await session.execute(
        select(func.count())
        .select_from(Report)
        .join(Candidate, Candidate.id == Report.candidate_id)
        .where(*conditions)
    )).scalar_one()

    rows = (await session.execute(
        select(Report, Candidate)
        .join(Candidate, Candidate.id == Report.candidate_id)
        .where(*conditions)
        .order_by(Report.created_at.desc())  # type: ignore[union-attr]
        .offset((page - 1) * limit)
        .limit(limit)
    )).all()
    return [(report, candidate) for report, candidate in rows], total


# ── Mutations ─────────────────────────────────────────────────

async def delete_report(
    session: AsyncSession, report_id: uuid.UUID, tenant_id: uuid.UUID,
) -> None:
    report = await get_report(session, report_id, tenant_id)
    await session.execute(
        update(AnalysisTask)
        .where(AnalysisTask.report_id == report.id)
        .values(report_id=None, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    await session.delete(report)
    await session.commit()
    cache.invalidate_tenant(tenant_id)
    logger.info("Deleted report %s for tenant %s", report_id, tenant_id)


async def mark_hired(
    session: AsyncSession, candidate_id: uuid.UUID, tenant_id: uuid.UUID,
) -> Candidate:
    """Flip the hired flag once; repeated calls keep the first timestamp."""
    candidate = await get_candidate(session, candidate_id, tenant_id)
    if candidate.is_hired:
        return candidate

    candidate.is_hired = True
    candidate.hired_at = utcnow()
    candidate.updated_at = utcnow()
    session.add(candidate)
    await session.commit()
    cache.invalidate_tenant(tenant_id)
    logger.info("Candidate %s marked hired", candidate_id)
    return candidate


async def mark_hired_by_report(
    session: AsyncSession, report_id: uuid.UUID, tenant_id: uuid.UUID,
) -> Candidate:
    report = await get_report(session, report_id, tenant_id)
    return await mark_hired(session, report.candidate_id, tenant_id)


# ── Team view ─────────────────────────────────────────────────

async def get_team_stats(session: AsyncSession, tenant_id: uuid.UUID) -> TeamStats:
    total_candidates = (await session.execute(
        select(func.count()).select_from(Candidate).where(Candidate.tenant_id == tenant_id)
    )).scalar_one()

    hired_count = (await session.execute(
        select(func.count()).select_from(Candidate).where(
            Candidate.tenant_id == tenant_id,
            Candidate.is_hired.is_(True),  # type: ignore[attr-defined]
        )
    )).scalar_one()

    personality_distribution = {str(t): 0 for t in PersonalityType}
    rows = (await session.execute(
        select(Report.personality_type, func.count())
        .where(Report.tenant_id == tenant_id)
        .group_by(Report.personality_type)
    )).all()
    for ptype, count in rows:
        personality_distribution[ptype] = count

    risk_distribution = {str(level): 0 for level in RiskLevel}
    rows = (await session.execute(
        select(Report.risk_level, func.count())
        .where(Report.tenant_id == tenant_id)
        .group_by(Report.risk_level)
    )).all()
    for level, count in rows:
        risk_distribution[level] = count

    avg_maturity, avg_match = (await session.execute(
        select(func.avg(Report.maturity_score), func.avg(Report.match_score))
        .where(Report.tenant_id == tenant_id)
    )).one()

    return TeamStats(
        total_candidates=total_candidates,
        hired_count=hired_count,
        personality_distribution=personality_distribution,
        risk_distribution=risk_distribution,
        avg_maturity_score=round(float(avg_maturity or 0), 1),
        avg_match_score=round(float(avg_match or 0), 1),
    )


async def get_high_risk_candidates(
    session: AsyncSession, tenant_id: uuid.UUID, limit: int = 10,
) -> list[tuple[Report, Candidate]]:
    """High-risk candidates not yet hired, newest report first."""
    rows = (await session.execute(
        select(Report, Candidate)
        .join(Candidate, Candidate.id == Report.candidate_id)
        .where(
            Report.tenant_id == tenant_id,
            Report.risk_level == str(RiskLevel.HIGH),
            Candidate.is_hired.is_(False),  # type: ignore[attr-defined]
        )
        .order_by(Report.created_at.desc())  # type: ignore[union-attr]
        .limit(max(1, min(limit, MAX_PAGE_SIZE)))
    )).all()
    return [(report, candidate) for report, candidate in rows]
