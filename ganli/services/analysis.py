"""Task Orchestrator — the "create analysis task" operation.

Ordering for one task:

  1. validate input                  (no side effects on failure)
  2. check remaining quota           (QuotaExceeded, no side effects)
  3. persist the candidate
  4. debit one unit + ledger entry   (atomic conditional update)
  5. run the personality pipeline
       success -> persist report, task completed
       failure -> refund, task failed, candidate kept without report

Steps 1-4 and step 5 can run in the same request (``create_analysis_task``)
or be split across the API and an ARQ worker (``submit_analysis_task`` then
``execute_analysis_task``). Queued tasks a worker never finished are
failed and refunded by ``sweep_stale_tasks``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ganli.core import cache
from ganli.core.config import get_settings
from ganli.core.errors import (
    AnalysisFailed,
    AnalysisUnavailable,
    NotFound,
    QuotaExceeded,
    ValidationError,
)
from ganli.models.analysis_task import AnalysisTask
from ganli.models.base import utcnow
from ganli.models.candidate import Candidate, CandidateSourceType
from ganli.models.report import AnalysisStatus, Report
from ganli.services.llm_gateway import LLMGateway
from ganli.services.personality import PersonalityPipeline
from ganli.services.quota import consume_quota, get_remaining_quota, refund_quota

logger = logging.getLogger(__name__)


@dataclass
class TaskOutcome:
    task_id: uuid.UUID
    candidate_id: uuid.UUID
    status: AnalysisStatus
    report_id: uuid.UUID | None = None


def validate_task_input(
    name: str, source_text: str, position: str | None = None,
) -> tuple[str, str, str | None]:
    """Normalise and check the submitted fields. Raises ValidationError."""
    settings = get_settings()
    name = (name or "").strip()
    source_text = (source_text or "").strip()
    position = (position or "").strip() or None

    if not name:
        raise ValidationError("Candidate name is required")
    if len(name) > 100:
        raise ValidationError("Candidate name must be at most 100 characters")
    if position is not None and len(position) > 100:
        raise ValidationError("Position must be at most 100 characters")
    if len(source_text) < settings.min_source_text_length:
        raise ValidationError(
            f"Source text must be at least {settings.min_source_text_length} characters"
        )
    if len(source_text) > settings.max_source_text_length:
        raise ValidationError(
            f"Source text must be at most {settings.max_source_text_length} characters"
        )
    return name, source_text, position


async def _reserve(
    session: AsyncSession,
    *,
    tenant_id: uuid.UUID,
    user_id: uuid.UUID,
    name: str,
    source_text: str,
    position: str | None,
    source_type: CandidateSourceType,
    initial_status: AnalysisStatus,
) -> AnalysisTask:
    """Steps 1-4: validate, check quota, persist candidate, debit. Commits."""
    name, source_text, position = validate_task_input(name, source_text, position)

    quota = await get_remaining_quota(session, tenant_id)
    if quota.remaining <= 0:
        raise QuotaExceeded()

    candidate = Candidate(
        tenant_id=tenant_id,
        created_by=user_id,
        name=name,
        position=position,
        source_text=source_text,
        source_type=source_type,
    )
    session.add(candidate)
    await session.flush()

    try:
        await consume_quota(session, tenant_id, user_id, related_id=candidate.id)
    except QuotaExceeded:
        # Lost the race for the last unit; drop the candidate with it
        await session.rollback()
        raise

    task = AnalysisTask(
        tenant_id=tenant_id,
        candidate_id=candidate.id,
        created_by=user_id,
        status=initial_status,
    )
    session.add(task)
    await session.commit()
    cache.invalidate_tenant(tenant_id)
    return task


async def _run_pipeline(
    session: AsyncSession,
    gateway: LLMGateway,
    task: AnalysisTask,
    candidate: Candidate,
) -> TaskOutcome:
    """Step 5: analyse, then persist the report or compensate."""
    task_id, tenant_id, candidate_id = task.id, task.tenant_id, candidate.id
    pipeline = PersonalityPipeline(gateway)

    try:
        result = await pipeline.analyze(
            candidate.source_text, candidate.name, candidate.position,
        )
        report = Report(
            tenant_id=tenant_id,
            candidate_id=candidate_id,
            created_by=task.created_by,
            personality_type=str(result.personality_type),
            dimension1=str(result.dimension1),
            dimension2=str(result.dimension2),
            maturity_score=result.maturity_score,
            match_score=result.match_score,
            risk_level=str(result.risk_level),
            confidence=result.confidence,
            risk_factors=json.dumps(result.risk_factors, ensure_ascii=False),
            clues=result.clues,
            report_data=json.dumps(result.report_payload, ensure_ascii=False),
            analysis_status=AnalysisStatus.COMPLETED,
        )
        session.add(report)
        await session.flush()

        task.status = AnalysisStatus.COMPLETED
        task.report_id = report.id
        task.completed_at = utcnow()
        task.updated_at = utcnow()
        session.add(task)
        await session.commit()
    except asyncio.CancelledError:
        # Job timeout or client disconnect; settle the task before unwinding
        await session.rollback()
        await _compensate(
            session, task_id, tenant_id, candidate_id, RuntimeError("Analysis was cancelled"),
        )
        raise
    except Exception as exc:
        await session.rollback()
        await _compensate(session, task_id, tenant_id, candidate_id, exc)
        if isinstance(exc, AnalysisUnavailable):
            raise AnalysisFailed() from exc
        raise

    cache.invalidate_tenant(tenant_id)
    logger.info("Task %s completed with report %s", task_id, report.id)
    return TaskOutcome(
        task_id=task_id,
        candidate_id=candidate_id,
        status=AnalysisStatus.COMPLETED,
        report_id=report.id,
    )


async def _compensate(
    session: AsyncSession,
    task_id: uuid.UUID,
    tenant_id: uuid.UUID,
    candidate_id: uuid.UUID,
    error: BaseException,
) -> None:
    """Refund the debit and mark the task failed. The candidate is kept."""
    logger.warning("Task %s failed, refunding quota: %s", task_id, error)
    await refund_quota(session, tenant_id, candidate_id)
    task = await session.get(AnalysisTask, task_id)
    if task is not None:
        task.status = AnalysisStatus.FAILED
        task.error_message = (str(error) or type(error).__name__)[:2000]
        task.completed_at = utcnow()
        task.updated_at = utcnow()
        session.add(task)
    await session.commit()
    cache.invalidate_tenant(tenant_id)


# ── Public operations ─────────────────────────────────────────

async def create_analysis_task(
    session: AsyncSession,
    gateway: LLMGateway,
    *,
    tenant_id: uuid.UUID,
    user_id: uuid.UUID,
    name: str,
    source_text: str,
    position: str | None = None,
    source_type: CandidateSourceType = CandidateSourceType.TEXT,
) -> TaskOutcome:
    """Run a full analysis within the caller's request.

    Raises ValidationError, QuotaExceeded or AnalysisFailed.
    """
    task = await _reserve(
        session,
        tenant_id=tenant_id,
        user_id=user_id,
        name=name,
        source_text=source_text,
        position=position,
        source_type=source_type,
        initial_status=AnalysisStatus.PROCESSING,
    )
    candidate = await session.get(Candidate, task.candidate_id)
    return await _run_pipeline(session, gateway, task, candidate)


async def submit_analysis_task(
    session: AsyncSession,
    *,
    tenant_id: uuid.UUID,
    user_id: uuid.UUID,
    name: str,
    source_text: str,
    position: str | None = None,
    source_type: CandidateSourceType = CandidateSourceType.TEXT,
) -> TaskOutcome:
    """Reserve quota and persist a pending task for a worker to execute."""
    task = await _reserve(
        session,
        tenant_id=tenant_id,
        user_id=user_id,
        name=name,
        source_text=source_text,
        position=position,
        source_type=source_type,
        initial_status=AnalysisStatus.PENDING,
    )
    logger.info("Task %s submitted for tenant %s", task.id, tenant_id)
    return TaskOutcome(
        task_id=task.id,
        candidate_id=task.candidate_id,
        status=AnalysisStatus.PENDING,
    )


async def execute_analysis_task(
    session: AsyncSession,
    gateway: LLMGateway,
    task_id: uuid.UUID,
    tenant_id: uuid.UUID,
) -> TaskOutcome:
    """Claim a pending task and run it. Tasks in any other state are left alone."""
    claim = (
        update(AnalysisTask)
        .where(
            AnalysisTask.id == task_id,
            AnalysisTask.tenant_id == tenant_id,
            AnalysisTask.status == AnalysisStatus.PENDING,
        )
        .values(status=AnalysisStatus.PROCESSING, updated_at=utcnow())
        .returning(AnalysisTask.id)
        .execution_options(synchronize_session=False)
    )
    claimed = (await session.execute(claim)).first()
    await session.commit()

    task = await get_task(session, task_id, tenant_id)
    if claimed is None:
        logger.info("Task %s is %s, not executing", task_id, task.status)
        return TaskOutcome(
            task_id=task.id,
            candidate_id=task.candidate_id,
            status=task.status,
            report_id=task.report_id,
        )

    candidate = await session.get(Candidate, task.candidate_id)
    return await _run_pipeline(session, gateway, task, candidate)


async def abandon_task(
    session: AsyncSession, task_id: uuid.UUID, tenant_id: uuid.UUID, reason: str,
) -> None:
    """Compensate a pending task that will never reach a worker."""
    task = await get_task(session, task_id, tenant_id)
    await _compensate(session, task.id, tenant_id, task.candidate_id, RuntimeError(reason))


async def sweep_stale_tasks(session: AsyncSession, older_than: timedelta) -> int:
    """Fail and refund tasks left pending/processing by a worker that died.

    Returns the number of tasks swept.
    """
    now = utcnow()
    stmt = (
        update(AnalysisTask)
        .where(
            AnalysisTask.status.in_(  # type: ignore[attr-defined]
                [AnalysisStatus.PENDING, AnalysisStatus.PROCESSING]
            ),
            AnalysisTask.updated_at < now - older_than,
        )
        .values(
            status=AnalysisStatus.FAILED,
            error_message="Analysis did not finish in time",
            completed_at=now,
            updated_at=now,
        )
        .returning(AnalysisTask.id, AnalysisTask.tenant_id, AnalysisTask.candidate_id)
        .execution_options(synchronize_session=False)
    )
    rows = (await session.execute(stmt)).all()
    for task_id, tenant_id, candidate_id in rows:
        logger.warning("Sweeping stale task %s for tenant %s", task_id, tenant_id)
        await refund_quota(
            session, tenant_id, candidate_id, description="Refund for abandoned analysis",
        )
    await session.commit()

    for tenant_id in {row[1] for row in rows}:
        cache.invalidate_tenant(tenant_id)
    return len(rows)


async def get_task(
    session: AsyncSession, task_id: uuid.UUID, tenant_id: uuid.UUID,
) -> AnalysisTask:
    stmt = (
        select(AnalysisTask)
        .where(AnalysisTask.id == task_id, AnalysisTask.tenant_id == tenant_id)
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    task = result.scalar_one_or_none()
    if task is None:
        raise NotFound("Task not found")
    return task
