"""Analysis task endpoints — submit candidate text, poll task state."""

import logging
import uuid

from arq.connections import ArqRedis, create_pool
from fastapi import APIRouter, Query, Response, status
from pydantic import BaseModel
from redis.exceptions import RedisError

from ganli.api.deps import Auth, Gateway, Session
from ganli.core.errors import QueueUnavailable
from ganli.models.analysis_task import AnalysisTaskCreate, AnalysisTaskRead
from ganli.models.report import AnalysisStatus
from ganli.services.analysis import (
    abandon_task,
    create_analysis_task,
    get_task,
    submit_analysis_task,
)
from ganli.workers.main import _redis_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])


# ── Schemas ──────────────────────────────────────────────────

class TaskCreatedResponse(BaseModel):
    task_id: uuid.UUID
    candidate_id: uuid.UUID
    status: AnalysisStatus
    report_id: uuid.UUID | None = None


# ── Helpers ───────────────────────────────────────────────────

async def _enqueue_analysis(task_id: uuid.UUID, tenant_id: uuid.UUID) -> None:
    """Enqueue an ARQ analysis job."""
    redis: ArqRedis = await create_pool(_redis_settings())
    try:
        await redis.enqueue_job(
            "run_analysis_task",
            task_id=str(task_id),
            tenant_id=str(tenant_id),
        )
    finally:
        await redis.aclose()


# ── Routes ───────────────────────────────────────────────────

@router.post(
    "",
    response_model=TaskCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_task(
    body: AnalysisTaskCreate,
    auth: Auth,
    session: Session,
    gateway: Gateway,
    response: Response,
    defer: bool = Query(default=False, description="Queue the analysis instead of waiting for it"),
) -> TaskCreatedResponse:
    """Create a candidate and analyse it.

    By default the three-stage analysis runs inside this request (20-60 s)
    and the response carries the report id. With ``defer=true`` the task is
    queued and the response (202) carries only the task id to poll.
    """
    if not defer:
        outcome = await create_analysis_task(
            session,
            gateway,
            tenant_id=auth.tenant_id,
            user_id=auth.user_id,
            name=body.name,
            source_text=body.source_text,
            position=body.position,
        )
        return TaskCreatedResponse(**outcome.__dict__)

    outcome = await submit_analysis_task(
        session,
        tenant_id=auth.tenant_id,
        user_id=auth.user_id,
        name=body.name,
        source_text=body.source_text,
        position=body.position,
    )
    try:
        await _enqueue_analysis(outcome.task_id, auth.tenant_id)
    except (OSError, RedisError) as exc:
        logger.warning("Could not enqueue task %s: %s", outcome.task_id, exc)
        await abandon_task(session, outcome.task_id, auth.tenant_id, "Queue unavailable")
        raise QueueUnavailable() from exc

    response.status_code = status.HTTP_202_ACCEPTED
    return TaskCreatedResponse(**outcome.__dict__)


@router.get("/{task_id}", response_model=AnalysisTaskRead)
async def get_task_status(task_id: uuid.UUID, auth: Auth, session: Session) -> AnalysisTaskRead:
    task = await get_task(session, task_id, auth.tenant_id)
    return AnalysisTaskRead.model_validate(task)
