"""Analysis worker jobs — run queued AnalysisTasks, sweep stale ones."""

from __future__ import annotations

import logging
import uuid
from datetime import timedelta

from ganli.core.config import get_settings
from ganli.core.database import async_session_factory
from ganli.core.errors import GanliError
from ganli.services.analysis import execute_analysis_task, sweep_stale_tasks
from ganli.services.llm_gateway import get_llm_gateway

logger = logging.getLogger(__name__)


async def run_analysis_task(ctx: dict, task_id: str, tenant_id: str) -> dict:
    """ARQ task: run the personality pipeline for a pending task.

    Args:
        ctx: ARQ worker context (may carry a shared ``gateway``).
        task_id: UUID of the AnalysisTask.
        tenant_id: UUID of the owning tenant.

    Returns:
        dict with the final status, plus report_id or error.
    """
    gateway = ctx.get("gateway") or get_llm_gateway()

    async with async_session_factory() as session:
        try:
            outcome = await execute_analysis_task(
                session, gateway, uuid.UUID(task_id), uuid.UUID(tenant_id),
            )
        except GanliError as exc:
            # Task state and refund were already recorded by the orchestrator
            logger.warning("Analysis task %s failed: %s", task_id, exc.detail)
            return {"status": "failed", "error": exc.code}

    logger.info("Analysis task %s finished as %s", task_id, outcome.status)
    return {
        "status": str(outcome.status),
        "report_id": str(outcome.report_id) if outcome.report_id else None,
    }


async def sweep_stale_analysis_tasks(ctx: dict) -> dict:
    """Periodic job: fail and refund tasks no worker finished."""
    older_than = timedelta(minutes=get_settings().stale_task_minutes)
    async with async_session_factory() as session:
        swept = await sweep_stale_tasks(session, older_than)

    if swept:
        logger.info("Stale task sweep: failed and refunded %d tasks", swept)
    return {"swept": swept}
