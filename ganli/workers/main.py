"""ARQ worker entrypoint."""

import asyncio
import logging

from arq import cron
from arq.connections import RedisSettings

from ganli.core.config import get_settings
from ganli.workers.analysis import run_analysis_task, sweep_stale_analysis_tasks


def _redis_settings() -> RedisSettings:
    """Parse REDIS_URL into ARQ RedisSettings."""
    settings = get_settings()
    # redis://host:port/db
    url = settings.redis_url
    rest = url.split("://", 1)[1] if "://" in url else url
    host_port, _, db = rest.partition("/")
    host, _, port = host_port.partition(":")
    return RedisSettings(
        host=host or "localhost",
        port=int(port) if port else 6379,
        database=int(db) if db else 0,
    )


async def startup(ctx: dict) -> None:
    """Called when the worker starts."""
    from ganli.core.database import init_db
    from ganli.services.llm_gateway import get_llm_gateway

    logging.basicConfig(level=get_settings().log_level.upper())
    await init_db()
    ctx["gateway"] = get_llm_gateway()


async def shutdown(ctx: dict) -> None:
    """Called when the worker shuts down."""


class WorkerSettings:
    """ARQ worker configuration."""
    functions = [run_analysis_task]
    cron_jobs = [
        cron(sweep_stale_analysis_tasks, minute=set(range(0, 60, 5)), run_at_startup=True),
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = _redis_settings()
    max_jobs = 10
    # Three model calls at up to llm_timeout_seconds each
    job_timeout = 300


if __name__ == "__main__":
    from arq import run_worker
    asyncio.run(run_worker(WorkerSettings))  # type: ignore[arg-type]
