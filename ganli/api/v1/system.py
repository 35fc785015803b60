"""System health endpoints — connectivity of the backing services."""

import platform
import sys
import time
from urllib.parse import urlparse, urlunparse

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import func, text
from sqlmodel import select

from ganli.api.deps import Auth, Session
from ganli.core.config import get_settings
from ganli.models.analysis_task import AnalysisTask
from ganli.models.candidate import Candidate
from ganli.models.report import Report

router = APIRouter(prefix="/system", tags=["system"])

settings = get_settings()
_start_time = time.time()


class ServiceHealth(BaseModel):
    status: str  # "ok" or "error"
    detail: str | None = None
    version: str | None = None
    latency_ms: int | None = None


class HealthResponse(BaseModel):
    status: str
    database: ServiceHealth
    redis: ServiceHealth


class DetailedHealthResponse(HealthResponse):
    uptime_seconds: int
    python_version: str
    platform: str
    db_stats: dict
    config: dict


@router.get("/health", response_model=HealthResponse)
async def system_health(session: Session) -> HealthResponse:
    """Check connectivity to the database and Redis."""
    db = await _check_database(session)
    rd = await _check_redis()
    overall = "ok" if db.status == "ok" and rd.status == "ok" else "degraded"
    return HealthResponse(status=overall, database=db, redis=rd)


@router.get("/health/detailed", response_model=DetailedHealthResponse)
async def system_health_detailed(auth: Auth, session: Session) -> DetailedHealthResponse:
    """Health plus tenant row counts and a safe subset of the configuration."""
    db = await _check_database(session)
    rd = await _check_redis()
    overall = "ok" if db.status == "ok" and rd.status == "ok" else "degraded"

    return DetailedHealthResponse(
        status=overall,
        database=db,
        redis=rd,
        uptime_seconds=int(time.time() - _start_time),
        python_version=sys.version.split()[0],
        platform=platform.platform(),
        db_stats=await _get_db_stats(session, auth.tenant_id),
        config={
            "database_url": _mask_url(settings.database_url),
            "redis_url": _mask_url(settings.redis_url),
            "jwt_configured": bool(settings.jwt_secret_key),
            "llm_model": settings.llm_model,
            "llm_key_configured": bool(settings.llm_api_key),
            "llm_timeout_seconds": settings.llm_timeout_seconds,
            "cors_origins": settings.allowed_origins,
        },
    )


def _mask_url(url: str) -> str:
    """Mask credentials in database/redis URLs."""
    parsed = urlparse(url)
    if not parsed.password:
        return url
    netloc = f"{parsed.username}:***@{parsed.hostname}" + (
        f":{parsed.port}" if parsed.port else ""
    )
    return urlunparse(parsed._replace(netloc=netloc))


async def _check_database(session) -> ServiceHealth:
    try:
        t0 = time.monotonic()
        await session.execute(text("SELECT 1"))
        latency = int((time.monotonic() - t0) * 1000)
        return ServiceHealth(status="ok", version=session.bind.dialect.name, latency_ms=latency)
    except Exception as exc:
        return ServiceHealth(status="error", detail=str(exc)[:200])


async def _check_redis() -> ServiceHealth:
    try:
        from redis.asyncio import from_url
        t0 = time.monotonic()
        redis = from_url(settings.redis_url, decode_responses=True)
        try:
            pong = await redis.ping()
            latency = int((time.monotonic() - t0) * 1000)
            info = await redis.info("server")
        finally:
            await redis.aclose()
        version = info.get("redis_version")
        return ServiceHealth(
            status="ok" if pong else "error",
            version=f"Redis {version}" if version else None,
            latency_ms=latency,
        )
    except Exception as exc:
        return ServiceHealth(status="error", detail=str(exc)[:200])


async def _get_db_stats(session, tenant_id) -> dict:
    """Row counts for the tenant."""
    candidates = (await session.execute(
        select(func.count()).select_from(Candidate).where(Candidate.tenant_id == tenant_id)
    )).scalar_one()
    reports = (await session.execute(
        select(func.count()).select_from(Report).where(Report.tenant_id == tenant_id)
    )).scalar_one()
    task_rows = (await session.execute(
        select(AnalysisTask.status, func.count())
        .where(AnalysisTask.tenant_id == tenant_id)
        .group_by(AnalysisTask.status)
    )).all()
    return {
        "candidates": candidates,
        "reports": reports,
        "tasks_by_status": {str(row[0]): row[1] for row in task_rows},
    }
