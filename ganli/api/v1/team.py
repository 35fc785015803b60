"""Team view endpoints — aggregate statistics and risk watch list."""

import json
import uuid

from fastapi import APIRouter, Query
from pydantic import BaseModel

from ganli.api.deps import Auth, Session
from ganli.core import cache
from ganli.core.config import get_settings
from ganli.services import reports as report_service
from ganli.services.reports import TeamStats

router = APIRouter(prefix="/team", tags=["team"])


class HighRiskCandidate(BaseModel):
    candidate_id: uuid.UUID
    report_id: uuid.UUID
    name: str
    position: str | None
    personality_type: str
    risk_factors: list[str]
    match_score: int


@router.get("/stats", response_model=TeamStats)
async def get_team_stats(auth: Auth, session: Session) -> TeamStats:
    """Headcount, hires, type and risk distributions, average scores."""
    cache_key = ("team", "stats", auth.tenant_id)
    cached = cache.get(cache_key, ttl=get_settings().stats_cache_ttl)
    if cached is not None:
        return cached

    result = await report_service.get_team_stats(session, auth.tenant_id)
    cache.put(cache_key, result)
    return result


@router.get("/high-risk", response_model=list[HighRiskCandidate])
async def get_high_risk(
    auth: Auth,
    session: Session,
    limit: int = Query(default=10, ge=1, le=report_service.MAX_PAGE_SIZE),
) -> list[HighRiskCandidate]:
    """High-risk candidates that have not been hired."""
    rows = await report_service.get_high_risk_candidates(session, auth.tenant_id, limit=limit)
    return [
        HighRiskCandidate(
            candidate_id=candidate.id,
            report_id=report.id,
            name=candidate.name,
            position=candidate.position,
            personality_type=report.personality_type,
            risk_factors=json.loads(report.risk_factors or "[]"),
            match_score=report.match_score,
        )
        for report, candidate in rows
    ]
