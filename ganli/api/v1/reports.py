"""Report endpoints — list, detail, delete, mark the candidate hired."""

import json
import uuid

from fastapi import APIRouter, Query, status

from ganli.api.deps import Auth, Session
from ganli.models.candidate import Candidate, CandidateRead
from ganli.models.report import Report, ReportPage, ReportRead, ReportSummary
from ganli.services import reports as report_service
from ganli.services.personality import PersonalityType, RiskLevel

router = APIRouter(prefix="/reports", tags=["reports"])


# ── Helpers ───────────────────────────────────────────────────

def _to_summary(report: Report, candidate: Candidate) -> ReportSummary:
    return ReportSummary(
        id=report.id,
        candidate_id=candidate.id,
        candidate_name=candidate.name,
        position=candidate.position,
        is_hired=candidate.is_hired,
        personality_type=report.personality_type,
        maturity_score=report.maturity_score,
        match_score=report.match_score,
        risk_level=report.risk_level,
        created_at=report.created_at,
    )


def _to_read(report: Report, candidate: Candidate) -> ReportRead:
    """Convert ORM rows to ReportRead, decoding the JSON columns."""
    return ReportRead(
        **_to_summary(report, candidate).model_dump(),
        dimension1=report.dimension1,
        dimension2=report.dimension2,
        confidence=report.confidence,
        risk_factors=json.loads(report.risk_factors or "[]"),
        clues=report.clues,
        report_data=json.loads(report.report_data or "{}"),
        analysis_status=report.analysis_status,
    )


# ── Routes ───────────────────────────────────────────────────

@router.get("", response_model=ReportPage)
async def list_reports(
    auth: Auth,
    session: Session,
    position: str | None = None,
    risk_level: RiskLevel | None = None,
    personality_type: PersonalityType | None = None,
    name: str | None = Query(default=None, max_length=100, description="Substring of the candidate name"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=report_service.MAX_PAGE_SIZE),
) -> ReportPage:
    rows, total = await report_service.list_reports(
        session,
        auth.tenant_id,
        position=position,
        risk_level=risk_level,
        personality_type=personality_type,
        name=name,
        page=page,
        limit=limit,
    )
    return ReportPage(
        items=[_to_summary(report, candidate) for report, candidate in rows],
        total=total,
        page=page,
        limit=limit,
    )


@router.get("/{report_id}", response_model=ReportRead)
async def get_report(report_id: uuid.UUID, auth: Auth, session: Session) -> ReportRead:
    report = await report_service.get_report(session, report_id, auth.tenant_id)
    candidate = await report_service.get_candidate(session, report.candidate_id, auth.tenant_id)
    return _to_read(report, candidate)


@router.delete("/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_report(report_id: uuid.UUID, auth: Auth, session: Session) -> None:
    await report_service.delete_report(session, report_id, auth.tenant_id)


@router.post("/{report_id}/mark-hired", response_model=CandidateRead)
async def mark_hired(report_id: uuid.UUID, auth: Auth, session: Session) -> CandidateRead:
    candidate = await report_service.mark_hired_by_report(session, report_id, auth.tenant_id)
    return CandidateRead.model_validate(candidate)
