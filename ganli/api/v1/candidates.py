"""Candidate endpoints."""

import uuid

from fastapi import APIRouter
from pydantic import BaseModel

from ganli.api.deps import Auth, Session
from ganli.models.candidate import CandidateDetail, CandidateRead
from ganli.services import reports as report_service

router = APIRouter(prefix="/candidates", tags=["candidates"])


class CandidateResponse(BaseModel):
    candidate: CandidateDetail
    report_id: uuid.UUID | None = None


@router.get("/{candidate_id}", response_model=CandidateResponse)
async def get_candidate(candidate_id: uuid.UUID, auth: Auth, session: Session) -> CandidateResponse:
    """Candidate with its source text; ``report_id`` is null if the analysis failed."""
    candidate = await report_service.get_candidate(session, candidate_id, auth.tenant_id)
    report = await report_service.get_report_for_candidate(session, candidate.id, auth.tenant_id)
    return CandidateResponse(
        candidate=CandidateDetail.model_validate(candidate),
        report_id=report.id if report else None,
    )


@router.post("/{candidate_id}/hire", response_model=CandidateRead)
async def hire_candidate(candidate_id: uuid.UUID, auth: Auth, session: Session) -> CandidateRead:
    candidate = await report_service.mark_hired(session, candidate_id, auth.tenant_id)
    return CandidateRead.model_validate(candidate)
