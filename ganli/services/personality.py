"""Personality Analysis Pipeline.

Three strictly sequential stages, each feeding the next:

  1. extract_clues    raw text            -> clue text
  2. classify         clues               -> type + two dimensions
  3. generate_report  text, clues, type   -> scores, risk, guidance

Any stage failure aborts the run with ``AnalysisUnavailable``; there are no
partial results and no retries. Model output is not trusted blindly: the
type is recomputed from the two dimensions and scores are clamped to their
documented ranges.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import BaseModel

from ganli.core.errors import AnalysisUnavailable
from ganli.services import prompts
from ganli.services.llm_gateway import LLMGateway

logger = logging.getLogger(__name__)

EXTRACT_TEMPERATURE = 0.3
CLASSIFY_TEMPERATURE = 0.3
REPORT_TEMPERATURE = 0.5


# ── Type algebra ──────────────────────────────────────────────

class ExpressionStyle(StrEnum):
    EMOTIONAL = "感性表达"
    RATIONAL = "理性表达"


class BehaviorStyle(StrEnum):
    STRUCTURED = "结构化行为"
    FLEXIBLE = "灵活化行为"


class PersonalityType(StrEnum):
    GAN_LI = "感理型"
    LI_GAN = "理感型"
    LI_LI = "理理型"
    GAN_GAN = "感感型"


class RiskLevel(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


TYPE_MATRIX: dict[tuple[ExpressionStyle, BehaviorStyle], PersonalityType] = {
    (ExpressionStyle.EMOTIONAL, BehaviorStyle.STRUCTURED): PersonalityType.GAN_LI,
    (ExpressionStyle.RATIONAL, BehaviorStyle.FLEXIBLE): PersonalityType.LI_GAN,
    (ExpressionStyle.RATIONAL, BehaviorStyle.STRUCTURED): PersonalityType.LI_LI,
    (ExpressionStyle.EMOTIONAL, BehaviorStyle.FLEXIBLE): PersonalityType.GAN_GAN,
}


def resolve_type(dimension1: ExpressionStyle, dimension2: BehaviorStyle) -> PersonalityType:
    return TYPE_MATRIX[(ExpressionStyle(dimension1), BehaviorStyle(dimension2))]


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


# ── Stage output schemas ──────────────────────────────────────

class TypeClassification(BaseModel):
    type: PersonalityType
    dimension1: ExpressionStyle
    dimension2: BehaviorStyle
    confidence: float


class ReportDraft(BaseModel):
    maturity_score: float
    stability_score: float
    cooperation_score: float
    match_score: float
    risk_level: RiskLevel
    risk_factors: list[str]
    risk_details: str
    analysis_basis: str
    suitable_positions: list[str]
    unsuitable_positions: list[str]
    usage_suggestions: str
    communication_guide: str
    motivation_method: str
    pitfalls: list[str]
    best_practices: str
    position_match: str
    summary: str


@dataclass
class AnalysisResult:
    """Fully scored outcome of one pipeline run."""
    personality_type: PersonalityType
    dimension1: ExpressionStyle
    dimension2: BehaviorStyle
    maturity_score: float
    match_score: int
    risk_level: RiskLevel
    risk_factors: list[str]
    confidence: float
    clues: str
    report_payload: dict[str, Any] = field(default_factory=dict)


# ── Pipeline ──────────────────────────────────────────────────

class PersonalityPipeline:
    def __init__(self, gateway: LLMGateway) -> None:
        self.gateway = gateway

    async def extract_clues(
        self, source_text: str, candidate_name: str, position: str | None = None,
    ) -> str:
        prompt = prompts.extract_prompt(source_text, candidate_name, position)
        clues = await self.gateway.invoke(prompt, temperature=EXTRACT_TEMPERATURE)
        if not clues or not clues.strip():
            # Classification on an empty clue set would be a guess
            raise AnalysisUnavailable("No personality clues could be extracted", stage="extract")
        return clues.strip()

    async def classify(self, clues: str) -> TypeClassification:
        result = await self.gateway.invoke(
            prompts.classify_prompt(clues),
            schema=TypeClassification,
            temperature=CLASSIFY_TEMPERATURE,
        )
        resolved = resolve_type(result.dimension1, result.dimension2)
        if resolved != result.type:
            logger.warning(
                "Model type %s disagrees with dimensions %s + %s, using %s",
                result.type, result.dimension1, result.dimension2, resolved,
            )
        confidence = clamp(result.confidence, 0, 100)
        if confidence != result.confidence:
            logger.warning("Clamped confidence %s to %s", result.confidence, confidence)
        return result.model_copy(update={"type": resolved, "confidence": confidence})

    async def generate_report(
        self,
        *,
        source_text: str,
        clues: str,
        classification: TypeClassification,
        candidate_name: str,
        position: str | None = None,
    ) -> ReportDraft:
        prompt = prompts.report_prompt(
            source_text=source_text,
            clues=clues,
            personality_type=classification.type,
            dimension1=classification.dimension1,
            dimension2=classification.dimension2,
            candidate_name=candidate_name,
            position=position,
        )
        draft = await self.gateway.invoke(
            prompt, schema=ReportDraft, temperature=REPORT_TEMPERATURE,
        )
        return _clamp_scores(draft)

    async def analyze(
        self, source_text: str, candidate_name: str, position: str | None = None,
    ) -> AnalysisResult:
        """Run all three stages; all-or-nothing."""
        stage = "extract"
        try:
            logger.info("Analysis stage: extracting clues (%d chars)", len(source_text))
            clues = await self.extract_clues(source_text, candidate_name, position)

            stage = "classify"
            logger.info("Analysis stage: classifying (%d chars of clues)", len(clues))
            classification = await self.classify(clues)

            stage = "report"
            logger.info("Analysis stage: generating report for %s", classification.type)
            draft = await self.generate_report(
                source_text=source_text,
                clues=clues,
                classification=classification,
                candidate_name=candidate_name,
                position=position,
            )
        except AnalysisUnavailable as exc:
            if exc.stage is None:
                exc.stage = stage
            logger.warning("Analysis failed at stage %s: %s", exc.stage, exc.detail)
            raise

        logger.info("Analysis stage: done (%s, risk %s)", classification.type, draft.risk_level)
        return AnalysisResult(
            personality_type=classification.type,
            dimension1=classification.dimension1,
            dimension2=classification.dimension2,
            maturity_score=draft.maturity_score,
            match_score=int(round(draft.match_score)),
            risk_level=draft.risk_level,
            risk_factors=list(draft.risk_factors),
            confidence=classification.confidence,
            clues=clues,
            report_payload=build_report_payload(classification, draft),
        )


def _clamp_scores(draft: ReportDraft) -> ReportDraft:
    bounds = {
        "maturity_score": (0, 10),
        "stability_score": (0, 10),
        "cooperation_score": (0, 10),
        "match_score": (0, 100),
    }
    updates = {}
    for name, (low, high) in bounds.items():
        value = getattr(draft, name)
        clamped = clamp(value, low, high)
        if clamped != value:
            logger.warning("Clamped %s from %s to %s", name, value, clamped)
            updates[name] = clamped
    return draft.model_copy(update=updates) if updates else draft


def build_report_payload(
    classification: TypeClassification, draft: ReportDraft,
) -> dict[str, Any]:
    """Nest the flat model output into the stored report document."""
    return {
        "personality": {
            "type": str(classification.type),
            "dimension1": str(classification.dimension1),
            "dimension2": str(classification.dimension2),
            "maturity_score": draft.maturity_score,
            "stability_score": draft.stability_score,
            "cooperation_score": draft.cooperation_score,
            "analysis_basis": draft.analysis_basis,
        },
        "risk": {
            "level": str(draft.risk_level),
            "points": list(draft.risk_factors),
            "details": draft.risk_details,
        },
        "position_match": {
            "score": int(round(draft.match_score)),
            "suitable_positions": list(draft.suitable_positions),
            "unsuitable_positions": list(draft.unsuitable_positions),
            "suggestions": draft.usage_suggestions,
            "rationale": draft.position_match,
        },
        "collaboration_guide": {
            "communication_style": draft.communication_guide,
            "motivation_method": draft.motivation_method,
            "pitfalls": list(draft.pitfalls),
            "best_practices": draft.best_practices,
        },
        "summary": draft.summary,
        "confidence": classification.confidence,
    }
