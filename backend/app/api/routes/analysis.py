"""
Analysis Routes

The protected speech analysis endpoint. Entitlement is checked before the
scorer runs; usage is recorded only after a successful score.
"""

from typing import Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from app.api.dependencies import AnalysisServiceDep, CurrentIdentity
from app.api.rate_limit import analysis_rate_limit, limiter
from app.domain.models import ScoreResult, Tonality


router = APIRouter()


class AnalyzeSpeechRequest(BaseModel):
    """Request to analyze one transcript."""
    transcript: Optional[str] = Field(None, description="Speech transcript")
    tonality: Tonality = Field(Tonality.NEUTRAL, description="Requested analysis style")


@router.post("/analyze-speech", response_model=ScoreResult)
@limiter.limit(analysis_rate_limit)
async def analyze_speech(
    request: Request,
    body: AnalyzeSpeechRequest,
    identity: CurrentIdentity,
    service: AnalysisServiceDep,
):
    """
    Rate a transcript 1-100 with ordered coaching feedback.

    Denials come back as 403 with ``details.reason`` set to
    ``tier_not_selected``, ``daily_limit_reached`` or
    ``tonality_not_allowed``.
    """
    return await service.analyze(
        identity.user_id,
        body.transcript,
        body.tonality,
        is_disconnected=request.is_disconnected,
    )
