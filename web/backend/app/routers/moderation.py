"""Moderation router.

Provides endpoints for moderating content, reading per-day statistics,
submitting feedback on decisions, and reviewing a recorded decision.
"""

from __future__ import annotations

import threading
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger

from filterwave.config import Settings
from filterwave.errors import DecisionReferenceError, PersistenceError, ValidationError
from filterwave.moderation.pipeline import ModerationPipeline
from web.backend.app.middleware.auth import get_caller_id
from web.backend.app.models.api import (
    DailyStatResponse,
    DecisionResponse,
    FeedbackRecordResponse,
    FeedbackRequest,
    FeedbackResponse,
    ModerateRequest,
    ModerateResponse,
    StatsResponse,
)

router = APIRouter(prefix="/api", tags=["moderation"])

# ---------------------------------------------------------------------------
# Shared pipeline
# ---------------------------------------------------------------------------

_pipeline: Optional[ModerationPipeline] = None
_pipeline_lock = threading.Lock()


def get_pipeline() -> ModerationPipeline:
    """Return the singleton pipeline, built from the environment on first use."""
    global _pipeline
    if _pipeline is None:
        with _pipeline_lock:
            if _pipeline is None:
                _pipeline = ModerationPipeline.from_settings(Settings.from_env())
    return _pipeline


def _storage_failure(exc: PersistenceError, action: str) -> HTTPException:
    logger.error("Decision store failure during {}: {}", action, exc)
    return HTTPException(status_code=500, detail=f"Unable to {action}")


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/moderate", response_model=ModerateResponse)
def moderate(
    req: ModerateRequest,
    caller_id: Optional[str] = Depends(get_caller_id),
    pipeline: ModerationPipeline = Depends(get_pipeline),
):
    """Moderate a piece of content and record the decision."""
    try:
        record = pipeline.decide(req.content, caller_id)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except PersistenceError as exc:
        raise _storage_failure(exc, "record moderation decision") from exc

    result = record.result
    return ModerateResponse(
        flagged=result.flagged,
        confidence=result.confidence,
        categories=result.categories,
        reason=result.reason,
        method=result.method.value,
        timestamp=datetime.now(timezone.utc).isoformat(),
        decision_id=record.id,
        user_authenticated=caller_id is not None,
    )


@router.get("/stats", response_model=StatsResponse)
def stats(
    caller_id: Optional[str] = Depends(get_caller_id),
    pipeline: ModerationPipeline = Depends(get_pipeline),
):
    """Return per-day statistics for the caller (or for everyone when anonymous)."""
    try:
        daily = pipeline.decision_log.statistics(caller_id)
    except PersistenceError as exc:
        raise _storage_failure(exc, "fetch stats") from exc

    return StatsResponse(
        stats=[DailyStatResponse(**asdict(d)) for d in daily],
        user_authenticated=caller_id is not None,
    )


@router.post("/feedback", response_model=FeedbackResponse)
def submit_feedback(
    req: FeedbackRequest,
    caller_id: Optional[str] = Depends(get_caller_id),
    pipeline: ModerationPipeline = Depends(get_pipeline),
):
    """Attach feedback to a recorded decision."""
    try:
        record = pipeline.decision_log.attach_feedback(
            req.decision_id, caller_id, req.feedback_type, req.comment
        )
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except DecisionReferenceError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except PersistenceError as exc:
        raise _storage_failure(exc, "submit feedback") from exc

    return FeedbackResponse(id=record.id)


@router.get("/decisions/{decision_id}", response_model=DecisionResponse)
def get_decision(
    decision_id: str,
    pipeline: ModerationPipeline = Depends(get_pipeline),
):
    """Return a recorded decision with all of its feedback."""
    log = pipeline.decision_log
    try:
        record = log.get_decision(decision_id)
        feedback = log.get_feedback(decision_id) if record is not None else []
    except PersistenceError as exc:
        raise _storage_failure(exc, "fetch decision") from exc

    if record is None:
        raise HTTPException(status_code=404, detail=f"Decision '{decision_id}' not found")

    return DecisionResponse(
        **record.to_dict(),
        feedback=[FeedbackRecordResponse(**asdict(f)) for f in feedback],
    )
