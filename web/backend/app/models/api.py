"""Pydantic models for API request/response serialization.

These models mirror the Filterwave dataclasses and provide proper JSON
serialization for the FastAPI endpoints.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Moderation
# ---------------------------------------------------------------------------


class ModerateRequest(BaseModel):
    """Text to moderate. Size limits are enforced by the pipeline."""

    content: str


class ModerateResponse(BaseModel):
    """Mirrors filterwave.moderation.models.ModerationResult plus boundary fields."""

    flagged: bool
    confidence: float
    categories: list[str] = Field(default_factory=list)
    reason: str = ""
    method: str
    timestamp: str
    decision_id: str
    user_authenticated: bool = False


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------


class DailyStatResponse(BaseModel):
    """Mirrors filterwave.moderation.models.DailyStat."""

    date: str
    total_scans: int = 0
    flagged_content: int = 0
    avg_confidence: Optional[float] = None


class StatsResponse(BaseModel):
    stats: list[DailyStatResponse] = Field(default_factory=list)
    user_authenticated: bool = False


# ---------------------------------------------------------------------------
# Feedback and review
# ---------------------------------------------------------------------------


class FeedbackRequest(BaseModel):
    """Feedback on a recorded decision. Accepts the camelCase keys browsers send."""

    model_config = ConfigDict(populate_by_name=True)

    decision_id: str = Field(alias="moderationLogId")
    feedback_type: str = Field(alias="feedbackType")
    comment: Optional[str] = None


class FeedbackResponse(BaseModel):
    id: str
    message: str = "Feedback submitted successfully"


class FeedbackRecordResponse(BaseModel):
    """Mirrors filterwave.moderation.models.FeedbackRecord."""

    id: str
    decision_id: str
    caller_id: Optional[str] = None
    feedback_type: str
    comment: Optional[str] = None
    created_at: str


class DecisionResponse(BaseModel):
    """Mirrors filterwave.moderation.models.DecisionRecord with its feedback."""

    id: str
    caller_id: Optional[str] = None
    request_text: str
    result: dict[str, Any] = Field(default_factory=dict)
    flagged: bool
    confidence: float
    created_at: str
    feedback: list[FeedbackRecordResponse] = Field(default_factory=list)
