"""Data models for the moderation pipeline and decision log."""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from filterwave.errors import ValidationError

MIN_TEXT_LENGTH = 1
MAX_TEXT_LENGTH = 5000

SAFE_REASON = "Content appears safe"
UNAVAILABLE_REASON = "Moderation service temporarily unavailable"


def _new_id() -> str:
    return uuid.uuid4().hex[:16]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Method(str, Enum):
    """Which tier produced a result."""

    rule_based = "rule_based"
    ai = "ai"
    ai_fallback_parse = "ai_fallback_parse"
    error = "error"


class FeedbackType(str, Enum):
    """Well-known feedback values. Other non-empty strings are accepted as-is."""

    agree = "agree"
    disagree = "disagree"
    other = "other"


@dataclass(frozen=True)
class ModerationRequest:
    """Text submitted for moderation. Rejects empty or oversized input."""

    text: str

    def __post_init__(self) -> None:
        if not isinstance(self.text, str):
            raise ValidationError("text must be a string")
        # len() counts code points, which is the unit the limit is defined in.
        if not MIN_TEXT_LENGTH <= len(self.text) <= MAX_TEXT_LENGTH:
            raise ValidationError(
                f"text must be between {MIN_TEXT_LENGTH} and {MAX_TEXT_LENGTH} characters"
            )


@dataclass
class ModerationResult:
    """Normalized verdict shared by every tier."""

    flagged: bool
    confidence: float = 0.0
    categories: list[str] = field(default_factory=list)
    reason: str = ""
    method: Method = Method.rule_based
    details: dict[str, Any] = field(default_factory=dict)
    raw_response: Optional[str] = None

    def __post_init__(self) -> None:
        if isinstance(self.method, str):
            self.method = Method(self.method)
        self.confidence = min(max(float(self.confidence), 0.0), 1.0)
        # Keep first occurrence order, drop duplicates.
        self.categories = list(dict.fromkeys(self.categories))

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["method"] = self.method.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ModerationResult:
        return cls(
            flagged=bool(data.get("flagged", False)),
            confidence=data.get("confidence", 0.0),
            categories=list(data.get("categories", [])),
            reason=data.get("reason", ""),
            method=data.get("method", Method.rule_based.value),
            details=dict(data.get("details") or {}),
            raw_response=data.get("raw_response"),
        )


@dataclass
class DecisionRecord:
    """One persisted outcome of a pipeline evaluation."""

    caller_id: Optional[str]
    request_text: str
    result: ModerationResult
    id: str = ""
    created_at: str = ""

    def __post_init__(self) -> None:
        if not self.id:
            self.id = _new_id()
        if not self.created_at:
            self.created_at = _now()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "caller_id": self.caller_id,
            "request_text": self.request_text,
            "result": self.result.to_dict(),
            "flagged": self.result.flagged,
            "confidence": self.result.confidence,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DecisionRecord:
        created_at = data["created_at"]
        datetime.fromisoformat(created_at)
        return cls(
            id=data["id"],
            caller_id=data.get("caller_id"),
            request_text=data["request_text"],
            result=ModerationResult.from_dict(data["result"]),
            created_at=created_at,
        )


@dataclass
class FeedbackRecord:
    """Human feedback attached to a decision."""

    decision_id: str
    feedback_type: str
    caller_id: Optional[str] = None
    comment: Optional[str] = None
    id: str = ""
    created_at: str = ""

    def __post_init__(self) -> None:
        if not self.id:
            self.id = _new_id()
        if not self.created_at:
            self.created_at = _now()


@dataclass
class DailyStat:
    """Per-day aggregate computed from decision records."""

    date: str  # YYYY-MM-DD
    total_scans: int = 0
    flagged_content: int = 0
    avg_confidence: Optional[float] = None
