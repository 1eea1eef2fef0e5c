"""Moderation tiers and the shared result schema.

The pipeline lives in :mod:`filterwave.moderation.pipeline` and is imported
from there directly.
"""

from filterwave.moderation.classifier import ExternalClassifier
from filterwave.moderation.models import (
    DailyStat,
    DecisionRecord,
    FeedbackRecord,
    FeedbackType,
    Method,
    ModerationRequest,
    ModerationResult,
)
from filterwave.moderation.rules import RuleMatcher

__all__ = [
    "DailyStat",
    "DecisionRecord",
    "ExternalClassifier",
    "FeedbackRecord",
    "FeedbackType",
    "Method",
    "ModerationRequest",
    "ModerationResult",
    "RuleMatcher",
]
