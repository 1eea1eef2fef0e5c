"""Moderation pipeline: rule tier first, then the optional AI tier.

Precedence and fallback:

1. Text is validated; rejected requests are never logged.
2. The rule tier runs. A hit is final and the classifier is not called.
3. Otherwise the classifier runs, if configured. Its result is final.
4. If the classifier is unavailable, the clean rule-tier result is used.
5. Any other failure during orchestration yields a safe default result whose
   ``flagged`` value depends on the configured :class:`FailurePolicy`
   (unflagged by default, so moderation outages do not block content).
6. Every evaluated request is recorded in the decision log before returning.
"""

from __future__ import annotations

from typing import Optional

from loguru import logger

from filterwave.config import FailurePolicy, Settings
from filterwave.decisions.store import DecisionLog
from filterwave.errors import ClassifierUnavailable
from filterwave.moderation.classifier import ExternalClassifier
from filterwave.moderation.models import (
    UNAVAILABLE_REASON,
    DecisionRecord,
    Method,
    ModerationRequest,
    ModerationResult,
)
from filterwave.moderation.rules import RuleMatcher, load_rules


def safe_default_result(policy: FailurePolicy = FailurePolicy.open) -> ModerationResult:
    """Result returned when the pipeline itself fails."""
    return ModerationResult(
        flagged=policy is FailurePolicy.closed,
        confidence=0.0,
        categories=[],
        reason=UNAVAILABLE_REASON,
        method=Method.error,
    )


class ModerationPipeline:
    """Orchestrates the two tiers and records each decision.

    The pipeline keeps no per-request state, so one instance can serve any
    number of concurrent callers. The decision log is the only shared
    resource and serializes its own writes.
    """

    def __init__(
        self,
        decision_log: DecisionLog,
        rule_matcher: RuleMatcher | None = None,
        classifier: ExternalClassifier | None = None,
        failure_policy: FailurePolicy = FailurePolicy.open,
    ) -> None:
        self.decision_log = decision_log
        self.rule_matcher = rule_matcher or RuleMatcher()
        # An unconfigured classifier is the same as no classifier.
        self.classifier = classifier if classifier is not None and classifier.configured else None
        self.failure_policy = failure_policy

    @classmethod
    def from_settings(cls, settings: Settings) -> ModerationPipeline:
        rules = load_rules(settings.rules_file) if settings.rules_file else None
        classifier = None
        if settings.classifier_configured:
            classifier = ExternalClassifier(
                api_url=settings.api_url,
                api_key=settings.api_key,
                timeout=settings.classifier_timeout,
            )
        return cls(
            decision_log=DecisionLog(settings.data_dir),
            rule_matcher=RuleMatcher(rules),
            classifier=classifier,
            failure_policy=settings.failure_policy,
        )

    @property
    def ai_enabled(self) -> bool:
        return self.classifier is not None

    def _classify(self, text: str) -> ModerationResult:
        rule_result = self.rule_matcher.match(text)
        if rule_result.flagged or self.classifier is None:
            return rule_result

        try:
            return self.classifier.classify(text)
        except ClassifierUnavailable as exc:
            logger.warning("Classifier unavailable, falling back to rule tier: {}", exc)
            return rule_result

    def decide(self, text: str, caller_id: Optional[str] = None) -> DecisionRecord:
        """Evaluate *text* and return the persisted decision record.

        Raises :class:`~filterwave.errors.ValidationError` for empty or
        oversized text, before anything is recorded. Storage failures
        propagate as :class:`~filterwave.errors.PersistenceError`.
        """
        request = ModerationRequest(text)

        try:
            result = self._classify(request.text)
        except Exception:
            logger.exception("Moderation pipeline failed; returning safe default")
            result = safe_default_result(self.failure_policy)

        return self.decision_log.record(caller_id, request.text, result)

    def evaluate(self, text: str, caller_id: Optional[str] = None) -> ModerationResult:
        """Evaluate *text* and return the moderation result."""
        return self.decide(text, caller_id).result
