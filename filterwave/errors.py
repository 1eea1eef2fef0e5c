"""Error taxonomy for the moderation pipeline and decision log."""

from __future__ import annotations


class FilterwaveError(Exception):
    """Base class for all Filterwave errors."""


class ValidationError(FilterwaveError):
    """Input has the wrong shape or size. Raised before any side effect."""


class DecisionReferenceError(FilterwaveError):
    """Feedback refers to a decision that does not exist."""

    def __init__(self, decision_id: str) -> None:
        super().__init__(f"Unknown decision: {decision_id}")
        self.decision_id = decision_id


class ClassifierUnavailable(FilterwaveError):
    """The external classifier timed out, failed, or rejected the credential.

    Always absorbed by the pipeline, which falls back to the rule tier.
    """


class RuleTableError(FilterwaveError):
    """The rule table is malformed (a configuration error, not a runtime one)."""


class PersistenceError(FilterwaveError):
    """The decision store could not be read or written."""
