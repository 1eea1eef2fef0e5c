"""Rule tier: deterministic, local pattern matching.

The rule table is an ordered sequence of ``(category, patterns)`` pairs.
Categories are tested in table order, so results are reproducible. A hit in
any pattern triggers the whole category; hits are a binary signal and always
carry the same confidence no matter how many patterns matched.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

import yaml
from loguru import logger

from filterwave.errors import RuleTableError
from filterwave.moderation.models import SAFE_REASON, Method, ModerationResult

RULE_CONFIDENCE = 0.8

# ---------------------------------------------------------------------------
# Default rule table
# ---------------------------------------------------------------------------

DEFAULT_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    (
        "hate_speech",
        (
            r"\b(hate|stupid|idiot|moron)\b",
            r"\bh8\b",
            r"\bf[*@#$%]ck\b",
        ),
    ),
    (
        "harassment",
        (
            r"\b(kill yourself|kys)\b",
            r"\b(loser|pathetic)\b",
        ),
    ),
    (
        "explicit",
        (
            r"\b(sex|porn|xxx)\b",
            r"\b(nude|naked)\b",
        ),
    ),
)


@dataclass(frozen=True)
class CategoryRule:
    """Compiled patterns for one category."""

    category: str
    patterns: tuple[re.Pattern[str], ...]

    def matches(self, text: str) -> bool:
        return any(p.search(text) for p in self.patterns)


def compile_rules(table: Sequence[tuple[str, Sequence[str]]]) -> tuple[CategoryRule, ...]:
    """Compile a raw rule table, raising :class:`RuleTableError` if malformed."""
    compiled: list[CategoryRule] = []
    seen: set[str] = set()
    for entry in table:
        try:
            category, patterns = entry
        except (TypeError, ValueError):
            raise RuleTableError(f"Rule entry must be (category, patterns): {entry!r}") from None
        if not isinstance(category, str) or not category.strip():
            raise RuleTableError(f"Rule category must be a non-empty string: {category!r}")
        if category in seen:
            raise RuleTableError(f"Duplicate rule category: {category}")
        if isinstance(patterns, str) or not patterns:
            raise RuleTableError(f"Category {category!r} needs a non-empty list of patterns")
        try:
            regexes = tuple(re.compile(p, re.IGNORECASE) for p in patterns)
        except (re.error, TypeError) as exc:
            raise RuleTableError(f"Bad pattern in category {category!r}: {exc}") from exc
        seen.add(category)
        compiled.append(CategoryRule(category=category, patterns=regexes))
    if not compiled:
        raise RuleTableError("Rule table is empty")
    return tuple(compiled)


def load_rules(path: str | Path) -> tuple[CategoryRule, ...]:
    """Load a rule table from YAML.

    Expected layout::

        rules:
          - category: hate_speech
            patterns: ['\\bidiot\\b']
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        raise RuleTableError(f"Could not read rule table {path}: {exc}") from exc

    if not isinstance(data, dict) or not isinstance(data.get("rules"), list):
        raise RuleTableError(f"{path}: expected a top-level 'rules' list")

    table: list[tuple[str, list[str]]] = []
    for item in data["rules"]:
        if not isinstance(item, dict):
            raise RuleTableError(f"{path}: each rule must be a mapping, got {item!r}")
        table.append((item.get("category", ""), item.get("patterns") or []))
    return compile_rules(table)


class RuleMatcher:
    """Matches text against the rule table. Holds no per-request state."""

    def __init__(self, rules: Sequence[CategoryRule] | None = None) -> None:
        self._rules = tuple(rules) if rules is not None else compile_rules(DEFAULT_RULES)

    @property
    def categories(self) -> list[str]:
        return [r.category for r in self._rules]

    def match(self, text: str) -> ModerationResult:
        triggered = [rule.category for rule in self._rules if rule.matches(text)]
        if triggered:
            logger.debug("Rule tier triggered: {}", ", ".join(triggered))

        flagged = bool(triggered)
        return ModerationResult(
            flagged=flagged,
            confidence=RULE_CONFIDENCE if flagged else 0.0,
            categories=triggered,
            reason=f"Content flagged for: {', '.join(triggered)}" if flagged else SAFE_REASON,
            method=Method.rule_based,
            details={
                "total_violations": len(triggered),
                "categories_flagged": list(triggered),
            },
        )
