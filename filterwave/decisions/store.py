"""Append-only decision log with attached feedback.

Stores records as JSONL under ``~/.filterwave/decisions/``:

- ``decisions.jsonl`` -- one :class:`DecisionRecord` per line
- ``feedback.jsonl`` -- one :class:`FeedbackRecord` per line

Records are never rewritten or deleted. A lock serializes appends and gives
each read a consistent snapshot within the process.
"""

from __future__ import annotations

import json
import threading
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Optional

from loguru import logger

from filterwave.config import DEFAULT_DATA_DIR
from filterwave.errors import DecisionReferenceError, PersistenceError, ValidationError
from filterwave.moderation.models import (
    DailyStat,
    DecisionRecord,
    FeedbackRecord,
    ModerationResult,
)

MAX_STAT_DAYS = 30


class DecisionLog:
    """JSONL-backed store for moderation decisions and feedback."""

    def __init__(self, base_dir: str | Path | None = None) -> None:
        self._base = Path(base_dir) if base_dir else DEFAULT_DATA_DIR
        try:
            self._base.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(f"Cannot create decision store at {self._base}: {exc}") from exc
        self._decisions_path = self._base / "decisions.jsonl"
        self._feedback_path = self._base / "feedback.jsonl"
        self._lock = threading.Lock()

    @property
    def base_dir(self) -> Path:
        return self._base

    # -- helpers -------------------------------------------------------------

    def _append(self, path: Path, data: dict) -> None:
        try:
            with path.open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(data) + "\n")
        except OSError as exc:
            raise PersistenceError(f"Failed to write {path.name}: {exc}") from exc

    def _read_lines(self, path: Path) -> list[dict]:
        if not path.exists():
            return []
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"Failed to read {path.name}: {exc}") from exc
        rows: list[dict] = []
        for line in text.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                rows.append(json.loads(line))
            except json.JSONDecodeError:
                logger.warning("Skipping corrupt line in {}", path.name)
                continue
        return rows

    def _load_decisions(self) -> list[DecisionRecord]:
        records: list[DecisionRecord] = []
        for row in self._read_lines(self._decisions_path):
            try:
                records.append(DecisionRecord.from_dict(row))
            except (AttributeError, KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed decision in {}", self._decisions_path.name)
                continue
        return records

    def _load_feedback(self) -> list[FeedbackRecord]:
        records: list[FeedbackRecord] = []
        for row in self._read_lines(self._feedback_path):
            try:
                records.append(FeedbackRecord(**row))
            except TypeError:
                logger.warning("Skipping malformed feedback in {}", self._feedback_path.name)
                continue
        return records

    # -- writes --------------------------------------------------------------

    def record(
        self,
        caller_id: Optional[str],
        request_text: str,
        result: ModerationResult,
    ) -> DecisionRecord:
        """Append a new decision and return it."""
        record = DecisionRecord(caller_id=caller_id, request_text=request_text, result=result)
        with self._lock:
            self._append(self._decisions_path, record.to_dict())
        logger.info(
            "Recorded decision {} (flagged={}, method={})",
            record.id,
            result.flagged,
            result.method.value,
        )
        return record

    def attach_feedback(
        self,
        decision_id: str,
        caller_id: Optional[str],
        feedback_type: str,
        comment: Optional[str] = None,
    ) -> FeedbackRecord:
        """Attach feedback to an existing decision.

        Raises :class:`ValidationError` if *feedback_type* is empty and
        :class:`DecisionReferenceError` if *decision_id* is unknown.
        """
        feedback_value = getattr(feedback_type, "value", feedback_type)
        if not isinstance(feedback_value, str) or not feedback_value.strip():
            raise ValidationError("feedback_type must be a non-empty string")

        with self._lock:
            if self._find_decision(decision_id) is None:
                raise DecisionReferenceError(decision_id)
            feedback = FeedbackRecord(
                decision_id=decision_id,
                feedback_type=feedback_value.strip(),
                caller_id=caller_id,
                comment=comment,
            )
            self._append(self._feedback_path, asdict(feedback))
        logger.info(
            "Recorded {} feedback {} for decision {}",
            feedback.feedback_type,
            feedback.id,
            decision_id,
        )
        return feedback

    # -- reads ---------------------------------------------------------------

    def _find_decision(self, decision_id: str) -> Optional[DecisionRecord]:
        for record in self._load_decisions():
            if record.id == decision_id:
                return record
        return None

    def get_decision(self, decision_id: str) -> Optional[DecisionRecord]:
        """Return the decision with *decision_id*, or *None*."""
        with self._lock:
            return self._find_decision(decision_id)

    def list_decisions(
        self,
        caller_id: Optional[str] = None,
        limit: int = 50,
    ) -> list[DecisionRecord]:
        """Return decisions newest first, optionally for a single caller."""
        with self._lock:
            records = self._load_decisions()
        if caller_id is not None:
            records = [r for r in records if r.caller_id == caller_id]
        records.sort(key=lambda r: datetime.fromisoformat(r.created_at), reverse=True)
        return records[:limit]

    def get_feedback(self, decision_id: str) -> list[FeedbackRecord]:
        """Return feedback for a decision, oldest first."""
        with self._lock:
            feedback = self._load_feedback()
        result = [f for f in feedback if f.decision_id == decision_id]
        result.sort(key=lambda f: f.created_at)
        return result

    def statistics(self, caller_id: Optional[str] = None) -> list[DailyStat]:
        """Aggregate decisions into per-day stats, newest day first.

        With *caller_id* set only that caller's decisions count; otherwise
        every decision does. At most the 30 most recent days are returned.
        """
        with self._lock:
            records = self._load_decisions()
        if caller_id is not None:
            records = [r for r in records if r.caller_id == caller_id]

        days: dict[str, list[DecisionRecord]] = {}
        for record in records:
            day = datetime.fromisoformat(record.created_at).date().isoformat()
            days.setdefault(day, []).append(record)

        stats: list[DailyStat] = []
        for day in sorted(days, reverse=True)[:MAX_STAT_DAYS]:
            group = days[day]
            confidences = [r.result.confidence for r in group]
            stats.append(
                DailyStat(
                    date=day,
                    total_scans=len(group),
                    flagged_content=sum(1 for r in group if r.result.flagged),
                    avg_confidence=sum(confidences) / len(confidences) if confidences else None,
                )
            )
        return stats
