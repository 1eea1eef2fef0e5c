"""Runtime configuration for Filterwave.

All settings come from the environment so the same code runs under the CLI,
the web app and the test suite. ``Settings.from_env()`` is the single place
environment variables are read.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional

from filterwave.errors import ValidationError

DEFAULT_DATA_DIR = Path.home() / ".filterwave" / "decisions"
DEFAULT_CLASSIFIER_TIMEOUT = 10.0

# Value shipped in the sample .env; treated as "no credential".
PLACEHOLDER_API_KEY = "your-gemini-api-key-here"


class FailurePolicy(str, Enum):
    """What the pipeline returns when its own orchestration fails."""

    open = "open"  # unflagged, content goes through
    closed = "closed"  # flagged, content is held back


@dataclass
class Settings:
    """Resolved configuration values."""

    api_key: str = ""
    api_url: str = ""
    classifier_timeout: float = DEFAULT_CLASSIFIER_TIMEOUT
    data_dir: Path = field(default_factory=lambda: DEFAULT_DATA_DIR)
    rules_file: Optional[Path] = None
    failure_policy: FailurePolicy = FailurePolicy.open

    @property
    def classifier_configured(self) -> bool:
        """Return *True* if both the endpoint and a real credential are set."""
        return bool(self.api_url) and bool(self.api_key) and self.api_key != PLACEHOLDER_API_KEY

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ

        raw_timeout = env.get("FILTERWAVE_CLASSIFIER_TIMEOUT", "")
        try:
            timeout = float(raw_timeout) if raw_timeout else DEFAULT_CLASSIFIER_TIMEOUT
        except ValueError:
            raise ValidationError(
                f"FILTERWAVE_CLASSIFIER_TIMEOUT must be a number, got {raw_timeout!r}"
            ) from None
        if timeout <= 0:
            raise ValidationError("FILTERWAVE_CLASSIFIER_TIMEOUT must be positive")

        raw_policy = env.get("FILTERWAVE_FAILURE_POLICY", "open").strip().lower()
        try:
            policy = FailurePolicy(raw_policy)
        except ValueError:
            raise ValidationError(
                f"FILTERWAVE_FAILURE_POLICY must be 'open' or 'closed', got {raw_policy!r}"
            ) from None

        data_dir = env.get("FILTERWAVE_DATA_DIR", "")
        rules_file = env.get("FILTERWAVE_RULES_FILE", "")

        return cls(
            api_key=env.get("GEMINI_API_KEY", "").strip(),
            api_url=env.get("GEMINI_API_URL", "").strip(),
            classifier_timeout=timeout,
            data_dir=Path(data_dir).expanduser() if data_dir else DEFAULT_DATA_DIR,
            rules_file=Path(rules_file).expanduser() if rules_file else None,
            failure_policy=policy,
        )
