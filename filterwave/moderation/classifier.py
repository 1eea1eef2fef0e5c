"""AI tier: adapter to a remote classification endpoint.

The endpoint is prompted for structured JSON but is not guaranteed to return
it. Response text is run through an ordered chain of parsers; the first one
that produces a result wins. Network, timeout and authentication failures are
all reported as :class:`ClassifierUnavailable` so the pipeline can fall back.
"""

from __future__ import annotations

import json
import re
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable, Optional, Sequence

import httpx
from loguru import logger
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from filterwave.config import DEFAULT_CLASSIFIER_TIMEOUT, PLACEHOLDER_API_KEY
from filterwave.errors import ClassifierUnavailable
from filterwave.moderation.models import SAFE_REASON, Method, ModerationResult
from filterwave.moderation.prompts import CLASSIFICATION_PROMPT

AI_FLAGGED_REASON = "Content flagged by AI analysis"
FALLBACK_CATEGORY = "general"

_FENCE_RE = re.compile(r"```(?:json)?\s*|\s*```", re.IGNORECASE)
_FLAGGED_RE = re.compile(r"flagged\W*:\s*true", re.IGNORECASE)
_CONFIDENCE_RE = re.compile(r"confidence\W*:\s*(\d+(?:\.\d+)?|\.\d+)", re.IGNORECASE)

ResponseParser = Callable[[str], Optional[ModerationResult]]


class ClassifierVerdict(BaseModel):
    """Shape the remote classifier is asked to return."""

    flagged: bool
    confidence: float = Field(ge=0.0, le=1.0)
    categories: list[str] = Field(default_factory=list)
    reason: str = ""


# ---------------------------------------------------------------------------
# Parsers
# ---------------------------------------------------------------------------


def parse_strict(text: str) -> Optional[ModerationResult]:
    """Parse *text* as a JSON verdict. Returns *None* if it does not fit."""
    body = _FENCE_RE.sub("", text).strip()
    try:
        verdict = ClassifierVerdict.model_validate(json.loads(body))
    except (json.JSONDecodeError, PydanticValidationError):
        return None

    reason = verdict.reason.strip()
    if verdict.flagged and not verdict.categories and not reason:
        reason = AI_FLAGGED_REASON
    return ModerationResult(
        flagged=verdict.flagged,
        confidence=verdict.confidence,
        categories=verdict.categories,
        reason=reason or (AI_FLAGGED_REASON if verdict.flagged else SAFE_REASON),
        method=Method.ai,
        raw_response=text,
    )


def parse_permissive(text: str) -> Optional[ModerationResult]:
    """Scrape ``flagged`` and ``confidence`` tokens out of free-form text."""
    flagged = bool(_FLAGGED_RE.search(text))

    confidence: Optional[float] = None
    match = _CONFIDENCE_RE.search(text)
    if match:
        try:
            confidence = float(match.group(1))
        except ValueError:
            confidence = None
    if confidence is None:
        confidence = 0.5 if flagged else 0.0

    return ModerationResult(
        flagged=flagged,
        confidence=confidence,
        categories=[FALLBACK_CATEGORY] if flagged else [],
        reason=AI_FLAGGED_REASON if flagged else SAFE_REASON,
        method=Method.ai_fallback_parse,
        raw_response=text,
    )


DEFAULT_PARSERS: tuple[ResponseParser, ...] = (parse_strict, parse_permissive)


def extract_text(payload: object) -> str:
    """Pull the generated text out of a ``candidates[0].content.parts[0].text`` envelope."""
    try:
        text = payload["candidates"][0]["content"]["parts"][0]["text"]  # type: ignore[index]
    except (KeyError, IndexError, TypeError) as exc:
        raise ClassifierUnavailable(f"Unexpected response envelope: {exc!r}") from exc
    if not isinstance(text, str):
        raise ClassifierUnavailable("Response text is not a string")
    return text


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class ExternalClassifier:
    """Single-attempt HTTP client for the remote classifier.

    Parameters
    ----------
    api_url : str
        Endpoint URL. The credential is sent as the ``key`` query parameter.
    api_key : str
        Credential for the endpoint.
    timeout : float
        Hard limit in seconds for the whole request.
    transport : httpx.BaseTransport | None
        Optional transport, used by tests to stub the network.
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        timeout: float = DEFAULT_CLASSIFIER_TIMEOUT,
        parsers: Sequence[ResponseParser] = DEFAULT_PARSERS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_url = api_url
        self.api_key = api_key
        self.timeout = timeout
        self._parsers = tuple(parsers)
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_url) and bool(self.api_key) and self.api_key != PLACEHOLDER_API_KEY

    def build_request_body(self, text: str) -> dict:
        prompt = CLASSIFICATION_PROMPT.format(content=text)
        return {"contents": [{"parts": [{"text": prompt}]}]}

    def _post(self, body: dict) -> bytes:
        """POST *body* and return the raw response body.

        httpx timeouts apply to each connect/read/write separately, so the
        whole exchange also runs against a single deadline: the worker stops
        reading once it passes, and the caller stops waiting at the same time.
        """
        deadline = time.monotonic() + self.timeout
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="filterwave-classifier")
        try:
            future = executor.submit(self._exchange, body, deadline)
            return future.result(timeout=self.timeout)
        except FutureTimeoutError as exc:
            raise ClassifierUnavailable(f"Classifier timed out after {self.timeout}s") from exc
        finally:
            executor.shutdown(wait=False)

    def _exchange(self, body: dict, deadline: float) -> bytes:
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                with client.stream(
                    "POST",
                    self.api_url,
                    params={"key": self.api_key},
                    json=body,
                    headers={"Content-Type": "application/json"},
                ) as response:
                    response.raise_for_status()
                    chunks: list[bytes] = []
                    for chunk in response.iter_bytes():
                        if time.monotonic() > deadline:
                            raise ClassifierUnavailable(
                                f"Classifier timed out after {self.timeout}s"
                            )
                        chunks.append(chunk)
                    return b"".join(chunks)
        except httpx.TimeoutException as exc:
            raise ClassifierUnavailable(f"Classifier timed out after {self.timeout}s") from exc
        except httpx.HTTPStatusError as exc:
            raise ClassifierUnavailable(
                f"Classifier returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ClassifierUnavailable(f"Classifier request failed: {exc}") from exc

    def parse(self, text: str) -> ModerationResult:
        """Run *text* through the parser chain."""
        for parser in self._parsers:
            result = parser(text)
            if result is not None:
                logger.debug("Classifier response parsed by {}", parser.__name__)
                return result
        raise ClassifierUnavailable("No parser could interpret the classifier response")

    def classify(self, text: str) -> ModerationResult:
        """Classify *text* remotely. Raises :class:`ClassifierUnavailable` on any failure."""
        if not self.configured:
            raise ClassifierUnavailable("Classifier is not configured")

        content = self._post(self.build_request_body(text))
        try:
            payload = json.loads(content)
        except ValueError as exc:
            raise ClassifierUnavailable("Classifier response is not JSON") from exc
        return self.parse(extract_text(payload))
