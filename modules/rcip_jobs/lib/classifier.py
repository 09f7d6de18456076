"""
Classification client: (title, description) -> (NOC code, TEER tier).

The classifier is an external, slow, and occasionally wrong service. Every
implementation here either returns a validated Classification or raises
ClassificationError; callers decide how to degrade.
"""

from __future__ import annotations

import json
import logging
import re
import threading
from dataclasses import dataclass
from typing import Protocol

from modules._shared.openai_chat import OpenAIChat

from .errors import ClassificationError

log = logging.getLogger(__name__)

_NOC_RE = re.compile(r"^\d{5}$")
_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.I)

SYSTEM_PROMPT = "You are an expert in Canadian NOC (National Occupational Classification) codes."

USER_PROMPT = (
    "Analyze this job posting and determine the most likely NOC code and TEER level.\n\n"
    "Job Title: {title}\n"
    "Description: {description}\n\n"
    "Return ONLY a JSON object with:\n"
    '{{"noc": "5-digit NOC code", "teerLevel": number from 0-5}}'
)


@dataclass(frozen=True)
class Classification:
    occupation_code: str
    skill_tier: int


class Classifier(Protocol):
    def classify(self, title: str, description: str) -> Classification: ...


def parse_reply(raw: str) -> Classification:
    """
    Validate the model's reply. Accepts a bare JSON object or one wrapped in a
    ``` fence; anything else (bad JSON, wrong NOC shape, tier outside 0..5)
    raises ClassificationError.
    """
    text = _FENCE_RE.sub("", (raw or "").strip())
    try:
        data = json.loads(text)
    except ValueError as e:
        raise ClassificationError(f"reply is not JSON: {text[:80]!r}") from e
    if not isinstance(data, dict):
        raise ClassificationError(f"reply is not a JSON object: {text[:80]!r}")

    noc = str(data.get("noc") or "").strip()
    if not _NOC_RE.match(noc):
        raise ClassificationError(f"invalid NOC code {noc!r}")

    tier = data.get("teerLevel")
    if isinstance(tier, str) and tier.strip().isdigit():
        tier = int(tier.strip())
    if isinstance(tier, bool) or not isinstance(tier, int) or not 0 <= tier <= 5:
        raise ClassificationError(f"invalid TEER level {tier!r}")

    return Classification(occupation_code=noc, skill_tier=tier)


class OpenAIClassifier:
    """Classifier backed by an OpenAI chat model, with a bounded per-call timeout."""

    def __init__(
        self,
        *,
        timeout: float,
        model_env: str = "OPENAI_MODEL_NOC",
        temp_env: str = "OPENAI_TEMP_NOC",
        chat: OpenAIChat | None = None,
    ) -> None:
        self._chat = chat or OpenAIChat(model_env=model_env, temp_env=temp_env, timeout=timeout)

    def classify(self, title: str, description: str) -> Classification:
        user = USER_PROMPT.format(title=title, description=description)
        try:
            raw = self._chat.chat(SYSTEM_PROMPT, user)
        except Exception as e:  # openai.APITimeoutError, APIError, missing key...
            raise ClassificationError(f"classifier call failed: {e!r}") from e
        return parse_reply(raw)


class CachingClassifier:
    """Memoizes successful classifications by (title, description). Thread-safe."""

    def __init__(self, inner: Classifier) -> None:
        self._inner = inner
        self._cache: dict[tuple[str, str], Classification] = {}
        self._lock = threading.Lock()

    def classify(self, title: str, description: str) -> Classification:
        key = (title, description)
        with self._lock:
            hit = self._cache.get(key)
        if hit is not None:
            return hit
        result = self._inner.classify(title, description)
        with self._lock:
            self._cache[key] = result
        return result


class DisabledClassifier:
    """Stand-in when classification is switched off; every posting stays unclassified."""

    def __init__(self, reason: str = "classification disabled") -> None:
        self._reason = reason

    def classify(self, title: str, description: str) -> Classification:
        raise ClassificationError(self._reason)


def build_classifier(*, enabled: bool, timeout: float, model_env: str) -> Classifier:
    if not enabled:
        return DisabledClassifier()
    chat = OpenAIChat(model_env=model_env, temp_env="OPENAI_TEMP_NOC", timeout=timeout)
    if not chat.has_credentials():
        log.warning("Classification enabled but %s is not set; postings will be unclassified", chat.api_key_env)
        return DisabledClassifier(f"{chat.api_key_env} not set")
    return CachingClassifier(OpenAIClassifier(timeout=timeout, chat=chat))
