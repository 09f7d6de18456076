# modules/_shared/openai_chat.py
from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from typing import Any

log = logging.getLogger(__name__)


def env_float(name: str | None, default: float) -> float:
    """Float from the environment; unset, blank or malformed values give `default`."""
    raw = (os.getenv(name) or "").strip() if name else ""
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        log.warning("Ignoring %s=%r (not a number); using %s", name, raw, default)
        return default


@dataclass
class OpenAIChat:
    """
    One system+user turn against openai chat completions.

    The model name comes from the `model_env` variable (falling back to
    `default_model`) and the temperature from `temp_env` (falling back to
    `temperature`), both read per call. Each request is bounded by `timeout`
    seconds and never retried client-side; retry policy belongs to the caller.
    The underlying client is built lazily and shared across threads.
    """

    model_env: str
    temp_env: str
    api_key_env: str = "OPENAI_API_KEY"
    default_model: str = "gpt-4-turbo-preview"
    temperature: float = 0.0
    timeout: float | None = None
    max_retries: int = 0
    _client: Any = field(default=None, init=False, repr=False)
    _client_key: str | None = field(default=None, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def has_credentials(self) -> bool:
        return bool(os.getenv(self.api_key_env))

    def chat(self, system_msg: str, user_msg: str) -> str:
        client = self._client_for(os.getenv(self.api_key_env) or "")
        model = os.getenv(self.model_env) or self.default_model
        temp = env_float(self.temp_env, self.temperature)

        resp = client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system_msg},
                {"role": "user", "content": user_msg},
            ],
            temperature=temp,
        )
        reply = (resp.choices[0].message.content or "").strip()
        log.debug("%s replied with %d chars (temperature=%s)", model, len(reply), temp)
        return reply

    def _client_for(self, api_key: str) -> Any:
        if not api_key:
            raise RuntimeError(f"{self.api_key_env} not set")
        with self._lock:
            # rebuilt when the key rotates between calls
            if self._client is None or self._client_key != api_key:
                from openai import OpenAI

                self._client = OpenAI(api_key=api_key, timeout=self.timeout, max_retries=self.max_retries)
                self._client_key = api_key
            return self._client
