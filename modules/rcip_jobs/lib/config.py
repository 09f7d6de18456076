from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .errors import ConfigError
from .utils import truthy

# kwarg name -> environment variable consulted when the kwarg is absent
_ENV_NAMES = {
    "sqlite_path": "RCIP_SQLITE_PATH",
    "max_threads": "RCIP_MAX_THREADS",
    "classify_workers": "RCIP_CLASSIFY_WORKERS",
    "fetch_timeout": "RCIP_FETCH_TIMEOUT",
    "classify_timeout": "RCIP_CLASSIFY_TIMEOUT",
    "page_delay_seconds": "RCIP_PAGE_DELAY_SECONDS",
    "enable_classification": "RCIP_ENABLE_LLM",
    "model_env": "RCIP_MODEL_ENV",
    "skip_network": "RCIP_SKIP_NETWORK",
}


@dataclass(frozen=True)
class Settings:
    """
    Canonical configuration for one scrape run.

    Resolution order per field: explicit kwarg > RCIP_* environment variable > default.
    OpenAI credentials/model are read by the classifier itself (OPENAI_API_KEY and
    the env var named by `model_env`).
    """

    # Persistence
    sqlite_path: str = "/app/local/state/rcip_jobs.db"

    # Concurrency: sites in flight, and classification calls in flight
    max_threads: int = 4
    classify_workers: int = 4

    # Timeouts (seconds) and per-site politeness between paginated requests
    fetch_timeout: float = 15.0
    classify_timeout: float = 20.0
    page_delay_seconds: float = 1.0

    # Classification
    enable_classification: bool = True
    model_env: str = "OPENAI_MODEL_NOC"

    # Dry runs: no HTTP at all, every site reports an empty success
    skip_network: bool = False

    # ------------- constructors -------------
    @classmethod
    def from_env_and_kwargs(cls, kwargs: Mapping[str, Any] | None) -> Settings:
        """
        Build Settings from kwargs (falling back to RCIP_* env vars) with validation.
        Unknown kwargs are rejected so typos don't silently fall back to defaults.
        """
        kw = dict(kwargs or {})
        unknown = set(kw) - set(_ENV_NAMES)
        if unknown:
            raise ConfigError(f"Unknown settings: {', '.join(sorted(unknown))}")

        def pick(name: str) -> Any:
            if kw.get(name) is not None:
                return kw[name]
            return os.getenv(_ENV_NAMES[name])

        defaults = cls()
        try:
            settings = cls(
                sqlite_path=str(pick("sqlite_path") or defaults.sqlite_path).strip(),
                max_threads=int(_or_default(pick("max_threads"), defaults.max_threads)),
                classify_workers=int(_or_default(pick("classify_workers"), defaults.classify_workers)),
                fetch_timeout=float(_or_default(pick("fetch_timeout"), defaults.fetch_timeout)),
                classify_timeout=float(_or_default(pick("classify_timeout"), defaults.classify_timeout)),
                page_delay_seconds=float(_or_default(pick("page_delay_seconds"), defaults.page_delay_seconds)),
                enable_classification=truthy(_or_default(pick("enable_classification"), True)),
                model_env=str(pick("model_env") or defaults.model_env).strip(),
                skip_network=truthy(pick("skip_network")),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid setting value: {e}") from e

        _validate_settings(settings)
        return settings


# -----------------------------
# Helpers
# -----------------------------
def _or_default(value: Any, default: Any) -> Any:
    # 0 / False are meaningful here, so only None and "" fall back.
    return default if value is None or value == "" else value


def _validate_settings(s: Settings) -> None:
    if not s.sqlite_path:
        raise ConfigError("'sqlite_path' cannot be empty.")
    if s.max_threads <= 0:
        raise ConfigError("'max_threads' must be >= 1.")
    if s.classify_workers <= 0:
        raise ConfigError("'classify_workers' must be >= 1.")
    if s.fetch_timeout <= 0 or s.classify_timeout <= 0:
        raise ConfigError("Timeouts must be > 0 seconds.")
    if s.page_delay_seconds < 0:
        raise ConfigError("'page_delay_seconds' cannot be negative.")
    if not s.model_env:
        raise ConfigError("'model_env' cannot be empty.")
