# tests/test_config.py
import pytest

from modules.rcip_jobs.lib.config import Settings
from modules.rcip_jobs.lib.errors import ConfigError


def test_defaults(monkeypatch):
    monkeypatch.delenv("RCIP_ENABLE_LLM", raising=False)
    s = Settings.from_env_and_kwargs({})

    assert s.sqlite_path == "/app/local/state/rcip_jobs.db"
    assert s.max_threads == 4
    assert s.classify_timeout == 20.0
    assert s.enable_classification is True
    assert s.skip_network is False


def test_env_fills_missing_kwargs(monkeypatch):
    monkeypatch.setenv("RCIP_SQLITE_PATH", "/tmp/env.db")
    monkeypatch.setenv("RCIP_MAX_THREADS", "2")
    monkeypatch.setenv("RCIP_SKIP_NETWORK", "yes")
    monkeypatch.setenv("RCIP_PAGE_DELAY_SECONDS", "0")

    s = Settings.from_env_and_kwargs(None)

    assert s.sqlite_path == "/tmp/env.db"
    assert s.max_threads == 2
    assert s.skip_network is True
    assert s.page_delay_seconds == 0.0
    # conftest turns classification off for unit tests
    assert s.enable_classification is False


def test_kwargs_beat_env(monkeypatch):
    monkeypatch.setenv("RCIP_MAX_THREADS", "2")
    s = Settings.from_env_and_kwargs({"max_threads": 8, "enable_classification": "true"})
    assert s.max_threads == 8
    assert s.enable_classification is True


def test_unknown_kwarg_rejected():
    with pytest.raises(ConfigError, match="max_thread"):
        Settings.from_env_and_kwargs({"max_thread": 2})


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_threads": 0},
        {"classify_workers": -1},
        {"fetch_timeout": -5},
        {"page_delay_seconds": -1},
        {"max_threads": "many"},
        {"sqlite_path": "   "},
    ],
)
def test_invalid_values_rejected(kwargs):
    with pytest.raises(ConfigError):
        Settings.from_env_and_kwargs(kwargs)


def test_config_error_is_value_error():
    assert issubclass(ConfigError, ValueError)
