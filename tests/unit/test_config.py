"""Tests for Settings validation and the cached accessor."""

import pytest
from pydantic import ValidationError

from gearlog.core.config import FIRESTORE_MAX_IN_VALUES, Settings, get_settings


def test_defaults() -> None:
    settings = Settings(_env_file=None)
    assert settings.firestore_in_query_limit == FIRESTORE_MAX_IN_VALUES
    assert settings.transaction_max_attempts == 5
    assert settings.best_fit_lookback_hours == 12
    assert settings.best_fit_grace_minutes == 10
    assert settings.session_window_days == 30


@pytest.mark.parametrize(
    "overrides",
    [
        {"firestore_in_query_limit": 0},
        {"firestore_in_query_limit": 31},
        {"transaction_max_attempts": 0},
        {"store_retry_max_attempts": 0},
        {"store_retry_base_delay_ms": 500, "store_retry_max_delay_ms": 100},
        {"session_window_days": 0},
    ],
)
def test_invalid_limits_rejected(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **overrides)


def test_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SESSION_WINDOW_DAYS", "7")
    get_settings.cache_clear()
    try:
        assert get_settings().session_window_days == 7
    finally:
        get_settings.cache_clear()
