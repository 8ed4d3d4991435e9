"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Store limits and retry policy are validated at load time.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Firestore rejects "in" filters with more than 30 values.
FIRESTORE_MAX_IN_VALUES = 30


class Settings(BaseSettings):
    """Application settings loaded from environment and .env.

    Every setting has a default. Firestore credentials are only required when
    a process actually opens a store client (see create_firestore_client).
    """

    # App
    app_name: str = "gearlog"
    app_version: str = "1.0.0"
    debug: bool = False

    # Firebase / Firestore: use key (env) or path (file).
    firebase_service_account_key: SecretStr | None = None
    firebase_service_account_path: str | None = None  # Path to JSON file
    firestore_timeout_seconds: float = 30.0
    firestore_in_query_limit: int = FIRESTORE_MAX_IN_VALUES

    # Conditional writes: read-modify-write attempts before giving up with a conflict.
    transaction_max_attempts: int = 5

    # Orchestrator retry for transient store failures (exponential backoff + jitter).
    store_retry_max_attempts: int = 3
    store_retry_base_delay_ms: int = 100
    store_retry_max_delay_ms: int = 2000

    # Sessions: unfiltered listings only return sessions started within this window.
    session_window_days: int = 30

    # Best-fit snapshot lookup window around a match start time.
    best_fit_lookback_hours: int = 12
    best_fit_grace_minutes: int = 10

    # Session check-in: how many recent activities to pull from the game API.
    check_in_activity_count: int = 2

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_limits(self) -> "Settings":
        """Validate store limits and retry policy.

        - firestore_in_query_limit must be between 1 and 30 (Firestore "in" cap).
        - attempt counts must be at least 1.
        """
        if not 1 <= self.firestore_in_query_limit <= FIRESTORE_MAX_IN_VALUES:
            raise ValueError(
                f"firestore_in_query_limit must be between 1 and {FIRESTORE_MAX_IN_VALUES}, "
                f"got: {self.firestore_in_query_limit}"
            )
        if self.transaction_max_attempts < 1:
            raise ValueError("transaction_max_attempts must be at least 1")
        if self.store_retry_max_attempts < 1:
            raise ValueError("store_retry_max_attempts must be at least 1")
        if self.store_retry_base_delay_ms > self.store_retry_max_delay_ms:
            raise ValueError(
                "store_retry_base_delay_ms cannot exceed store_retry_max_delay_ms"
            )
        if self.session_window_days < 1:
            raise ValueError("session_window_days must be at least 1")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
