"""Pytest configuration and fixtures for gearlog.

Repository and use-case tests run against the in-memory Firestore double in
tests/fakes.py; no network or credentials are needed. All imports use gearlog.*.
"""

import pytest

from gearlog.core.config import Settings
from gearlog.infrastructure.firebase.repositories import (
    FirestoreAggregateRepository,
    FirestoreSessionRepository,
    FirestoreSnapshotRepository,
)
from gearlog.shared.utils.retry import StoreRetryPolicy
from tests.fakes import FakeFirestore


@pytest.fixture
def settings() -> Settings:
    """Settings with defaults only (env and .env ignored)."""
    return Settings(_env_file=None)


@pytest.fixture
def fake_db() -> FakeFirestore:
    return FakeFirestore()


@pytest.fixture
def aggregate_repo(fake_db: FakeFirestore, settings: Settings) -> FirestoreAggregateRepository:
    return FirestoreAggregateRepository(fake_db, settings)


@pytest.fixture
def snapshot_repo(
    fake_db: FakeFirestore,
    aggregate_repo: FirestoreAggregateRepository,
    settings: Settings,
) -> FirestoreSnapshotRepository:
    return FirestoreSnapshotRepository(fake_db, aggregate_repo, settings=settings)


@pytest.fixture
def session_repo(fake_db: FakeFirestore, settings: Settings) -> FirestoreSessionRepository:
    return FirestoreSessionRepository(fake_db, settings)


@pytest.fixture
def fast_retry() -> StoreRetryPolicy:
    """Retry policy without real sleeps between attempts."""
    return StoreRetryPolicy(max_attempts=3, base_delay_ms=0, max_delay_ms=0)
