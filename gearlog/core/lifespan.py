"""Process lifespan: build the Firestore client and services, close on exit.

Single place for startup/shutdown wiring; no business logic here. Entry
points (scripts, workers, an API host) open one services context and pass
the repositories and use cases down.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

from gearlog.application.interfaces.services import IActivitySource, IManifestResolver
from gearlog.application.use_cases import (
    LoadoutStatsUseCase,
    RecordMatchUseCase,
    SessionCheckInUseCase,
)
from gearlog.core.config import Settings, get_settings
from gearlog.infrastructure.firebase._rest_client import FirestoreRESTClient
from gearlog.infrastructure.firebase.client import create_firestore_client
from gearlog.infrastructure.firebase.repositories import (
    FirestoreAggregateRepository,
    FirestoreSessionRepository,
    FirestoreSnapshotRepository,
)
from gearlog.shared.utils.retry import StoreRetryPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Services:
    """Repositories and use cases sharing one Firestore client."""

    snapshots: FirestoreSnapshotRepository
    aggregates: FirestoreAggregateRepository
    sessions: FirestoreSessionRepository
    record_match: RecordMatchUseCase
    stats: LoadoutStatsUseCase
    check_in: SessionCheckInUseCase | None


@asynccontextmanager
async def create_services(
    settings: Settings | None = None,
    *,
    client: FirestoreRESTClient | None = None,
    manifest: IManifestResolver | None = None,
    activity_source: IActivitySource | None = None,
) -> AsyncIterator[Services]:
    """Yield wired services; on exit close the Firestore client if it was created here.

    check_in is only available when an activity source is given.
    """
    settings = settings or get_settings()
    owns_client = client is None
    if client is None:
        client = create_firestore_client(settings)

    retry_policy = StoreRetryPolicy.from_settings(settings)
    aggregates = FirestoreAggregateRepository(client, settings)
    snapshots = FirestoreSnapshotRepository(client, aggregates, settings=settings)
    sessions = FirestoreSessionRepository(client, settings)
    record_match = RecordMatchUseCase(
        snapshots, aggregates, sessions, manifest=manifest, retry_policy=retry_policy
    )
    check_in = None
    if activity_source is not None:
        check_in = SessionCheckInUseCase(
            sessions,
            aggregates,
            snapshots,
            activity_source,
            record_match,
            settings=settings,
            retry_policy=retry_policy,
        )
    try:
        yield Services(
            snapshots=snapshots,
            aggregates=aggregates,
            sessions=sessions,
            record_match=record_match,
            stats=LoadoutStatsUseCase(snapshots, aggregates),
            check_in=check_in,
        )
    finally:
        if owns_client:
            await client.aclose()
            logger.info("Firestore client closed")
