"""Application layer: interfaces, services, use cases.

Depends only on domain, schemas and protocol definitions.
Infrastructure implements the interfaces (Firestore repositories).
"""

from gearlog.application.interfaces import (
    IActivitySource,
    IAggregateRepository,
    IManifestResolver,
    ISessionRepository,
    ISnapshotRepository,
)
from gearlog.application.services import LoadoutHashService
from gearlog.application.use_cases import (
    LoadoutStatsUseCase,
    RecordMatchUseCase,
    SessionCheckInUseCase,
)

__all__ = [
    "IActivitySource",
    "IAggregateRepository",
    "IManifestResolver",
    "ISessionRepository",
    "ISnapshotRepository",
    "LoadoutHashService",
    "LoadoutStatsUseCase",
    "RecordMatchUseCase",
    "SessionCheckInUseCase",
]
