"""Application interfaces (ports): repository and collaborator protocols.

Define contracts for infrastructure implementations.
No runtime imports from gearlog.infrastructure.
"""

from gearlog.application.interfaces.repositories import (
    AggregateMutation,
    IAggregateRepository,
    ISessionRepository,
    ISnapshotRepository,
)
from gearlog.application.interfaces.services import IActivitySource, IManifestResolver

__all__ = [
    "AggregateMutation",
    "IActivitySource",
    "IAggregateRepository",
    "IManifestResolver",
    "ISessionRepository",
    "ISnapshotRepository",
]
