"""Firestore-backed repository implementations."""

from gearlog.infrastructure.firebase.repositories.aggregate_repo_firestore import (
    FirestoreAggregateRepository,
)
from gearlog.infrastructure.firebase.repositories.session_repo_firestore import (
    FirestoreSessionRepository,
)
from gearlog.infrastructure.firebase.repositories.snapshot_repo_firestore import (
    FirestoreSnapshotRepository,
)

__all__ = [
    "FirestoreAggregateRepository",
    "FirestoreSessionRepository",
    "FirestoreSnapshotRepository",
]
