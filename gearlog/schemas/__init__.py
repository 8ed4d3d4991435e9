"""Pydantic schemas for stored documents and external payloads."""

from gearlog.schemas.aggregate import (
    ActivityDetails,
    Aggregate,
    InstancePerformance,
    SnapshotLink,
    WeaponInstanceMetrics,
)
from gearlog.schemas.loadout import (
    CharacterSnapshot,
    DisplayMetadata,
    History,
    HistoryMeta,
    ItemSnapshot,
    SnapshotCreate,
)
from gearlog.schemas.session import Session

__all__ = [
    "ActivityDetails",
    "Aggregate",
    "CharacterSnapshot",
    "DisplayMetadata",
    "History",
    "HistoryMeta",
    "InstancePerformance",
    "ItemSnapshot",
    "Session",
    "SnapshotCreate",
    "SnapshotLink",
    "WeaponInstanceMetrics",
]
