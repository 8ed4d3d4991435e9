"""DTOs for match reconciliation use cases."""

from dataclasses import dataclass, field
from typing import Any

from gearlog.schemas.aggregate import (
    ActivityDetails,
    Aggregate,
    InstancePerformance,
    SnapshotLink,
)
from gearlog.schemas.loadout import CharacterSnapshot, ItemSnapshot


@dataclass(frozen=True)
class MatchObservation:
    """A freshly observed match for one character.

    loadout is the character's equipment at observation time; when None the
    snapshot is chosen by best fit over recorded history instead.
    """

    character_id: str
    activity: ActivityDetails
    performance: InstancePerformance
    loadout: dict[str, ItemSnapshot] | None = None
    stats: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ReconciliationResult:
    """Stored aggregate plus the enriched (never stored) performance for presentation."""

    aggregate: Aggregate
    snapshot: CharacterSnapshot | None
    link: SnapshotLink
    session_id: str | None
    performance: InstancePerformance


@dataclass(frozen=True)
class FireteamMember:
    """A player checked in together with a session owner."""

    user_id: str
    character_id: str
    membership_id: str | None = None
    display_name: str | None = None


@dataclass(frozen=True)
class CheckInResult:
    """Outcome of a session check-in."""

    session_id: str
    activity_ids: tuple[str, ...]
    aggregate_ids: tuple[str, ...]
    skipped_activity_ids: tuple[str, ...] = ()
    # Session per checked-in character (the owner's first).
    member_sessions: dict[str, str] = field(default_factory=dict)

    @property
    def updated(self) -> bool:
        return bool(self.aggregate_ids)
