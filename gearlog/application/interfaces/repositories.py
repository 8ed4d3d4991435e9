"""Repository interfaces (ports) for the application layer.

Protocols define contracts that infrastructure implementations must fulfill.
All types reference schemas only; no infrastructure imports.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol

from gearlog.domain.enums import SessionStatus

if TYPE_CHECKING:
    from gearlog.schemas.aggregate import (
        ActivityDetails,
        Aggregate,
        InstancePerformance,
        SnapshotLink,
        WeaponInstanceMetrics,
    )
    from gearlog.schemas.loadout import CharacterSnapshot, History, SnapshotCreate
    from gearlog.schemas.session import Session

# Receives the current aggregate; returns the field-path updates it owns.
AggregateMutation = Callable[["Aggregate"], dict[str, Any]]


class ISnapshotRepository(Protocol):
    """Protocol for the snapshot store (snapshots + history)."""

    async def save(self, user_id: str, data: SnapshotCreate) -> CharacterSnapshot:
        """Save an observed loadout; a known hash returns the existing snapshot (or its merge target)."""

    async def get(self, snapshot_id: str) -> CharacterSnapshot:
        """Return snapshot by ID. Raises ResourceNotFoundException."""

    async def get_by_ids(self, snapshot_ids: list[str]) -> list[CharacterSnapshot]:
        """Return snapshots for the IDs (any order, missing IDs skipped)."""

    async def get_all_by_character(
        self, user_id: str, character_id: str
    ) -> list[CharacterSnapshot]:
        """Return a character's snapshots, newest created first."""

    async def get_histories(self, snapshot_id: str) -> list[History]:
        """Return observation history of a snapshot, oldest first."""

    async def find_best_fit(
        self,
        user_id: str,
        character_id: str,
        activity_period: datetime,
        weapons: dict[str, WeaponInstanceMetrics],
    ) -> tuple[CharacterSnapshot | None, SnapshotLink]:
        """Return the snapshot that best matches a match's weapons, with its link."""

    async def merge(self, target_id: str, source_id: str) -> CharacterSnapshot:
        """Merge source into target and repoint aggregate links. Returns target."""


class IAggregateRepository(Protocol):
    """Protocol for the aggregate store (one aggregate per activity)."""

    async def add_aggregate(
        self,
        character_id: str,
        activity: ActivityDetails,
        link: SnapshotLink,
        performance: InstancePerformance,
    ) -> Aggregate:
        """Create the activity's aggregate or merge this character's entries into it."""

    async def get_aggregate(self, activity_id: str) -> Aggregate:
        """Return aggregate by activity ID. Raises ResourceNotFoundException."""

    async def get_aggregates(self, aggregate_ids: list[str]) -> list[Aggregate]:
        """Return aggregates by document ID (any order)."""

    async def get_aggregates_by_activity(self, activity_ids: list[str]) -> list[Aggregate]:
        """Return aggregates by activity ID (any order)."""

    async def find_by_snapshot(self, character_id: str, snapshot_id: str) -> list[Aggregate]:
        """Return aggregates whose link for character_id points at snapshot_id."""

    async def get_aggregates_for_snapshot(
        self, snapshot_id: str, game_modes: list[str] | None = None
    ) -> list[Aggregate]:
        """Return aggregates linked to the snapshot, optionally only for some modes."""

    async def get_aggregates_by_character(
        self, character_id: str, game_modes: list[str] | None = None
    ) -> list[Aggregate]:
        """Return aggregates the character is linked to, optionally only for some modes."""

    async def update(
        self,
        aggregate_id: str,
        mutate: AggregateMutation,
        transactional: bool = True,
    ) -> bool:
        """Apply the mutation's field updates; returns False when it had nothing to write."""

    async def update_all_aggregates(self) -> int:
        """Backfill derived ID arrays on every aggregate; returns success count."""


class ISessionRepository(Protocol):
    """Protocol for recording sessions."""

    async def start(self, user_id: str, character_id: str, started_by: str | None) -> Session:
        """Start a pending session. Raises SessionAlreadyActiveException."""

    async def complete(self, session_id: str) -> Session:
        """Complete a session (no-op when already complete)."""

    async def get(self, session_id: str) -> Session:
        """Return session by ID. Raises ResourceNotFoundException."""

    async def get_active(self, user_id: str, character_id: str) -> Session:
        """Return the pending session. Raises ResourceNotFoundException."""

    async def get_all(
        self,
        user_id: str | None = None,
        character_id: str | None = None,
        status: SessionStatus | None = None,
    ) -> list[Session]:
        """Return sessions, newest started first."""

    async def add_aggregate_ids(self, session_id: str, aggregate_ids: list[str]) -> None:
        """Union aggregate IDs into the session."""

    async def set_last_activity(
        self, session_id: str, activity_id: str, timestamp: datetime | None = None
    ) -> None:
        """Record the most recent activity seen for the session."""
