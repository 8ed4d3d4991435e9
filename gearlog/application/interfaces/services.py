"""Service interfaces (ports) for external collaborators.

The manifest and the game API are owned by other components; this package
only consumes them through these protocols.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from gearlog.schemas.aggregate import ActivityDetails, InstancePerformance
    from gearlog.schemas.loadout import DisplayMetadata, ItemSnapshot


class IManifestResolver(Protocol):
    """Pure lookup of item display metadata by item hash."""

    def resolve(self, item_hash: int) -> DisplayMetadata | None:
        """Return display metadata, or None when the hash is not in the manifest."""


class IActivitySource(Protocol):
    """Game-API client: equipped loadouts, recent matches and per-character performance."""

    async def get_equipped_loadout(
        self, user_id: str, character_id: str
    ) -> dict[str, ItemSnapshot]:
        """Return what the character has equipped now, keyed by inventory bucket."""

    async def get_recent_activities(
        self, user_id: str, character_id: str, count: int
    ) -> list[ActivityDetails]:
        """Return the character's most recent matches, newest first."""

    async def get_performances(
        self, activity_id: str, character_ids: list[str]
    ) -> dict[str, InstancePerformance]:
        """Return performance per requested character that took part in the match."""
