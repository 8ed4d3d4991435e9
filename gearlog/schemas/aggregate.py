"""Per-activity aggregate schemas (activity details, snapshot links, performance)."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from gearlog.domain.enums import ConfidenceLevel, ConfidenceSource
from gearlog.schemas.loadout import DisplayMetadata
from gearlog.shared.utils.datetime import utc_now


class ActivityDetails(BaseModel):
    """Match metadata from the game API.

    personal_values holds the reporting player's own numbers; it is stripped
    before the aggregate is stored since the aggregate is shared by players.
    """

    instance_id: str
    period: datetime
    mode: str | None = None
    activity_hash: int | None = None
    reference_id: int | None = None
    location: str | None = None
    personal_values: dict[str, Any] | None = None


class SnapshotLink(BaseModel):
    """Pointer from an aggregate to the snapshot a character used in that match."""

    character_id: str
    snapshot_id: str | None = None
    session_id: str | None = None
    confidence_level: ConfidenceLevel = ConfidenceLevel.HIGH
    confidence_source: ConfidenceSource = ConfidenceSource.SYSTEM
    # First snapshot this link ever pointed at; kept across merges.
    original_snapshot_id: str | None = None
    created_at: datetime = Field(default_factory=utc_now)


class WeaponInstanceMetrics(BaseModel):
    """Per-weapon stats for one match; item_properties is filled by enrichment."""

    reference_id: int | None = None
    stats: dict[str, Any] = Field(default_factory=dict)
    item_properties: DisplayMetadata | None = None


class InstancePerformance(BaseModel):
    """One character's performance in one match, weapons keyed by reference id."""

    player_stats: dict[str, Any] = Field(default_factory=dict)
    extra: dict[str, Any] = Field(default_factory=dict)
    weapons: dict[str, WeaponInstanceMetrics] = Field(default_factory=dict)


class Aggregate(BaseModel):
    """One record per match instance, shared by every tracked character in it.

    session_ids, snapshot_ids and character_ids index snapshot_links for
    array-contains queries. Writes only ever add to them, so they are never a
    source of truth; readers check the links.
    """

    id: str
    activity_id: str
    activity_details: ActivityDetails
    snapshot_links: dict[str, SnapshotLink] = Field(default_factory=dict)
    performance: dict[str, InstancePerformance] = Field(default_factory=dict)
    created_at: datetime
    session_ids: list[str] = Field(default_factory=list)
    snapshot_ids: list[str] = Field(default_factory=list)
    character_ids: list[str] = Field(default_factory=list)

    def link_for(self, character_id: str) -> SnapshotLink | None:
        return self.snapshot_links.get(character_id)
