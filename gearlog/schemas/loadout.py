"""Loadout snapshot schemas (stored documents and inputs)."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from gearlog.core.constants import ENERGY_SLOT, KINETIC_SLOT, POWER_SLOT


class DisplayMetadata(BaseModel):
    """Manifest-resolved display properties for an item hash.

    Everything except item_hash is optional; the manifest omits fields for
    many item types and missing values stay None.
    """

    item_hash: int
    name: str = ""
    icon: str | None = None
    item_type: str | None = None
    tier: str | None = None
    damage_type: str | None = None
    bucket_hash: int | None = None


class ItemSnapshot(BaseModel):
    """One equipped item in a loadout, keyed in the loadout by bucket hash."""

    instance_id: str
    item_hash: int
    bucket_hash: int | None = None
    name: str = ""
    properties: DisplayMetadata | None = None


class SnapshotCreate(BaseModel):
    """Input for saving an observed loadout. name is generated when omitted."""

    character_id: str
    loadout: dict[str, ItemSnapshot] = Field(default_factory=dict)
    stats: dict[str, Any] = Field(default_factory=dict)
    name: str | None = None


class CharacterSnapshot(BaseModel):
    """Content-addressed loadout for one character (document id is the loadout hash)."""

    id: str
    user_id: str
    character_id: str
    hash: str
    loadout: dict[str, ItemSnapshot] = Field(default_factory=dict)
    stats: dict[str, Any] = Field(default_factory=dict)
    name: str = ""
    created_at: datetime
    updated_at: datetime
    # Set when this snapshot was merged into another one; the row stays for audit.
    merged_into: str | None = None

    def slot(self, slot_key: str) -> ItemSnapshot | None:
        """Return the item equipped in the given bucket, or None when the slot is empty."""
        return self.loadout.get(slot_key)


class HistoryMeta(BaseModel):
    """Item hashes of the three weapon slots at observation time (None when empty)."""

    kinetic_id: str | None = None
    energy_id: str | None = None
    power_id: str | None = None

    @classmethod
    def from_loadout(cls, loadout: dict[str, ItemSnapshot]) -> HistoryMeta:
        def _item_id(slot_key: str) -> str | None:
            item = loadout.get(slot_key)
            return str(item.item_hash) if item is not None else None

        return cls(
            kinetic_id=_item_id(KINETIC_SLOT),
            energy_id=_item_id(ENERGY_SLOT),
            power_id=_item_id(POWER_SLOT),
        )


class History(BaseModel):
    """Append-only observation of a snapshot (subcollection of the snapshot)."""

    id: str
    parent_id: str
    user_id: str
    character_id: str
    timestamp: datetime
    meta: HistoryMeta = Field(default_factory=HistoryMeta)
