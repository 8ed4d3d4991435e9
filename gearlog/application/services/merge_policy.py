"""Merge eligibility for two snapshots of the same loadout.

Version 1 requires identical kinetic and energy weapon instances. The policy
may become stricter; loosening it needs a new version.
"""

from __future__ import annotations

from gearlog.core.constants import ENERGY_SLOT, KINETIC_SLOT
from gearlog.domain.exceptions import ValidationException
from gearlog.schemas.loadout import CharacterSnapshot

MERGE_POLICY_VERSION = 1

_REQUIRED_MATCHING_SLOTS = (
    (KINETIC_SLOT, "kinetic"),
    (ENERGY_SLOT, "energy"),
)


def check_merge_eligibility(target: CharacterSnapshot, source: CharacterSnapshot) -> None:
    """Raise ValidationException unless source may be merged into target."""
    if target.id == source.id:
        raise ValidationException("Cannot merge a snapshot into itself", field="source_id")
    if target.user_id != source.user_id:
        raise ValidationException("Snapshots belong to different users", field="user_id")
    if target.character_id != source.character_id:
        raise ValidationException(
            "Snapshots belong to different characters", field="character_id"
        )
    if target.merged_into is not None:
        raise ValidationException(
            f"Snapshot {target.id} was merged into {target.merged_into}; merge into that one",
            field="target_id",
        )
    if source.merged_into is not None and source.merged_into != target.id:
        raise ValidationException(
            f"Snapshot {source.id} was already merged into {source.merged_into}",
            field="source_id",
        )
    for slot_key, label in _REQUIRED_MATCHING_SLOTS:
        target_item = target.slot(slot_key)
        source_item = source.slot(slot_key)
        if target_item is None or source_item is None:
            raise ValidationException(
                f"Both snapshots need a {label} weapon to be merged", field="loadout"
            )
        if target_item.instance_id != source_item.instance_id:
            raise ValidationException(
                f"{label.capitalize()} weapons differ; snapshots are not the same loadout",
                field="loadout",
            )
