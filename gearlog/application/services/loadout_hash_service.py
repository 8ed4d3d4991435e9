"""Content hash for loadouts (dedup key for snapshots)."""

from __future__ import annotations

import hashlib
import json
from typing import Any

from gearlog.domain.exceptions import ValidationException
from gearlog.schemas.loadout import ItemSnapshot


class LoadoutHashService:
    """Computes the identity of a loadout from its composition only.

    The hashed content is {bucket key: {item_hash, instance_id}}. Display
    metadata and names are left out so a manifest update cannot change the
    identity of an unchanged loadout.
    """

    @staticmethod
    def canonical_json(data: dict[str, Any]) -> str:
        """Canonical JSON for deterministic hashing."""
        return json.dumps(data, sort_keys=True, separators=(",", ":"))

    @staticmethod
    def composition(loadout: dict[str, ItemSnapshot]) -> dict[str, dict[str, Any]]:
        return {
            str(slot): {"item_hash": item.item_hash, "instance_id": item.instance_id}
            for slot, item in loadout.items()
        }

    def compute_hash(self, loadout: dict[str, ItemSnapshot]) -> str:
        """Return the SHA-256 hex digest of the loadout composition.

        Raises:
            ValidationException: The loadout is empty.
        """
        if not loadout:
            raise ValidationException("Loadout must contain at least one item", field="loadout")
        content = self.canonical_json(self.composition(loadout))
        return hashlib.sha256(content.encode()).hexdigest()
