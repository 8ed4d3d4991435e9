"""Decorates match performance with readable item properties (read-only)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from gearlog.schemas.aggregate import InstancePerformance, WeaponInstanceMetrics
from gearlog.schemas.loadout import CharacterSnapshot, DisplayMetadata

if TYPE_CHECKING:
    from gearlog.application.interfaces.services import IManifestResolver

logger = logging.getLogger(__name__)


def enrich_instance_performance(
    snapshot: CharacterSnapshot | None,
    performance: InstancePerformance,
    resolver: "IManifestResolver | None" = None,
) -> InstancePerformance:
    """Return a copy of performance whose weapons carry display metadata.

    Properties come from the snapshot's loadout when the weapon is in it,
    otherwise from the manifest resolver. Weapons without a reference id are
    dropped. The input (and any stored aggregate it came from) is never mutated.
    """
    result = performance.model_copy(deep=True)
    if not performance.weapons:
        logger.debug("No weapon metrics to enrich")
        return result
    if snapshot is None and resolver is None:
        logger.debug("No snapshot or manifest resolver to enrich with")
        return result

    by_item_hash: dict[int, DisplayMetadata] = {}
    if snapshot is not None:
        for item in snapshot.loadout.values():
            if item.properties is not None:
                by_item_hash[item.item_hash] = item.properties

    weapons: dict[str, WeaponInstanceMetrics] = {}
    for metric in result.weapons.values():
        if metric.reference_id is None:
            continue
        properties = by_item_hash.get(metric.reference_id)
        if properties is None and resolver is not None:
            properties = resolver.resolve(metric.reference_id)
        weapons[str(metric.reference_id)] = WeaponInstanceMetrics(
            reference_id=metric.reference_id,
            stats=metric.stats,
            item_properties=properties if properties is not None else metric.item_properties,
        )
    result.weapons = weapons
    return result
