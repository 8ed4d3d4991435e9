"""Application services: loadout hashing, merge policy, performance enrichment."""

from gearlog.application.services.enrichment_service import enrich_instance_performance
from gearlog.application.services.loadout_hash_service import LoadoutHashService
from gearlog.application.services.merge_policy import (
    MERGE_POLICY_VERSION,
    check_merge_eligibility,
)

__all__ = [
    "LoadoutHashService",
    "MERGE_POLICY_VERSION",
    "check_merge_eligibility",
    "enrich_instance_performance",
]
