"""Application DTOs (no store dependency)."""

from gearlog.application.dtos.reconciliation import (
    CheckInResult,
    FireteamMember,
    MatchObservation,
    ReconciliationResult,
)
from gearlog.application.dtos.stats import LoadoutPerformance, LoadoutUsage

__all__ = [
    "CheckInResult",
    "FireteamMember",
    "LoadoutPerformance",
    "LoadoutUsage",
    "MatchObservation",
    "ReconciliationResult",
]
