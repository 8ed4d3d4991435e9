"""Application use cases: one entry point per workflow."""

from gearlog.application.use_cases.reconciliation import (
    RecordMatchUseCase,
    SessionCheckInUseCase,
)
from gearlog.application.use_cases.stats import LoadoutStatsUseCase

__all__ = [
    "LoadoutStatsUseCase",
    "RecordMatchUseCase",
    "SessionCheckInUseCase",
]
