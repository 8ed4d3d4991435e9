"""Loadout usage and performance stats."""

from gearlog.application.use_cases.stats.loadout_stats import LoadoutStatsUseCase

__all__ = ["LoadoutStatsUseCase"]
