"""DTOs for loadout stats (usage and performance per snapshot)."""

from __future__ import annotations

from dataclasses import dataclass

from gearlog.schemas.loadout import CharacterSnapshot


def kd_ratio(kills: int, deaths: int) -> float:
    """Kills per death; with no deaths, the kill count."""
    if deaths == 0:
        return float(kills)
    return kills / deaths


def kda_ratio(kills: int, deaths: int, assists: int) -> float:
    if deaths == 0:
        return float(kills + assists)
    return (kills + assists) / deaths


@dataclass(frozen=True)
class LoadoutUsage:
    """A loadout and the number of matches a character played with it."""

    snapshot: CharacterSnapshot
    games: int


@dataclass(frozen=True)
class LoadoutPerformance:
    """Summed player stats of a character's matches with one loadout."""

    snapshot: CharacterSnapshot
    games: int
    kills: int
    deaths: int
    assists: int

    @property
    def kd(self) -> float:
        return kd_ratio(self.kills, self.deaths)

    @property
    def kda(self) -> float:
        return kda_ratio(self.kills, self.deaths, self.assists)
