"""Loadout stats use case: most used and best performing loadouts per character."""

from __future__ import annotations

import logging
from collections import Counter
from typing import TYPE_CHECKING, Any

from gearlog.application.dtos.stats import LoadoutPerformance, LoadoutUsage, kd_ratio
from gearlog.core.constants import STATS_LOADOUT_LIMIT, STATS_MINIMUM_GAMES
from gearlog.domain.exceptions import ValidationException

if TYPE_CHECKING:
    from gearlog.application.interfaces.repositories import (
        IAggregateRepository,
        ISnapshotRepository,
    )
    from gearlog.schemas.aggregate import Aggregate
    from gearlog.schemas.loadout import CharacterSnapshot

logger = logging.getLogger(__name__)


def _stat_value(player_stats: dict[str, Any], name: str) -> int:
    """Player stat as an int; stats arrive either bare or as {"value": n}."""
    raw = player_stats.get(name)
    if isinstance(raw, dict):
        raw = raw.get("value")
    if raw is None:
        return 0
    return int(raw)


def _linked_snapshot_id(aggregate: "Aggregate", character_id: str) -> str | None:
    link = aggregate.link_for(character_id)
    if link is None or not link.snapshot_id:
        return None
    return link.snapshot_id


class LoadoutStatsUseCase:
    """Rank a character's loadouts by how often and how well they were played."""

    def __init__(
        self,
        snapshot_repo: "ISnapshotRepository",
        aggregate_repo: "IAggregateRepository",
    ) -> None:
        self.snapshot_repo = snapshot_repo
        self.aggregate_repo = aggregate_repo

    async def get_aggregates_for_snapshot(
        self, snapshot_id: str, game_modes: list[str] | None = None
    ) -> list["Aggregate"]:
        return await self.aggregate_repo.get_aggregates_for_snapshot(snapshot_id, game_modes)

    async def get_aggregates_by_character(
        self, character_id: str, game_modes: list[str] | None = None
    ) -> list["Aggregate"]:
        return await self.aggregate_repo.get_aggregates_by_character(character_id, game_modes)

    async def _snapshots_in_order(self, ids: list[str]) -> dict[str, "CharacterSnapshot"]:
        if not ids:
            return {}
        found = {s.id: s for s in await self.snapshot_repo.get_by_ids(ids)}
        missing = [i for i in ids if i not in found]
        if missing:
            logger.warning("Ranked loadouts no longer exist: %s", missing)
        return found

    async def get_most_used_loadouts(
        self,
        aggregates: list["Aggregate"],
        character_id: str,
        limit: int = STATS_LOADOUT_LIMIT,
    ) -> list[LoadoutUsage]:
        """Return the character's loadouts by number of matches played, most first.

        Ties are broken by snapshot ID so the ranking is stable.

        Raises:
            ValidationException: Missing character ID.
        """
        if not character_id:
            raise ValidationException("Character ID is required", field="character_id")
        counts = Counter(
            snapshot_id
            for snapshot_id in (_linked_snapshot_id(a, character_id) for a in aggregates)
            if snapshot_id is not None
        )
        ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))[:limit]
        snapshots = await self._snapshots_in_order([snapshot_id for snapshot_id, _ in ranked])
        return [
            LoadoutUsage(snapshot=snapshots[snapshot_id], games=games)
            for snapshot_id, games in ranked
            if snapshot_id in snapshots
        ]

    async def get_best_performing_loadouts(
        self,
        aggregates: list["Aggregate"],
        character_id: str,
        limit: int = STATS_LOADOUT_LIMIT,
        minimum_games: int = STATS_MINIMUM_GAMES,
    ) -> list[LoadoutPerformance]:
        """Return the character's loadouts by K/D over their matches, best first.

        Loadouts played in fewer than minimum_games matches are left out;
        matches without a performance for the character are not counted.

        Raises:
            ValidationException: Missing character ID.
        """
        if not character_id:
            raise ValidationException("Character ID is required", field="character_id")
        totals: dict[str, list[int]] = {}
        for aggregate in aggregates:
            snapshot_id = _linked_snapshot_id(aggregate, character_id)
            if snapshot_id is None:
                continue
            performance = aggregate.performance.get(character_id)
            if performance is None:
                logger.warning(
                    "No performance for character %s in aggregate %s",
                    character_id,
                    aggregate.id,
                )
                continue
            games, kills, deaths, assists = totals.setdefault(snapshot_id, [0, 0, 0, 0])
            totals[snapshot_id] = [
                games + 1,
                kills + _stat_value(performance.player_stats, "kills"),
                deaths + _stat_value(performance.player_stats, "deaths"),
                assists + _stat_value(performance.player_stats, "assists"),
            ]

        qualifying = {i: t for i, t in totals.items() if t[0] >= minimum_games}
        logger.debug(
            "Skipped %d loadout(s) of character %s under %d game(s)",
            len(totals) - len(qualifying),
            character_id,
            minimum_games,
        )
        ranked = sorted(
            qualifying.items(), key=lambda item: (-kd_ratio(item[1][1], item[1][2]), item[0])
        )[:limit]
        if not ranked:
            return []
        snapshots = await self._snapshots_in_order([snapshot_id for snapshot_id, _ in ranked])
        return [
            LoadoutPerformance(
                snapshot=snapshots[snapshot_id],
                games=games,
                kills=kills,
                deaths=deaths,
                assists=assists,
            )
            for snapshot_id, (games, kills, deaths, assists) in ranked
            if snapshot_id in snapshots
        ]
