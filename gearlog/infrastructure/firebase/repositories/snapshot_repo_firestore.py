"""Firestore-backed snapshot repository (implements ISnapshotRepository).

Snapshots are content-addressed: the document ID is the loadout hash, so a
loadout seen twice never produces a second snapshot. Each observation is
appended to the snapshot's histories subcollection.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from gearlog.application.services.loadout_hash_service import LoadoutHashService
from gearlog.application.services.merge_policy import (
    MERGE_POLICY_VERSION,
    check_merge_eligibility,
)
from gearlog.core.config import Settings, get_settings
from gearlog.core.constants import (
    BEST_FIT_HIGH_SCORE,
    BEST_FIT_MEDIUM_SCORE,
    BEST_FIT_POWER_WEIGHT,
    BEST_FIT_PRIMARY_WEIGHT,
)
from gearlog.domain.enums import ConfidenceLevel, ConfidenceSource
from gearlog.domain.exceptions import ResourceNotFoundException, ValidationException
from gearlog.infrastructure.firebase._rest_client import (
    CollectionReference,
    DocumentExistsError,
    DocumentNotFoundError,
    DocumentSnapshot,
    FirestoreRESTClient,
)
from gearlog.infrastructure.firebase._rest_encoding import field_path
from gearlog.infrastructure.firebase.collections import (
    COLLECTION_HISTORIES,
    COLLECTION_SNAPSHOTS,
)
from gearlog.schemas.aggregate import SnapshotLink, WeaponInstanceMetrics
from gearlog.schemas.loadout import (
    CharacterSnapshot,
    History,
    HistoryMeta,
    SnapshotCreate,
)
from gearlog.shared.utils.chunking import unique_chunks
from gearlog.shared.utils.datetime import ensure_utc, utc_now
from gearlog.shared.utils.generators import generate_cuid, generate_loadout_name

if TYPE_CHECKING:
    from gearlog.application.interfaces.repositories import (
        AggregateMutation,
        IAggregateRepository,
    )
    from gearlog.schemas.aggregate import Aggregate

logger = logging.getLogger(__name__)


def _score(meta: HistoryMeta, reference_ids: set[str]) -> int:
    """Weighted count of a history's weapons that appear in the match."""
    score = 0
    if meta.kinetic_id is not None and meta.kinetic_id in reference_ids:
        score += BEST_FIT_PRIMARY_WEIGHT
    if meta.energy_id is not None and meta.energy_id in reference_ids:
        score += BEST_FIT_PRIMARY_WEIGHT
    if meta.power_id is not None and meta.power_id in reference_ids:
        score += BEST_FIT_POWER_WEIGHT
    return score


def _confidence_for(score: int) -> ConfidenceLevel:
    if score >= BEST_FIT_HIGH_SCORE:
        return ConfidenceLevel.HIGH
    if score >= BEST_FIT_MEDIUM_SCORE:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def repoint_link(character_id: str, source_id: str, target_id: str) -> AggregateMutation:
    """Build the aggregate mutation that moves a character's link from source to target.

    The first snapshot a link pointed at is kept in original_snapshot_id, and
    target joins the aggregate's snapshot_ids index. Links that already
    point elsewhere are left alone.
    """

    def mutate(aggregate: Aggregate) -> dict[str, Any]:
        link = aggregate.link_for(character_id)
        if link is None or link.snapshot_id != source_id:
            return {}
        updates: dict[str, Any] = {
            field_path("snapshot_links", character_id, "snapshot_id"): target_id,
            field_path(
                "snapshot_links", character_id, "confidence_source"
            ): ConfidenceSource.USER.value,
        }
        if target_id not in aggregate.snapshot_ids:
            updates["snapshot_ids"] = [*aggregate.snapshot_ids, target_id]
        if link.original_snapshot_id is None:
            updates[
                field_path("snapshot_links", character_id, "original_snapshot_id")
            ] = source_id
        return updates

    return mutate


class FirestoreSnapshotRepository:
    """Snapshot repository using Firestore."""

    def __init__(
        self,
        client: FirestoreRESTClient,
        aggregate_repo: IAggregateRepository,
        hasher: LoadoutHashService | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._client = client
        self._coll = client.collection(COLLECTION_SNAPSHOTS)
        self._aggregates = aggregate_repo
        self._hasher = hasher or LoadoutHashService()
        self._settings = settings or get_settings()

    @staticmethod
    def _to_result(doc: DocumentSnapshot) -> CharacterSnapshot:
        data = dict(doc.to_dict())
        data.setdefault("id", doc.id)
        return CharacterSnapshot.model_validate(data)

    def _histories(self, snapshot_id: str) -> CollectionReference:
        return self._coll.document(snapshot_id).collection(COLLECTION_HISTORIES)

    async def _get_by_hash(self, snapshot_hash: str) -> CharacterSnapshot | None:
        q = self._coll.where("hash", "==", snapshot_hash).limit(1)
        async for doc in q.stream():
            return self._to_result(doc)
        return None

    async def _record_observation(
        self, snapshot: CharacterSnapshot, *, touch: bool = True
    ) -> CharacterSnapshot:
        """Append a history entry; with touch, also bump the snapshot's updated_at."""
        now = utc_now()
        history = History(
            id=generate_cuid(),
            parent_id=snapshot.id,
            user_id=snapshot.user_id,
            character_id=snapshot.character_id,
            timestamp=now,
            meta=HistoryMeta.from_loadout(snapshot.loadout),
        )
        await self._histories(snapshot.id).document(history.id).set(history.model_dump())
        if not touch:
            return snapshot
        try:
            await self._coll.document(snapshot.id).update({"updated_at": now})
        except DocumentNotFoundError:
            raise ResourceNotFoundException("snapshot", snapshot.id) from None
        return snapshot.model_copy(update={"updated_at": now})

    async def _follow_merges(self, snapshot: CharacterSnapshot) -> CharacterSnapshot:
        """Return the snapshot at the end of snapshot's merged_into chain."""
        seen = {snapshot.id}
        while snapshot.merged_into:
            if snapshot.merged_into in seen:
                logger.error(
                    "Merge cycle through snapshot %s; stopping at %s",
                    snapshot.merged_into,
                    snapshot.id,
                )
                break
            seen.add(snapshot.merged_into)
            snapshot = await self.get(snapshot.merged_into)
        return snapshot

    async def save(self, user_id: str, data: SnapshotCreate) -> CharacterSnapshot:
        """Store an observed loadout unless an identical one already exists.

        Either way an observation is appended to the snapshot's history. When
        two writers race on the same new loadout, the loser records its
        observation against the winner's snapshot. A loadout whose snapshot
        was merged away keeps its history there but resolves to the final
        merge target, so new links never point at a merged snapshot.

        Raises:
            ValidationException: Missing user/character ID or empty loadout.
        """
        if not user_id:
            raise ValidationException("User ID is required", field="user_id")
        if not data.character_id:
            raise ValidationException("Character ID is required", field="character_id")
        snapshot_hash = self._hasher.compute_hash(data.loadout)

        existing = await self._get_by_hash(snapshot_hash)
        if existing is not None:
            logger.debug("Loadout already stored as snapshot %s", existing.id)
            return await self._follow_merges(await self._record_observation(existing))

        now = utc_now()
        snapshot = CharacterSnapshot(
            id=snapshot_hash,
            user_id=user_id,
            character_id=data.character_id,
            hash=snapshot_hash,
            loadout=data.loadout,
            stats=data.stats,
            name=data.name or generate_loadout_name(),
            created_at=now,
            updated_at=now,
        )
        try:
            await self._coll.create(snapshot.id, snapshot.model_dump())
        except DocumentExistsError:
            logger.info("Snapshot %s created concurrently; reusing it", snapshot.id)
            doc = await self._coll.document(snapshot.id).get()
            if not doc:
                raise ResourceNotFoundException("snapshot", snapshot.id) from None
            return await self._follow_merges(
                await self._record_observation(self._to_result(doc))
            )
        logger.info(
            "Created snapshot %s for character %s", snapshot.id, snapshot.character_id
        )
        return await self._record_observation(snapshot, touch=False)

    async def get(self, snapshot_id: str) -> CharacterSnapshot:
        """Return snapshot by ID. Raises ResourceNotFoundException."""
        doc = await self._coll.document(snapshot_id).get()
        if not doc:
            raise ResourceNotFoundException("snapshot", snapshot_id)
        return self._to_result(doc)

    async def get_by_ids(self, snapshot_ids: list[str]) -> list[CharacterSnapshot]:
        async def _fetch(chunk: list[str]) -> list[CharacterSnapshot]:
            q = self._coll.where("id", "in", chunk)
            return [self._to_result(doc) async for doc in q.stream()]

        chunks = unique_chunks(snapshot_ids, self._settings.firestore_in_query_limit)
        batches = await asyncio.gather(*(_fetch(chunk) for chunk in chunks))
        return [snapshot for batch in batches for snapshot in batch]

    async def get_all_by_character(
        self, user_id: str, character_id: str
    ) -> list[CharacterSnapshot]:
        q = (
            self._coll.where("user_id", "==", user_id)
            .where("character_id", "==", character_id)
            .order_by("created_at", "DESCENDING")
        )
        return [self._to_result(doc) async for doc in q.stream()]

    async def get_histories(self, snapshot_id: str) -> list[History]:
        q = self._histories(snapshot_id).order_by("timestamp")
        return [History.model_validate(doc.to_dict()) async for doc in q.stream()]

    async def find_best_fit(
        self,
        user_id: str,
        character_id: str,
        activity_period: datetime,
        weapons: dict[str, WeaponInstanceMetrics],
    ) -> tuple[CharacterSnapshot | None, SnapshotLink]:
        """Pick the snapshot observed around the match whose weapons overlap it most.

        Histories from the lookback window before the match (plus a short
        grace period after it) are scored by weapon overlap; the most recent
        history wins ties. A snapshot that was merged away resolves to the
        end of its merge chain.

        Returns:
            (snapshot, link). snapshot is None with confidence not_found when
            no history is in the window, and no_match when none overlaps.
        """
        period = ensure_utc(activity_period)
        window_start = period - timedelta(hours=self._settings.best_fit_lookback_hours)
        window_end = period + timedelta(minutes=self._settings.best_fit_grace_minutes)
        q = (
            self._client.collection_group(COLLECTION_HISTORIES)
            .where("user_id", "==", user_id)
            .where("character_id", "==", character_id)
            .where("timestamp", ">=", window_start)
            .where("timestamp", "<=", window_end)
            .order_by("timestamp", "DESCENDING")
        )
        histories = [History.model_validate(doc.to_dict()) async for doc in q.stream()]
        if not histories:
            logger.debug(
                "No history for character %s between %s and %s",
                character_id,
                window_start,
                window_end,
            )
            return None, SnapshotLink(
                character_id=character_id, confidence_level=ConfidenceLevel.NOT_FOUND
            )

        reference_ids = {
            str(metric.reference_id)
            for metric in weapons.values()
            if metric.reference_id is not None
        }
        best: History | None = None
        best_score = 0
        for history in histories:
            score = _score(history.meta, reference_ids)
            if score > best_score:
                best, best_score = history, score
        if best is None:
            return None, SnapshotLink(
                character_id=character_id, confidence_level=ConfidenceLevel.NO_MATCH
            )

        snapshot = await self._follow_merges(await self.get(best.parent_id))
        return snapshot, SnapshotLink(
            character_id=character_id,
            snapshot_id=snapshot.id,
            confidence_level=_confidence_for(best_score),
            confidence_source=ConfidenceSource.SYSTEM,
        )

    async def merge(self, target_id: str, source_id: str) -> CharacterSnapshot:
        """Merge source into target and repoint every aggregate link to target.

        Eligibility is checked before anything is written. Each aggregate is
        rewritten transactionally, so concurrent aggregate writers are not
        lost; rerunning an interrupted merge finishes the remaining links.

        Raises:
            ValidationException: Snapshots are not eligible to merge.
            ResourceNotFoundException: Either snapshot does not exist.
        """
        if not target_id or not source_id:
            raise ValidationException("Target and source snapshot IDs are required")
        target, source = await asyncio.gather(self.get(target_id), self.get(source_id))
        check_merge_eligibility(target, source)

        mutate = repoint_link(source.character_id, source.id, target.id)
        rewritten = 0
        for aggregate in await self._aggregates.find_by_snapshot(
            source.character_id, source.id
        ):
            if await self._aggregates.update(aggregate.id, mutate, transactional=True):
                rewritten += 1

        now = utc_now()
        if source.merged_into != target.id:
            await self._coll.document(source.id).update(
                {"merged_into": target.id, "updated_at": now}
            )
        await self._coll.document(target.id).update({"updated_at": now})
        logger.info(
            "Merged snapshot %s into %s (policy v%d); %d aggregate link(s) rewritten",
            source.id,
            target.id,
            MERGE_POLICY_VERSION,
            rewritten,
        )
        return target.model_copy(update={"updated_at": now})
