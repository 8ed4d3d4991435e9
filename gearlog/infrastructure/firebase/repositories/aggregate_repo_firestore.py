"""Firestore-backed aggregate repository (implements IAggregateRepository).

One aggregate per match instance. Several tracked characters can report the
same match concurrently, so a character's data is only ever written through
the field paths snapshot_links.<character> and performance.<character>. The
session_ids, snapshot_ids and character_ids arrays are an index for
array-contains queries; they only grow through arrayUnion and may list
snapshots a link no longer points at, so readers check the links.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from gearlog.core.config import Settings, get_settings
from gearlog.domain.exceptions import ResourceNotFoundException, ValidationException
from gearlog.infrastructure.firebase._rest_client import (
    DocumentExistsError,
    DocumentNotFoundError,
    DocumentSnapshot,
    FirestoreRESTClient,
)
from gearlog.infrastructure.firebase._rest_encoding import field_path
from gearlog.infrastructure.firebase.collections import COLLECTION_AGGREGATES
from gearlog.infrastructure.firebase.transactions import read_modify_write
from gearlog.schemas.aggregate import (
    ActivityDetails,
    Aggregate,
    InstancePerformance,
    SnapshotLink,
)
from gearlog.shared.utils.chunking import unique_chunks
from gearlog.shared.utils.datetime import utc_now

if TYPE_CHECKING:
    from gearlog.application.interfaces.repositories import AggregateMutation

logger = logging.getLogger(__name__)


def _link_ids(links: Iterable[SnapshotLink]) -> dict[str, list[str]]:
    links = list(links)
    return {
        "session_ids": sorted({link.session_id for link in links if link.session_id}),
        "snapshot_ids": sorted({link.snapshot_id for link in links if link.snapshot_id}),
        "character_ids": sorted({link.character_id for link in links}),
    }


def _derived_ids(aggregate: Aggregate) -> dict[str, list[str]]:
    """Flat ID arrays recomputed from the snapshot links (for array-contains queries)."""
    ids = _link_ids(aggregate.snapshot_links.values())
    ids["character_ids"] = sorted(aggregate.snapshot_links)
    return ids


class FirestoreAggregateRepository:
    """Aggregate repository using Firestore."""

    def __init__(
        self, client: FirestoreRESTClient, settings: Settings | None = None
    ) -> None:
        self._client = client
        self._coll = client.collection(COLLECTION_AGGREGATES)
        self._settings = settings or get_settings()

    @staticmethod
    def _to_result(doc: DocumentSnapshot) -> Aggregate:
        data = dict(doc.to_dict())
        data.setdefault("id", doc.id)
        return Aggregate.model_validate(data)

    async def _get_by_doc_id(self, aggregate_id: str) -> Aggregate:
        doc = await self._coll.document(aggregate_id).get()
        if not doc:
            raise ResourceNotFoundException("aggregate", aggregate_id)
        return self._to_result(doc)

    async def _find_by_activity(self, activity_id: str) -> Aggregate | None:
        q = self._coll.where("activity_id", "==", activity_id).limit(1)
        async for snapshot in q.stream():
            return self._to_result(snapshot)
        return None

    async def _merge_character(
        self,
        aggregate_id: str,
        character_id: str,
        link: SnapshotLink,
        performance: InstancePerformance,
    ) -> None:
        arrays = {name: ids for name, ids in _link_ids([link]).items() if ids}
        try:
            await self._coll.document(aggregate_id).update(
                {
                    field_path("snapshot_links", character_id): link.model_dump(),
                    field_path("performance", character_id): performance.model_dump(),
                },
                array_union=arrays,
            )
        except DocumentNotFoundError:
            raise ResourceNotFoundException("aggregate", aggregate_id) from None

    async def add_aggregate(
        self,
        character_id: str,
        activity: ActivityDetails,
        link: SnapshotLink,
        performance: InstancePerformance,
    ) -> Aggregate:
        """Create the activity's aggregate, or merge this character into the existing one.

        Other characters' entries are never rewritten. A create that loses the
        race to a concurrent writer falls back to the field-path merge, so
        exactly one aggregate exists per activity.

        Raises:
            ValidationException: Missing character/activity ID, or the link
                belongs to another character.
        """
        if not character_id:
            raise ValidationException("Character ID is required", field="character_id")
        if not activity.instance_id:
            raise ValidationException("Activity ID is required", field="activity_id")
        if link.character_id != character_id:
            raise ValidationException(
                "Snapshot link belongs to another character", field="link"
            )
        activity = activity.model_copy(update={"personal_values": None})

        existing = await self._find_by_activity(activity.instance_id)
        if existing is not None:
            await self._merge_character(existing.id, character_id, link, performance)
            logger.debug(
                "Merged character %s into aggregate %s", character_id, existing.id
            )
            return await self._get_by_doc_id(existing.id)

        aggregate = Aggregate(
            id=activity.instance_id,
            activity_id=activity.instance_id,
            activity_details=activity,
            snapshot_links={character_id: link},
            performance={character_id: performance},
            created_at=utc_now(),
        )
        aggregate = aggregate.model_copy(update=_derived_ids(aggregate))
        try:
            await self._coll.create(aggregate.id, aggregate.model_dump())
        except DocumentExistsError:
            logger.info(
                "Aggregate for activity %s created concurrently; merging character %s",
                aggregate.activity_id,
                character_id,
            )
            await self._merge_character(aggregate.id, character_id, link, performance)
            return await self._get_by_doc_id(aggregate.id)
        logger.info(
            "Created aggregate %s for character %s", aggregate.id, character_id
        )
        return aggregate

    async def get_aggregate(self, activity_id: str) -> Aggregate:
        """Return aggregate by activity ID (natural key)."""
        aggregate = await self._find_by_activity(activity_id)
        if aggregate is None:
            raise ResourceNotFoundException("aggregate", activity_id)
        return aggregate

    async def _get_in(self, field: str, values: list[str]) -> list[Aggregate]:
        async def _fetch(chunk: list[str]) -> list[Aggregate]:
            q = self._coll.where(field, "in", chunk)
            return [self._to_result(doc) async for doc in q.stream()]

        chunks = unique_chunks(values, self._settings.firestore_in_query_limit)
        batches = await asyncio.gather(*(_fetch(chunk) for chunk in chunks))
        return [aggregate for batch in batches for aggregate in batch]

    async def get_aggregates(self, aggregate_ids: list[str]) -> list[Aggregate]:
        """Return aggregates by document ID (chunked "in" queries, no order guarantee)."""
        return await self._get_in("id", aggregate_ids)

    async def get_aggregates_by_activity(self, activity_ids: list[str]) -> list[Aggregate]:
        """Return aggregates by activity ID (chunked "in" queries, no order guarantee)."""
        return await self._get_in("activity_id", activity_ids)

    async def find_by_snapshot(self, character_id: str, snapshot_id: str) -> list[Aggregate]:
        """Return aggregates whose link for character_id points at snapshot_id."""
        q = self._coll.where(
            field_path("snapshot_links", character_id, "snapshot_id"), "==", snapshot_id
        )
        return [self._to_result(doc) async for doc in q.stream()]

    async def _get_containing(
        self, field: str, value: str, game_modes: list[str] | None
    ) -> list[Aggregate]:
        """array-contains query on field, optionally narrowed to activity modes."""
        if not game_modes:
            q = self._coll.where(field, "array-contains", value)
            return [self._to_result(doc) async for doc in q.stream()]

        async def _fetch(chunk: list[str]) -> list[Aggregate]:
            q = self._coll.where(field, "array-contains", value).where(
                "activity_details.mode", "in", chunk
            )
            return [self._to_result(doc) async for doc in q.stream()]

        chunks = unique_chunks(game_modes, self._settings.firestore_in_query_limit)
        batches = await asyncio.gather(*(_fetch(chunk) for chunk in chunks))
        return [aggregate for batch in batches for aggregate in batch]

    async def get_aggregates_for_snapshot(
        self, snapshot_id: str, game_modes: list[str] | None = None
    ) -> list[Aggregate]:
        """Return aggregates where some character's link points at snapshot_id.

        Raises:
            ValidationException: Missing snapshot ID.
        """
        if not snapshot_id:
            raise ValidationException("Snapshot ID is required", field="snapshot_id")
        candidates = await self._get_containing("snapshot_ids", snapshot_id, game_modes)
        return [
            aggregate
            for aggregate in candidates
            if any(
                link.snapshot_id == snapshot_id
                for link in aggregate.snapshot_links.values()
            )
        ]

    async def get_aggregates_by_character(
        self, character_id: str, game_modes: list[str] | None = None
    ) -> list[Aggregate]:
        """Return aggregates the character is linked to, optionally only for some modes.

        Raises:
            ValidationException: Missing character ID.
        """
        if not character_id:
            raise ValidationException("Character ID is required", field="character_id")
        candidates = await self._get_containing("character_ids", character_id, game_modes)
        return [a for a in candidates if character_id in a.snapshot_links]

    async def update(
        self,
        aggregate_id: str,
        mutate: AggregateMutation,
        transactional: bool = True,
    ) -> bool:
        """Read-modify-write one aggregate.

        mutate receives the current aggregate and returns only the field-path
        updates it owns; an empty mapping skips the write. With transactional,
        the write is conditional on the aggregate being unchanged since the
        read and is retried, so no concurrent update is lost.

        Returns:
            True if a write was applied.
        """
        return await read_modify_write(
            self._coll.document(aggregate_id),
            lambda doc: mutate(self._to_result(doc)),
            resource_type="aggregate",
            transactional=transactional,
            max_attempts=self._settings.transaction_max_attempts,
        )

    async def update_all_aggregates(self) -> int:
        """Union the derived session/snapshot/character ID arrays into every linked aggregate.

        A document that fails to parse or write is logged and skipped.

        Returns:
            Number of aggregates updated.
        """
        updated = 0
        failed = 0
        async for doc in self._coll.stream():
            try:
                aggregate = self._to_result(doc)
                if not aggregate.snapshot_links:
                    continue
                arrays: dict[str, list[Any]] = {
                    name: ids for name, ids in _derived_ids(aggregate).items() if ids
                }
                await self._coll.document(doc.id).update({}, array_union=arrays)
                updated += 1
            except Exception:
                failed += 1
                logger.exception("Failed to backfill aggregate %s", doc.id)
        logger.info("Aggregate backfill done: %d updated, %d failed", updated, failed)
        return updated
