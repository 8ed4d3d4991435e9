"""Record one observed match: snapshot, aggregate link, session bookkeeping, enrichment."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from gearlog.application.dtos.reconciliation import (
    MatchObservation,
    ReconciliationResult,
)
from gearlog.application.services.enrichment_service import enrich_instance_performance
from gearlog.domain.enums import ConfidenceLevel, ConfidenceSource
from gearlog.domain.exceptions import ResourceNotFoundException, ValidationException
from gearlog.schemas.aggregate import SnapshotLink
from gearlog.schemas.loadout import CharacterSnapshot, SnapshotCreate
from gearlog.shared.utils.retry import StoreRetryPolicy

if TYPE_CHECKING:
    from gearlog.application.interfaces.repositories import (
        IAggregateRepository,
        ISessionRepository,
        ISnapshotRepository,
    )
    from gearlog.application.interfaces.services import IManifestResolver
    from gearlog.schemas.session import Session

logger = logging.getLogger(__name__)


class RecordMatchUseCase:
    """Reconciles a freshly observed match into the snapshot and aggregate stores.

    Steps: resolve the character's pending session (if any), save the observed
    loadout (or pick one by best fit when none was observed), upsert the
    activity's aggregate with this character's link and performance, attach
    the aggregate to the session, then enrich the performance for display.
    Store calls are retried on transient failures only.
    """

    def __init__(
        self,
        snapshot_repo: "ISnapshotRepository",
        aggregate_repo: "IAggregateRepository",
        session_repo: "ISessionRepository",
        manifest: "IManifestResolver | None" = None,
        retry_policy: StoreRetryPolicy | None = None,
    ) -> None:
        self._snapshots = snapshot_repo
        self._aggregates = aggregate_repo
        self._sessions = session_repo
        self._manifest = manifest
        self._retry = retry_policy or StoreRetryPolicy.from_settings()

    async def _active_session(self, user_id: str, character_id: str) -> "Session | None":
        try:
            return await self._retry.execute(
                lambda: self._sessions.get_active(user_id, character_id),
                operation_name="session.get_active",
            )
        except ResourceNotFoundException:
            logger.debug(
                "No pending session for character %s; recording without one",
                character_id,
            )
            return None

    async def _resolve_snapshot(
        self, user_id: str, observation: MatchObservation
    ) -> tuple[CharacterSnapshot | None, SnapshotLink]:
        if observation.loadout:
            data = SnapshotCreate(
                character_id=observation.character_id,
                loadout=observation.loadout,
                stats=observation.stats,
            )
            snapshot = await self._retry.execute(
                lambda: self._snapshots.save(user_id, data),
                operation_name="snapshot.save",
            )
            return snapshot, SnapshotLink(
                character_id=observation.character_id,
                snapshot_id=snapshot.id,
                confidence_level=ConfidenceLevel.HIGH,
                confidence_source=ConfidenceSource.SYSTEM,
            )
        return await self._retry.execute(
            lambda: self._snapshots.find_best_fit(
                user_id,
                observation.character_id,
                observation.activity.period,
                observation.performance.weapons,
            ),
            operation_name="snapshot.find_best_fit",
        )

    async def record_match(
        self, user_id: str, observation: MatchObservation
    ) -> ReconciliationResult:
        """Record one match for one character.

        Returns:
            The stored aggregate, the linked snapshot (None when best fit found
            nothing), the link, the session id, and the enriched performance.

        Raises:
            ValidationException: Missing user, character or activity ID, or an
                empty observed loadout.
            TransientStoreException: The store stayed unavailable through all retries.
        """
        if not user_id:
            raise ValidationException("User ID is required", field="user_id")
        if not observation.character_id:
            raise ValidationException("Character ID is required", field="character_id")
        activity = observation.activity

        session = await self._active_session(user_id, observation.character_id)
        session_id = session.id if session is not None else None

        snapshot, link = await self._resolve_snapshot(user_id, observation)
        link = link.model_copy(update={"session_id": session_id})

        aggregate = await self._retry.execute(
            lambda: self._aggregates.add_aggregate(
                observation.character_id, activity, link, observation.performance
            ),
            operation_name="aggregate.add",
        )
        if session_id is not None:
            await self._retry.execute(
                lambda: self._sessions.add_aggregate_ids(session_id, [aggregate.id]),
                operation_name="session.add_aggregate_ids",
            )
            await self._retry.execute(
                lambda: self._sessions.set_last_activity(
                    session_id, activity.instance_id, activity.period
                ),
                operation_name="session.set_last_activity",
            )
        logger.info(
            "Recorded activity %s for character %s (snapshot=%s, confidence=%s, session=%s)",
            activity.instance_id,
            observation.character_id,
            link.snapshot_id,
            link.confidence_level.value,
            session_id,
        )

        stored = aggregate.performance.get(observation.character_id, observation.performance)
        return ReconciliationResult(
            aggregate=aggregate,
            snapshot=snapshot,
            link=link,
            session_id=session_id,
            performance=enrich_instance_performance(snapshot, stored, self._manifest),
        )
