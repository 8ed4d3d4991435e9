"""Firestore-backed session repository (implements ISessionRepository).

At most one pending session exists per (user, character). The guard document
active_sessions/{user}_{character} is created without overwrite on start and
removed on complete; a guard whose session is missing or complete is stale
and may be taken over.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from gearlog.core.config import Settings, get_settings
from gearlog.domain.enums import SessionStatus
from gearlog.domain.exceptions import (
    ConflictException,
    ResourceNotFoundException,
    SessionAlreadyActiveException,
    ValidationException,
)
from gearlog.infrastructure.firebase._rest_client import (
    DocumentExistsError,
    DocumentNotFoundError,
    DocumentSnapshot,
    FirestoreRESTClient,
    PreconditionFailedError,
)
from gearlog.infrastructure.firebase.collections import (
    COLLECTION_ACTIVE_SESSIONS,
    COLLECTION_SESSIONS,
)
from gearlog.infrastructure.firebase.transactions import read_modify_write
from gearlog.schemas.session import Session
from gearlog.shared.utils.datetime import utc_now
from gearlog.shared.utils.generators import generate_cuid, generate_session_name

logger = logging.getLogger(__name__)


def _guard_id(user_id: str, character_id: str) -> str:
    """Guard document ID; '/' would otherwise be read as a path separator."""
    return f"{user_id}_{character_id}".replace("/", "_")


class FirestoreSessionRepository:
    """Session repository using Firestore."""

    def __init__(
        self, client: FirestoreRESTClient, settings: Settings | None = None
    ) -> None:
        self._client = client
        self._coll = client.collection(COLLECTION_SESSIONS)
        self._guards = client.collection(COLLECTION_ACTIVE_SESSIONS)
        self._settings = settings or get_settings()

    @staticmethod
    def _to_result(doc: DocumentSnapshot) -> Session:
        data = dict(doc.to_dict())
        data.setdefault("id", doc.id)
        return Session.model_validate(data)

    async def _find_pending(self, user_id: str, character_id: str) -> Session | None:
        q = (
            self._coll.where("user_id", "==", user_id)
            .where("character_id", "==", character_id)
            .where("status", "==", SessionStatus.PENDING.value)
            .limit(1)
        )
        async for doc in q.stream():
            return self._to_result(doc)
        return None

    async def _holder_is_pending(self, session_id: str | None) -> bool:
        if not session_id:
            return False
        doc = await self._coll.document(session_id).get()
        return doc is not None and self._to_result(doc).to_entity().is_pending

    async def _acquire_guard(self, session: Session) -> None:
        """Claim the (user, character) guard for session.

        The session document is written before this runs, so a guard always
        names a session that exists. A stale guard is taken over with a write
        conditional on the guard's updateTime; when two starts race for the
        same stale guard only one write applies, and the loser re-reads the
        guard and finds the winner's pending session.

        Raises:
            SessionAlreadyActiveException: Another pending session holds the guard.
            ConflictException: The guard kept changing under every attempt.
        """
        guard_id = _guard_id(session.user_id, session.character_id)
        ref = self._guards.document(guard_id)
        guard = {
            "session_id": session.id,
            "user_id": session.user_id,
            "character_id": session.character_id,
            "acquired_at": session.started_at,
        }
        max_attempts = self._settings.transaction_max_attempts
        for attempt in range(1, max_attempts + 1):
            try:
                await self._guards.create(guard_id, guard)
                return
            except DocumentExistsError:
                pass
            existing = await ref.get()
            if existing is None:
                continue
            holder_id = existing.to_dict().get("session_id")
            if await self._holder_is_pending(holder_id):
                raise SessionAlreadyActiveException(
                    session.user_id, session.character_id, holder_id
                )
            try:
                await ref.update(guard, update_time=existing.update_time)
            except (PreconditionFailedError, DocumentNotFoundError):
                logger.info(
                    "Session guard %s changed during takeover (attempt %d/%d)",
                    guard_id,
                    attempt,
                    max_attempts,
                )
                continue
            logger.warning(
                "Took over stale session guard %s (held by %s)", guard_id, holder_id
            )
            return
        raise ConflictException(
            f"Session guard {guard_id} kept changing; gave up after {max_attempts} attempts",
            "session_guard",
            guard_id,
        )

    async def _release_guard(self, session: Session) -> None:
        ref = self._guards.document(_guard_id(session.user_id, session.character_id))
        guard = await ref.get()
        if guard is not None and guard.to_dict().get("session_id") == session.id:
            await ref.delete()

    async def start(
        self, user_id: str, character_id: str, started_by: str | None = None
    ) -> Session:
        """Start a pending session for (user, character).

        Raises:
            ValidationException: Missing user or character ID.
            SessionAlreadyActiveException: A pending session already exists.
            ConflictException: The session guard kept changing.
        """
        if not user_id:
            raise ValidationException("User ID is required", field="user_id")
        if not character_id:
            raise ValidationException("Character ID is required", field="character_id")
        pending = await self._find_pending(user_id, character_id)
        if pending is not None:
            raise SessionAlreadyActiveException(user_id, character_id, pending.id)

        session = Session(
            id=generate_cuid(),
            user_id=user_id,
            character_id=character_id,
            name=generate_session_name(),
            status=SessionStatus.PENDING,
            started_at=utc_now(),
            started_by=started_by,
        )
        ref = self._coll.document(session.id)
        await ref.set(session.model_dump())
        try:
            await self._acquire_guard(session)
        except BaseException:
            # A pending session without a guard must not outlive a failed start.
            await ref.delete()
            raise
        logger.info(
            "Started session %s for user %s character %s",
            session.id,
            user_id,
            character_id,
        )
        return session

    async def complete(self, session_id: str) -> Session:
        """Complete a pending session; completing a complete session changes nothing.

        The status check and the write are one conditional update, so two
        concurrent completes cannot both apply.
        """

        def mutate(doc: DocumentSnapshot) -> dict | None:
            entity = self._to_result(doc).to_entity()
            if not entity.complete(utc_now()):
                return None
            return {"status": entity.status.value, "completed_at": entity.completed_at}

        changed = await read_modify_write(
            self._coll.document(session_id),
            mutate,
            resource_type="session",
            max_attempts=self._settings.transaction_max_attempts,
        )
        session = await self.get(session_id)
        if changed:
            await self._release_guard(session)
            logger.info("Completed session %s", session_id)
        else:
            logger.info("Session %s already complete", session_id)
        return session

    async def get(self, session_id: str) -> Session:
        """Return session by ID. Raises ResourceNotFoundException."""
        doc = await self._coll.document(session_id).get()
        if not doc:
            raise ResourceNotFoundException("session", session_id)
        return self._to_result(doc)

    async def get_active(self, user_id: str, character_id: str) -> Session:
        """Return the pending session for (user, character). Raises ResourceNotFoundException."""
        session = await self._find_pending(user_id, character_id)
        if session is None:
            raise ResourceNotFoundException("session", f"{user_id}/{character_id}")
        return session

    async def get_all(
        self,
        user_id: str | None = None,
        character_id: str | None = None,
        status: SessionStatus | None = None,
    ) -> list[Session]:
        """Return sessions newest first.

        With a status, every session in that status is returned; without one,
        only sessions started within the configured window.
        """
        q = self._coll.order_by("started_at", "DESCENDING")
        if user_id:
            q = q.where("user_id", "==", user_id)
        if character_id:
            q = q.where("character_id", "==", character_id)
        if status is not None:
            q = q.where("status", "==", status.value)
        else:
            since = utc_now() - timedelta(days=self._settings.session_window_days)
            q = q.where("started_at", ">=", since)
        return [self._to_result(doc) async for doc in q.stream()]

    async def add_aggregate_ids(self, session_id: str, aggregate_ids: list[str]) -> None:
        """Union aggregate IDs into the session (existing IDs are not duplicated)."""
        ids = list(dict.fromkeys(i for i in aggregate_ids if i))
        if not ids:
            return
        try:
            await self._coll.document(session_id).update(
                {}, array_union={"aggregate_ids": ids}
            )
        except DocumentNotFoundError:
            raise ResourceNotFoundException("session", session_id) from None

    async def set_last_activity(
        self, session_id: str, activity_id: str, timestamp: datetime | None = None
    ) -> None:
        try:
            await self._coll.document(session_id).update({
                "last_seen_activity_id": activity_id,
                "last_seen_timestamp": timestamp or utc_now(),
            })
        except DocumentNotFoundError:
            raise ResourceNotFoundException("session", session_id) from None
