"""Pull a pending session's recent matches and record the ones not yet attached."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from gearlog.application.dtos.reconciliation import (
    CheckInResult,
    FireteamMember,
    MatchObservation,
)
from gearlog.core.config import Settings, get_settings
from gearlog.domain.exceptions import GearlogException, ResourceNotFoundException
from gearlog.schemas.loadout import SnapshotCreate
from gearlog.shared.utils.datetime import ensure_utc
from gearlog.shared.utils.retry import StoreRetryPolicy

if TYPE_CHECKING:
    from gearlog.application.interfaces.repositories import (
        IAggregateRepository,
        ISessionRepository,
        ISnapshotRepository,
    )
    from gearlog.application.interfaces.services import IActivitySource
    from gearlog.application.use_cases.reconciliation.record_match import (
        RecordMatchUseCase,
    )
    from gearlog.schemas.aggregate import ActivityDetails, Aggregate
    from gearlog.schemas.session import Session

logger = logging.getLogger(__name__)


class SessionCheckInUseCase:
    """Attaches matches played since a session started to that session.

    The session owner may check in with a fireteam: every member gets a fresh
    snapshot of what they have equipped, and members with their own pending
    session are linked into the shared aggregates as well. Matches carry no
    observed loadout here, so each link is chosen by best fit. A member whose
    link on a match already names a session is skipped, so check-in can run
    repeatedly without double counting.
    """

    def __init__(
        self,
        session_repo: "ISessionRepository",
        aggregate_repo: "IAggregateRepository",
        snapshot_repo: "ISnapshotRepository",
        activity_source: "IActivitySource",
        record_match: "RecordMatchUseCase",
        settings: Settings | None = None,
        retry_policy: StoreRetryPolicy | None = None,
    ) -> None:
        self._sessions = session_repo
        self._aggregates = aggregate_repo
        self._snapshots = snapshot_repo
        self._activities = activity_source
        self._record_match = record_match
        self._settings = settings or get_settings()
        self._retry = retry_policy or StoreRetryPolicy.from_settings(self._settings)

    async def _save_equipped(self, member: FireteamMember, *, required: bool) -> bool:
        """Save what member has equipped; a teammate that fails is left out unless required."""
        loadout = await self._activities.get_equipped_loadout(
            member.user_id, member.character_id
        )
        data = SnapshotCreate(character_id=member.character_id, loadout=loadout)
        try:
            await self._retry.execute(
                lambda: self._snapshots.save(member.user_id, data),
                operation_name="snapshot.save",
            )
        except GearlogException as e:
            if required:
                raise
            logger.warning(
                "Could not save loadout of character %s (%s); leaving it out of check-in",
                member.character_id,
                e.error_code,
            )
            return False
        return True

    async def _member_session(self, member: FireteamMember) -> "Session | None":
        try:
            return await self._retry.execute(
                lambda: self._sessions.get_active(member.user_id, member.character_id),
                operation_name="session.get_active",
            )
        except ResourceNotFoundException:
            logger.info(
                "Fireteam member %s has no pending session for character %s",
                member.user_id,
                member.character_id,
            )
            return None

    async def _checked_in_members(
        self, session: "Session", fireteam: list[FireteamMember]
    ) -> dict[str, tuple[FireteamMember, str]]:
        """Save every member's loadout; return (member, session id) per character with a session."""
        owner = FireteamMember(user_id=session.user_id, character_id=session.character_id)
        members = {owner.character_id: owner}
        for member in fireteam:
            members.setdefault(member.character_id, member)

        checked_in: dict[str, tuple[FireteamMember, str]] = {}
        for character_id, member in members.items():
            if not await self._save_equipped(member, required=member is owner):
                continue
            if member is owner:
                checked_in[character_id] = (member, session.id)
                continue
            member_session = await self._member_session(member)
            if member_session is not None:
                checked_in[character_id] = (member, member_session.id)
        return checked_in

    async def _record_activity(
        self,
        activity: "ActivityDetails",
        aggregate: "Aggregate | None",
        members: dict[str, tuple[FireteamMember, str]],
    ) -> list[str]:
        """Record the activity for every member not yet linked to it; return the aggregate IDs."""
        pending: list[FireteamMember] = []
        for character_id, (member, _) in members.items():
            link = aggregate.link_for(character_id) if aggregate else None
            if link is not None and link.session_id:
                logger.debug(
                    "Character %s already linked to activity %s",
                    character_id,
                    activity.instance_id,
                )
                continue
            pending.append(member)
        if not pending:
            return []

        performances = await self._activities.get_performances(
            activity.instance_id, [m.character_id for m in pending]
        )
        aggregate_ids: list[str] = []
        for member in pending:
            performance = performances.get(member.character_id)
            if performance is None:
                logger.warning(
                    "No performance for character %s in activity %s; skipping",
                    member.character_id,
                    activity.instance_id,
                )
                continue
            result = await self._record_match.record_match(
                member.user_id,
                MatchObservation(
                    character_id=member.character_id,
                    activity=activity,
                    performance=performance,
                ),
            )
            if result.aggregate.id not in aggregate_ids:
                aggregate_ids.append(result.aggregate.id)
        return aggregate_ids

    async def check_in(
        self, session_id: str, fireteam: list[FireteamMember] | None = None
    ) -> CheckInResult:
        """Record recent matches played after the session started.

        Args:
            session_id: The owner's pending session; its character's match
                history is the one pulled from the game API.
            fireteam: Players checked in alongside the owner. Members without
                a pending session of their own get a fresh snapshot only.

        Raises:
            ResourceNotFoundException: Session does not exist.
            ValidationException: Session is already complete, or the owner's
                equipped loadout is empty.
        """
        session = await self._retry.execute(
            lambda: self._sessions.get(session_id), operation_name="session.get"
        )
        session.to_entity().ensure_accepts_activity()

        members = await self._checked_in_members(session, fireteam or [])
        member_sessions = {cid: sid for cid, (_, sid) in members.items()}

        recent = await self._activities.get_recent_activities(
            session.user_id, session.character_id, self._settings.check_in_activity_count
        )
        started_at = ensure_utc(session.started_at)
        fresh = sorted(
            (a for a in recent if ensure_utc(a.period) > started_at),
            key=lambda a: ensure_utc(a.period),
        )
        if not fresh:
            logger.debug("No new activity for session %s", session_id)
            return CheckInResult(
                session_id=session_id,
                activity_ids=(),
                aggregate_ids=(),
                member_sessions=member_sessions,
            )

        newest = fresh[-1]
        for member_session_id in member_sessions.values():
            await self._retry.execute(
                lambda sid=member_session_id: self._sessions.set_last_activity(
                    sid, newest.instance_id, newest.period
                ),
                operation_name="session.set_last_activity",
            )
        existing = {
            aggregate.activity_id: aggregate
            for aggregate in await self._retry.execute(
                lambda: self._aggregates.get_aggregates_by_activity(
                    [a.instance_id for a in fresh]
                ),
                operation_name="aggregate.get_by_activity",
            )
        }

        aggregate_ids: list[str] = []
        skipped: list[str] = []
        # Oldest first, so the last activity recorded on each session is the newest.
        for activity in fresh:
            recorded = await self._record_activity(
                activity, existing.get(activity.instance_id), members
            )
            if not recorded:
                skipped.append(activity.instance_id)
            aggregate_ids.extend(i for i in recorded if i not in aggregate_ids)

        logger.info(
            "Check-in for session %s (%d member(s)): %d recorded, %d skipped",
            session_id,
            len(members),
            len(aggregate_ids),
            len(skipped),
        )
        return CheckInResult(
            session_id=session_id,
            activity_ids=tuple(a.instance_id for a in fresh),
            aggregate_ids=tuple(aggregate_ids),
            skipped_activity_ids=tuple(skipped),
            member_sessions=member_sessions,
        )
