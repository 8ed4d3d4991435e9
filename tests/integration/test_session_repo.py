"""Session repository tests against the in-memory Firestore double."""

import asyncio
from datetime import timedelta

import pytest

from gearlog.domain.enums import SessionStatus
from gearlog.domain.exceptions import (
    ResourceNotFoundException,
    SessionAlreadyActiveException,
    ValidationException,
)
from gearlog.infrastructure.firebase._rest_client import FirestoreUnavailableError
from gearlog.shared.utils.datetime import utc_now


def _pending_sessions(fake_db, user_id: str = "u-1", character_id: str = "c-1") -> list[str]:
    return [
        path
        for path, data in fake_db.docs.items()
        if path.startswith("sessions/")
        and data["user_id"] == user_id
        and data["character_id"] == character_id
        and data["status"] == "pending"
    ]


class TestStart:
    async def test_start_creates_pending_session_and_guard(self, session_repo, fake_db) -> None:
        session = await session_repo.start("u-1", "c-1", started_by="bot")
        assert session.status == SessionStatus.PENDING
        assert session.name
        assert session.started_by == "bot"
        assert fake_db.docs["active_sessions/u-1_c-1"]["session_id"] == session.id

    async def test_second_start_rejected(self, session_repo) -> None:
        first = await session_repo.start("u-1", "c-1")
        with pytest.raises(SessionAlreadyActiveException) as exc_info:
            await session_repo.start("u-1", "c-1")
        assert exc_info.value.details["resource_id"] == first.id

    async def test_other_character_independent(self, session_repo) -> None:
        await session_repo.start("u-1", "c-1")
        assert (await session_repo.start("u-1", "c-2")).character_id == "c-2"

    async def test_concurrent_starts_leave_one_pending(self, session_repo, fake_db) -> None:
        results = await asyncio.gather(
            *(session_repo.start("u-1", "c-1") for _ in range(3)),
            return_exceptions=True,
        )
        started = [r for r in results if not isinstance(r, Exception)]
        rejected = [r for r in results if isinstance(r, SessionAlreadyActiveException)]
        assert len(started) == 1
        assert len(rejected) == 2
        assert _pending_sessions(fake_db) == [f"sessions/{started[0].id}"]

    async def test_stale_guard_taken_over(self, session_repo, fake_db) -> None:
        fake_db.put("active_sessions/u-1_c-1", {"session_id": "gone"})
        session = await session_repo.start("u-1", "c-1")
        assert fake_db.docs["active_sessions/u-1_c-1"]["session_id"] == session.id

    async def test_concurrent_takeover_of_stale_guard_leaves_one_pending(
        self, session_repo, fake_db
    ) -> None:
        """A guard left behind by a completed session is taken over by one start only."""
        old = await session_repo.start("u-1", "c-1")
        fake_db.docs[f"sessions/{old.id}"]["status"] = "complete"

        results = await asyncio.gather(
            session_repo.start("u-1", "c-1"),
            session_repo.start("u-1", "c-1"),
            return_exceptions=True,
        )

        started = [r for r in results if not isinstance(r, Exception)]
        rejected = [r for r in results if isinstance(r, SessionAlreadyActiveException)]
        assert len(started) == 1
        assert len(rejected) == 1
        assert _pending_sessions(fake_db) == [f"sessions/{started[0].id}"]
        assert fake_db.docs["active_sessions/u-1_c-1"]["session_id"] == started[0].id

    async def test_failed_guard_write_leaves_no_pending_session(
        self, session_repo, fake_db
    ) -> None:
        fake_db.fail_next("create", "active_sessions/", FirestoreUnavailableError("HTTP 503"))
        with pytest.raises(FirestoreUnavailableError):
            await session_repo.start("u-1", "c-1")
        assert _pending_sessions(fake_db) == []

        session = await session_repo.start("u-1", "c-1")
        assert _pending_sessions(fake_db) == [f"sessions/{session.id}"]

    async def test_start_retried_after_transient_guard_failure(
        self, session_repo, fake_db, fast_retry
    ) -> None:
        fake_db.fail_next("create", "active_sessions/", FirestoreUnavailableError("HTTP 503"))
        session = await fast_retry.execute(
            lambda: session_repo.start("u-1", "c-1"), operation_name="session.start"
        )
        assert session.status == SessionStatus.PENDING
        assert _pending_sessions(fake_db) == [f"sessions/{session.id}"]

    @pytest.mark.parametrize(("user_id", "character_id"), [("", "c-1"), ("u-1", "")])
    async def test_missing_ids_rejected(self, session_repo, user_id, character_id) -> None:
        with pytest.raises(ValidationException):
            await session_repo.start(user_id, character_id)


class TestComplete:
    async def test_complete_releases_guard(self, session_repo, fake_db) -> None:
        session = await session_repo.start("u-1", "c-1")
        completed = await session_repo.complete(session.id)
        assert completed.status == SessionStatus.COMPLETE
        assert completed.completed_at is not None
        assert "active_sessions/u-1_c-1" not in fake_db.docs
        assert (await session_repo.start("u-1", "c-1")).id != session.id

    async def test_complete_twice_is_noop(self, session_repo, fake_db) -> None:
        session = await session_repo.start("u-1", "c-1")
        first = await session_repo.complete(session.id)
        version = fake_db.update_times[f"sessions/{session.id}"]
        second = await session_repo.complete(session.id)
        assert second.completed_at == first.completed_at
        assert fake_db.update_times[f"sessions/{session.id}"] == version

    async def test_concurrent_completes_apply_once(self, session_repo) -> None:
        session = await session_repo.start("u-1", "c-1")
        first, second = await asyncio.gather(
            session_repo.complete(session.id), session_repo.complete(session.id)
        )
        assert first.status == second.status == SessionStatus.COMPLETE
        assert first.completed_at == second.completed_at

    async def test_complete_missing(self, session_repo) -> None:
        with pytest.raises(ResourceNotFoundException):
            await session_repo.complete("nope")

    async def test_completing_old_session_keeps_newer_guard(self, session_repo, fake_db) -> None:
        """A guard only belongs to the session it names."""
        old = await session_repo.start("u-1", "c-1")
        fake_db.docs[f"sessions/{old.id}"]["status"] = "complete"
        fake_db.docs[f"sessions/{old.id}"]["completed_at"] = utc_now()
        newer = await session_repo.start("u-1", "c-1")
        await session_repo.complete(old.id)
        assert fake_db.docs["active_sessions/u-1_c-1"]["session_id"] == newer.id


class TestQueries:
    async def test_get_active(self, session_repo) -> None:
        session = await session_repo.start("u-1", "c-1")
        assert (await session_repo.get_active("u-1", "c-1")).id == session.id
        await session_repo.complete(session.id)
        with pytest.raises(ResourceNotFoundException):
            await session_repo.get_active("u-1", "c-1")

    async def test_get_missing(self, session_repo) -> None:
        with pytest.raises(ResourceNotFoundException):
            await session_repo.get("nope")

    async def test_get_all_window_and_status(self, session_repo, fake_db) -> None:
        recent = await session_repo.start("u-1", "c-1")
        await session_repo.complete(recent.id)
        newest = await session_repo.start("u-1", "c-1")
        fake_db.put(
            "sessions/old",
            {
                "id": "old",
                "user_id": "u-1",
                "character_id": "c-1",
                "status": "complete",
                "started_at": utc_now() - timedelta(days=40),
                "completed_at": utc_now() - timedelta(days=39),
            },
        )

        unfiltered = await session_repo.get_all(user_id="u-1")
        assert [s.id for s in unfiltered] == [newest.id, recent.id]

        completed = await session_repo.get_all(user_id="u-1", status=SessionStatus.COMPLETE)
        assert {s.id for s in completed} == {recent.id, "old"}

        assert await session_repo.get_all(user_id="u-2") == []


class TestBookkeeping:
    async def test_add_aggregate_ids_is_a_union(self, session_repo) -> None:
        session = await session_repo.start("u-1", "c-1")
        await session_repo.add_aggregate_ids(session.id, ["a", "b"])
        await session_repo.add_aggregate_ids(session.id, ["b", "c", "c"])
        assert (await session_repo.get(session.id)).aggregate_ids == ["a", "b", "c"]

    async def test_bookkeeping_allowed_after_complete(self, session_repo) -> None:
        session = await session_repo.start("u-1", "c-1")
        await session_repo.complete(session.id)
        await session_repo.add_aggregate_ids(session.id, ["a"])
        at = utc_now()
        await session_repo.set_last_activity(session.id, "act-9", at)
        stored = await session_repo.get(session.id)
        assert stored.aggregate_ids == ["a"]
        assert stored.last_seen_activity_id == "act-9"
        assert stored.last_seen_timestamp == at
        assert stored.status == SessionStatus.COMPLETE

    async def test_missing_session(self, session_repo) -> None:
        with pytest.raises(ResourceNotFoundException):
            await session_repo.add_aggregate_ids("nope", ["a"])
        with pytest.raises(ResourceNotFoundException):
            await session_repo.set_last_activity("nope", "act-1")
