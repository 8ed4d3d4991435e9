"""Session check-in tests: recent matches are attached to a pending session once."""

from datetime import timedelta

import pytest

from gearlog.application.dtos import FireteamMember
from gearlog.application.use_cases.reconciliation import (
    RecordMatchUseCase,
    SessionCheckInUseCase,
)
from gearlog.domain.enums import ConfidenceLevel
from gearlog.domain.exceptions import ResourceNotFoundException, ValidationException
from gearlog.schemas.loadout import SnapshotCreate
from tests.factories import make_activity, make_loadout, make_performance


class _ActivitySource:
    """Game API stand-in serving fixed loadouts, activities and performances."""

    def __init__(self) -> None:
        self.loadouts: dict[str, dict] = {}
        self.activities = []
        self.performances: dict[str, dict] = {}
        self.requested_counts: list[int] = []

    async def get_equipped_loadout(self, user_id, character_id):
        return self.loadouts.get(character_id, make_loadout())

    async def get_recent_activities(self, user_id, character_id, count):
        self.requested_counts.append(count)
        newest_first = sorted(self.activities, key=lambda a: a.period, reverse=True)
        return newest_first[:count]

    async def get_performances(self, activity_id, character_ids):
        return {
            cid: perf
            for cid, perf in self.performances.get(activity_id, {}).items()
            if cid in character_ids
        }


@pytest.fixture
def activity_source() -> _ActivitySource:
    return _ActivitySource()


@pytest.fixture
def check_in(
    snapshot_repo, aggregate_repo, session_repo, activity_source, settings, fast_retry
) -> SessionCheckInUseCase:
    record_match = RecordMatchUseCase(
        snapshot_repo, aggregate_repo, session_repo, retry_policy=fast_retry
    )
    return SessionCheckInUseCase(
        session_repo,
        aggregate_repo,
        snapshot_repo,
        activity_source,
        record_match,
        settings=settings,
        retry_policy=fast_retry,
    )


async def _session_with_matches(snapshot_repo, session_repo, activity_source):
    await snapshot_repo.save("u-1", SnapshotCreate(character_id="c-1", loadout=make_loadout()))
    session = await session_repo.start("u-1", "c-1")
    before = make_activity("act-old", period=session.started_at - timedelta(minutes=5))
    first = make_activity("act-1", period=session.started_at + timedelta(minutes=1))
    second = make_activity("act-2", period=session.started_at + timedelta(minutes=2))
    activity_source.activities = [before, first, second]
    for activity in activity_source.activities:
        activity_source.performances[activity.instance_id] = {"c-1": make_performance(1001, 2001)}
    return session


async def test_records_new_matches_by_best_fit(
    check_in, snapshot_repo, session_repo, aggregate_repo, activity_source, settings
) -> None:
    session = await _session_with_matches(snapshot_repo, session_repo, activity_source)

    result = await check_in.check_in(session.id)

    assert activity_source.requested_counts == [settings.check_in_activity_count]
    assert result.activity_ids == ("act-1", "act-2")
    assert result.aggregate_ids == ("act-1", "act-2")
    assert result.updated
    stored = await session_repo.get(session.id)
    assert stored.aggregate_ids == ["act-1", "act-2"]
    assert stored.last_seen_activity_id == "act-2"
    link = (await aggregate_repo.get_aggregate("act-1")).link_for("c-1")
    assert link.session_id == session.id
    assert link.confidence_level == ConfidenceLevel.HIGH


async def test_second_check_in_skips_linked_matches(
    check_in, snapshot_repo, session_repo, activity_source, fake_db
) -> None:
    session = await _session_with_matches(snapshot_repo, session_repo, activity_source)
    await check_in.check_in(session.id)
    version = fake_db.update_times["aggregates/act-1"]

    again = await check_in.check_in(session.id)

    assert again.aggregate_ids == ()
    assert again.skipped_activity_ids == ("act-1", "act-2")
    assert not again.updated
    assert fake_db.update_times["aggregates/act-1"] == version


async def test_match_without_performance_skipped(
    check_in, snapshot_repo, session_repo, activity_source
) -> None:
    session = await _session_with_matches(snapshot_repo, session_repo, activity_source)
    activity_source.performances["act-2"] = {}
    result = await check_in.check_in(session.id)
    assert result.aggregate_ids == ("act-1",)
    assert result.skipped_activity_ids == ("act-2",)


async def test_no_new_matches(check_in, session_repo, activity_source) -> None:
    session = await session_repo.start("u-1", "c-1")
    activity_source.activities = [
        make_activity("act-old", period=session.started_at - timedelta(hours=1))
    ]
    result = await check_in.check_in(session.id)
    assert result.activity_ids == ()
    assert (await session_repo.get(session.id)).last_seen_activity_id is None


async def test_complete_session_rejected(check_in, session_repo) -> None:
    session = await session_repo.start("u-1", "c-1")
    await session_repo.complete(session.id)
    with pytest.raises(ValidationException):
        await check_in.check_in(session.id)


async def test_missing_session(check_in) -> None:
    with pytest.raises(ResourceNotFoundException):
        await check_in.check_in("nope")


class TestFireteam:
    @pytest.fixture
    def teammate(self, activity_source) -> FireteamMember:
        activity_source.loadouts["c-2"] = make_loadout(
            kinetic=("k-2", 1101), energy=("e-2", 2101), power=None
        )
        return FireteamMember(user_id="u-2", character_id="c-2", display_name="Guardian")

    @staticmethod
    def _add_teammate_performances(activity_source) -> None:
        for performances in activity_source.performances.values():
            performances["c-2"] = make_performance(1101, 2101)

    async def test_teammate_with_session_linked_into_shared_aggregate(
        self, check_in, snapshot_repo, session_repo, aggregate_repo, activity_source, teammate
    ) -> None:
        session = await _session_with_matches(snapshot_repo, session_repo, activity_source)
        teammate_session = await session_repo.start("u-2", "c-2")
        self._add_teammate_performances(activity_source)

        result = await check_in.check_in(session.id, fireteam=[teammate])

        assert result.aggregate_ids == ("act-1", "act-2")
        assert result.member_sessions == {"c-1": session.id, "c-2": teammate_session.id}
        aggregate = await aggregate_repo.get_aggregate("act-1")
        assert aggregate.link_for("c-1").session_id == session.id
        link = aggregate.link_for("c-2")
        assert link.session_id == teammate_session.id
        assert link.confidence_level == ConfidenceLevel.HIGH
        stored = await session_repo.get(teammate_session.id)
        assert stored.aggregate_ids == ["act-1", "act-2"]
        assert stored.last_seen_activity_id == "act-2"
        assert await snapshot_repo.get_all_by_character("u-2", "c-2")

    async def test_second_check_in_skips_every_member(
        self, check_in, snapshot_repo, session_repo, activity_source, teammate, fake_db
    ) -> None:
        session = await _session_with_matches(snapshot_repo, session_repo, activity_source)
        await session_repo.start("u-2", "c-2")
        self._add_teammate_performances(activity_source)
        await check_in.check_in(session.id, fireteam=[teammate])
        version = fake_db.update_times["aggregates/act-1"]

        again = await check_in.check_in(session.id, fireteam=[teammate])

        assert again.aggregate_ids == ()
        assert again.skipped_activity_ids == ("act-1", "act-2")
        assert fake_db.update_times["aggregates/act-1"] == version

    async def test_teammate_without_session_gets_snapshot_only(
        self, check_in, snapshot_repo, session_repo, aggregate_repo, activity_source, teammate
    ) -> None:
        session = await _session_with_matches(snapshot_repo, session_repo, activity_source)
        self._add_teammate_performances(activity_source)

        result = await check_in.check_in(session.id, fireteam=[teammate])

        assert result.member_sessions == {"c-1": session.id}
        assert (await aggregate_repo.get_aggregate("act-1")).link_for("c-2") is None
        assert len(await snapshot_repo.get_all_by_character("u-2", "c-2")) == 1

    async def test_teammate_with_nothing_equipped_left_out(
        self, check_in, snapshot_repo, session_repo, aggregate_repo, activity_source, teammate
    ) -> None:
        session = await _session_with_matches(snapshot_repo, session_repo, activity_source)
        await session_repo.start("u-2", "c-2")
        activity_source.loadouts["c-2"] = {}
        self._add_teammate_performances(activity_source)

        result = await check_in.check_in(session.id, fireteam=[teammate])

        assert result.member_sessions == {"c-1": session.id}
        assert result.aggregate_ids == ("act-1", "act-2")
        assert (await aggregate_repo.get_aggregate("act-1")).link_for("c-2") is None

    async def test_owner_listed_in_fireteam_counted_once(
        self, check_in, snapshot_repo, session_repo, activity_source
    ) -> None:
        session = await _session_with_matches(snapshot_repo, session_repo, activity_source)
        owner = FireteamMember(user_id="u-1", character_id="c-1")

        result = await check_in.check_in(session.id, fireteam=[owner])

        assert result.member_sessions == {"c-1": session.id}
        assert (await session_repo.get(session.id)).aggregate_ids == ["act-1", "act-2"]
