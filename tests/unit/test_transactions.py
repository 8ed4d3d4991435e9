"""Tests for optimistic read-modify-write on single documents."""

import pytest

from gearlog.domain.exceptions import ConflictException, ResourceNotFoundException
from gearlog.infrastructure.firebase.transactions import read_modify_write
from tests.fakes import FakeFirestore


class _AlwaysChanging:
    """Wraps a fake document; another writer bumps it between every read and write."""

    def __init__(self, db: FakeFirestore, path: str) -> None:
        self._db = db
        self._path = path
        self._ref = db.collection("counters").document(path.rsplit("/", 1)[-1])

    @property
    def id(self) -> str:
        return self._ref.id

    async def get(self):
        snapshot = await self._ref.get()
        self._db.put(self._path, {"n": snapshot.to_dict()["n"] + 100})
        return snapshot

    async def update(self, updates, *, array_union=None, update_time=None):
        await self._ref.update(updates, array_union=array_union, update_time=update_time)


@pytest.fixture
def db() -> FakeFirestore:
    fake = FakeFirestore()
    fake.put("counters/c1", {"n": 1})
    return fake


async def test_applies_mutation(db: FakeFirestore) -> None:
    ref = db.collection("counters").document("c1")
    changed = await read_modify_write(
        ref, lambda doc: {"n": doc.to_dict()["n"] + 1}, resource_type="counter"
    )
    assert changed is True
    assert db.docs["counters/c1"]["n"] == 2


async def test_empty_mutation_skips_write(db: FakeFirestore) -> None:
    ref = db.collection("counters").document("c1")
    writes_before = db.writes
    assert await read_modify_write(ref, lambda doc: {}, resource_type="counter") is False
    assert db.writes == writes_before


async def test_missing_document(db: FakeFirestore) -> None:
    ref = db.collection("counters").document("nope")
    with pytest.raises(ResourceNotFoundException):
        await read_modify_write(ref, lambda doc: {"n": 1}, resource_type="counter")


async def test_conflict_after_max_attempts(db: FakeFirestore) -> None:
    ref = _AlwaysChanging(db, "counters/c1")
    with pytest.raises(ConflictException) as exc_info:
        await read_modify_write(
            ref, lambda doc: {"n": 0}, resource_type="counter", max_attempts=3
        )
    assert exc_info.value.details == {"resource_type": "counter", "resource_id": "c1"}


async def test_non_transactional_ignores_concurrent_change(db: FakeFirestore) -> None:
    ref = _AlwaysChanging(db, "counters/c1")
    assert await read_modify_write(
        ref, lambda doc: {"n": 0}, resource_type="counter", transactional=False
    )
    assert db.docs["counters/c1"]["n"] == 0
