"""Tests for process wiring (client factory and services lifespan)."""

import json

import pytest

from gearlog.core import lifespan
from gearlog.core.config import Settings
from gearlog.core.lifespan import create_services
from gearlog.infrastructure.firebase.client import create_firestore_client
from tests.fakes import FakeFirestore


class _ClosingFake(FakeFirestore):
    def __init__(self) -> None:
        super().__init__()
        self.closed = False

    async def aclose(self) -> None:
        self.closed = True


class TestCreateFirestoreClient:
    def test_not_configured(self) -> None:
        with pytest.raises(ValueError, match="not configured"):
            create_firestore_client(Settings(_env_file=None))

    def test_invalid_key_json(self) -> None:
        settings = Settings(_env_file=None, firebase_service_account_key="{not json")
        with pytest.raises(ValueError, match="not valid JSON"):
            create_firestore_client(settings)

    def test_missing_project_id(self) -> None:
        settings = Settings(
            _env_file=None, firebase_service_account_key=json.dumps({"type": "service_account"})
        )
        with pytest.raises(ValueError, match="project_id"):
            create_firestore_client(settings)

    def test_missing_key_file(self, tmp_path) -> None:
        settings = Settings(
            _env_file=None, firebase_service_account_path=str(tmp_path / "missing.json")
        )
        with pytest.raises(ValueError, match="not configured"):
            create_firestore_client(settings)


class TestCreateServices:
    async def test_injected_client_left_open(self) -> None:
        client = _ClosingFake()
        async with create_services(Settings(_env_file=None), client=client) as services:
            assert services.check_in is None
            assert services.stats is not None
            session = await services.sessions.start("u-1", "c-1")
            assert (await services.sessions.get(session.id)).id == session.id
        assert client.closed is False

    async def test_check_in_available_with_activity_source(self) -> None:
        class _Source:
            async def get_equipped_loadout(self, user_id, character_id):
                return {}

            async def get_recent_activities(self, user_id, character_id, count):
                return []

            async def get_performances(self, activity_id, character_ids):
                return {}

        async with create_services(
            Settings(_env_file=None), client=FakeFirestore(), activity_source=_Source()
        ) as services:
            assert services.check_in is not None

    async def test_created_client_closed_on_exit(self, monkeypatch: pytest.MonkeyPatch) -> None:
        client = _ClosingFake()
        monkeypatch.setattr(lifespan, "create_firestore_client", lambda settings: client)
        async with create_services(Settings(_env_file=None)):
            assert client.closed is False
        assert client.closed is True
