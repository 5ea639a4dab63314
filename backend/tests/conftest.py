"""Pytest fixtures for carpool testing."""

from typing import Any, Optional
from unittest.mock import AsyncMock

import pytest

from carpool.config import Settings
from carpool.engine import CarpoolEngine, build_dispatcher
from carpool.geo.geocoder import Geocoder
from carpool.models.records import Coordinates
from carpool.repositories.memory_repository import create_memory_store
from carpool.services.notification_service import Notifier

NEW_YORK = Coordinates(latitude=40.7128, longitude=-74.0060)


class RecordingNotifier(Notifier):
    """Notifier that keeps every delivery in memory."""

    def __init__(self, failing_user_ids: tuple[str, ...] = ()):
        self.sent: list[tuple[str, str, Optional[dict[str, Any]]]] = []
        self.failing_user_ids = set(failing_user_ids)

    async def send(
        self,
        user_id: str,
        text: str,
        payload: Optional[dict[str, Any]] = None,
    ) -> None:
        if user_id in self.failing_user_ids:
            raise ConnectionError(f"delivery to {user_id} failed")
        self.sent.append((user_id, text, payload))

    def recipients(self) -> list[str]:
        return [user_id for user_id, _, _ in self.sent]

    def texts_for(self, user_id: str) -> list[str]:
        return [text for recipient, text, _ in self.sent if recipient == user_id]


class FakePipeline:
    def __init__(self, client: "FakeRedis"):
        self.client = client
        self.commands: list[tuple[str, tuple]] = []

    def rpush(self, key, *values):
        self.commands.append(("rpush", (key, *values)))
        return self

    def ltrim(self, key, start, end):
        self.commands.append(("ltrim", (key, start, end)))
        return self

    def expire(self, key, seconds):
        self.commands.append(("expire", (key, seconds)))
        return self

    async def execute(self):
        results = []
        for name, args in self.commands:
            results.append(getattr(self.client, f"_{name}")(*args))
        self.commands = []
        return results


class FakeRedis:
    """Dict-backed stand-in for the list commands the inbox uses."""

    def __init__(self):
        self.lists: dict[str, list[str]] = {}
        self.ttls: dict[str, int] = {}

    def pipeline(self):
        return FakePipeline(self)

    def _rpush(self, key, *values):
        self.lists.setdefault(key, []).extend(values)
        return len(self.lists[key])

    def _ltrim(self, key, start, end):
        items = self.lists.get(key, [])
        stop = None if end == -1 else end + 1
        self.lists[key] = items[start:stop]
        return True

    def _expire(self, key, seconds):
        self.ttls[key] = seconds
        return True

    async def lrange(self, key, start, end):
        items = self.lists.get(key, [])
        stop = None if end == -1 else end + 1
        return items[start:stop]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        notifier_backend="log",
        database_url="sqlite+aiosqlite:///:memory:",
    )


@pytest.fixture
def store():
    return create_memory_store()


@pytest.fixture
def geocoder():
    """Geocoder that resolves every address to New York."""
    mock = AsyncMock(spec=Geocoder)
    mock.geocode.return_value = [NEW_YORK]
    return mock


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def engine(store, geocoder, notifier, settings) -> CarpoolEngine:
    return CarpoolEngine(store, geocoder, notifier, settings)


@pytest.fixture
def dispatcher(engine):
    return build_dispatcher(engine)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def add_office(engine):
    """Register an office by name."""

    async def _add_office(name: str = "HQ", address: str = "1 Main St"):
        return await engine.coordinator.add_office(name, address)

    return _add_office


@pytest.fixture
def register(engine):
    """Register a user, optionally placing them at an office."""

    async def _register(user_id: str, office_name: Optional[str] = None):
        user = await engine.coordinator.register_home(user_id, f"{user_id} Street")
        if office_name:
            await engine.coordinator.set_user_office(user_id, office_name)
        return user

    return _register
