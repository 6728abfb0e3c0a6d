"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from fake_redis import FakeRedis
from fake_supabase import FakeSupabase
from vibestack.analytics.service import AnalyticsService
from vibestack.auth.attempts import MemoryAttemptStore
from vibestack.auth.service import AuthService
from vibestack.config import get_settings
from vibestack.dependencies import get_attempt_store, get_client, get_session_client_factory
from vibestack.habits.service import HabitService
from vibestack.main import create_app
from vibestack.notifications.service import NotificationService
from vibestack.social.service import SocialService
from vibestack.users.service import UserService


class FrozenClock:
    """Wall clock for services (``clock()`` -> aware datetime) that tests move by hand."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, hour: int, minute: int = 0) -> None:
        self.now = self.now.replace(hour=hour, minute=minute)

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class ManualTimer:
    """Monotonic seconds for attempt stores."""

    def __init__(self) -> None:
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fake() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def redis(monkeypatch: pytest.MonkeyPatch) -> FakeRedis:
    """Installs an in-memory Redis as the shared pool for the test."""
    fake_redis = FakeRedis()
    monkeypatch.setattr("vibestack.redis_client._pool", fake_redis)
    return fake_redis


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def timer() -> ManualTimer:
    return ManualTimer()


@pytest.fixture
def attempts(timer: ManualTimer) -> MemoryAttemptStore:
    return MemoryAttemptStore(failure_window_seconds=900, reset_cooldown_seconds=60, clock=timer)


@pytest.fixture
def alice(fake: FakeSupabase) -> tuple[str, str]:
    """(user_id, access_token) for a signed-in user."""
    return fake.login("alice-id")


@pytest.fixture
def bob(fake: FakeSupabase) -> tuple[str, str]:
    return fake.login("bob-id")


@pytest.fixture
def auth_service(fake, attempts, clock):
    def build(token: str | None = None) -> AuthService:
        return AuthService(fake, attempts, access_token=token, clock=clock, session_client=fake.session_client)

    return build


@pytest.fixture
def user_service(fake, clock):
    return lambda token=None: UserService(fake, token, clock)


@pytest.fixture
def habit_service(fake, clock):
    return lambda token=None: HabitService(fake, token, clock)


@pytest.fixture
def social_service(fake, clock):
    return lambda token=None: SocialService(fake, token, clock)


@pytest.fixture
def notification_service(fake, clock):
    return lambda token=None: NotificationService(fake, token, clock)


@pytest.fixture
def analytics_service(fake, clock):
    return lambda token=None: AnalyticsService(fake, token, clock)


@pytest_asyncio.fixture
async def client(fake: FakeSupabase, attempts: MemoryAttemptStore) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with the platform replaced by the in-memory fake."""
    app = create_app()
    app.dependency_overrides[get_client] = lambda: fake
    app.dependency_overrides[get_attempt_store] = lambda: attempts
    app.dependency_overrides[get_session_client_factory] = lambda: fake.session_client

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac