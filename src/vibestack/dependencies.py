"""Shared FastAPI dependencies: platform client, bearer token, per-request services."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from functools import lru_cache, partial

from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from supabase import AsyncClient

from vibestack.analytics.service import AnalyticsService
from vibestack.auth.attempts import AttemptStore, MemoryAttemptStore, RedisAttemptStore
from vibestack.auth.service import AuthService
from vibestack.config import Settings, get_settings
from vibestack.habits.service import HabitService
from vibestack.notifications.service import NotificationService
from vibestack.redis_client import get_redis, redis_available
from vibestack.social.service import SocialService
from vibestack.supabase_client import create_session_client, get_supabase
from vibestack.users.service import UserService

# Missing credentials are not rejected here; services answer UNAUTHORIZED.
_bearer = HTTPBearer(auto_error=False)


def get_client() -> AsyncClient:
    return get_supabase()


def get_session_client_factory(
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> Callable[[], Awaitable[AsyncClient]]:
    """Builds the per-exchange clients AuthService signs users in on."""
    return partial(create_session_client, settings.supabase_url, settings.supabase_key)


def get_access_token(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
) -> str | None:
    return credentials.credentials if credentials else None


@lru_cache
def _memory_attempts(window_seconds: int, cooldown_seconds: int) -> MemoryAttemptStore:
    return MemoryAttemptStore(window_seconds, cooldown_seconds)


def get_attempt_store(settings: Settings = Depends(get_settings)) -> AttemptStore:  # noqa: B008
    """Redis-backed counters when Redis is configured, else one process-local store."""
    window = settings.account_lockout_duration_minutes * 60
    cooldown = settings.password_reset_cooldown_seconds
    if redis_available():
        return RedisAttemptStore(get_redis(), window, cooldown)
    return _memory_attempts(window, cooldown)


def get_auth_service(
    client: AsyncClient = Depends(get_client),  # noqa: B008
    attempts: AttemptStore = Depends(get_attempt_store),  # noqa: B008
    token: str | None = Depends(get_access_token),
    settings: Settings = Depends(get_settings),  # noqa: B008
    session_client: Callable[[], Awaitable[AsyncClient]] = Depends(get_session_client_factory),  # noqa: B008
) -> AuthService:
    return AuthService(client, attempts, access_token=token, settings=settings, session_client=session_client)


def get_user_service(
    client: AsyncClient = Depends(get_client),  # noqa: B008
    token: str | None = Depends(get_access_token),
) -> UserService:
    return UserService(client, token)


def get_habit_service(
    client: AsyncClient = Depends(get_client),  # noqa: B008
    token: str | None = Depends(get_access_token),
) -> HabitService:
    return HabitService(client, token)


def get_social_service(
    client: AsyncClient = Depends(get_client),  # noqa: B008
    token: str | None = Depends(get_access_token),
) -> SocialService:
    return SocialService(client, token)


def get_notification_service(
    client: AsyncClient = Depends(get_client),  # noqa: B008
    token: str | None = Depends(get_access_token),
) -> NotificationService:
    return NotificationService(client, token)


def get_analytics_service(
    client: AsyncClient = Depends(get_client),  # noqa: B008
    token: str | None = Depends(get_access_token),
) -> AnalyticsService:
    return AnalyticsService(client, token)
