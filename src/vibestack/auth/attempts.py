"""
Failed sign-in counters and password-reset cooldowns.

Two backends:
- MemoryAttemptStore: process-local; state is lost on restart and not shared
  between instances.
- RedisAttemptStore: shared counters keyed by email, expiring with the window.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from redis.asyncio import Redis


def _key(email: str) -> str:
    return email.strip().lower()


class AttemptStore(ABC):
    """Per-email attempt state used by AuthService."""

    def __init__(self, failure_window_seconds: int, reset_cooldown_seconds: int) -> None:
        self.failure_window_seconds = failure_window_seconds
        self.reset_cooldown_seconds = reset_cooldown_seconds

    @abstractmethod
    async def record_failure(self, email: str) -> int:
        """Count one failed sign-in. Returns the new count."""

    @abstractmethod
    async def failures(self, email: str) -> int:
        """Failed sign-ins inside the current window."""

    @abstractmethod
    async def clear_failures(self, email: str) -> None:
        """Forget failed sign-ins after a success."""

    @abstractmethod
    async def claim_reset(self, email: str) -> bool:
        """
        Start the reset cooldown for ``email`` if none is running.

        Check and set happen as one step, so of two concurrent requests only
        one is granted. False while a cooldown is running.
        """

    @abstractmethod
    async def release_reset(self, email: str) -> None:
        """Drop a claimed cooldown whose reset email was never sent."""


class MemoryAttemptStore(AttemptStore):
    def __init__(
        self,
        failure_window_seconds: int,
        reset_cooldown_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(failure_window_seconds, reset_cooldown_seconds)
        self.clock = clock
        self._failures: dict[str, tuple[int, float]] = {}
        self._resets: dict[str, float] = {}

    async def record_failure(self, email: str) -> int:
        key = _key(email)
        now = self.clock()
        count, started = self._failures.get(key, (0, now))
        if now - started >= self.failure_window_seconds:
            count, started = 0, now
        self._failures[key] = (count + 1, started)
        return count + 1

    async def failures(self, email: str) -> int:
        entry = self._failures.get(_key(email))
        if entry is None:
            return 0
        count, started = entry
        if self.clock() - started >= self.failure_window_seconds:
            return 0
        return count

    async def clear_failures(self, email: str) -> None:
        self._failures.pop(_key(email), None)

    async def claim_reset(self, email: str) -> bool:
        # no await between the read and the write
        key, now = _key(email), self.clock()
        last = self._resets.get(key)
        if last is not None and now - last < self.reset_cooldown_seconds:
            return False
        self._resets[key] = now
        return True

    async def release_reset(self, email: str) -> None:
        self._resets.pop(_key(email), None)


class RedisAttemptStore(AttemptStore):
    def __init__(self, redis: Redis, failure_window_seconds: int, reset_cooldown_seconds: int) -> None:
        super().__init__(failure_window_seconds, reset_cooldown_seconds)
        self.redis = redis

    async def record_failure(self, email: str) -> int:
        key = f"login_attempts:{_key(email)}"
        count = await self.redis.incr(key)
        if count == 1:
            await self.redis.expire(key, self.failure_window_seconds)
        return int(count)

    async def failures(self, email: str) -> int:
        count_str = await self.redis.get(f"login_attempts:{_key(email)}")
        return int(count_str) if count_str is not None else 0

    async def clear_failures(self, email: str) -> None:
        await self.redis.delete(f"login_attempts:{_key(email)}")

    async def claim_reset(self, email: str) -> bool:
        claimed = await self.redis.set(
            f"reset_cooldown:{_key(email)}", "1", nx=True, ex=self.reset_cooldown_seconds
        )
        return bool(claimed)

    async def release_reset(self, email: str) -> None:
        await self.redis.delete(f"reset_cooldown:{_key(email)}")
