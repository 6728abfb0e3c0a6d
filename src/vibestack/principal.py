"""Per-request principal resolution shared by all services."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from supabase import AuthError

from vibestack.responses import ServiceError

if TYPE_CHECKING:
    from collections.abc import Callable

    from supabase import AsyncClient


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PlatformService:
    """
    Base for the domain services.

    A service instance is bound to one caller's access token. The principal is
    re-resolved through the auth subsystem on every call; nothing about the
    caller is cached on the instance.
    """

    def __init__(
        self,
        client: AsyncClient,
        access_token: str | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.client = client
        self.access_token = access_token
        self.clock = clock

    async def current_user(self) -> Any | None:
        """The user behind ``access_token``, or None without a valid token."""
        # get_user(None) would fall back to whatever session the client holds
        if not self.access_token:
            return None
        try:
            response = await self.client.auth.get_user(self.access_token)
        except AuthError:
            return None
        if response is None:
            return None
        return getattr(response, "user", None)

    async def require_user(self) -> Any:
        """The authenticated user; raises UNAUTHORIZED otherwise."""
        user = await self.current_user()
        if user is None:
            raise ServiceError("UNAUTHORIZED", "Must be authenticated")
        return user

    async def require_self(self, user_id: str, message: str) -> Any:
        """The authenticated user, who must be ``user_id``."""
        user = await self.require_user()
        if str(user.id) != str(user_id):
            raise ServiceError("FORBIDDEN", message)
        return user
