"""User profile business logic."""

from __future__ import annotations

from typing import Any

import structlog
from supabase import PostgrestAPIError

from vibestack.config import get_settings
from vibestack.principal import PlatformService
from vibestack.responses import ServiceError, ServiceResponse, describe, ok, service_boundary
from vibestack.supabase_client import count_of, filter_id, first_row, is_unique_violation, rows, rpc_payload
from vibestack.users.defaults import default_avatar
from vibestack.users.schemas import ProfileUpdate

logger = structlog.get_logger()

# Characters that would break a PostgREST or= filter expression.
_FILTER_UNSAFE = str.maketrans("", "", ",()")

_MERGED_FIELDS = ("privacy_settings", "notification_preferences")


class UserService(PlatformService):
    @service_boundary("PROFILE_ERROR", "Failed to get profile")
    async def get_user_profile(self, user_id: str) -> ServiceResponse:
        """Profile plus avatar. A missing avatar is created with defaults."""
        profile = first_row(
            await self.client.table("profiles").select("*").eq("user_id", user_id).limit(1).execute()
        )
        if profile is None:
            raise ServiceError("USER_NOT_FOUND", "User profile not found")

        avatar = first_row(
            await self.client.table("avatars").select("*").eq("user_id", user_id).limit(1).execute()
        )
        if avatar is None:
            avatar = await self._create_default_avatar(user_id)

        return ok({"profile": profile, "avatar": avatar})

    async def _create_default_avatar(self, user_id: str) -> dict[str, Any]:
        response = await self.client.table("avatars").insert(default_avatar(user_id)).execute()
        avatar = first_row(response)
        if avatar is None:
            msg = "Avatar insert returned no row"
            raise RuntimeError(msg)
        logger.info("default_avatar_created", user_id=user_id)
        return avatar

    @service_boundary("UPDATE_ERROR", "Failed to update profile")
    async def update_profile(self, user_id: str, updates: ProfileUpdate) -> ServiceResponse:
        """
        Update the caller's own profile.

        Nested settings objects are merged into the stored ones; only the keys
        provided change.
        """
        await self.require_self(user_id, "Can only update your own profile")

        payload = updates.model_dump(exclude_none=True)
        if not payload:
            raise ServiceError("INVALID_INPUT", "No profile fields to update")

        if "username" in payload:
            existing = first_row(
                await self.client.table("profiles")
                .select("id")
                .eq("username", payload["username"])
                .neq("user_id", user_id)
                .limit(1)
                .execute()
            )
            if existing is not None:
                raise ServiceError("USERNAME_TAKEN", "Username is already taken")

        if any(field in payload for field in _MERGED_FIELDS):
            current = first_row(
                await self.client.table("profiles")
                .select(",".join(_MERGED_FIELDS))
                .eq("user_id", user_id)
                .limit(1)
                .execute()
            ) or {}
            for field in _MERGED_FIELDS:
                if field in payload:
                    merged = dict(current.get(field) or {})
                    merged.update(payload[field])
                    payload[field] = merged

        try:
            response = await self.client.table("profiles").update(payload).eq("user_id", user_id).execute()
        except PostgrestAPIError as e:
            if is_unique_violation(e):
                raise ServiceError("USERNAME_TAKEN", "Username is already taken") from e
            raise

        profile = first_row(response)
        if profile is None:
            raise ServiceError("USER_NOT_FOUND", "User profile not found")
        logger.info("profile_updated", user_id=user_id, fields=sorted(payload))
        return ok(profile)

    @service_boundary("SEARCH_ERROR", "Search failed")
    async def search_users(self, query: str) -> ServiceResponse:
        """Case-insensitive match on username or display name, public profiles only."""
        term = (query or "").strip().translate(_FILTER_UNSAFE)
        response = await (
            self.client.table("profiles")
            .select("*")
            .or_(f"username.ilike.%{term}%,display_name.ilike.%{term}%")
            .eq("privacy_settings->>profile_visibility", "public")
            .limit(get_settings().user_search_limit)
            .execute()
        )
        return ok(rows(response))

    @service_boundary("STATS_ERROR", "Failed to get stats")
    async def get_user_stats(self, user_id: str) -> ServiceResponse:
        edge_of = filter_id(user_id)
        total_habits = count_of(
            await self.client.table("habits")
            .select("*", count="exact", head=True)
            .eq("user_id", user_id)
            .execute()
        )
        active_habits = count_of(
            await self.client.table("habits")
            .select("*", count="exact", head=True)
            .eq("user_id", user_id)
            .eq("is_active", True)
            .execute()
        )
        achievements = count_of(
            await self.client.table("user_achievements")
            .select("*", count="exact", head=True)
            .eq("user_id", user_id)
            .execute()
        )
        friends = count_of(
            await self.client.table("friends")
            .select("*", count="exact", head=True)
            .or_(f"user_id.eq.{edge_of},friend_id.eq.{edge_of}")
            .eq("status", "accepted")
            .execute()
        )

        streak = 0
        try:
            streak_data = rpc_payload(
                await self.client.rpc("calculate_max_streak", {"user_id": user_id}).execute()
            )
        except Exception as e:
            logger.warning("streak_calculation_failed", user_id=user_id, error=describe(e))
        else:
            if isinstance(streak_data, dict):
                streak = streak_data.get("max_streak") or 0

        return ok(
            {
                "totalHabits": total_habits,
                "activeHabits": active_habits,
                "totalAchievements": achievements,
                "totalFriends": friends,
                "currentStreak": streak,
            }
        )

    @service_boundary("DELETE_ERROR", "Failed to delete account")
    async def delete_account(self, user_id: str) -> ServiceResponse:
        """Delete the caller's account; all cascading removal happens server-side."""
        await self.require_self(user_id, "Can only delete your own account")

        await self.client.rpc("delete_user_account", {"user_id": user_id}).execute()
        logger.info("account_deleted", user_id=user_id)
        return ok()

    @service_boundary("ACTIVITY_ERROR", "Failed to get activities")
    async def get_user_activities(self, user_id: str) -> ServiceResponse:
        profile = first_row(
            await self.client.table("profiles")
            .select("privacy_settings")
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        privacy = (profile or {}).get("privacy_settings") or {}
        if profile is not None and not privacy.get("show_activity", True):
            user = await self.current_user()
            if user is None or str(user.id) != str(user_id):
                raise ServiceError("FORBIDDEN", "User activities are private")

        try:
            response = await (
                self.client.table("activities")
                .select("*")
                .eq("user_id", user_id)
                .order("created_at", desc=True)
                .limit(get_settings().activity_feed_limit)
                .execute()
            )
        except PostgrestAPIError as e:
            # activities may not exist on every deployment
            logger.warning("activities_unavailable", user_id=user_id, error=describe(e))
            return ok([])
        return ok(rows(response))
