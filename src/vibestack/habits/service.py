"""
Habit tracking business logic.

Rules:
- At most ``max_habits_per_user`` habits per user (count-then-insert)
- One progress row per habit per calendar day (find today's row, else insert)
- Only the owner mutates a habit or records progress on it
- Deletion cascades server-side via RPC
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any

import structlog

from vibestack.config import get_settings
from vibestack.habits.schemas import HabitCreate, HabitUpdate, ProgressCreate
from vibestack.principal import PlatformService
from vibestack.responses import ServiceError, ServiceResponse, describe, ok, service_boundary
from vibestack.supabase_client import count_of, first_row, rows, rpc_payload

logger = structlog.get_logger()


class HabitService(PlatformService):
    async def _get_habit(self, habit_id: str) -> dict[str, Any] | None:
        return first_row(
            await self.client.table("habits").select("*").eq("id", habit_id).limit(1).execute()
        )

    async def _owned_habit(self, habit_id: str, user_id: str, action: str) -> dict[str, Any]:
        habit = await self._get_habit(habit_id)
        if habit is None:
            raise ServiceError("HABIT_NOT_FOUND", "Habit not found")
        if str(habit["user_id"]) != user_id:
            raise ServiceError("FORBIDDEN", f"Cannot {action} habit owned by another user")
        return habit

    async def _visible_habit(self, habit_id: str, user_id: str) -> dict[str, Any]:
        """Owner sees everything; others only public habits. Hidden reads as not found."""
        habit = await self._get_habit(habit_id)
        if habit is None or (str(habit["user_id"]) != user_id and not habit.get("is_public")):
            raise ServiceError("HABIT_NOT_FOUND", "Habit not found")
        return habit

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    @service_boundary("CREATE_ERROR", "Failed to create habit")
    async def create_habit(self, data: HabitCreate) -> ServiceResponse:
        user = await self.require_user()
        user_id = str(user.id)

        if not data.name.strip() or data.target_count < 1:
            raise ServiceError("INVALID_INPUT", "Invalid habit data")

        limit = get_settings().max_habits_per_user
        owned = count_of(
            await self.client.table("habits")
            .select("*", count="exact", head=True)
            .eq("user_id", user_id)
            .execute()
        )
        if owned >= limit:
            raise ServiceError("HABIT_LIMIT_REACHED", "Maximum number of habits reached", {"limit": limit})

        row = data.model_dump(mode="json", exclude_none=True)
        row.update(
            user_id=user_id,
            is_active=True,
            is_public=data.is_public if data.is_public is not None else False,
        )
        habit = first_row(await self.client.table("habits").insert(row).execute())
        logger.info("habit_created", user_id=user_id, habit_id=habit and habit.get("id"))
        return ok(habit)

    @service_boundary("UPDATE_ERROR", "Failed to update habit")
    async def update_habit(self, habit_id: str, updates: HabitUpdate) -> ServiceResponse:
        user = await self.require_user()
        await self._owned_habit(habit_id, str(user.id), "update")

        payload = updates.model_dump(mode="json", exclude_none=True)
        if not payload:
            raise ServiceError("INVALID_INPUT", "No habit fields to update")
        if "name" in payload and not payload["name"].strip():
            raise ServiceError("INVALID_INPUT", "Invalid habit data")
        if "target_count" in payload and payload["target_count"] < 1:
            raise ServiceError("INVALID_INPUT", "Invalid habit data")

        habit = first_row(await self.client.table("habits").update(payload).eq("id", habit_id).execute())
        return ok(habit)

    async def pause_habit(self, habit_id: str) -> ServiceResponse:
        return await self.update_habit(habit_id, HabitUpdate(is_active=False))

    async def resume_habit(self, habit_id: str) -> ServiceResponse:
        return await self.update_habit(habit_id, HabitUpdate(is_active=True))

    @service_boundary("DELETE_ERROR", "Failed to delete habit")
    async def delete_habit(self, habit_id: str) -> ServiceResponse:
        """Delete a habit together with its progress and achievement links."""
        user = await self.require_user()
        await self._owned_habit(habit_id, str(user.id), "delete")

        await self.client.rpc("delete_habit_cascade", {"habit_id": habit_id}).execute()
        logger.info("habit_deleted", user_id=str(user.id), habit_id=habit_id)
        return ok()

    @service_boundary("FETCH_ERROR", "Failed to get habits")
    async def get_user_habits(
        self,
        user_id: str,
        is_active: bool | None = None,
        category: str | None = None,
    ) -> ServiceResponse:
        """A user's habits, newest first. Other users only see public ones."""
        user = await self.require_user()

        query = self.client.table("habits").select("*").eq("user_id", user_id)
        if str(user.id) != str(user_id):
            query = query.eq("is_public", True)
        if is_active is not None:
            query = query.eq("is_active", is_active)
        if category:
            query = query.eq("category", category)

        response = await query.order("created_at", desc=True).execute()
        return ok(rows(response))

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    @service_boundary("PROGRESS_ERROR", "Failed to record progress")
    async def record_progress(self, habit_id: str, data: ProgressCreate) -> ServiceResponse:
        """Upsert today's progress row, then trigger the achievement check."""
        user = await self.require_user()
        user_id = str(user.id)
        await self._owned_habit(habit_id, user_id, "record progress for")

        today = self.clock().date()
        existing = first_row(
            await self.client.table("habit_progress")
            .select("*")
            .eq("habit_id", habit_id)
            .eq("user_id", user_id)
            .gte("date", today.isoformat())
            .lt("date", (today + timedelta(days=1)).isoformat())
            .limit(1)
            .execute()
        )

        if existing is not None:
            response = await (
                self.client.table("habit_progress")
                .update({"completed_count": data.completed_count, "notes": data.notes})
                .eq("id", existing["id"])
                .execute()
            )
        else:
            response = await self.client.table("habit_progress").insert(
                {
                    "habit_id": habit_id,
                    "user_id": user_id,
                    "date": today.isoformat(),
                    "completed_count": data.completed_count,
                    "notes": data.notes,
                }
            ).execute()
        progress = first_row(response)

        try:
            await self.client.rpc(
                "check_habit_achievements", {"user_id": user_id, "habit_id": habit_id}
            ).execute()
        except Exception as e:
            logger.warning("achievement_check_failed", habit_id=habit_id, error=describe(e))

        return ok(progress)

    @service_boundary("FETCH_ERROR", "Failed to get progress")
    async def get_habit_progress(
        self,
        habit_id: str,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> ServiceResponse:
        user = await self.require_user()
        await self._visible_habit(habit_id, str(user.id))

        query = self.client.table("habit_progress").select("*").eq("habit_id", habit_id)
        if start_date:
            query = query.gte("date", start_date.isoformat())
        if end_date:
            query = query.lte("date", end_date.isoformat())

        response = await query.order("date", desc=True).execute()
        return ok(rows(response))

    @service_boundary("STATS_ERROR", "Failed to get stats")
    async def get_habit_stats(self, habit_id: str) -> ServiceResponse:
        """
        Completion statistics for one habit.

        A day counts as completed when ``completed_count >= 1``; the habit's
        ``target_count`` is not consulted. Streaks come from an RPC and fall
        back to zero if it fails.
        """
        user = await self.require_user()
        await self._visible_habit(habit_id, str(user.id))

        total_days = count_of(
            await self.client.table("habit_progress")
            .select("*", count="exact", head=True)
            .eq("habit_id", habit_id)
            .execute()
        )
        completed_days = count_of(
            await self.client.table("habit_progress")
            .select("*", count="exact", head=True)
            .eq("habit_id", habit_id)
            .gte("completed_count", 1)
            .execute()
        )

        streaks: dict[str, Any] = {}
        try:
            payload = rpc_payload(
                await self.client.rpc("calculate_habit_streaks", {"habit_id": habit_id}).execute()
            )
        except Exception as e:
            logger.warning("streak_calculation_failed", habit_id=habit_id, error=describe(e))
        else:
            if isinstance(payload, dict):
                streaks = payload

        completion_rate = completed_days / total_days if total_days else 0
        return ok(
            {
                "totalDays": total_days,
                "completedDays": completed_days,
                "completionRate": round(completion_rate, 2),
                "currentStreak": streaks.get("current_streak") or 0,
                "longestStreak": streaks.get("longest_streak") or 0,
                "totalCompletions": streaks.get("total_completions") or completed_days,
            }
        )
