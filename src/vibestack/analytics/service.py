"""
Read-only analytics over server-side rollups.

Every method is restricted to the subject user themselves; there is no sharing
model. Rollup RPCs answer in snake_case and are reshaped to camelCase here.
"""

from __future__ import annotations

from typing import Any

import structlog

from vibestack.analytics.schemas import AnalyticsFilters, ExportRequest, TrendPeriod
from vibestack.config import get_settings
from vibestack.principal import PlatformService
from vibestack.responses import ServiceError, ServiceResponse, describe, ok, service_boundary
from vibestack.supabase_client import count_of, first_row, rows, rpc_payload

logger = structlog.get_logger()

INSIGHTS_FALLBACK_SUMMARY = "Unable to generate insights at this time"


def _csv_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def habits_to_csv(data: Any) -> str:
    """
    Flatten the ``habits`` array of an export into CSV.

    The first habit's keys form the header. Values are not quoted or escaped.
    """
    habits = data.get("habits") if isinstance(data, dict) else None
    if not isinstance(habits, list):
        return "No data available"
    headers = list(habits[0].keys()) if habits else []
    lines = [",".join(_csv_cell(habit.get(h)) for h in headers) for habit in habits]
    return ",".join(headers) + "\n" + "\n".join(lines)


class AnalyticsService(PlatformService):
    async def _rollup(self, name: str, params: dict[str, Any]) -> dict[str, Any]:
        payload = rpc_payload(await self.client.rpc(name, params).execute())
        return payload if isinstance(payload, dict) else {}

    @service_boundary("ANALYTICS_ERROR", "Failed to get analytics")
    async def get_user_analytics(self, user_id: str, filters: AnalyticsFilters | None = None) -> ServiceResponse:
        await self.require_self(user_id, "Cannot access analytics for another user")
        filters = filters or AnalyticsFilters()
        params = {
            "user_id": user_id,
            "start_date": filters.start_date.isoformat() if filters.start_date else None,
            "end_date": filters.end_date.isoformat() if filters.end_date else None,
        }

        habits = await self._rollup("get_habit_analytics", params)
        achievements = await self._rollup("get_achievement_analytics", params)
        social = await self._rollup("get_social_analytics", params)

        return ok(
            {
                "habits": {
                    "totalHabits": habits.get("total_habits"),
                    "activeHabits": habits.get("active_habits"),
                    "completionRate": habits.get("completion_rate"),
                    "averageStreak": habits.get("average_streak"),
                    "bestStreak": habits.get("best_streak"),
                    "totalCompletions": habits.get("total_completions"),
                },
                "achievements": {
                    "totalAchievements": achievements.get("total_achievements"),
                    "recentAchievements": achievements.get("recent_achievements"),
                    "pointsEarned": achievements.get("points_earned"),
                    "achievementRate": achievements.get("achievement_rate"),
                },
                "social": {
                    "totalFriends": social.get("total_friends"),
                    "activeFriends": social.get("active_friends"),
                    "challengesParticipated": social.get("challenges_participated"),
                    "challengesWon": social.get("challenges_won"),
                    "socialEngagementScore": social.get("social_engagement_score"),
                },
            }
        )

    @service_boundary("ANALYTICS_ERROR", "Failed to get habit analytics")
    async def get_habit_analytics(self, habit_id: str, include_trends: bool = False) -> ServiceResponse:
        """Detailed analytics for one of the caller's habits."""
        user = await self.require_user()

        habit = first_row(
            await self.client.table("habits").select("user_id").eq("id", habit_id).limit(1).execute()
        )
        if habit is None or str(habit["user_id"]) != str(user.id):
            raise ServiceError("FORBIDDEN", "Cannot access analytics for this habit")

        data = await self._rollup(
            "get_habit_detailed_analytics",
            {"habit_id": habit_id, "include_trends": include_trends},
        )
        analytics: dict[str, Any] = {
            "totalDays": data.get("total_days"),
            "completedDays": data.get("completed_days"),
            "completionRate": data.get("completion_rate"),
            "currentStreak": data.get("current_streak"),
            "longestStreak": data.get("longest_streak"),
            "averageDailyCount": data.get("average_daily_count"),
            "weeklyPattern": data.get("weekly_pattern"),
            "hourlyDistribution": data.get("hourly_distribution"),
        }
        trend = data.get("trend")
        if trend:
            analytics["trend"] = {
                "direction": trend.get("direction"),
                "changePercentage": trend.get("change_percentage"),
                "predictionNextWeek": trend.get("prediction_next_week"),
            }
        return ok(analytics)

    @service_boundary("TRENDS_ERROR", "Failed to get trends")
    async def get_progress_trends(
        self,
        user_id: str,
        period: TrendPeriod = "week",
        habit_ids: list[str] | None = None,
    ) -> ServiceResponse:
        await self.require_self(user_id, "Cannot access trends for another user")

        data = await self._rollup(
            "calculate_progress_trends",
            {"user_id": user_id, "period": period, "habit_ids": habit_ids},
        )
        return ok(
            {
                "dailyTrends": [
                    {"date": t.get("date"), "completionRate": t.get("completion_rate")}
                    for t in data.get("daily_trends") or []
                ],
                "weeklyAverage": data.get("weekly_average"),
                "monthlyAverage": data.get("monthly_average"),
                "improvementRate": data.get("improvement_rate"),
            }
        )

    @service_boundary("ACHIEVEMENT_STATS_ERROR", "Failed to get achievement stats")
    async def get_achievement_stats(self, user_id: str, include_recent: bool = False) -> ServiceResponse:
        await self.require_self(user_id, "Cannot access achievement stats for another user")

        total = count_of(
            await self.client.table("achievements")
            .select("*", count="exact", head=True)
            .eq("is_active", True)
            .execute()
        )
        unlocked = count_of(
            await self.client.table("user_achievements")
            .select("*", count="exact", head=True)
            .eq("user_id", user_id)
            .execute()
        )
        categories = await self.client.rpc("get_achievement_category_stats", {"user_id": user_id}).execute()

        stats: dict[str, Any] = {
            "totalAchievements": total,
            "unlockedAchievements": unlocked,
            "completionRate": unlocked / total if total else 0,
            "categoryBreakdown": rows(categories),
        }
        if include_recent:
            recent = await (
                self.client.table("user_achievements")
                .select("*")
                .eq("user_id", user_id)
                .order("unlocked_at", desc=True)
                .limit(get_settings().recent_achievements_limit)
                .execute()
            )
            stats["recentAchievements"] = rows(recent)
        return ok(stats)

    @service_boundary("SOCIAL_STATS_ERROR", "Failed to get social stats")
    async def get_social_stats(self, user_id: str, include_friend_activity: bool = False) -> ServiceResponse:
        await self.require_self(user_id, "Cannot access social stats for another user")

        data = await self._rollup(
            "get_social_stats",
            {"user_id": user_id, "include_friend_activity": include_friend_activity},
        )
        stats: dict[str, Any] = {
            "totalFriends": data.get("total_friends"),
            "activeFriendsLastWeek": data.get("active_friends_last_week"),
            "challengesCreated": data.get("challenges_created") or 0,
            "challengesParticipated": data.get("challenges_participated"),
            "challengesWon": data.get("challenges_won"),
            "challengeWinRate": data.get("win_rate") or 0,
            "socialScore": data.get("social_score") or 0,
            "ranking": data.get("ranking") or 0,
            "interactionFrequency": data.get("interaction_frequency"),
        }
        if data.get("friend_activity"):
            stats["friendActivity"] = [
                {
                    "friendId": fa.get("friend_id"),
                    "sharedHabits": fa.get("shared_habits"),
                    "interactionScore": fa.get("interaction_score"),
                }
                for fa in data["friend_activity"]
            ]
            stats["averageFriendInteraction"] = data.get("average_friend_interaction")
        return ok(stats)

    @service_boundary("INSIGHTS_ERROR", "Failed to generate insights")
    async def generate_insights(self, user_id: str) -> ServiceResponse:
        """
        Collect the user's data, then ask the insight generator about it.

        Data collection failing fails the call. Generation failing does not:
        the caller gets an empty insight list and a fallback summary.
        """
        await self.require_self(user_id, "Cannot generate insights for another user")

        collected = rpc_payload(await self.client.rpc("collect_insights_data", {"user_id": user_id}).execute())

        try:
            generated = rpc_payload(
                await self.client.rpc(
                    "generate_ai_insights",
                    {"user_id": user_id, "analytics_data": collected},
                ).execute()
            )
        except Exception as e:
            logger.warning("insight_generation_failed", user_id=user_id, error=describe(e))
            return ok({"insights": [], "summary": INSIGHTS_FALLBACK_SUMMARY})

        generated = generated if isinstance(generated, dict) else {}
        return ok(
            {
                "insights": generated.get("insights") or [],
                "summary": generated.get("summary") or "No insights available",
            }
        )

    @service_boundary("EXPORT_ERROR", "Failed to export analytics")
    async def export_analytics(self, user_id: str, options: ExportRequest | None = None) -> ServiceResponse:
        await self.require_self(user_id, "Cannot export analytics for another user")
        options = options or ExportRequest()

        data = rpc_payload(
            await self.client.rpc(
                "export_user_analytics",
                {
                    "user_id": user_id,
                    "sections": options.sections,
                    "include_raw_data": options.include_raw_data,
                },
            ).execute()
        )

        return ok(
            {
                "format": options.format,
                "data": habits_to_csv(data) if options.format == "csv" else data,
                "generatedAt": self.clock().isoformat(),
            }
        )
