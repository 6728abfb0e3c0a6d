"""Analytics router: all /api/v1/analytics/* endpoints."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from vibestack.analytics.schemas import AnalyticsFilters, ExportRequest, TrendPeriod
from vibestack.analytics.service import AnalyticsService
from vibestack.dependencies import get_analytics_service
from vibestack.responses import as_json

router = APIRouter(prefix="/api/v1/analytics", tags=["Analytics"])


@router.get("/users/{user_id}")
async def user_analytics(
    user_id: UUID,
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    service: AnalyticsService = Depends(get_analytics_service),
) -> JSONResponse:
    filters = AnalyticsFilters(start_date=start_date, end_date=end_date)
    return as_json(await service.get_user_analytics(str(user_id), filters))


@router.get("/users/{user_id}/trends")
async def progress_trends(
    user_id: UUID,
    period: TrendPeriod = "week",
    habit_ids: list[str] | None = Query(None),
    service: AnalyticsService = Depends(get_analytics_service),
) -> JSONResponse:
    return as_json(await service.get_progress_trends(str(user_id), period, habit_ids))


@router.get("/users/{user_id}/achievements")
async def achievement_stats(
    user_id: UUID,
    include_recent: bool = False,
    service: AnalyticsService = Depends(get_analytics_service),
) -> JSONResponse:
    return as_json(await service.get_achievement_stats(str(user_id), include_recent))


@router.get("/users/{user_id}/social")
async def social_stats(
    user_id: UUID,
    include_friend_activity: bool = False,
    service: AnalyticsService = Depends(get_analytics_service),
) -> JSONResponse:
    return as_json(await service.get_social_stats(str(user_id), include_friend_activity))


@router.post("/users/{user_id}/insights")
async def insights(user_id: UUID, service: AnalyticsService = Depends(get_analytics_service)) -> JSONResponse:
    return as_json(await service.generate_insights(str(user_id)))


@router.post("/users/{user_id}/export")
async def export(
    user_id: UUID,
    body: ExportRequest,
    service: AnalyticsService = Depends(get_analytics_service),
) -> JSONResponse:
    return as_json(await service.export_analytics(str(user_id), body))


@router.get("/habits/{habit_id}")
async def habit_analytics(
    habit_id: UUID,
    include_trends: bool = False,
    service: AnalyticsService = Depends(get_analytics_service),
) -> JSONResponse:
    return as_json(await service.get_habit_analytics(str(habit_id), include_trends))
