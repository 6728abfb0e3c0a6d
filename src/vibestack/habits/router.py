"""Habit router: all /api/v1/habits/* endpoints."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from vibestack.dependencies import get_habit_service
from vibestack.habits.schemas import HabitCategory, HabitCreate, HabitUpdate, ProgressCreate
from vibestack.habits.service import HabitService
from vibestack.responses import as_json

router = APIRouter(prefix="/api/v1/habits", tags=["Habits"])


@router.post("")
async def create_habit(body: HabitCreate, service: HabitService = Depends(get_habit_service)) -> JSONResponse:
    return as_json(await service.create_habit(body), 201)


@router.get("")
async def list_habits(
    user_id: UUID,
    is_active: bool | None = None,
    category: HabitCategory | None = None,
    service: HabitService = Depends(get_habit_service),
) -> JSONResponse:
    return as_json(await service.get_user_habits(str(user_id), is_active, category))


@router.patch("/{habit_id}")
async def update_habit(
    habit_id: UUID,
    body: HabitUpdate,
    service: HabitService = Depends(get_habit_service),
) -> JSONResponse:
    return as_json(await service.update_habit(str(habit_id), body))


@router.delete("/{habit_id}")
async def delete_habit(habit_id: UUID, service: HabitService = Depends(get_habit_service)) -> JSONResponse:
    return as_json(await service.delete_habit(str(habit_id)))


@router.post("/{habit_id}/pause")
async def pause_habit(habit_id: UUID, service: HabitService = Depends(get_habit_service)) -> JSONResponse:
    return as_json(await service.pause_habit(str(habit_id)))


@router.post("/{habit_id}/resume")
async def resume_habit(habit_id: UUID, service: HabitService = Depends(get_habit_service)) -> JSONResponse:
    return as_json(await service.resume_habit(str(habit_id)))


@router.post("/{habit_id}/progress")
async def record_progress(
    habit_id: UUID,
    body: ProgressCreate,
    service: HabitService = Depends(get_habit_service),
) -> JSONResponse:
    return as_json(await service.record_progress(str(habit_id), body), 201)


@router.get("/{habit_id}/progress")
async def get_progress(
    habit_id: UUID,
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    service: HabitService = Depends(get_habit_service),
) -> JSONResponse:
    return as_json(await service.get_habit_progress(str(habit_id), start_date, end_date))


@router.get("/{habit_id}/stats")
async def get_stats(habit_id: UUID, service: HabitService = Depends(get_habit_service)) -> JSONResponse:
    return as_json(await service.get_habit_stats(str(habit_id)))
