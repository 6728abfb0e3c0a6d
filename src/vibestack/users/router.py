"""User router: all /api/v1/users/* endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from vibestack.dependencies import get_user_service
from vibestack.responses import as_json
from vibestack.users.schemas import ProfileUpdate
from vibestack.users.service import UserService

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


@router.get("/search")
async def search_users(
    q: str = Query(..., min_length=1, max_length=100),
    service: UserService = Depends(get_user_service),
) -> JSONResponse:
    """Public profiles whose username or display name contains ``q``."""
    return as_json(await service.search_users(q))


@router.get("/{user_id}")
async def get_profile(user_id: UUID, service: UserService = Depends(get_user_service)) -> JSONResponse:
    return as_json(await service.get_user_profile(str(user_id)))


@router.patch("/{user_id}")
async def update_profile(
    user_id: UUID,
    body: ProfileUpdate,
    service: UserService = Depends(get_user_service),
) -> JSONResponse:
    return as_json(await service.update_profile(str(user_id), body))


@router.delete("/{user_id}")
async def delete_account(user_id: UUID, service: UserService = Depends(get_user_service)) -> JSONResponse:
    return as_json(await service.delete_account(str(user_id)))


@router.get("/{user_id}/stats")
async def get_stats(user_id: UUID, service: UserService = Depends(get_user_service)) -> JSONResponse:
    return as_json(await service.get_user_stats(str(user_id)))


@router.get("/{user_id}/activities")
async def get_activities(user_id: UUID, service: UserService = Depends(get_user_service)) -> JSONResponse:
    return as_json(await service.get_user_activities(str(user_id)))
