"""Notification router: all /api/v1/notifications/* endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from vibestack.dependencies import get_notification_service
from vibestack.notifications.schemas import (
    DeviceRegister,
    DeviceUnregister,
    MarkReadRequest,
    NotificationCreate,
    NotificationFilters,
    NotificationType,
    PreferencesUpdate,
)
from vibestack.notifications.service import NotificationService
from vibestack.responses import as_json

router = APIRouter(prefix="/api/v1/notifications", tags=["Notifications"])


@router.get("")
async def list_notifications(
    unread: bool = False,
    type: NotificationType | None = None,  # noqa: A002
    limit: int | None = Query(None, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: NotificationService = Depends(get_notification_service),
) -> JSONResponse:
    filters = NotificationFilters(unread=unread, type=type, limit=limit, offset=offset)
    return as_json(await service.get_notifications(filters))


@router.get("/unread-count")
async def unread_count(service: NotificationService = Depends(get_notification_service)) -> JSONResponse:
    return as_json(await service.get_unread_count())


@router.post("/read")
async def mark_read(
    body: MarkReadRequest,
    service: NotificationService = Depends(get_notification_service),
) -> JSONResponse:
    return as_json(await service.mark_as_read(body.ids))


@router.post("/read-all")
async def mark_all_read(service: NotificationService = Depends(get_notification_service)) -> JSONResponse:
    return as_json(await service.mark_all_as_read())


@router.post("/send")
async def send_notification(
    body: NotificationCreate,
    service: NotificationService = Depends(get_notification_service),
) -> JSONResponse:
    return as_json(await service.send_notification(body), 201)


@router.get("/preferences")
async def get_preferences(service: NotificationService = Depends(get_notification_service)) -> JSONResponse:
    return as_json(await service.get_preferences())


@router.patch("/preferences")
async def update_preferences(
    body: PreferencesUpdate,
    service: NotificationService = Depends(get_notification_service),
) -> JSONResponse:
    return as_json(await service.update_preferences(body))


@router.post("/devices")
async def register_device(
    body: DeviceRegister,
    service: NotificationService = Depends(get_notification_service),
) -> JSONResponse:
    return as_json(await service.register_device(body), 201)


@router.post("/devices/unregister")
async def unregister_device(
    body: DeviceUnregister,
    service: NotificationService = Depends(get_notification_service),
) -> JSONResponse:
    return as_json(await service.unregister_device(body.token))


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: UUID,
    service: NotificationService = Depends(get_notification_service),
) -> JSONResponse:
    return as_json(await service.delete_notification(str(notification_id)))
