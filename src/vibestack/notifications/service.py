"""Notification inbox, preferences, devices and delivery.

Delivery rules for ``send_notification``:
1. The recipient's preferences decide; a disabled type is refused with
   NOTIFICATIONS_DISABLED and nothing is written
2. Inside the recipient's quiet hours the row is stored but no push is sent
3. Otherwise the row is stored and, with push enabled, one push RPC carries the
   tokens of every active device

Quiet hours are compared against the server clock (UTC). A window whose start is
after its end wraps midnight.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any

import structlog

from vibestack.notifications.schemas import (
    DeviceRegister,
    NotificationCreate,
    NotificationFilters,
    PreferencesUpdate,
    preference_key,
)
from vibestack.principal import PlatformService
from vibestack.responses import ServiceError, ServiceResponse, ok, service_boundary
from vibestack.supabase_client import count_of, first_row, rows

logger = structlog.get_logger()

TIME_RE = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")

DEFAULT_PREFERENCES = {
    "push_enabled": True,
    "email_enabled": True,
    "in_app_enabled": True,
    "habit_reminders": True,
    "social_updates": True,
    "achievement_alerts": True,
    "challenge_updates": True,
    "friend_requests": True,
    "system_notifications": True,
}


def _minutes(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


def in_quiet_hours(now: datetime, start: str | None, end: str | None) -> bool:
    """True when ``now`` falls in [start, end), wrapping midnight if start > end."""
    if not start or not end:
        return False
    current = now.hour * 60 + now.minute
    start_min, end_min = _minutes(start), _minutes(end)
    if start_min <= end_min:
        return start_min <= current < end_min
    return current >= start_min or current < end_min


class NotificationService(PlatformService):
    # ------------------------------------------------------------------
    # Inbox
    # ------------------------------------------------------------------

    @service_boundary("GET_NOTIFICATIONS_ERROR", "Failed to get notifications")
    async def get_notifications(self, filters: NotificationFilters | None = None) -> ServiceResponse:
        """The caller's notifications, newest first."""
        user = await self.require_user()
        filters = filters or NotificationFilters()

        query = self.client.table("notifications").select("*").eq("user_id", str(user.id))
        if filters.unread:
            query = query.eq("read", False)
        if filters.type is not None:
            query = query.eq("type", filters.type.value)
        query = query.order("created_at", desc=True)
        if filters.limit:
            query = query.range(filters.offset, filters.offset + filters.limit - 1)

        return ok(rows(await query.execute()))

    @service_boundary("MARK_READ_ERROR", "Failed to mark as read")
    async def mark_as_read(self, notification_ids: str | list[str]) -> ServiceResponse:
        user = await self.require_user()
        user_id = str(user.id)
        ids = [notification_ids] if isinstance(notification_ids, str) else list(notification_ids)
        if not ids:
            return ok()

        if len(ids) == 1:
            notification = first_row(
                await self.client.table("notifications").select("user_id").eq("id", ids[0]).limit(1).execute()
            )
            if notification is not None and str(notification["user_id"]) != user_id:
                raise ServiceError("FORBIDDEN", "Cannot mark notifications for another user")

        # the user_id filter keeps foreign ids in a batch untouched
        await (
            self.client.table("notifications")
            .update({"read": True, "read_at": self.clock().isoformat()})
            .in_("id", ids)
            .eq("user_id", user_id)
            .execute()
        )
        return ok()

    @service_boundary("MARK_READ_ERROR", "Failed to mark all as read")
    async def mark_all_as_read(self) -> ServiceResponse:
        user = await self.require_user()

        await (
            self.client.table("notifications")
            .update({"read": True, "read_at": self.clock().isoformat()})
            .eq("user_id", str(user.id))
            .eq("read", False)
            .execute()
        )
        return ok()

    @service_boundary("DELETE_ERROR", "Failed to delete notification")
    async def delete_notification(self, notification_id: str) -> ServiceResponse:
        user = await self.require_user()

        notification = first_row(
            await self.client.table("notifications").select("user_id").eq("id", notification_id).limit(1).execute()
        )
        if notification is None or str(notification["user_id"]) != str(user.id):
            raise ServiceError("FORBIDDEN", "Cannot delete notifications for another user")

        await self.client.table("notifications").delete().eq("id", notification_id).execute()
        return ok()

    @service_boundary("COUNT_ERROR", "Failed to get unread count")
    async def get_unread_count(self) -> ServiceResponse:
        user = await self.require_user()

        response = await (
            self.client.table("notifications")
            .select("*", count="exact", head=True)
            .eq("user_id", str(user.id))
            .eq("read", False)
            .execute()
        )
        return ok(count_of(response))

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    async def _stored_preferences(self, user_id: str) -> dict[str, Any] | None:
        return first_row(
            await self.client.table("notification_preferences")
            .select("*")
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )

    async def _preferences_for(self, user_id: str) -> dict[str, Any]:
        preferences = await self._stored_preferences(user_id)
        if preferences is not None:
            return preferences

        created = first_row(
            await self.client.table("notification_preferences")
            .insert({"user_id": user_id, **DEFAULT_PREFERENCES})
            .execute()
        )
        if created is None:
            msg = "Preferences insert returned no row"
            raise RuntimeError(msg)
        logger.info("notification_preferences_created", user_id=user_id)
        return created

    @service_boundary("GET_PREFERENCES_ERROR", "Failed to get preferences")
    async def get_preferences(self) -> ServiceResponse:
        """The caller's preferences, created with defaults on first read."""
        user = await self.require_user()
        return ok(await self._preferences_for(str(user.id)))

    @service_boundary("UPDATE_PREFERENCES_ERROR", "Failed to update preferences")
    async def update_preferences(self, updates: PreferencesUpdate) -> ServiceResponse:
        user = await self.require_user()
        user_id = str(user.id)

        for value in (updates.quiet_hours_start, updates.quiet_hours_end):
            if value and not TIME_RE.match(value):
                raise ServiceError("INVALID_TIME_FORMAT", "Invalid time format. Use HH:MM")

        payload = updates.model_dump(exclude_none=True)
        if not payload:
            raise ServiceError("INVALID_INPUT", "No preference fields to update")

        await self._preferences_for(user_id)
        response = await (
            self.client.table("notification_preferences").update(payload).eq("user_id", user_id).execute()
        )
        return ok(first_row(response))

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------

    @service_boundary("REGISTER_DEVICE_ERROR", "Failed to register device")
    async def register_device(self, device: DeviceRegister) -> ServiceResponse:
        """Register a push token; one device per platform, later tokens replace earlier ones."""
        user = await self.require_user()

        response = await (
            self.client.table("devices")
            .upsert(
                {
                    "user_id": str(user.id),
                    "platform": device.platform,
                    "token": device.token,
                    "device_name": device.device_name,
                    "is_active": True,
                    "updated_at": self.clock().isoformat(),
                },
                on_conflict="user_id,platform",
            )
            .execute()
        )
        return ok(first_row(response))

    @service_boundary("UNREGISTER_DEVICE_ERROR", "Failed to unregister device")
    async def unregister_device(self, token: str) -> ServiceResponse:
        user = await self.require_user()

        await self.client.table("devices").delete().eq("user_id", str(user.id)).eq("token", token).execute()
        return ok()

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    @service_boundary("SEND_NOTIFICATION_ERROR", "Failed to send notification")
    async def send_notification(self, data: NotificationCreate) -> ServiceResponse:
        await self.require_user()

        # recipients who never opened their settings get no gating and no push
        preferences = await self._stored_preferences(data.user_id)

        if preferences is not None:
            key = preference_key(data.type)
            if preferences.get(key) is False:
                raise ServiceError("NOTIFICATIONS_DISABLED", "User has disabled notifications for this type")

        notification = first_row(
            await self.client.table("notifications").insert(
                {
                    "user_id": data.user_id,
                    "type": data.type.value,
                    "title": data.title,
                    "message": data.message,
                    "data": data.data,
                    "action_url": data.action_url,
                    "read": False,
                }
            ).execute()
        )
        if notification is None:
            msg = "Notification insert returned no row"
            raise RuntimeError(msg)

        if preferences is None or not preferences.get("push_enabled"):
            return ok(notification)

        if in_quiet_hours(self.clock(), preferences.get("quiet_hours_start"), preferences.get("quiet_hours_end")):
            logger.info(
                "notification_suppressed_quiet_hours",
                user_id=data.user_id,
                notification_id=notification.get("id"),
            )
            return ok(notification)

        devices = rows(
            await self.client.table("devices")
            .select("token")
            .eq("user_id", data.user_id)
            .eq("is_active", True)
            .execute()
        )
        if devices:
            await self.client.rpc(
                "send_push_notification",
                {
                    "notification_id": notification.get("id"),
                    "tokens": [d["token"] for d in devices],
                    "title": data.title,
                    "body": data.message,
                    "data": data.data,
                },
            ).execute()
            logger.info("push_dispatched", user_id=data.user_id, devices=len(devices))

        return ok(notification)
