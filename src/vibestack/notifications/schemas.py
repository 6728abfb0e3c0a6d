"""Pydantic schemas and the notification type table."""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field


class NotificationType(str, Enum):
    HABIT_REMINDER = "habit_reminder"
    SOCIAL = "social"
    ACHIEVEMENT = "achievement"
    CHALLENGE = "challenge"
    CHALLENGE_INVITE = "challenge_invite"
    FRIEND_REQUEST = "friend_request"
    FRIEND_REQUEST_ACCEPTED = "friend_request_accepted"
    SYSTEM = "system"


def preference_key(type_: NotificationType) -> str:
    """Preference toggle that gates a notification type."""
    match type_:
        case NotificationType.HABIT_REMINDER:
            return "habit_reminders"
        case NotificationType.SOCIAL:
            return "social_updates"
        case NotificationType.ACHIEVEMENT:
            return "achievement_alerts"
        case NotificationType.CHALLENGE | NotificationType.CHALLENGE_INVITE:
            return "challenge_updates"
        case NotificationType.FRIEND_REQUEST | NotificationType.FRIEND_REQUEST_ACCEPTED:
            return "friend_requests"
        case NotificationType.SYSTEM:
            return "system_notifications"


DevicePlatform = Literal["ios", "android", "web"]


class NotificationCreate(BaseModel):
    user_id: str
    type: NotificationType
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., max_length=1000)
    data: dict[str, Any] | None = None
    action_url: str | None = None


class NotificationFilters(BaseModel):
    unread: bool = False
    type: NotificationType | None = None
    limit: int | None = Field(None, ge=1, le=100)
    offset: int = Field(0, ge=0)


class MarkReadRequest(BaseModel):
    ids: str | list[str]


class PreferencesUpdate(BaseModel):
    push_enabled: bool | None = None
    email_enabled: bool | None = None
    in_app_enabled: bool | None = None
    habit_reminders: bool | None = None
    social_updates: bool | None = None
    achievement_alerts: bool | None = None
    challenge_updates: bool | None = None
    friend_requests: bool | None = None
    system_notifications: bool | None = None
    # HH:MM, checked by the service so a bad value becomes INVALID_TIME_FORMAT
    quiet_hours_start: str | None = None
    quiet_hours_end: str | None = None


class DeviceRegister(BaseModel):
    token: str = Field(..., min_length=1)
    platform: DevicePlatform
    device_name: str | None = Field(None, max_length=100)


class DeviceUnregister(BaseModel):
    token: str = Field(..., min_length=1)
