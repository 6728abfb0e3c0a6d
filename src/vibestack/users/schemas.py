"""Pydantic schemas for user endpoints."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class PrivacySettingsUpdate(BaseModel):
    profile_visibility: Literal["public", "friends", "private"] | None = None
    show_activity: bool | None = None
    allow_friend_requests: bool | None = None
    show_stats: bool | None = None


class ProfileNotificationsUpdate(BaseModel):
    email_notifications: bool | None = None
    push_notifications: bool | None = None
    friend_requests: bool | None = None
    habit_reminders: bool | None = None
    achievement_alerts: bool | None = None
    social_interactions: bool | None = None


class ProfileUpdate(BaseModel):
    username: str | None = Field(None, min_length=3, max_length=30)
    display_name: str | None = Field(None, max_length=100)
    avatar_url: str | None = Field(None, max_length=2048)
    bio: str | None = Field(None, max_length=500)
    privacy_settings: PrivacySettingsUpdate | None = None
    notification_preferences: ProfileNotificationsUpdate | None = None
