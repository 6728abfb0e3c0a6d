"""Fixed defaults for rows bootstrapped on a user's behalf."""

from __future__ import annotations

import copy
from typing import Any

DEFAULT_PRIVACY_SETTINGS: dict[str, Any] = {
    "profile_visibility": "public",
    "show_activity": True,
    "allow_friend_requests": True,
    "show_stats": True,
}

DEFAULT_PROFILE_NOTIFICATIONS: dict[str, Any] = {
    "email_notifications": True,
    "push_notifications": True,
    "friend_requests": True,
    "habit_reminders": True,
    "achievement_alerts": True,
    "social_interactions": True,
}

DEFAULT_AVATAR_TRAITS: dict[str, Any] = {
    "encouragement_style": "cheerful",
    "communication_frequency": "medium",
    "humor_level": 5,
    "formality": 5,
}

DEFAULT_AVATAR_APPEARANCE: dict[str, Any] = {
    "body_type": "athletic",
    "skin_tone": "#F5DEB3",
    "hair_style": "medium",
    "hair_color": "#4B0082",
    "outfit_id": "default",
    "accessories": [],
}


def default_profile(user_id: str, username: str, display_name: str | None = None) -> dict[str, Any]:
    """Profile row created at sign-up."""
    return {
        "user_id": user_id,
        "username": username,
        "display_name": display_name or username,
        "privacy_settings": copy.deepcopy(DEFAULT_PRIVACY_SETTINGS),
        "notification_preferences": copy.deepcopy(DEFAULT_PROFILE_NOTIFICATIONS),
    }


def default_avatar(user_id: str) -> dict[str, Any]:
    """Avatar row used at sign-up and when a profile read finds none."""
    return {
        "user_id": user_id,
        "name": "My Avatar",
        "personality_traits": copy.deepcopy(DEFAULT_AVATAR_TRAITS),
        "appearance": copy.deepcopy(DEFAULT_AVATAR_APPEARANCE),
        "level": 1,
        "experience": 0,
        "mood": 80,
        "energy": 100,
    }
