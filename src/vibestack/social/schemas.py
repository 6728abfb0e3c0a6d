"""Pydantic schemas for social endpoints."""

from __future__ import annotations

from datetime import date
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

FriendStatus = Literal["pending", "accepted", "rejected"]
ChallengeStatus = Literal["pending", "active", "completed"]


class FriendRequestCreate(BaseModel):
    friend_id: UUID


class BlockCreate(BaseModel):
    blocked_id: UUID


class ChallengeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    habit_id: str
    start_date: date
    end_date: date
    target_count: int = Field(1, ge=1)
    participant_ids: list[str] = Field(default_factory=list)


class ChallengeProgressUpdate(BaseModel):
    increment: int = Field(1, ge=1)
