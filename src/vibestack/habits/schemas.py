"""Pydantic schemas for habit endpoints."""

from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel, Field

HabitCategory = Literal["health", "productivity", "personal", "social", "learning", "other"]
HabitDifficulty = Literal["easy", "medium", "hard"]


class HabitFrequency(BaseModel):
    type: Literal["daily", "weekly", "custom"]
    custom_frequency_days: list[int] | None = None  # 0=Sunday .. 6=Saturday


class HabitCreate(BaseModel):
    name: str = Field(..., max_length=100)
    description: str | None = Field(None, max_length=500)
    frequency: HabitFrequency
    target_count: int = 1
    category: HabitCategory = "other"
    difficulty: HabitDifficulty = "medium"
    reminder_time: str | None = None
    is_public: bool | None = None


class HabitUpdate(BaseModel):
    name: str | None = Field(None, max_length=100)
    description: str | None = Field(None, max_length=500)
    frequency: HabitFrequency | None = None
    target_count: int | None = None
    category: HabitCategory | None = None
    difficulty: HabitDifficulty | None = None
    reminder_time: str | None = None
    is_public: bool | None = None
    is_active: bool | None = None


class ProgressCreate(BaseModel):
    completed_count: int = Field(..., ge=0)
    notes: str | None = Field(None, max_length=500)


class ProgressFilters(BaseModel):
    start_date: date | None = None
    end_date: date | None = None
