"""Pydantic schemas for analytics endpoints."""

from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel

TrendPeriod = Literal["week", "month", "quarter", "year"]
ExportFormat = Literal["json", "csv"]


class AnalyticsFilters(BaseModel):
    start_date: date | None = None
    end_date: date | None = None


class ExportRequest(BaseModel):
    format: ExportFormat = "json"
    sections: list[str] | None = None
    include_raw_data: bool = False
