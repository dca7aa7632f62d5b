"""Pydantic schemas for the weekly leaderboard endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class WeekWindowSchema(BaseModel):
    """The Sunday-to-Sunday window the board covers."""

    start: datetime
    end: datetime
    label: str
    timezone: str


class ComboOption(BaseModel):
    """One car/track combination available this week."""

    car_name: str
    track_name: str
    lap_count: int
    latest_start: datetime | None = None
    label: str


class RankedRowSchema(BaseModel):
    """A single leaderboard row."""

    key: str
    position: int
    driver_name: str
    driver_rating: int | None = None
    lap_time_s: float
    lap_time_display: str
    delta_s: float | None = None
    delta_display: str
    is_leader: bool
    start_time: datetime


class BoardResponse(BaseModel):
    """Everything needed to draw the board."""

    window: WeekWindowSchema
    combos: list[ComboOption]
    selected: ComboOption | None = None
    rows: list[RankedRowSchema]
    last_fetched_at: datetime | None = None
    used_fallback: bool = False
    error: str | None = None
    loading: bool = False
    next_refresh_at: datetime | None = None


class SelectionRequest(BaseModel):
    """Request body for choosing the displayed combo."""

    car_name: str = Field(min_length=1)
    track_name: str = Field(min_length=1)
