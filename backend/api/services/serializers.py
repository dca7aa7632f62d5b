"""Convert weekboard dataclasses into the API's Pydantic schemas."""

from __future__ import annotations

import math
from datetime import datetime

from weekboard.board import LeaderboardBoard
from weekboard.combos import Combo
from weekboard.ranking import RankedRow
from weekboard.week_window import WeekWindow

from backend.api.schemas.leaderboard import (
    BoardResponse,
    ComboOption,
    RankedRowSchema,
    WeekWindowSchema,
)


def window_to_schema(window: WeekWindow) -> WeekWindowSchema:
    return WeekWindowSchema(
        start=window.start,
        end=window.end,
        label=window.label(),
        timezone=window.timezone_name,
    )


def combo_to_option(combo: Combo) -> ComboOption:
    return ComboOption(
        car_name=combo.car_name,
        track_name=combo.track_name,
        lap_count=combo.lap_count,
        latest_start=combo.latest_start,
        label=combo.label(),
    )


def row_to_schema(row: RankedRow) -> RankedRowSchema:
    lap = row.lap
    return RankedRowSchema(
        key=lap.display_key,
        position=row.position,
        driver_name=lap.driver_name,
        driver_rating=lap.driver_rating,
        lap_time_s=lap.lap_time_s,
        lap_time_display=row.lap_time_display,
        delta_s=row.delta_s if math.isfinite(row.delta_s) else None,
        delta_display=row.delta_display,
        is_leader=row.is_leader,
        start_time=lap.start_time,
    )


def board_to_response(
    board: LeaderboardBoard, next_refresh_at: datetime | None = None
) -> BoardResponse:
    """Snapshot the board's current state for the client."""
    state = board.state
    selected = board.selected_combo()
    return BoardResponse(
        window=window_to_schema(state.window),
        combos=[combo_to_option(c) for c in state.combos],
        selected=combo_to_option(selected) if selected is not None else None,
        rows=[row_to_schema(r) for r in board.ranked_rows()],
        last_fetched_at=state.last_fetched_at,
        used_fallback=state.used_fallback,
        error=state.error,
        loading=board.loading,
        next_refresh_at=next_refresh_at,
    )
