"""Shared test fixtures for weekboard core tests."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from weekboard.laps import Lap

# Wednesday; the surrounding week runs Sun 2026-10-18 00:00 -> Sun 2026-10-25 00:00 UTC
NOW = datetime(2026, 10, 21, 12, 0, tzinfo=UTC)
WEEK_START = datetime(2026, 10, 18, tzinfo=UTC)

RecordFactory = Callable[..., dict[str, Any]]
LapFactory = Callable[..., Lap]


def build_record(
    full_name: str = "Aron Day",
    lap_time: str = "58.8125",
    car_name: str = "Toyota GR86",
    track_name: str = "Lime Rock Park",
    start_time: datetime | str = NOW,
    **extra: Any,
) -> dict[str, Any]:
    """Build a raw feed record with string-typed fields like the upstream feed."""
    record: dict[str, Any] = {
        "fullName": full_name,
        "lapTime": lap_time,
        "carName": car_name,
        "trackName": track_name,
        "startTime": start_time.isoformat() if isinstance(start_time, datetime) else start_time,
    }
    record.update(extra)
    return record


def build_lap(
    lap_time_s: float = 60.0,
    car_name: str = "CarA",
    track_name: str = "TrackX",
    start_time: datetime = NOW,
    driver_name: str = "Driver",
    lap_id: str | None = None,
) -> Lap:
    """Build an already-normalized lap."""
    return Lap(
        driver_name=driver_name,
        lap_time_s=lap_time_s,
        car_name=car_name,
        track_name=track_name,
        start_time=start_time,
        lap_id=lap_id,
    )


@pytest.fixture
def make_record() -> RecordFactory:
    return build_record


@pytest.fixture
def make_lap() -> LapFactory:
    return build_lap


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def scenario_a_records() -> list[dict[str, Any]]:
    """Three GR86 @ Lime Rock laps inside the current week, slowest first."""
    return [
        build_record("Max Speedman", "60.245", start_time=NOW - timedelta(minutes=58)),
        build_record("Aron Day", "58.8125", start_time=NOW),
        build_record("Jane Driver", "59.103", start_time=NOW - timedelta(minutes=30)),
    ]
