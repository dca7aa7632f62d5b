"""Normalize raw lap-feed entries into validated :class:`Lap` values.

The upstream feed is best-effort: every field arrives as loosely-typed JSON
(mostly strings) and some entries are incomplete.  Entries that cannot be
turned into a valid lap are dropped rather than failing the whole batch.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Any, NamedTuple

from weekboard.errors import InvalidResponseShapeError

logger = logging.getLogger(__name__)


class ComboKey(NamedTuple):
    """Grouping key of a leaderboard combo."""

    car_name: str
    track_name: str


@dataclass(frozen=True)
class Lap:
    """One validated lap submission."""

    driver_name: str
    lap_time_s: float
    car_name: str
    track_name: str
    start_time: datetime
    driver_rating: int | None = None
    event_id: str | None = None
    lap_id: str | None = None
    track_temp_c: float | None = None
    track_usage_pct: float | None = None
    fuel_used_l: float | None = None
    car_id: str | None = None
    track_id: str | None = None

    @property
    def combo_key(self) -> ComboKey:
        return ComboKey(self.car_name, self.track_name)

    @property
    def display_key(self) -> str:
        """Stable key for UI lists; falls back to driver + time without a lap id."""
        if self.lap_id:
            return self.lap_id
        return f"{self.driver_name}{self.lap_time_s}"


def _parse_float(value: Any) -> float | None:
    """Parse a numeric field; ``None`` for missing, unparseable or non-finite values."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _parse_int(value: Any) -> int | None:
    number = _parse_float(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


def _parse_text(value: Any) -> str | None:
    """Return stripped text, stringifying numeric ids; blank becomes ``None``."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str):
        return None
    text = value.strip()
    return text or None


def _parse_timestamp(value: Any, tz: tzinfo | None) -> datetime | None:
    """Parse an ISO-8601 timestamp into an aware datetime."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        # Zulu suffix in either case
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        # Naive timestamps are wall-clock times in the board's timezone
        return parsed.replace(tzinfo=tz) if tz is not None else parsed.astimezone()
    return parsed


def normalize_record(record: Any, tz: tzinfo | None = None) -> Lap | None:
    """Convert one raw feed entry into a :class:`Lap`.

    Returns ``None`` when the entry is malformed: not a mapping, a lap time
    that is missing or not finite, a blank driver, car or track name, or a
    start time that does not parse.
    """
    if not isinstance(record, Mapping):
        return None

    lap_time = _parse_float(record.get("lapTime"))
    driver_name = _parse_text(record.get("fullName"))
    car_name = _parse_text(record.get("carName"))
    track_name = _parse_text(record.get("trackName"))
    start_time = _parse_timestamp(record.get("startTime"), tz)

    if lap_time is None or start_time is None:
        return None
    if not (driver_name and car_name and track_name):
        return None

    return Lap(
        driver_name=driver_name,
        lap_time_s=lap_time,
        car_name=car_name,
        track_name=track_name,
        start_time=start_time,
        driver_rating=_parse_int(record.get("driverRating")),
        event_id=_parse_text(record.get("eventId")),
        lap_id=_parse_text(record.get("lapId")),
        track_temp_c=_parse_float(record.get("trackTemp")),
        track_usage_pct=_parse_float(record.get("trackUsage")),
        fuel_used_l=_parse_float(record.get("fuelUsed")),
        car_id=_parse_text(record.get("carId")),
        track_id=_parse_text(record.get("trackId")),
    )


def normalize_laps(raw: Any, tz: tzinfo | None = None) -> list[Lap]:
    """Normalize a feed payload into laps, preserving input order.

    Parameters
    ----------
    raw:
        The decoded JSON payload.  Must be a list (or tuple) of records.
    tz:
        Timezone applied to timestamps without an offset.  ``None`` means the
        system local timezone.

    Raises
    ------
    InvalidResponseShapeError
        If ``raw`` is not a sequence of records.
    """
    if not isinstance(raw, (list, tuple)):
        raise InvalidResponseShapeError()

    laps: list[Lap] = []
    for record in raw:
        lap = normalize_record(record, tz)
        if lap is not None:
            laps.append(lap)

    dropped = len(raw) - len(laps)
    if dropped:
        logger.debug("Dropped %d malformed lap record(s) of %d", dropped, len(raw))
    return laps
