"""Weekly leaderboard window: Sunday 00:00 to the next Sunday 00:00, local time."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo

WEEK = timedelta(days=7)


@dataclass(frozen=True)
class WeekWindow:
    """Half-open ``[start, end)`` interval covering one leaderboard week."""

    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end

    @property
    def timezone_name(self) -> str:
        return self.start.tzname() or ""

    def label(self) -> str:
        """Short range label such as ``"Oct 18 - Oct 24"``."""
        last = self.end - timedelta(microseconds=1)
        return f"{self.start:%b} {self.start.day} - {last:%b} {last.day}"


def _local_now(tz: tzinfo | None) -> datetime:
    return datetime.now(tz) if tz is not None else datetime.now()


def _midnight(day: date, tz: tzinfo | None) -> datetime:
    """Midnight starting ``day`` in ``tz``, or in system local time when ``None``."""
    if tz is None:
        # Resolve the UTC offset in force on that day, not today's
        return datetime.combine(day, time(0)).astimezone()
    return datetime.combine(day, time(0), tzinfo=tz)


def compute_week_window(now: datetime | None = None, tz: tzinfo | None = None) -> WeekWindow:
    """Return the week window containing ``now``.

    The instant is converted to ``tz`` (system local time when ``None``),
    truncated to midnight and moved back to the most recent Sunday.  An
    instant exactly at Sunday midnight opens a new window.  ``end`` is the
    following Sunday midnight; across a DST change the window is an hour
    shorter or longer than seven days.
    """
    if now is None:
        local = _local_now(tz)
    elif now.tzinfo is None:
        local = now
    else:
        local = now.astimezone(tz)

    days_since_sunday = (local.weekday() + 1) % 7  # Monday == 0 in Python
    start_date = local.date() - timedelta(days=days_since_sunday)
    return WeekWindow(
        start=_midnight(start_date, tz),
        end=_midnight(start_date + WEEK, tz),
    )
