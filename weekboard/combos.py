"""Group this week's laps by car/track combination and order the combos."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

from weekboard.laps import ComboKey, Lap
from weekboard.week_window import WeekWindow


@dataclass(frozen=True)
class Combo:
    """All laps of one (car, track) pair inside a week window, in feed order."""

    key: ComboKey
    laps: tuple[Lap, ...]

    @property
    def car_name(self) -> str:
        return self.key.car_name

    @property
    def track_name(self) -> str:
        return self.key.track_name

    @property
    def lap_count(self) -> int:
        return len(self.laps)

    @property
    def latest_start(self) -> datetime | None:
        """Most recent lap start, or None for an empty combo."""
        return max((lap.start_time for lap in self.laps), default=None)

    def label(self) -> str:
        return f"{self.car_name} @ {self.track_name} ({self.lap_count})"


def filter_to_window(laps: Iterable[Lap], window: WeekWindow) -> list[Lap]:
    """Keep laps whose start time falls in ``[window.start, window.end)``."""
    return [lap for lap in laps if window.contains(lap.start_time)]


def group_by_combo(laps: Iterable[Lap]) -> list[Combo]:
    """Partition laps by combo key, in first-seen key order.

    Laps keep their relative input order inside each group.
    """
    groups: dict[ComboKey, list[Lap]] = {}
    for lap in laps:
        groups.setdefault(lap.combo_key, []).append(lap)
    return [Combo(key=key, laps=tuple(group)) for key, group in groups.items()]


def _sort_key(combo: Combo) -> tuple[int, float]:
    latest = combo.latest_start
    return (combo.lap_count, latest.timestamp() if latest is not None else float("-inf"))


def aggregate_combos(laps: Iterable[Lap], window: WeekWindow) -> list[Combo]:
    """Build the ordered combo list for a week window.

    Combos are ordered by descending lap count, ties broken by the most
    recent lap start (newest first).  The first combo is the default
    selection.
    """
    combos = group_by_combo(filter_to_window(laps, window))
    # reverse=True keeps sort stability: full ties stay in first-seen order
    return sorted(combos, key=_sort_key, reverse=True)


def find_combo(combos: Sequence[Combo], key: ComboKey | None) -> Combo | None:
    """Return the combo with ``key``, or None when absent."""
    if key is None:
        return None
    for combo in combos:
        if combo.key == key:
            return combo
    return None
