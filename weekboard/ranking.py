"""Rank the laps of one combo and format times for display."""

from __future__ import annotations

import math
from dataclasses import dataclass

from weekboard.combos import Combo
from weekboard.laps import Lap

LEADER_MARKER = "—"


@dataclass(frozen=True)
class RankedRow:
    """A lap with its position and gap to the combo leader."""

    lap: Lap
    position: int
    delta_s: float

    @property
    def is_leader(self) -> bool:
        return self.position == 1

    @property
    def lap_time_display(self) -> str:
        return format_lap_time(self.lap.lap_time_s)

    @property
    def delta_display(self) -> str:
        return format_delta(self)


def rank_combo(combo: Combo | None) -> list[RankedRow]:
    """Order a combo's laps fastest first.

    Equal lap times keep their feed order.  The leader's delta is exactly
    zero; every other delta is measured against the leader's time.  An empty
    or missing combo ranks to an empty list.
    """
    if combo is None or not combo.laps:
        return []

    ordered = sorted(combo.laps, key=lambda lap: lap.lap_time_s)
    leader_time = ordered[0].lap_time_s
    rows = [RankedRow(lap=ordered[0], position=1, delta_s=0.0)]
    for position, lap in enumerate(ordered[1:], start=2):
        rows.append(RankedRow(lap=lap, position=position, delta_s=lap.lap_time_s - leader_time))
    return rows


def format_lap_time(total_seconds: float) -> str:
    """Format seconds as ``m:ss.mmm`` (e.g. ``83.456`` -> ``"1:23.456"``).

    Values too large to express in milliseconds fall back to ``%g``.
    """
    scaled = abs(total_seconds) * 1000
    if not math.isfinite(scaled):
        return f"{total_seconds:g}"
    millis_total = round(scaled)
    minutes, millis_rem = divmod(millis_total, 60_000)
    secs, millis = divmod(millis_rem, 1000)
    sign = "-" if total_seconds < 0 and millis_total else ""
    return f"{sign}{minutes}:{secs:02d}.{millis:03d}"


def format_delta(row: RankedRow) -> str:
    """Leader marker for position 1, ``+m:ss.mmm`` for everyone else."""
    if row.is_leader:
        return LEADER_MARKER
    return "+" + format_lap_time(row.delta_s)
