"""Leaderboard controller: owns the displayed state and applies refresh cycles.

Every refresh cycle fetches a snapshot of the feed, normalizes it and
aggregates it for the current week.  Cycles may overlap (a manual refresh
racing a scheduled one); each takes a sequence number when it starts and its
outcome is applied only if no newer cycle has been applied already.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from datetime import datetime, tzinfo
from typing import Any

from weekboard.combos import Combo, aggregate_combos, find_combo
from weekboard.demo_data import demo_records
from weekboard.errors import LeaderboardError, UnknownComboError
from weekboard.laps import ComboKey, Lap, normalize_laps
from weekboard.ranking import RankedRow, rank_combo
from weekboard.week_window import WeekWindow, compute_week_window

logger = logging.getLogger(__name__)

FeedFetcher = Callable[[], Awaitable[Any]]


class RefreshTrigger(enum.Enum):
    """What started a refresh cycle.  Only startup may fall back to demo data."""

    STARTUP = "startup"
    SCHEDULED = "scheduled"
    MANUAL = "manual"


@dataclass(frozen=True)
class BoardState:
    """Immutable snapshot of everything the board displays."""

    window: WeekWindow
    laps: tuple[Lap, ...] = ()
    combos: tuple[Combo, ...] = ()
    selected_key: ComboKey | None = None
    last_fetched_at: datetime | None = None
    used_fallback: bool = False
    error: str | None = None
    cycle: int = 0


@dataclass(frozen=True)
class RefreshResult:
    """Outcome of one refresh cycle."""

    cycle: int
    trigger: RefreshTrigger
    applied: bool
    used_fallback: bool = False
    error: str | None = None
    lap_count: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


def resolve_selection(current: ComboKey | None, combos: tuple[Combo, ...]) -> ComboKey | None:
    """Keep the current selection if it still exists, else fall back to the top combo."""
    if current is not None and find_combo(combos, current) is not None:
        return current
    return combos[0].key if combos else None


@dataclass
class LeaderboardBoard:
    """State container for one weekly leaderboard.

    Parameters
    ----------
    fetch:
        Coroutine function returning the raw feed payload.
    tz:
        Board timezone for the week window; ``None`` uses system local time.
    clock:
        Returns "now"; injected in tests.
    fallback:
        Produces demo records for a failed startup fetch.
    """

    fetch: FeedFetcher
    tz: tzinfo | None = None
    clock: Callable[[], datetime] | None = None
    fallback: Callable[[datetime | None], list[dict[str, Any]]] = demo_records
    state: BoardState = field(init=False)
    in_flight: int = field(default=0, init=False)
    closed: bool = field(default=False, init=False)
    _issued: int = field(default=0, init=False, repr=False)

    def __post_init__(self) -> None:
        self.state = BoardState(window=compute_week_window(self._now(), self.tz))

    def _now(self) -> datetime | None:
        return self.clock() if self.clock is not None else None

    # -- Reads -----------------------------------------------------------------

    @property
    def loading(self) -> bool:
        return self.in_flight > 0

    def selected_combo(self) -> Combo | None:
        return find_combo(self.state.combos, self.state.selected_key)

    def ranked_rows(self) -> list[RankedRow]:
        return rank_combo(self.selected_combo())

    # -- Transitions -------------------------------------------------------------

    def select(self, key: ComboKey) -> Combo:
        """Select a combo currently on the board."""
        combo = find_combo(self.state.combos, key)
        if combo is None:
            raise UnknownComboError(f"No combo {key.car_name} @ {key.track_name} this week")
        self.state = replace(self.state, selected_key=combo.key)
        return combo

    def apply_laps(
        self, laps: list[Lap], cycle: int, *, used_fallback: bool = False
    ) -> BoardState:
        """Aggregate normalized laps for the current week and make them the board state."""
        now = self._now()
        window = compute_week_window(now, self.tz)
        combos = tuple(aggregate_combos(laps, window))
        self.state = BoardState(
            window=window,
            laps=tuple(laps),
            combos=combos,
            selected_key=resolve_selection(self.state.selected_key, combos),
            last_fetched_at=now if now is not None else datetime.now(self.tz).astimezone(self.tz),
            used_fallback=used_fallback,
            error=None,
            cycle=cycle,
        )
        return self.state

    def close(self) -> None:
        """Discard the results of any cycle still in flight."""
        self.closed = True

    async def refresh(self, trigger: RefreshTrigger = RefreshTrigger.MANUAL) -> RefreshResult:
        """Run one fetch-normalize-aggregate cycle.

        Pipeline errors never escape: they are returned in the result and,
        when the cycle is still the newest, recorded on the state.
        """
        self._issued += 1
        cycle = self._issued
        self.in_flight += 1
        try:
            raw = await self.fetch()
            laps = normalize_laps(raw, self.tz)
        except LeaderboardError as exc:
            return self._apply_failure(cycle, trigger, str(exc) or "Failed to load data")
        finally:
            self.in_flight -= 1

        if not self._is_current(cycle):
            logger.info("Discarding stale %s cycle %d", trigger.value, cycle)
            return RefreshResult(cycle=cycle, trigger=trigger, applied=False, lap_count=len(laps))

        self.apply_laps(laps, cycle)
        logger.info(
            "Applied %s cycle %d: %d lap(s), %d combo(s) this week",
            trigger.value,
            cycle,
            len(laps),
            len(self.state.combos),
        )
        return RefreshResult(cycle=cycle, trigger=trigger, applied=True, lap_count=len(laps))

    # -- Internals -------------------------------------------------------------

    def _is_current(self, cycle: int) -> bool:
        return not self.closed and cycle > self.state.cycle

    def _apply_failure(self, cycle: int, trigger: RefreshTrigger, message: str) -> RefreshResult:
        logger.warning("%s refresh cycle %d failed: %s", trigger.value.capitalize(), cycle, message)
        if not self._is_current(cycle):
            return RefreshResult(cycle=cycle, trigger=trigger, applied=False, error=message)

        has_live_data = self.state.last_fetched_at is not None and not self.state.used_fallback
        if trigger is RefreshTrigger.STARTUP and not has_live_data:
            laps = normalize_laps(self.fallback(self._now()), self.tz)
            self.apply_laps(laps, cycle, used_fallback=True)
            self.state = replace(self.state, error=message)
            logger.info("Showing %d fallback lap(s) after failed startup fetch", len(laps))
            return RefreshResult(
                cycle=cycle,
                trigger=trigger,
                applied=True,
                used_fallback=True,
                error=message,
                lap_count=len(laps),
            )

        # Keep whatever is displayed; only the error changes
        self.state = replace(self.state, error=message, cycle=cycle)
        return RefreshResult(cycle=cycle, trigger=trigger, applied=True, error=message)
