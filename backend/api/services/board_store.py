"""Process-wide holder for the leaderboard board and its scheduler.

The board lives in memory only; a restart rebuilds it from the next fetch.
"""

from __future__ import annotations

from functools import partial

from weekboard.board import LeaderboardBoard, RefreshTrigger
from weekboard.feed_client import fetch_lap_feed
from weekboard.scheduler import RefreshScheduler

from backend.api.config import Settings

_board: LeaderboardBoard | None = None
_scheduler: RefreshScheduler | None = None


def build_board(settings: Settings) -> LeaderboardBoard:
    """Create a board fetching from the configured feed (or proxy) URL."""
    fetch = partial(
        fetch_lap_feed,
        settings.effective_feed_url,
        timeout_s=settings.request_timeout_s,
    )
    return LeaderboardBoard(fetch=fetch, tz=settings.timezone)


def build_scheduler(board: LeaderboardBoard, settings: Settings) -> RefreshScheduler:
    """Startup run may fall back to demo data; aligned runs may not."""
    return RefreshScheduler(
        partial(board.refresh, RefreshTrigger.SCHEDULED),
        startup=partial(board.refresh, RefreshTrigger.STARTUP),
        interval_minutes=settings.refresh_interval_minutes,
    )


def init_board(board: LeaderboardBoard, scheduler: RefreshScheduler | None = None) -> None:
    """Register the board (and its scheduler) served by the API."""
    global _board, _scheduler
    _board = board
    _scheduler = scheduler


def get_board() -> LeaderboardBoard | None:
    return _board


def get_scheduler() -> RefreshScheduler | None:
    return _scheduler


async def shutdown() -> None:
    """Stop the scheduler, discard in-flight cycles and drop the board.

    A refresh already in flight runs to completion (bounded by the feed
    timeout) and its result is discarded.
    """
    global _board, _scheduler
    if _scheduler is not None:
        _scheduler.stop()
    if _board is not None:
        _board.close()
    if _scheduler is not None:
        await _scheduler.wait_closed()
    _board = None
    _scheduler = None
