"""FastAPI dependency injection functions."""

from __future__ import annotations

from functools import lru_cache

from fastapi import HTTPException
from weekboard.board import LeaderboardBoard
from weekboard.scheduler import RefreshScheduler

from backend.api.config import Settings
from backend.api.services import board_store


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton application settings."""
    return Settings()


def get_board() -> LeaderboardBoard:
    """Return the live board, or 503 while the app is not started."""
    board = board_store.get_board()
    if board is None:
        raise HTTPException(status_code=503, detail="Leaderboard not initialised")
    return board


def get_scheduler() -> RefreshScheduler | None:
    """Return the refresh scheduler, if one is running for this process."""
    return board_store.get_scheduler()
