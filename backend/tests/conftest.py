"""Test fixtures for the backend test suite."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from weekboard.board import LeaderboardBoard

from backend.api.main import app
from backend.api.services import board_store

# Wednesday of the week Sun 2026-10-18 -> Sun 2026-10-25 UTC
NOW = datetime(2026, 10, 21, 12, 0, tzinfo=UTC)


def build_feed_record(
    full_name: str,
    lap_time: str,
    car_name: str = "Toyota GR86",
    track_name: str = "Lime Rock Park",
    minutes_ago: int = 0,
) -> dict[str, Any]:
    """Build a raw record shaped like the public lap feed."""
    return {
        "fullName": full_name,
        "lapTime": lap_time,
        "carName": car_name,
        "trackName": track_name,
        "startTime": (NOW - timedelta(minutes=minutes_ago)).isoformat(),
        "driverRating": "1500",
    }


class FakeFeed:
    """Stand-in for the HTTP feed: returns ``payload`` or raises ``error``."""

    def __init__(self) -> None:
        self.payload: Any = [
            build_feed_record("Max Speedman", "60.245", minutes_ago=58),
            build_feed_record("Aron Day", "58.8125"),
            build_feed_record("Jane Driver", "59.103", minutes_ago=30),
            build_feed_record("Solo", "95.5", car_name="Mazda MX-5", track_name="Spa"),
        ]
        self.error: Exception | None = None
        self.calls = 0

    async def __call__(self) -> Any:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.payload


@pytest.fixture
def fake_feed() -> FakeFeed:
    return FakeFeed()


@pytest_asyncio.fixture
async def board(fake_feed: FakeFeed) -> AsyncGenerator[LeaderboardBoard, None]:
    """A board registered with the API, loaded once from the fake feed.

    No scheduler runs; refreshes happen only when a test asks for one.
    """
    instance = LeaderboardBoard(fetch=fake_feed, tz=UTC, clock=lambda: NOW)
    await instance.refresh()
    board_store.init_board(instance)
    yield instance
    await board_store.shutdown()


@pytest_asyncio.fixture
async def client(board: LeaderboardBoard) -> AsyncGenerator[AsyncClient, None]:
    """Yield an async HTTP test client wired to the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
