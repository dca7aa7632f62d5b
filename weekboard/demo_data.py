"""Illustrative feed records used when the startup fetch fails."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any


def demo_records(now: datetime | None = None) -> list[dict[str, Any]]:
    """Return three well-formed records in the upstream feed's shape.

    Start times are relative to ``now`` so the laps land in the current week
    on most days.
    """
    now = now if now is not None else datetime.now(UTC)
    return [
        {
            "fullName": "Aron Day",
            "lapTime": "58.8125",
            "driverRating": "1892",
            "eventId": "01K2MVHA0SVZW8ERD31WSBBY33",
            "lapId": "01K2MVWYJYV0J7MJVAQ9YAX410",
            "trackTemp": "27",
            "trackUsage": "28",
            "fuelUsed": "0.6845195",
            "carId": "145",
            "carName": "Toyota GR86",
            "trackName": "Lime Rock Park",
            "trackId": "31",
            "startTime": now.isoformat(),
        },
        {
            "fullName": "Jane Driver",
            "lapTime": "59.103",
            "driverRating": "2101",
            "lapId": "demo-2",
            "trackTemp": "27",
            "trackUsage": "29",
            "carId": "145",
            "carName": "Toyota GR86",
            "trackName": "Lime Rock Park",
            "trackId": "31",
            "startTime": (now - timedelta(minutes=30)).isoformat(),
        },
        {
            "fullName": "Max Speedman",
            "lapTime": "60.245",
            "driverRating": "1705",
            "lapId": "demo-3",
            "trackTemp": "27",
            "trackUsage": "26",
            "carId": "145",
            "carName": "Toyota GR86",
            "trackName": "Lime Rock Park",
            "trackId": "31",
            "startTime": (now - timedelta(minutes=58)).isoformat(),
        },
    ]
