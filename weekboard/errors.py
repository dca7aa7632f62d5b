"""Pipeline-level error kinds raised by the weekboard core.

Malformed individual feed records are never raised: the normalizer drops them.
"""

from __future__ import annotations


class LeaderboardError(Exception):
    """Base class for failures surfaced to the caller of a refresh cycle."""


class InvalidResponseShapeError(LeaderboardError, ValueError):
    """The feed payload is not a JSON array of records."""

    def __init__(self, message: str = "Unexpected response shape") -> None:
        super().__init__(message)


class FetchFailureError(LeaderboardError):
    """Transport error, timeout, or non-success status from the feed or proxy."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UnknownComboError(LeaderboardError, KeyError):
    """A selection was requested for a combo that is not on the board."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else ""
