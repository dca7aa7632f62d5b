"""Async client for the lap feed (or the CORS proxy in front of it).

The feed returns a JSON array of lap records.  Transport problems and
non-success statuses are raised as :class:`FetchFailureError`; a body that is
not a JSON array is raised as :class:`InvalidResponseShapeError`.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from weekboard.errors import FetchFailureError, InvalidResponseShapeError

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_S = 10.0


def _cache_busted(url: str) -> str:
    """Append a ``cb=<epoch ms>`` query parameter so intermediaries never cache."""
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}cb={int(time.time() * 1000)}"


async def fetch_lap_feed(url: str, *, timeout_s: float = REQUEST_TIMEOUT_S) -> list[Any]:
    """Fetch the raw lap records.

    Parameters
    ----------
    url:
        Upstream feed URL, or the proxy route forwarding to it.
    timeout_s:
        Total request timeout in seconds.

    Returns
    -------
    list
        The decoded JSON array, entries untouched.

    Raises
    ------
    FetchFailureError
        Network error, timeout, or non-2xx status.
    InvalidResponseShapeError
        Body is not valid JSON or not an array.
    """
    try:
        async with httpx.AsyncClient(timeout=timeout_s) as client:
            response = await client.get(
                _cache_busted(url), headers={"Accept": "application/json"}
            )
            response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        status = exc.response.status_code
        logger.warning("Lap feed returned status %d for %s", status, url)
        raise FetchFailureError(f"Request failed: {status}", status_code=status) from exc
    except httpx.RequestError as exc:
        logger.warning("Lap feed request to %s failed: %s", url, exc)
        raise FetchFailureError(str(exc) or "Failed to fetch") from exc

    try:
        data = response.json()
    except ValueError as exc:
        logger.warning("Lap feed at %s returned a non-JSON body", url)
        raise InvalidResponseShapeError() from exc

    if not isinstance(data, list):
        logger.warning("Lap feed at %s returned %s instead of an array", url, type(data).__name__)
        raise InvalidResponseShapeError()

    return data
