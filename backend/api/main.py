"""FastAPI application entry point."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from backend.api.dependencies import get_settings
from backend.api.routers import leaderboards
from backend.api.services import board_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the board, start the refresh schedule, stop it on shutdown."""
    logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)

    board = board_store.build_board(settings)
    scheduler = None
    if settings.scheduler_enabled:
        scheduler = board_store.build_scheduler(board, settings)
        scheduler.start()
    else:
        logger.info("Refresh scheduler disabled; board fills on manual refresh only")
    board_store.init_board(board, scheduler)
    logger.info("Serving weekly leaderboard from %s", settings.effective_feed_url)

    yield

    # Teardown: no pending timer may outlive the app
    await board_store.shutdown()


load_dotenv()  # Populate os.environ from .env before reading settings
settings = get_settings()

app = FastAPI(
    title="Weekboard API",
    description="Weekly car/track lap-time leaderboard",
    version="0.1.0",
    lifespan=lifespan,
    redirect_slashes=False,
)


# -- Cache-Control middleware --------------------------------------------------

# Route prefix -> Cache-Control header value
_CACHE_RULES: list[tuple[str, str]] = [
    # Board changes on every refresh cycle and on selection
    ("/api/leaderboard", "no-store"),
]


class CacheControlMiddleware(BaseHTTPMiddleware):
    """Set Cache-Control headers on successful GET responses by path."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)

        if request.method != "GET" or response.status_code >= 400:
            return response
        if "cache-control" in response.headers:
            return response

        path = request.url.path
        for prefix, value in _CACHE_RULES:
            if path.startswith(prefix):
                response.headers["Cache-Control"] = value
                break
        else:
            response.headers["Cache-Control"] = "no-cache"

        return response


# -- Exception handlers --------------------------------------------------------


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unhandled exceptions.

    Logs the full traceback server-side but returns a safe generic message
    to the client (no internal details leaked).
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    """Return 422 for ValueError (bad input data that passed validation)."""
    logger.warning("ValueError on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc)},
    )


# -- Middleware (order matters: last added = first executed) ------------------

app.add_middleware(CacheControlMiddleware)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -- Routers -------------------------------------------------------------------

app.include_router(leaderboards.router, prefix="/api/leaderboard", tags=["leaderboard"])


# -- Health --------------------------------------------------------------------


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Return a simple health-check response."""
    return {"status": "ok"}
