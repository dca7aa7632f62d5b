"""Weekly leaderboard endpoints: board view, combo selection, manual refresh."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from weekboard.board import LeaderboardBoard, RefreshTrigger
from weekboard.errors import UnknownComboError
from weekboard.laps import ComboKey
from weekboard.scheduler import RefreshScheduler

from backend.api.dependencies import get_board, get_scheduler
from backend.api.schemas.leaderboard import BoardResponse, ComboOption, SelectionRequest
from backend.api.services.serializers import board_to_response, combo_to_option

router = APIRouter()


def _view(board: LeaderboardBoard, scheduler: RefreshScheduler | None) -> BoardResponse:
    next_run = scheduler.next_run_at if scheduler is not None else None
    return board_to_response(board, next_refresh_at=next_run)


@router.get("", response_model=BoardResponse)
async def get_leaderboard(
    board: Annotated[LeaderboardBoard, Depends(get_board)],
    scheduler: Annotated[RefreshScheduler | None, Depends(get_scheduler)],
) -> BoardResponse:
    """Current week's board with the selected combo ranked."""
    return _view(board, scheduler)


@router.get("/combos", response_model=list[ComboOption])
async def list_combos(
    board: Annotated[LeaderboardBoard, Depends(get_board)],
) -> list[ComboOption]:
    """Combos for this week, most active first."""
    return [combo_to_option(c) for c in board.state.combos]


@router.put("/selection", response_model=BoardResponse)
async def select_combo(
    body: SelectionRequest,
    board: Annotated[LeaderboardBoard, Depends(get_board)],
    scheduler: Annotated[RefreshScheduler | None, Depends(get_scheduler)],
) -> BoardResponse:
    """Show a different combo.  Does not refetch or re-aggregate."""
    try:
        board.select(ComboKey(body.car_name, body.track_name))
    except UnknownComboError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _view(board, scheduler)


@router.post("/refresh", response_model=BoardResponse)
async def refresh_leaderboard(
    board: Annotated[LeaderboardBoard, Depends(get_board)],
    scheduler: Annotated[RefreshScheduler | None, Depends(get_scheduler)],
) -> BoardResponse:
    """Refetch now, outside the schedule.  Failures are returned as 502."""
    result = await board.refresh(RefreshTrigger.MANUAL)
    if result.error is not None:
        raise HTTPException(status_code=502, detail=result.error)
    return _view(board, scheduler)
