"""Tests for weekboard.board: refresh cycles, fallback policy, selection state."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from tests.conftest import NOW, build_record
from weekboard.board import LeaderboardBoard, RefreshTrigger, resolve_selection
from weekboard.combos import aggregate_combos
from weekboard.demo_data import demo_records
from weekboard.errors import FetchFailureError, InvalidResponseShapeError, UnknownComboError
from weekboard.laps import ComboKey, normalize_laps
from weekboard.week_window import compute_week_window

CAR_A = ComboKey("CarA", "TrackX")
CAR_B = ComboKey("CarB", "TrackY")


class FeedStub:
    """Queue of payloads (or exceptions) handed out one per fetch."""

    def __init__(self, *responses: Any) -> None:
        self.responses = list(responses)
        self.calls = 0

    async def __call__(self) -> Any:
        self.calls += 1
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _records(combo: ComboKey, count: int, base_time: float = 60.0) -> list[dict[str, Any]]:
    return [
        build_record(
            full_name=f"{combo.car_name}-{i}",
            lap_time=str(base_time + i),
            car_name=combo.car_name,
            track_name=combo.track_name,
            start_time=NOW - timedelta(minutes=i),
        )
        for i in range(count)
    ]


def _board(fetch: Any) -> LeaderboardBoard:
    return LeaderboardBoard(fetch=fetch, tz=UTC, clock=lambda: NOW)


class TestRefresh:
    @pytest.mark.asyncio
    async def test_success_builds_state(self) -> None:
        board = _board(FeedStub(_records(CAR_A, 5) + _records(CAR_B, 2)))
        result = await board.refresh(RefreshTrigger.SCHEDULED)

        assert result.applied and result.ok
        assert result.lap_count == 7
        state = board.state
        assert [c.key for c in state.combos] == [CAR_A, CAR_B]
        assert state.selected_key == CAR_A
        assert state.last_fetched_at == NOW
        assert not state.used_fallback
        assert state.error is None
        assert [r.position for r in board.ranked_rows()] == [1, 2, 3, 4, 5]

    @pytest.mark.asyncio
    async def test_empty_feed_is_not_an_error(self) -> None:
        board = _board(FeedStub([]))
        result = await board.refresh()
        assert result.ok
        assert board.state.combos == ()
        assert board.state.selected_key is None
        assert board.ranked_rows() == []

    @pytest.mark.asyncio
    async def test_invalid_shape_surfaces_as_error(self) -> None:
        board = _board(FeedStub({"laps": []}))
        result = await board.refresh(RefreshTrigger.MANUAL)
        assert result.error == "Unexpected response shape"
        assert board.state.error == "Unexpected response shape"

    @pytest.mark.asyncio
    async def test_manual_failure_keeps_data_and_never_falls_back(self) -> None:
        board = _board(FeedStub(_records(CAR_A, 2), FetchFailureError("Request failed: 500", 500)))
        await board.refresh(RefreshTrigger.SCHEDULED)
        result = await board.refresh(RefreshTrigger.MANUAL)

        assert result.error == "Request failed: 500"
        assert not result.used_fallback
        assert board.state.error == "Request failed: 500"
        assert [c.key for c in board.state.combos] == [CAR_A]
        assert not board.state.used_fallback

    @pytest.mark.asyncio
    async def test_scheduled_failure_never_falls_back(self) -> None:
        board = _board(FeedStub(FetchFailureError("Failed to fetch")))
        result = await board.refresh(RefreshTrigger.SCHEDULED)
        assert not result.used_fallback
        assert board.state.combos == ()
        assert board.state.error == "Failed to fetch"

    @pytest.mark.asyncio
    async def test_startup_failure_uses_fallback(self) -> None:
        board = _board(FeedStub(FetchFailureError("Failed to fetch")))
        result = await board.refresh(RefreshTrigger.STARTUP)

        assert result.used_fallback
        assert result.error == "Failed to fetch"
        state = board.state
        assert state.used_fallback
        assert state.error == "Failed to fetch"
        assert state.selected_key == ComboKey("Toyota GR86", "Lime Rock Park")
        assert [r.lap.lap_time_s for r in board.ranked_rows()] == [58.8125, 59.103, 60.245]

    @pytest.mark.asyncio
    async def test_success_after_fallback_clears_flag(self) -> None:
        board = _board(FeedStub(FetchFailureError("down"), _records(CAR_A, 1)))
        await board.refresh(RefreshTrigger.STARTUP)
        await board.refresh(RefreshTrigger.SCHEDULED)
        assert not board.state.used_fallback
        assert board.state.error is None
        assert board.state.selected_key == CAR_A

    @pytest.mark.asyncio
    async def test_fallback_never_overwrites_live_data(self) -> None:
        board = _board(FeedStub(_records(CAR_A, 1), FetchFailureError("down")))
        await board.refresh(RefreshTrigger.SCHEDULED)
        result = await board.refresh(RefreshTrigger.STARTUP)
        assert not result.used_fallback
        assert [c.key for c in board.state.combos] == [CAR_A]

    @pytest.mark.asyncio
    async def test_unexpected_errors_propagate(self) -> None:
        board = _board(FeedStub(RuntimeError("bug")))
        with pytest.raises(RuntimeError):
            await board.refresh()
        assert board.in_flight == 0


class TestLastWriteWins:
    @pytest.mark.asyncio
    async def test_older_cycle_finishing_late_is_discarded(self) -> None:
        slow_gate = asyncio.Event()
        responses = {1: _records(CAR_A, 3), 2: _records(CAR_B, 1)}
        calls = 0

        async def fetch() -> Any:
            nonlocal calls
            calls += 1
            cycle = calls
            if cycle == 1:
                await slow_gate.wait()
            return responses[cycle]

        board = _board(fetch)
        slow = asyncio.create_task(board.refresh(RefreshTrigger.SCHEDULED))
        await asyncio.sleep(0)
        assert board.loading

        fast_result = await board.refresh(RefreshTrigger.MANUAL)
        slow_gate.set()
        slow_result = await slow

        assert fast_result.applied
        assert not slow_result.applied
        assert [c.key for c in board.state.combos] == [CAR_B]
        assert board.state.cycle == fast_result.cycle
        assert not board.loading

    @pytest.mark.asyncio
    async def test_stale_failure_does_not_set_error(self) -> None:
        gate = asyncio.Event()
        calls = 0

        async def fetch() -> Any:
            nonlocal calls
            calls += 1
            if calls == 1:
                await gate.wait()
                raise FetchFailureError("late failure")
            return _records(CAR_A, 1)

        board = _board(fetch)
        slow = asyncio.create_task(board.refresh(RefreshTrigger.STARTUP))
        await asyncio.sleep(0)
        await board.refresh(RefreshTrigger.MANUAL)
        gate.set()
        result = await slow

        assert not result.applied
        assert not result.used_fallback
        assert board.state.error is None
        assert not board.state.used_fallback

    @pytest.mark.asyncio
    async def test_result_after_close_is_discarded(self) -> None:
        gate = asyncio.Event()

        async def fetch() -> Any:
            await gate.wait()
            return _records(CAR_A, 2)

        board = _board(fetch)
        pending = asyncio.create_task(board.refresh(RefreshTrigger.SCHEDULED))
        await asyncio.sleep(0)
        board.close()
        gate.set()
        result = await pending

        assert not result.applied
        assert board.state.combos == ()


class TestSelection:
    @pytest.mark.asyncio
    async def test_user_selection_persists_across_refresh(self) -> None:
        board = _board(
            FeedStub(
                _records(CAR_A, 3) + _records(CAR_B, 1),
                _records(CAR_A, 4) + _records(CAR_B, 2),
            )
        )
        await board.refresh()
        board.select(CAR_B)
        await board.refresh()
        assert board.state.selected_key == CAR_B
        assert board.selected_combo() is not None
        assert board.selected_combo().lap_count == 2  # type: ignore[union-attr]

    @pytest.mark.asyncio
    async def test_vanished_selection_falls_back_to_top(self) -> None:
        car_c = ComboKey("CarC", "TrackZ")
        board = _board(
            FeedStub(
                _records(CAR_A, 3) + _records(CAR_B, 1),
                _records(car_c, 2) + _records(CAR_A, 1),
            )
        )
        await board.refresh()
        board.select(CAR_B)
        await board.refresh()
        assert board.state.selected_key == car_c

    @pytest.mark.asyncio
    async def test_selection_cleared_when_no_combos(self) -> None:
        board = _board(FeedStub(_records(CAR_A, 1), []))
        await board.refresh()
        assert board.state.selected_key == CAR_A
        await board.refresh()
        assert board.state.selected_key is None

    @pytest.mark.asyncio
    async def test_select_does_not_reaggregate(self) -> None:
        feed = FeedStub(_records(CAR_A, 2) + _records(CAR_B, 1))
        board = _board(feed)
        await board.refresh()
        combos_before = board.state.combos
        board.select(CAR_B)
        assert board.state.combos is combos_before
        assert feed.calls == 1
        assert [r.lap.car_name for r in board.ranked_rows()] == ["CarB"]

    @pytest.mark.asyncio
    async def test_select_unknown_combo_raises(self) -> None:
        board = _board(FeedStub(_records(CAR_A, 1)))
        await board.refresh()
        with pytest.raises(UnknownComboError, match="CarZ @ Nowhere"):
            board.select(ComboKey("CarZ", "Nowhere"))
        assert board.state.selected_key == CAR_A

    def test_resolve_selection(self) -> None:
        laps = normalize_laps(_records(CAR_A, 2) + _records(CAR_B, 1))
        combos = tuple(aggregate_combos(laps, compute_week_window(NOW, UTC)))
        assert resolve_selection(None, combos) == CAR_A
        assert resolve_selection(CAR_B, combos) == CAR_B
        assert resolve_selection(ComboKey("Gone", "Gone"), combos) == CAR_A
        assert resolve_selection(CAR_A, ()) is None


class TestDemoData:
    def test_records_are_well_formed(self) -> None:
        now = datetime.fromisoformat("2026-10-21T12:00:00+00:00")
        records = demo_records(now)
        laps = normalize_laps(records)
        assert len(laps) == len(records) == 3
        assert {lap.combo_key for lap in laps} == {ComboKey("Toyota GR86", "Lime Rock Park")}
        assert laps[0].start_time == now
        assert laps[2].start_time == now - timedelta(minutes=58)

    def test_invalid_shape_error_is_value_error(self) -> None:
        assert issubclass(InvalidResponseShapeError, ValueError)
