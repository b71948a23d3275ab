from __future__ import annotations

import asyncio

import pytest

from grove.cache import Building, CacheState
from grove.cancellation import CancellationBridge, CancellationToken
from grove.entries import Entry, ResultSet
from grove.errors import RebuildError


def test_cancel_runs_handlers_once_in_order():
    token = CancellationToken()
    calls: list[str] = []
    token.on_cancel(lambda: calls.append("first"))
    token.on_cancel(lambda: calls.append("second"))

    token.cancel()
    token.cancel()

    assert token.cancelled is True
    assert calls == ["first", "second"]
    assert token.handler_count == 0


def test_on_cancel_after_cancel_runs_immediately():
    token = CancellationToken()
    token.cancel()
    calls: list[int] = []

    registration = token.on_cancel(lambda: calls.append(1))

    assert calls == [1]
    assert registration.disposed is True


def test_dispose_is_idempotent_and_removes_handler():
    token = CancellationToken()
    calls: list[int] = []
    registration = token.on_cancel(lambda: calls.append(1))

    registration.dispose()
    registration.dispose()
    token.cancel()

    assert calls == []
    assert registration.disposed is True
    assert token.handler_count == 0


def test_registration_as_context_manager():
    token = CancellationToken()

    with token.on_cancel(lambda: None):
        assert token.handler_count == 1

    assert token.handler_count == 0


def _building_state(shared: asyncio.Future) -> tuple[CacheState, CancellationToken]:
    abort = CancellationToken()
    state = CacheState(stale=False, phase=Building(future=shared, abort=abort))
    return state, abort


def _result() -> ResultSet:
    return ResultSet.from_entries([Entry(id="abc-0001", source_path="/f/abc-0001.tree")])


@pytest.mark.asyncio
async def test_race_returns_shared_result_when_it_wins():
    loop = asyncio.get_running_loop()
    shared = loop.create_future()
    state, abort = _building_state(shared)
    bridge = CancellationBridge(state)
    token = CancellationToken()
    expected = _result()

    loop.call_soon(shared.set_result, expected)
    result = await bridge.race(shared, token)

    assert result is expected
    assert token.handler_count == 0
    token.cancel()
    assert state.stale is False
    assert abort.cancelled is False


@pytest.mark.asyncio
async def test_race_returns_empty_and_aborts_when_token_wins():
    loop = asyncio.get_running_loop()
    shared = loop.create_future()
    state, abort = _building_state(shared)
    bridge = CancellationBridge(state)
    token = CancellationToken()

    loop.call_soon(token.cancel)
    result = await bridge.race(shared, token)

    assert len(result) == 0
    assert state.stale is True
    assert abort.cancelled is True
    assert not shared.done()


@pytest.mark.asyncio
async def test_race_with_done_future_ignores_cancelled_token():
    loop = asyncio.get_running_loop()
    shared = loop.create_future()
    expected = _result()
    shared.set_result(expected)
    state, abort = _building_state(shared)
    token = CancellationToken()
    token.cancel()

    result = await CancellationBridge(state).race(shared, token)

    assert result is expected
    assert state.stale is False
    assert abort.cancelled is False


@pytest.mark.asyncio
async def test_race_propagates_rebuild_error():
    loop = asyncio.get_running_loop()
    shared = loop.create_future()
    state, _ = _building_state(shared)
    token = CancellationToken()

    loop.call_soon(shared.set_exception, RebuildError("boom"))
    with pytest.raises(RebuildError):
        await CancellationBridge(state).race(shared, token)

    assert token.handler_count == 0


@pytest.mark.asyncio
async def test_race_without_token_waits_for_shared():
    loop = asyncio.get_running_loop()
    shared = loop.create_future()
    state, _ = _building_state(shared)
    expected = _result()

    loop.call_soon(shared.set_result, expected)

    assert await CancellationBridge(state).race(shared) is expected


@pytest.mark.asyncio
async def test_race_treats_cancelled_shared_future_as_empty():
    loop = asyncio.get_running_loop()
    shared = loop.create_future()
    state, _ = _building_state(shared)

    loop.call_soon(shared.cancel)
    result = await CancellationBridge(state).race(shared, CancellationToken())

    assert len(result) == 0
