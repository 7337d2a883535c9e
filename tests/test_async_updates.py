from __future__ import annotations

import asyncio
from typing import Any

import pytest

from swiftstore import create_store


@pytest.mark.asyncio
async def test_async_update_commits_resolved_partial() -> None:
    store = create_store({"x": 0, "y": "keep"})
    received: list[dict[str, Any]] = []
    store.subscribe(received.append)

    async def fetch_x(state: dict[str, Any]) -> dict[str, int]:
        await asyncio.sleep(0)
        return {"x": 5}

    await store.set_state_async(fetch_x)

    assert store.get_state() == {"x": 5, "y": "keep"}
    assert received == [{"x": 5, "y": "keep"}]


@pytest.mark.asyncio
async def test_async_update_merges_onto_snapshot_current_at_commit() -> None:
    store = create_store({"x": 0, "y": 0})
    gate = asyncio.Event()
    captured: list[dict[str, int]] = []

    async def slow(state: dict[str, int]) -> dict[str, int]:
        captured.append(state)
        await gate.wait()
        return {"x": 5}

    task = asyncio.create_task(store.set_state_async(slow))
    await asyncio.sleep(0)
    store.set_state({"y": 7})
    gate.set()
    await task

    assert captured == [{"x": 0, "y": 0}]
    assert store.get_state() == {"x": 5, "y": 7}


@pytest.mark.asyncio
async def test_interleaved_async_updates_last_committer_wins() -> None:
    store = create_store({"count": 0})
    first_gate = asyncio.Event()
    second_gate = asyncio.Event()

    def increment(gate: asyncio.Event) -> Any:
        async def updater(state: dict[str, int]) -> dict[str, int]:
            base = state["count"]
            await gate.wait()
            return {"count": base + 1}

        return updater

    first = asyncio.create_task(store.set_state_async(increment(first_gate)))
    second = asyncio.create_task(store.set_state_async(increment(second_gate)))
    await asyncio.sleep(0)
    second_gate.set()
    await second
    first_gate.set()
    await first

    # Both read count == 0, so one increment is lost.
    assert store.get_state() == {"count": 1}


@pytest.mark.asyncio
async def test_async_rejection_propagates_without_commit() -> None:
    store = create_store({"x": 0})
    received: list[Any] = []
    store.subscribe(received.append)

    async def failing(state: dict[str, int]) -> dict[str, int]:
        raise ConnectionError("upstream unavailable")

    with pytest.raises(ConnectionError, match="upstream unavailable"):
        await store.set_state_async(failing)

    assert store.get_state() == {"x": 0}
    assert received == []


@pytest.mark.asyncio
async def test_async_cancellation_leaves_store_untouched() -> None:
    store = create_store({"x": 0})
    never = asyncio.Event()

    async def waits_forever(state: dict[str, int]) -> dict[str, int]:
        await never.wait()
        return {"x": 1}

    task = asyncio.create_task(store.set_state_async(waits_forever))
    await asyncio.sleep(0)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    assert store.get_state() == {"x": 0}


@pytest.mark.asyncio
async def test_async_accepts_literal_and_bare_awaitable() -> None:
    store = create_store({"x": 0, "y": 0})
    loop = asyncio.get_running_loop()
    future: asyncio.Future[dict[str, int]] = loop.create_future()
    future.set_result({"y": 2})

    await store.set_state_async({"x": 1})
    await store.set_state_async(future)

    assert store.get_state() == {"x": 1, "y": 2}


@pytest.mark.asyncio
async def test_async_update_passes_through_middleware() -> None:
    store = create_store({"x": 0})
    store.use_middleware(lambda candidate, proceed: proceed({**candidate, "x": candidate["x"] * 10}))

    async def fetch(state: dict[str, int]) -> dict[str, int]:
        return {"x": 2}

    await store.set_state_async(fetch)

    assert store.get_state() == {"x": 20}
