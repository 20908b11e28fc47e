"""Tests for the debounced, coalescing saver."""

import asyncio
import threading
from typing import Any

import pytest
import requests

from tests.unit.fakes import FakeApi
from worklog_outline.core.sync.saver import SAVED, SAVING, UNSAVED, OutlineSaver


class Outline:
    """Mutable stand-in for the live tree; ``snapshot`` reads its current state."""

    def __init__(self) -> None:
        self.titles = ["first"]

    def snapshot(self) -> list[dict[str, Any]]:
        return [{"id": f"new-{i}", "title": t, "children": []} for i, t in enumerate(self.titles)]


async def _wait_for(event: threading.Event) -> None:
    assert await asyncio.to_thread(event.wait, 5)


def test_save_reports_mapping_and_status() -> None:
    api = FakeApi()
    outline = Outline()
    received: list[dict[str, str]] = []
    saver = OutlineSaver(api, outline.snapshot, on_saved=received.append)
    saver.mark_dirty()
    assert saver.status == UNSAVED

    assert asyncio.run(saver.save())

    assert received == [{"new-0": "100"}]
    assert not saver.dirty
    assert saver.status == SAVED
    assert saver.saves_completed == 1


def test_failed_save_keeps_dirty_and_retries_later() -> None:
    api = FakeApi()
    api.fail_saves = 1
    saver = OutlineSaver(api, Outline().snapshot)
    saver.mark_dirty()

    assert not asyncio.run(saver.save())
    assert saver.dirty
    assert saver.status == UNSAVED
    assert isinstance(saver.last_error, requests.ConnectionError)

    assert asyncio.run(saver.save())
    assert not saver.dirty
    assert saver.last_error is None
    assert len(api.saved) == 2


def test_unexpected_error_keeps_dirty_and_propagates() -> None:
    api = FakeApi()
    api.save_outline = lambda _outline: {}["missing"]  # type: ignore[method-assign]
    saver = OutlineSaver(api, Outline().snapshot)
    saver.mark_dirty()

    with pytest.raises(KeyError):
        asyncio.run(saver.save())

    assert saver.dirty
    assert not saver.in_flight
    assert saver.status == UNSAVED
    assert isinstance(saver.last_error, KeyError)


def test_save_requested_in_flight_is_reissued_with_fresh_snapshot() -> None:
    """A save requested mid-flight runs right after, with the tree as it is then."""
    api = FakeApi()
    api.gate = threading.Event()
    outline = Outline()
    saver = OutlineSaver(api, outline.snapshot)

    async def scenario() -> tuple[bool, bool]:
        saver.mark_dirty()
        first = asyncio.create_task(saver.save())
        await _wait_for(api.save_started)
        assert saver.status == SAVING

        outline.titles.append("second")
        saver.mark_dirty()
        deferred = await saver.save()

        assert api.gate is not None
        api.gate.set()
        return await first, deferred

    first_ok, deferred = asyncio.run(scenario())

    assert first_ok
    assert not deferred
    assert [[r["title"] for r in saved] for saved in api.saved] == [
        ["first"],
        ["first", "second"],
    ]
    assert not saver.dirty


def test_edit_during_save_keeps_dirty() -> None:
    api = FakeApi()
    api.gate = threading.Event()
    saver = OutlineSaver(api, Outline().snapshot)

    async def scenario() -> bool:
        saver.mark_dirty()
        task = asyncio.create_task(saver.save())
        await _wait_for(api.save_started)
        saver.mark_dirty()
        assert api.gate is not None
        api.gate.set()
        return await task

    assert asyncio.run(scenario())
    assert saver.dirty


def test_failure_with_pending_request_is_requeued() -> None:
    api = FakeApi()
    api.gate = threading.Event()
    api.fail_saves = 1
    saver = OutlineSaver(api, Outline().snapshot, retry_delay_seconds=0.01)

    async def scenario() -> bool:
        saver.mark_dirty()
        first = asyncio.create_task(saver.save())
        await _wait_for(api.save_started)
        await saver.save()
        assert api.gate is not None
        api.gate.set()
        ok = await first
        await asyncio.sleep(0.2)
        await saver.flush()
        return ok

    assert not asyncio.run(scenario())
    assert len(api.saved) == 2
    assert not saver.dirty


def test_debounce_collapses_bursts() -> None:
    api = FakeApi()
    saver = OutlineSaver(api, Outline().snapshot, debounce_seconds=0.02)

    async def scenario() -> None:
        for _ in range(5):
            saver.mark_dirty()
            saver.queue_save()
        await asyncio.sleep(0.2)
        await saver.flush()

    asyncio.run(scenario())
    assert len(api.saved) == 1


def test_flush_runs_scheduled_save_immediately() -> None:
    api = FakeApi()
    saver = OutlineSaver(api, Outline().snapshot, debounce_seconds=60)

    async def scenario() -> bool:
        saver.mark_dirty()
        saver.queue_save()
        return await saver.flush()

    assert asyncio.run(scenario())
    assert len(api.saved) == 1


def test_flush_when_clean_does_nothing() -> None:
    api = FakeApi()
    saver = OutlineSaver(api, Outline().snapshot)
    assert asyncio.run(saver.flush())
    assert api.saved == []
