"""Debounced, coalescing persistence of the live outline."""

import asyncio
from collections.abc import Callable
from typing import Any

import requests
from loguru import logger

from worklog_outline.config import SAVE_DEBOUNCE_SECONDS, SAVE_RETRY_DELAY_SECONDS
from worklog_outline.protocols import OutlineApiProtocol

SAVED = "saved"
SAVING = "saving"
UNSAVED = "unsaved"


class OutlineSaver:
    """Persists the outline through ``api`` without ever losing an edit.

    ``snapshot`` is called right before each request and must return the
    serialized tree as it is *now*; ``on_saved`` receives the id mapping the
    store returned. A save is never cancelled once started. A save requested
    while another is in flight is coalesced and re-issued as soon as the
    in-flight one completes. A failed save leaves ``dirty`` set.
    """

    def __init__(
        self,
        api: OutlineApiProtocol,
        snapshot: Callable[[], list[dict[str, Any]]],
        *,
        on_saved: Callable[[dict[str, str]], None] | None = None,
        debounce_seconds: float = SAVE_DEBOUNCE_SECONDS,
        retry_delay_seconds: float = SAVE_RETRY_DELAY_SECONDS,
    ) -> None:
        self.api = api
        self.snapshot = snapshot
        self.on_saved = on_saved
        self.debounce_seconds = debounce_seconds
        self.retry_delay_seconds = retry_delay_seconds

        self.dirty = False
        self.last_error: Exception | None = None
        self.saves_completed = 0
        self._in_flight = False
        self._pending = False
        self._timer: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[bool]] = set()

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def status(self) -> str:
        if self._in_flight:
            return SAVING
        if self.dirty or self.last_error is not None:
            return UNSAVED
        return SAVED

    def mark_dirty(self) -> None:
        self.dirty = True

    def queue_save(self, delay: float | None = None) -> None:
        """Schedule a save after a quiet period; a new request restarts the period."""
        loop = asyncio.get_running_loop()
        if self._timer is not None:
            self._timer.cancel()
        self._timer = loop.call_later(
            self.debounce_seconds if delay is None else delay, self._fire
        )

    def _fire(self) -> None:
        self._timer = None
        task = asyncio.ensure_future(self.save())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def flush(self) -> bool:
        """Run any scheduled save now and wait for every save to finish."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
        if self.dirty:
            await self.save()
        return not self.dirty

    async def save(self) -> bool:
        """Save now. Returns False when the save failed or was deferred behind one in flight."""
        if self._in_flight:
            self._pending = True
            logger.debug("Save requested while another is in flight, queued")
            return False

        self._in_flight = True
        try:
            while True:
                self._pending = False
                ok = await self._save_once()
                if not ok:
                    if self._pending:
                        self.queue_save(self.retry_delay_seconds)
                    return False
                if not self._pending:
                    return True
                logger.debug("Re-issuing queued save with a fresh snapshot")
        finally:
            self._in_flight = False

    async def _save_once(self) -> bool:
        self.dirty = False
        try:
            outline = self.snapshot()
            logger.debug("Save started ({} roots)", len(outline))
            mapping = await asyncio.to_thread(self.api.save_outline, outline)
        except (requests.RequestException, RuntimeError, ValueError) as exc:
            self.dirty = True
            self.last_error = exc
            logger.warning("Save failed, changes kept locally: {}", exc)
            return False
        except Exception as exc:
            self.dirty = True
            self.last_error = exc
            raise

        self.last_error = None
        self.saves_completed += 1
        if self.on_saved is not None:
            self.on_saved(mapping)
        logger.info("Saved outline ({} new ids)", len(mapping))
        return True
