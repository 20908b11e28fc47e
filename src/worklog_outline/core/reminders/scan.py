"""Surfacing reminders from the tree, optionally off the editing thread.

Scanning works on immutable snapshots and an explicit :class:`ReminderScanCache`
passed in by the caller. Each submitted batch carries a sequence number; only
the result for the latest batch is applied, and nodes that changed while that
batch was being scanned are re-scanned synchronously before it is.
"""

import asyncio
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime

from loguru import logger

from worklog_outline.core.tokens.reminders import (
    ReminderRecord,
    parse_reminder_marker,
    reminder_is_due,
)
from worklog_outline.core.tree.navigation import walk
from worklog_outline.models.node import Node


@dataclass(frozen=True)
class ScanSnapshot:
    id: str
    title: str
    status: str
    text: str

    @property
    def signature(self) -> tuple[str, str, str]:
        return (self.title, self.status, self.text)


@dataclass(frozen=True)
class ReminderEntry:
    """One reminder row, as shown in a reminders list."""

    id: str
    task_title: str
    task_status: str
    status: str
    remind_at: str
    message: str
    due: bool


def snapshot_nodes(roots: list[Node]) -> list[ScanSnapshot]:
    return [
        ScanSnapshot(id=n.id, title=n.title, status=n.status, text=n.text)
        for n, _p, _d in walk(roots)
        if n.id is not None
    ]


class ReminderScanCache:
    """Parsed reminder per node id, valid while the node's snapshot signature is unchanged.

    Entries for ids that left the tree are evicted by :meth:`retain`. Safe to
    share between the event loop and a scanning worker thread.
    """

    def __init__(self) -> None:
        self._entries: dict[str, tuple[tuple[str, str, str], ReminderRecord | None]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, node_id: object) -> bool:
        with self._lock:
            return node_id in self._entries

    def lookup(self, snapshot: ScanSnapshot) -> ReminderRecord | None:
        with self._lock:
            cached = self._entries.get(snapshot.id)
        if cached is not None and cached[0] == snapshot.signature:
            return cached[1]
        record = parse_reminder_marker(snapshot.text)
        with self._lock:
            self._entries[snapshot.id] = (snapshot.signature, record)
        return record

    def retain(self, ids: Iterable[str]) -> None:
        keep = set(ids)
        with self._lock:
            for node_id in [k for k in self._entries if k not in keep]:
                del self._entries[node_id]


def _entry_for(snapshot: ScanSnapshot, cache: ReminderScanCache, now: datetime) -> ReminderEntry | None:
    record = cache.lookup(snapshot)
    if record is None:
        return None
    return ReminderEntry(
        id=snapshot.id,
        task_title=snapshot.title,
        task_status=snapshot.status,
        status=record.status,
        remind_at=record.remind_at,
        message=record.message,
        due=reminder_is_due(record, now),
    )


def scan_reminders(
    snapshots: list[ScanSnapshot],
    cache: ReminderScanCache,
    now: datetime | None = None,
) -> list[ReminderEntry]:
    """Reminder rows for ``snapshots`` in order; evicts cache entries for absent ids."""
    now = now or datetime.now(UTC)
    entries = [e for s in snapshots if (e := _entry_for(s, cache, now)) is not None]
    cache.retain(s.id for s in snapshots)
    return entries


class ReminderSurfacer:
    """Keeps :attr:`entries` in sync with the tree, scanning in a worker thread.

    At most one batch is scanned at a time. A refresh requested while a batch
    is running returns None and makes the running refresh scan again with a
    fresh snapshot once it finishes.
    """

    def __init__(self, cache: ReminderScanCache | None = None) -> None:
        self.cache = cache or ReminderScanCache()
        self.entries: list[ReminderEntry] = []
        self._sequence = 0
        self._submitted: dict[str, tuple[str, str, str]] = {}
        self._scanning = False
        self._rescan = False

    @property
    def sequence(self) -> int:
        return self._sequence

    @property
    def scanning(self) -> bool:
        return self._scanning

    def submit(self, roots: list[Node]) -> tuple[int, list[ScanSnapshot]]:
        """Take snapshots for a new batch; earlier batches become stale."""
        self._sequence += 1
        snapshots = snapshot_nodes(roots)
        self._submitted = {s.id: s.signature for s in snapshots}
        return self._sequence, snapshots

    def apply_result(
        self,
        sequence: int,
        entries: list[ReminderEntry],
        roots: list[Node],
        now: datetime | None = None,
    ) -> list[ReminderEntry] | None:
        """Apply a finished batch. Returns None when it is not the latest one."""
        if sequence != self._sequence:
            logger.debug("Discarding stale reminder scan #{} (latest #{})", sequence, self._sequence)
            return None
        return self._merge(entries, roots, now or datetime.now(UTC))

    def _merge(self, entries: list[ReminderEntry], roots: list[Node], now: datetime) -> list[ReminderEntry]:
        scanned = {e.id: e for e in entries}
        current = snapshot_nodes(roots)
        result: list[ReminderEntry] = []
        for snapshot in current:
            if self._submitted.get(snapshot.id) == snapshot.signature:
                entry = scanned.get(snapshot.id)
            else:
                entry = _entry_for(snapshot, self.cache, now)
            if entry is not None:
                result.append(entry)
        self.cache.retain(s.id for s in current)
        self.entries = result
        return result

    async def refresh(self, roots: list[Node], now: datetime | None = None) -> list[ReminderEntry] | None:
        if self._scanning:
            self._rescan = True
            logger.debug("Reminder scan already running, rescan queued")
            return None
        self._scanning = True
        try:
            while True:
                self._rescan = False
                sequence, snapshots = self.submit(roots)
                entries = await asyncio.to_thread(scan_reminders, snapshots, self.cache, now)
                result = self.apply_result(sequence, entries, roots, now)
                if not self._rescan:
                    return result
        finally:
            self._scanning = False

    def refresh_now(self, roots: list[Node], now: datetime | None = None) -> list[ReminderEntry]:
        """Synchronous scan on the calling thread; any running batch becomes stale."""
        now = now or datetime.now(UTC)
        _sequence, snapshots = self.submit(roots)
        return self._merge(scan_reminders(snapshots, self.cache, now), roots, now)

    def due(self) -> list[ReminderEntry]:
        return [e for e in self.entries if e.due]
