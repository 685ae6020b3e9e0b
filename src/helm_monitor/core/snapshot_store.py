"""Holder of the last fully computed snapshot."""

from __future__ import annotations

import enum
import threading
from typing import Union

from helm_monitor.models.freshness import Snapshot


class _NotReady(enum.Enum):
    NOT_READY = "not-ready"

    def __bool__(self) -> bool:
        return False


NOT_READY = _NotReady.NOT_READY

ReadResult = Union[Snapshot, _NotReady]


class SnapshotStore:
    """Publishes immutable snapshots to any number of concurrent readers.

    A snapshot is swapped in with a single reference assignment, so a reader
    sees either the previous snapshot or the new one as a whole. Readers take
    no lock. Publishers serialize on a lock only to keep generations
    increasing.
    """

    def __init__(self) -> None:
        self._current: ReadResult = NOT_READY
        self._publish_lock = threading.Lock()
        self._ready = threading.Event()

    def publish(self, snapshot: Snapshot) -> None:
        with self._publish_lock:
            current = self._current
            if current is not NOT_READY and snapshot.generation <= current.generation:
                raise ValueError(
                    f"snapshot generation {snapshot.generation} does not supersede {current.generation}"
                )
            self._current = snapshot
        self._ready.set()

    def read(self) -> ReadResult:
        return self._current

    @property
    def ready(self) -> bool:
        return self._ready.is_set()

    @property
    def generation(self) -> int:
        current = self._current
        return 0 if current is NOT_READY else current.generation
