"""Bounded, closable stream of repository descriptors.

Several producer threads (one per API page) write into the stream while a
fixed number of worker threads drain it. The stream is closed once, after
every producer has finished, and readers keep draining until it is both
closed and empty.
"""

import queue
import threading
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from ..crawler.models import RepositoryDescriptor
from .cancel import CancelScope

POLL_INTERVAL = 0.1
DEFAULT_BUFFER = 16


@dataclass
class DiscoveryReport:
    """How much of the repository listing actually made it into the stream."""
    pages_total: int = 0
    pages_failed: int = 0
    pages_aborted: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return self.pages_failed == 0 and self.pages_aborted == 0


class RepositoryStream:
    """A bounded queue with close semantics and cancellation-aware blocking."""

    def __init__(
        self,
        scope: CancelScope,
        total_count: int = 0,
        maxsize: int = DEFAULT_BUFFER,
    ):
        if maxsize < 1:
            raise ValueError("stream buffer must hold at least one item")
        self.scope = scope
        self.total_count = total_count
        self.report = DiscoveryReport()
        self._queue: queue.Queue[RepositoryDescriptor] = queue.Queue(maxsize=maxsize)
        self._closed = threading.Event()

    @classmethod
    def from_iterable(
        cls,
        items: Iterable[RepositoryDescriptor],
        scope: CancelScope,
        maxsize: int = DEFAULT_BUFFER,
    ) -> "RepositoryStream":
        """Stream a precomputed collection through a feeder thread."""
        items = list(items)
        stream = cls(scope, total_count=len(items), maxsize=maxsize)

        def feed() -> None:
            try:
                for item in items:
                    if not stream.put(item):
                        break
            finally:
                stream.close()

        threading.Thread(target=feed, name="stream-feeder", daemon=True).start()
        return stream

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def put(self, item: RepositoryDescriptor) -> bool:
        """Block until *item* is queued. Returns False if cancelled first."""
        if self._closed.is_set():
            raise RuntimeError("put on a closed repository stream")
        while True:
            if self.scope.cancelled:
                return False
            try:
                self._queue.put(item, timeout=POLL_INTERVAL)
                return True
            except queue.Full:
                continue

    def close(self) -> None:
        """Mark the stream finished. Only call once all producers returned."""
        self._closed.set()

    def get(self) -> RepositoryDescriptor | None:
        """Next descriptor, or None when the stream is drained or cancelled."""
        while not self.scope.cancelled:
            try:
                return self._queue.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                # closed must be read before empty: every put happens-before close
                if self._closed.is_set() and self._queue.empty():
                    return None
        return None

    def __iter__(self) -> Iterator[RepositoryDescriptor]:
        while True:
            item = self.get()
            if item is None:
                return
            yield item
