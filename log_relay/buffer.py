"""Bounded retry buffer with drop-oldest eviction."""

import collections
import threading

from log_relay.models import LogEvent


class RetryBuffer:
    """Thread-safe FIFO of undelivered events, capped at ``capacity``.

    Appending past capacity evicts the oldest entry.
    """

    def __init__(self, capacity: int = 100):
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._events: collections.deque[LogEvent] = collections.deque()
        self._lock = threading.Lock()
        self._dropped = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def dropped(self) -> int:
        """Number of events evicted since creation."""
        with self._lock:
            return self._dropped

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def push(self, event: LogEvent) -> LogEvent | None:
        """Append at the tail. Returns the evicted event, if any."""
        with self._lock:
            self._events.append(event)
            if len(self._events) > self._capacity:
                self._dropped += 1
                return self._events.popleft()
            return None

    def requeue(self, events: list[LogEvent]):
        """Put undelivered events back ahead of anything queued since they were drained."""
        with self._lock:
            combined = list(events) + list(self._events)
            overflow = max(0, len(combined) - self._capacity)
            self._dropped += overflow
            self._events = collections.deque(combined[overflow:])

    def drain(self) -> list[LogEvent]:
        """Snapshot and clear the buffer, oldest first."""
        with self._lock:
            events = list(self._events)
            self._events.clear()
            return events

    def snapshot(self) -> list[LogEvent]:
        """Copy of the buffered events, oldest first."""
        with self._lock:
            return list(self._events)
