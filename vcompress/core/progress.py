"""
Shared progress counter.

One counter per run, measured in microseconds of processed media. Every
running job only ever adds its own forward delta, so concurrent updates
sum to the right total without any notion of a shared "current time".
"""

import threading
from typing import Optional, Protocol


class ProgressSink(Protocol):
    """Display that consumes the counter (terminal bar, test recorder, ...)."""

    def add(self, n: int) -> None: ...

    def clear(self) -> None: ...

    def refresh(self) -> None: ...


class ProgressCounter:
    """Thread-safe monotonic counter forwarding every delta to an optional sink."""

    def __init__(self, sink: Optional[ProgressSink] = None):
        self._sink = sink
        self._lock = threading.Lock()
        self._value = 0

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def add(self, delta: int) -> None:
        """Add a forward delta. Zero and negative deltas are ignored."""
        delta = int(delta)
        if delta <= 0:
            return
        with self._lock:
            self._value += delta
            if self._sink is not None:
                self._sink.add(delta)

    def add_seconds(self, seconds: float) -> None:
        self.add(int(seconds * 1_000_000))

    def clear(self) -> None:
        if self._sink is not None:
            self._sink.clear()

    def refresh(self) -> None:
        if self._sink is not None:
            self._sink.refresh()
