"""Bounded, append-only log of classified signals."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Iterator

from pyturnout.models.signal import ClassifiedSignal


class EventLog:
    """Ring buffer of :class:`ClassifiedSignal` in arrival order.

    Once ``capacity`` is reached every append evicts the oldest entry.
    """

    def __init__(self, capacity: int = 50) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._signals: deque[ClassifiedSignal] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._signals.maxlen or 0

    def append(self, signal: ClassifiedSignal) -> ClassifiedSignal | None:
        """Add *signal* at the tail; return the evicted head, if any."""
        evicted = self._signals[0] if len(self._signals) == self.capacity else None
        self._signals.append(signal)
        return evicted

    def extend(self, signals: Iterable[ClassifiedSignal]) -> None:
        self._signals.extend(signals)

    def all(self) -> list[ClassifiedSignal]:
        """Every retained signal, oldest first."""
        return list(self._signals)

    def recent(self, n: int) -> list[ClassifiedSignal]:
        """The last *n* signals, oldest first."""
        if n <= 0:
            return []
        return list(self._signals)[-n:]

    def latest(self) -> ClassifiedSignal | None:
        return self._signals[-1] if self._signals else None

    def clear(self) -> None:
        self._signals.clear()

    def __len__(self) -> int:
        return len(self._signals)

    def __iter__(self) -> Iterator[ClassifiedSignal]:
        return iter(list(self._signals))
