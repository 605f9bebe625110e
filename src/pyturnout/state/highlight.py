"""Transient "recently changed" set with automatic expiry."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class HighlightEntry:
    """An open highlight window; ``expires_at`` is on the scheduler clock."""

    entity_key: str
    expires_at: float


class HighlightScheduler:
    """Tracks which entity keys are inside their highlight window.

    Each key has at most one entry and at most one pending timer:
    re-marking a key replaces its entry and restarts its single timer.
    Expiry is applied twice over. When an event loop is running, a timer
    removes the entry eagerly and notifies ``on_change``. Lookups also
    compare against the clock, so an entry whose timer has not fired yet
    (or that was marked without a running loop) is never reported as
    active past its expiry.

    Parameters
    ----------
    duration : float
        Window length in seconds.
    clock : callable
        Monotonic clock; defaults to :func:`time.monotonic`, which is also
        what asyncio uses for ``call_later``.
    on_change : callable, optional
        Called as ``on_change(key, highlighted)`` when a key enters or
        leaves the active set.
    """

    def __init__(
        self,
        *,
        duration: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
        on_change: Callable[[str, bool], None] | None = None,
    ) -> None:
        if duration <= 0:
            raise ValueError(f"duration must be positive, got {duration}")
        self._duration = duration
        self._clock = clock
        self._on_change = on_change
        self._entries: dict[str, HighlightEntry] = {}
        self._timers: dict[str, asyncio.TimerHandle] = {}
        self._closed = False

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def pending_timers(self) -> int:
        """Number of scheduled expiry timers (at most one per key)."""
        return len(self._timers)

    def mark(self, key: str) -> HighlightEntry | None:
        """Open or refresh the highlight window for *key*.

        Returns ``None`` once the scheduler is closed.
        """
        if self._closed:
            return None
        was_active = self.is_highlighted(key)
        entry = HighlightEntry(entity_key=key, expires_at=self._clock() + self._duration)
        self._entries[key] = entry

        previous_timer = self._timers.pop(key, None)
        if previous_timer is not None:
            previous_timer.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is not None:
            self._timers[key] = loop.call_later(self._duration, self._expire, entry)

        if not was_active:
            self._notify(key, True)
        return entry

    def is_highlighted(self, key: str) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        if entry.expires_at <= self._clock():
            self._remove(key)
            return False
        return True

    def get(self, key: str) -> HighlightEntry | None:
        return self._entries.get(key) if self.is_highlighted(key) else None

    def active(self) -> frozenset[str]:
        """Keys currently inside their window."""
        self.sweep()
        return frozenset(self._entries)

    def sweep(self) -> list[str]:
        """Remove every expired entry and return the removed keys."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            self._remove(key)
        return expired

    def clear(self) -> None:
        """Drop every entry and cancel every timer without notifications."""
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        self._entries.clear()

    def close(self) -> None:
        """Clear and refuse further marks; no callback fires afterwards."""
        self._closed = True
        self.clear()

    def _expire(self, entry: HighlightEntry) -> None:
        current = self._entries.get(entry.entity_key)
        # A newer mark owns the key now.
        if current is not entry:
            return
        self._remove(entry.entity_key)

    def _remove(self, key: str) -> None:
        timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()
        if self._entries.pop(key, None) is not None:
            self._notify(key, False)

    def _notify(self, key: str, highlighted: bool) -> None:
        if self._on_change is None or self._closed:
            return
        try:
            self._on_change(key, highlighted)
        except Exception:
            _logger.debug("Highlight on_change callback failed for key=%s", key, exc_info=True)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.is_highlighted(key)
