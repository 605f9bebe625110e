from __future__ import annotations

import asyncio
from dataclasses import dataclass

import pytest

from pyturnout.state.highlight import HighlightScheduler


@dataclass
class FakeClock:
    now: float = 100.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def test_mark_then_expire_lazily_without_loop() -> None:
    clock = FakeClock()
    scheduler = HighlightScheduler(duration=2.0, clock=clock)

    entry = scheduler.mark("P1")

    assert entry is not None and entry.expires_at == 102.0
    assert scheduler.is_highlighted("P1")
    assert scheduler.pending_timers == 0

    clock.advance(1.99)
    assert scheduler.is_highlighted("P1")
    clock.advance(0.01)
    assert not scheduler.is_highlighted("P1")
    assert scheduler.active() == frozenset()


def test_remark_resets_single_expiry() -> None:
    clock = FakeClock()
    scheduler = HighlightScheduler(duration=2.0, clock=clock)

    scheduler.mark("P1")
    clock.advance(1.5)
    scheduler.mark("P1")
    clock.advance(1.5)

    # 3.0s after the first mark, 1.5s after the second.
    assert scheduler.is_highlighted("P1")
    clock.advance(0.5)
    assert not scheduler.is_highlighted("P1")


def test_on_change_fires_on_enter_and_leave_only() -> None:
    clock = FakeClock()
    changes: list[tuple[str, bool]] = []
    scheduler = HighlightScheduler(duration=1.0, clock=clock, on_change=lambda k, h: changes.append((k, h)))

    scheduler.mark("P1")
    scheduler.mark("P1")
    clock.advance(1.0)
    assert scheduler.sweep() == ["P1"]

    assert changes == [("P1", True), ("P1", False)]


def test_keys_are_independent() -> None:
    clock = FakeClock()
    scheduler = HighlightScheduler(duration=2.0, clock=clock)

    scheduler.mark("P1")
    clock.advance(1.0)
    scheduler.mark("P2")
    clock.advance(1.0)

    assert scheduler.active() == frozenset({"P2"})
    assert "P2" in scheduler
    assert "P1" not in scheduler


def test_invalid_duration_rejected() -> None:
    with pytest.raises(ValueError):
        HighlightScheduler(duration=0)


@pytest.mark.asyncio
async def test_timer_expires_entry_eagerly() -> None:
    changes: list[tuple[str, bool]] = []
    scheduler = HighlightScheduler(duration=0.05, on_change=lambda k, h: changes.append((k, h)))

    scheduler.mark("P1")
    assert scheduler.pending_timers == 1

    await asyncio.sleep(0.1)

    assert scheduler.pending_timers == 0
    assert changes == [("P1", True), ("P1", False)]


@pytest.mark.asyncio
async def test_rapid_remarks_do_not_stack_timers() -> None:
    scheduler = HighlightScheduler(duration=0.1)

    for _ in range(5):
        scheduler.mark("P1")
        await asyncio.sleep(0.02)

    assert scheduler.pending_timers == 1
    assert scheduler.is_highlighted("P1")

    await asyncio.sleep(0.15)
    assert not scheduler.is_highlighted("P1")
    assert scheduler.pending_timers == 0


@pytest.mark.asyncio
async def test_close_cancels_timers_and_silences_callbacks() -> None:
    changes: list[tuple[str, bool]] = []
    scheduler = HighlightScheduler(duration=0.05, on_change=lambda k, h: changes.append((k, h)))

    scheduler.mark("P1")
    scheduler.close()
    await asyncio.sleep(0.1)

    assert scheduler.pending_timers == 0
    assert scheduler.mark("P2") is None
    assert changes == [("P1", True)]


@pytest.mark.asyncio
async def test_failing_callback_does_not_break_scheduler() -> None:
    def boom(_key: str, _highlighted: bool) -> None:
        raise RuntimeError("listener bug")

    scheduler = HighlightScheduler(duration=0.05, on_change=boom)

    assert scheduler.mark("P1") is not None
    await asyncio.sleep(0.1)
    assert not scheduler.is_highlighted("P1")
