from __future__ import annotations

from datetime import UTC, datetime

import pytest

from pyturnout.models.signal import ClassifiedSignal, SignalDirection, SignalImpact
from pyturnout.state.event_log import EventLog


def _signal(i: int) -> ClassifiedSignal:
    return ClassifiedSignal(
        id=f"sig-{i}",
        timestamp=datetime(2026, 11, 3, tzinfo=UTC),
        entity_key=f"P{i}",
        label="Unknown",
        direction=SignalDirection.SAME,
        impact=SignalImpact.SMALL,
        estimated_shift=0.0,
    )


def test_append_keeps_arrival_order() -> None:
    log = EventLog(capacity=5)
    for i in range(3):
        assert log.append(_signal(i)) is None

    assert [s.id for s in log.all()] == ["sig-0", "sig-1", "sig-2"]
    assert log.latest() is not None and log.latest().id == "sig-2"  # type: ignore[union-attr]


def test_capacity_evicts_oldest_first() -> None:
    capacity = 50
    log = EventLog(capacity=capacity)
    evicted: list[str] = []

    for i in range(capacity + 7):
        dropped = log.append(_signal(i))
        if dropped is not None:
            evicted.append(dropped.id)

    assert len(log) == capacity
    assert [s.id for s in log.all()] == [f"sig-{i}" for i in range(7, capacity + 7)]
    assert evicted == [f"sig-{i}" for i in range(7)]


def test_recent_returns_last_n_oldest_first() -> None:
    log = EventLog(capacity=10)
    log.extend(_signal(i) for i in range(6))

    assert [s.id for s in log.recent(2)] == ["sig-4", "sig-5"]
    assert log.recent(0) == []
    assert len(log.recent(100)) == 6


def test_extend_trims_to_capacity() -> None:
    log = EventLog(capacity=3)
    log.extend(_signal(i) for i in range(10))

    assert [s.id for s in log] == ["sig-7", "sig-8", "sig-9"]


def test_clear_and_invalid_capacity() -> None:
    log = EventLog(capacity=2)
    log.append(_signal(1))
    log.clear()

    assert len(log) == 0
    assert log.latest() is None
    with pytest.raises(ValueError):
        EventLog(capacity=0)
