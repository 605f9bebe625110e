from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import pytest

from pyturnout.exceptions import TurnoutFeedError, TurnoutSubmissionError, TurnoutTransportError
from pyturnout.ingestion.rows import parse_estimates
from pyturnout.models.estimate import EstimateRecord
from pyturnout.models.observation import RawObservation
from pyturnout.models.submission import SubmissionResult


@dataclass
class FakeSubscription:
    partition: str
    on_event: Callable[[Any], None]
    on_status: Callable[[bool], None] | None = None
    closed: bool = False
    connected: bool = False

    @property
    def active(self) -> bool:
        return self.connected and not self.closed

    async def close(self) -> None:
        self.closed = True

    def push(self, payload: Any) -> None:
        self.on_event(payload)

    def set_connected(self, connected: bool) -> None:
        self.connected = connected
        if self.on_status is not None:
            self.on_status(connected)


@dataclass
class FakeRemote:
    """In-memory remote estimates service with per-partition rows."""

    rows: dict[str, list[Any]] = field(default_factory=dict)
    history: dict[str, list[RawObservation]] = field(default_factory=dict)
    fail_fetch: bool = False
    fail_subscribe: bool = False
    fail_submit: bool = False
    fetch_errors: list[Exception] = field(default_factory=list)
    history_error: Exception | None = None
    fetch_gate: asyncio.Event | None = None
    fetch_calls: list[str] = field(default_factory=list)
    subscriptions: list[FakeSubscription] = field(default_factory=list)
    observation_subscriptions: list[FakeSubscription] = field(default_factory=list)
    submitted: list[RawObservation] = field(default_factory=list)
    closed: bool = False

    def set_rows(self, partition: str, rows: list[Any]) -> None:
        self.rows[partition] = rows

    async def fetch_all(self, partition: str) -> list[EstimateRecord]:
        self.fetch_calls.append(partition)
        if self.fetch_gate is not None:
            await self.fetch_gate.wait()
        if self.fetch_errors:
            raise self.fetch_errors.pop(0)
        if self.fail_fetch:
            raise TurnoutTransportError("remote unavailable", status_code=503, endpoint="/posterior_estimates")
        return parse_estimates(self.rows.get(partition, []))

    async def subscribe(
        self,
        partition: str,
        on_event: Callable[[Any], None],
        on_status: Callable[[bool], None],
    ) -> FakeSubscription:
        if self.fail_subscribe:
            raise TurnoutFeedError("broker unreachable")
        subscription = FakeSubscription(partition=partition, on_event=on_event, on_status=on_status)
        self.subscriptions.append(subscription)
        return subscription

    async def submit(self, observation: RawObservation) -> SubmissionResult:
        if self.fail_submit:
            raise TurnoutSubmissionError("rejected", code="42501", endpoint="/poll_submissions")
        self.submitted.append(observation)
        return SubmissionResult(observation_id=str(len(self.submitted)), recomputed=True)

    async def fetch_history(self, partition: str, limit: int) -> list[RawObservation]:
        if self.history_error is not None:
            raise self.history_error
        return self.history.get(partition, [])[-limit:]

    async def subscribe_observations(self, partition: str, on_observation: Callable[[Any], None]) -> FakeSubscription:
        subscription = FakeSubscription(partition=partition, on_event=on_observation)
        self.observation_subscriptions.append(subscription)
        return subscription

    async def close(self) -> None:
        self.closed = True

    def latest(self, partition: str) -> FakeSubscription:
        return [s for s in self.subscriptions if s.partition == partition][-1]


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()
