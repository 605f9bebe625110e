"""Push subscription plus polling fallback for one partition."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from typing import Any

from pyturnout.exceptions import MalformedRecordError, TurnoutError
from pyturnout.ingestion.rows import parse_estimate
from pyturnout.models.estimate import EstimateRecord
from pyturnout.remote import RemoteEstimates, Subscription
from pyturnout.state.events import IngestionSource

_logger = logging.getLogger(__name__)

RecordSink = Callable[[EstimateRecord, IngestionSource], None]


class SyncChannel:
    """Keeps a record sink live for one partition.

    Lifecycle:

    1. :meth:`start` fetches the full state once and delivers every
       record, then opens the push subscription and the poll loop.
    2. Push events are parsed, filtered by partition and delivered.
    3. While the subscription is not confirmed live, the poll loop
       re-fetches the full state every ``poll_interval`` seconds. A
       status change wakes the loop, so a poll that is due after the
       channel connected never runs.
    4. :meth:`close` stops delivery immediately, cancels the poll loop
       and releases the subscription. Nothing is delivered afterwards.

    Fetch and subscribe failures are logged and leave the channel
    disconnected; the next poll tick retries.
    """

    def __init__(
        self,
        partition: str,
        remote: RemoteEstimates,
        on_record: RecordSink,
        *,
        poll_interval: float = 2.0,
        on_status: Callable[[bool], None] | None = None,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")
        self._partition = partition
        self._remote = remote
        self._on_record = on_record
        self._on_status_cb = on_status
        self._poll_interval = poll_interval
        self._subscription: Subscription | None = None
        self._poll_task: asyncio.Task[None] | None = None
        self._status_changed = asyncio.Event()
        self._connected = False
        self._started = False
        self._closed = False
        self._poll_count = 0

    @property
    def partition(self) -> str:
        return self._partition

    @property
    def connected(self) -> bool:
        """Whether the push subscription is confirmed live."""
        return self._connected

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def poll_count(self) -> int:
        """Number of fallback polls executed so far."""
        return self._poll_count

    async def start(self) -> None:
        if self._started:
            return
        self._started = True
        _logger.debug("Sync channel starting partition=%s", self._partition)

        await self._fetch(IngestionSource.FETCH)
        if self._closed:
            return

        subscription: Subscription | None = None
        try:
            subscription = await self._remote.subscribe(self._partition, self._on_push, self._on_status)
        except Exception:
            _logger.warning("Push subscription failed for partition=%s; polling only", self._partition, exc_info=True)
        if self._closed:
            if subscription is not None:
                await subscription.close()
            return
        self._subscription = subscription
        self._poll_task = asyncio.create_task(self._poll_loop(), name=f"pyturnout-poll-{self._partition}")

    async def refresh_now(self) -> bool:
        """Run one full-state fetch immediately.

        Returns ``True`` when the fetch succeeded and was delivered.
        """
        if self._closed:
            return False
        return await self._fetch(IngestionSource.REFRESH)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._connected = False
        self._status_changed.set()
        _logger.debug("Sync channel closing partition=%s", self._partition)

        task = self._poll_task
        self._poll_task = None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        subscription = self._subscription
        self._subscription = None
        if subscription is not None:
            try:
                await subscription.close()
            except Exception:
                _logger.debug("Subscription close failed for partition=%s", self._partition, exc_info=True)

    async def _poll_loop(self) -> None:
        while not self._closed:
            self._status_changed.clear()
            if self._connected:
                await self._status_changed.wait()
                continue
            try:
                await asyncio.wait_for(self._status_changed.wait(), self._poll_interval)
            except TimeoutError:
                if self._closed or self._connected:
                    continue
                self._poll_count += 1
                try:
                    await self._fetch(IngestionSource.POLL)
                except Exception:
                    _logger.warning("Poll for partition=%s failed", self._partition, exc_info=True)

    async def _fetch(self, source: IngestionSource) -> bool:
        try:
            records = await self._remote.fetch_all(self._partition)
        except TurnoutError:
            _logger.debug("Full-state fetch failed partition=%s source=%s", self._partition, source, exc_info=True)
            return False
        except Exception:
            _logger.warning(
                "Unexpected full-state fetch error partition=%s source=%s",
                self._partition,
                source,
                exc_info=True,
            )
            return False
        if self._closed:
            return False
        for record in records:
            self._deliver(record, source)
        _logger.debug("Delivered %d records partition=%s source=%s", len(records), self._partition, source)
        return True

    def _on_push(self, payload: Any) -> None:
        if self._closed:
            return
        try:
            record = parse_estimate(payload, default_partition=self._partition)
        except MalformedRecordError:
            _logger.debug("Dropping malformed push event on partition=%s", self._partition, exc_info=True)
            return
        self._deliver(record, IngestionSource.PUSH)

    def _deliver(self, record: EstimateRecord, source: IngestionSource) -> None:
        if record.partition != self._partition:
            _logger.debug(
                "Dropping stale record key=%s partition=%s (channel=%s)",
                record.key,
                record.partition,
                self._partition,
            )
            return
        self._on_record(record, source)

    def _on_status(self, connected: bool) -> None:
        if self._closed or connected == self._connected:
            return
        self._connected = connected
        self._status_changed.set()
        _logger.info("Push channel partition=%s connected=%s", self._partition, connected)
        if self._on_status_cb is None:
            return
        try:
            self._on_status_cb(connected)
        except Exception:
            _logger.debug("Status callback failed", exc_info=True)
