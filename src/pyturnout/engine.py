"""Reconciliation engine exposed to the rendering layer."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Coroutine, Mapping
from typing import Any

from pyturnout.classify.display import derive, has_changed
from pyturnout.classify.signals import classify_observation, is_high_divergence
from pyturnout.config import TurnoutConfig
from pyturnout.context import PrecinctDirectory
from pyturnout.exceptions import MalformedRecordError, TurnoutError
from pyturnout.ingestion.rows import parse_observation
from pyturnout.models.derived import DerivedAttributes
from pyturnout.models.estimate import EstimateRecord
from pyturnout.models.observation import RawObservation
from pyturnout.models.signal import ClassifiedSignal, SignalImpact
from pyturnout.models.submission import SubmissionResult
from pyturnout.remote import RemoteBackend, RemoteEstimates, Subscription
from pyturnout.state.event_log import EventLog
from pyturnout.state.events import IngestionSource, RecordUpdate
from pyturnout.state.highlight import HighlightScheduler
from pyturnout.state.store import EntityStore
from pyturnout.sync.channel import SyncChannel
from pyturnout.tables import DEFAULT_DISPLAY_TABLE, DEFAULT_SIGNAL_TABLE, DisplayTable, SignalTable

_logger = logging.getLogger(__name__)


class TurnoutEngine:
    """Live estimate map plus classified signal log for one partition at a time.

    Usage::

        async with TurnoutEngine(TurnoutConfig.from_env()) as engine:
            snapshot = engine.get_snapshot()
            attrs = engine.get_derived("P1", highlighted=engine.is_highlighted("P1"))

    All state is mutated on the event loop the engine was started on.
    Switching partitions clears the local state before the first await,
    so no snapshot taken after :meth:`set_partition` returns control can
    hold a record of the previous partition.
    """

    def __init__(
        self,
        config: TurnoutConfig | None = None,
        *,
        remote: RemoteEstimates | None = None,
        directory: PrecinctDirectory | None = None,
        display_table: DisplayTable = DEFAULT_DISPLAY_TABLE,
        signal_table: SignalTable = DEFAULT_SIGNAL_TABLE,
        on_update: Callable[[RecordUpdate], None] | None = None,
        on_signal: Callable[[ClassifiedSignal], None] | None = None,
        on_status: Callable[[bool], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or TurnoutConfig()
        self._remote = remote
        self._owns_remote = remote is None
        self._directory = directory or PrecinctDirectory()
        self._display_table = display_table
        self._signal_table = signal_table
        self._on_update = on_update
        self._on_signal = on_signal
        self._on_status = on_status

        self._store = EntityStore()
        self._previous: dict[str, EstimateRecord | None] = {}
        self._highlights = HighlightScheduler(duration=self._config.highlight_seconds, clock=clock)
        self._log = EventLog(self._config.event_log_capacity)
        self._selected: str | None = None

        self._channel: SyncChannel | None = None
        self._observations: Subscription | None = None
        self._switch_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task[Any]] = set()
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> TurnoutEngine:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def start(self, partition: str | None = None) -> None:
        """Start syncing *partition* (the configured default if omitted)."""
        await self.set_partition(partition or self._config.default_partition)

    async def close(self) -> None:
        """Tear down timers, tasks, subscriptions and an owned remote."""
        if self._closed:
            return
        self._closed = True
        channel = self._channel
        observations = self._observations
        self._channel = None
        self._observations = None
        self._highlights.close()

        tasks = list(self._tasks)
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        if channel is not None:
            await channel.close()
        if observations is not None:
            await self._close_subscription(observations)
        # Let an in-flight partition start finish before the remote goes away.
        async with self._switch_lock:
            pass
        if self._owns_remote and self._remote is not None:
            await self._remote.close()
        _logger.debug("Engine closed")

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Partition and channel
    # ------------------------------------------------------------------

    @property
    def partition(self) -> str | None:
        return self._store.partition

    @property
    def connected(self) -> bool:
        channel = self._channel
        return channel is not None and channel.connected

    async def set_partition(self, partition: str) -> None:
        """Switch the active partition and restart synchronization.

        The store, highlight set, event log and selection are cleared
        synchronously; the old channel is then closed before the new one
        starts. Records still in flight for the old channel are dropped.
        """
        if self._closed:
            raise TurnoutError("Engine is closed")
        partition = partition.strip()
        if not partition:
            raise ValueError("partition must be non-empty")

        remote = self._ensure_remote()
        old_channel = self._channel
        old_observations = self._observations
        self._observations = None

        self._store.reset(partition)
        self._previous.clear()
        self._highlights.clear()
        self._log.clear()
        self._selected = None

        channel = SyncChannel(
            partition,
            remote,
            lambda record, source: self._on_channel_record(channel, record, source),
            poll_interval=self._config.poll_interval,
            on_status=lambda connected: self._on_channel_status(channel, connected),
        )
        self._channel = channel
        _logger.info("Partition switch to %s", partition)

        if old_channel is not None:
            await old_channel.close()
        if old_observations is not None:
            await self._close_subscription(old_observations)

        async with self._switch_lock:
            if self._channel is not channel:
                return
            await channel.start()
            if self._channel is not channel:
                return
            if self._config.history_limit > 0:
                await self.load_history()
            await self._subscribe_observations(channel, remote)

    async def refresh_now(self) -> bool:
        """Fetch the full state for the active partition right away."""
        channel = self._channel
        if channel is None:
            return False
        return await channel.refresh_now()

    # ------------------------------------------------------------------
    # Rendering-layer reads
    # ------------------------------------------------------------------

    def get_snapshot(self) -> Mapping[str, EstimateRecord]:
        return self._store.snapshot()

    def get_derived(self, key: str, *, highlighted: bool = False) -> DerivedAttributes | None:
        """Presentation attributes for *key*, or ``None`` if it is unknown.

        The highlight override is applied only when *highlighted* is
        passed; selection is applied automatically. Keys known only from
        the precinct directory are drawn from their geometry baseline.
        """
        record = self._store.get(key)
        fallback = self._directory.baseline_for(key)
        if record is None and fallback is None:
            return None
        return derive(
            record,
            self._previous.get(key),
            highlighted,
            selected=key == self._selected,
            fallback_prior=fallback,
            table=self._display_table,
        )

    def is_highlighted(self, key: str) -> bool:
        return self._highlights.is_highlighted(key)

    def highlighted_keys(self) -> frozenset[str]:
        return self._highlights.active()

    def get_log(self) -> list[ClassifiedSignal]:
        """Classified signals, oldest first."""
        return self._log.all()

    # ------------------------------------------------------------------
    # Selection and aggregates
    # ------------------------------------------------------------------

    @property
    def selected(self) -> str | None:
        return self._selected

    def select(self, key: str | None) -> None:
        self._selected = key

    def reporting_count(self) -> int:
        """Entities whose calibrated estimate is visible."""
        return sum(1 for record in self._store.snapshot().values() if record.visible)

    def high_divergence_count(self) -> int:
        return sum(
            1 for record in self._store.snapshot().values() if is_high_divergence(record, self._signal_table)
        )

    def signal_count(self) -> int:
        return len(self._log)

    # ------------------------------------------------------------------
    # Observations
    # ------------------------------------------------------------------

    async def submit(self, observation: RawObservation) -> SubmissionResult:
        """Send *observation* to the remote.

        Raises :class:`~pyturnout.exceptions.TurnoutSubmissionError` when
        the remote does not record it. On success a refresh is scheduled
        so the recomputed estimate is pulled without waiting for push.
        """
        if self._closed:
            raise TurnoutError("Engine is closed")
        if observation.partition is None and self.partition is not None:
            observation = observation.model_copy(update={"partition": self.partition})
        result = await self._ensure_remote().submit(observation)
        _logger.debug(
            "Submitted observation key=%s recomputed=%s",
            observation.entity_key,
            result.recomputed,
        )
        self._schedule(self.refresh_now())
        return result

    def ingest_observation(self, observation: RawObservation) -> ClassifiedSignal | None:
        """Classify a live observation and append it to the log.

        The impact reflects the target entity's divergence *now*. The
        entity is highlighted. Observations for another partition are
        dropped.
        """
        if self._closed:
            return None
        if observation.partition is not None and observation.partition != self.partition:
            _logger.debug(
                "Dropping observation for partition=%s (active=%s)",
                observation.partition,
                self.partition,
            )
            return None
        signal = classify_observation(
            observation,
            self._store.get(observation.entity_key),
            label=self._directory.name_for(observation.entity_key),
            table=self._signal_table,
        )
        self._log.append(signal)
        self._highlights.mark(observation.entity_key)
        self._emit(self._on_signal, signal)
        if self._config.refresh_on_observation:
            self._schedule(self.refresh_now())
        return signal

    async def load_history(self, limit: int | None = None) -> int:
        """Load past observations for the active partition into the log.

        History carries no divergence context, so every signal gets
        ``medium`` impact. Returns the number of signals appended.
        """
        partition = self.partition
        if partition is None or self._closed:
            return 0
        limit = self._config.history_limit if limit is None else limit
        try:
            observations = await self._ensure_remote().fetch_history(partition, limit)
        except TurnoutError:
            _logger.debug("History load failed partition=%s", partition, exc_info=True)
            return 0
        except Exception:
            _logger.warning("Unexpected history load error partition=%s", partition, exc_info=True)
            return 0
        if self.partition != partition or self._closed:
            return 0
        signals = [
            classify_observation(
                observation,
                label=self._directory.name_for(observation.entity_key),
                impact=SignalImpact.MEDIUM,
                table=self._signal_table,
            )
            for observation in observations
            if observation.partition in (None, partition)
        ]
        self._log.extend(signals)
        _logger.debug("Loaded %d historical signals partition=%s", len(signals), partition)
        return len(signals)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_remote(self) -> RemoteEstimates:
        if self._remote is None:
            self._remote = RemoteBackend.from_config(self._config)
        return self._remote

    def _on_channel_record(self, channel: SyncChannel, record: EstimateRecord, source: IngestionSource) -> None:
        if self._closed or channel is not self._channel:
            return
        self._apply_record(record, source)

    def _on_channel_status(self, channel: SyncChannel, connected: bool) -> None:
        if self._closed or channel is not self._channel:
            return
        self._emit(self._on_status, connected)

    def _apply_record(self, record: EstimateRecord, source: IngestionSource) -> RecordUpdate | None:
        outcome = self._store.merge(record)
        if not outcome.accepted:
            return None
        changed = has_changed(record, outcome.previous)
        self._previous[record.key] = outcome.previous
        if changed:
            self._highlights.mark(record.key)
        update = RecordUpdate(record=record, previous=outcome.previous, source=source, changed=changed)
        self._emit(self._on_update, update)
        return update

    async def _subscribe_observations(self, channel: SyncChannel, remote: RemoteEstimates) -> None:
        partition = channel.partition

        def on_observation(payload: Any) -> None:
            if self._closed or channel is not self._channel:
                return
            try:
                observation = parse_observation(payload, default_partition=partition)
            except MalformedRecordError:
                _logger.debug("Dropping malformed observation event", exc_info=True)
                return
            self.ingest_observation(observation)

        try:
            subscription = await remote.subscribe_observations(partition, on_observation)
        except Exception:
            _logger.debug("Observation feed unavailable for partition=%s", partition, exc_info=True)
            return
        if self._closed or channel is not self._channel:
            await self._close_subscription(subscription)
            return
        self._observations = subscription

    async def _close_subscription(self, subscription: Subscription) -> None:
        try:
            await subscription.close()
        except Exception:
            _logger.debug("Observation subscription close failed", exc_info=True)

    def _schedule(self, coro: Coroutine[Any, Any, Any]) -> None:
        if self._closed:
            coro.close()
            return
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.debug("Background task failed", exc_info=exc)

    def _emit(self, callback: Callable[[Any], None] | None, value: Any) -> None:
        if callback is None:
            return
        try:
            callback(value)
        except Exception:
            _logger.debug("Engine listener failed", exc_info=True)
