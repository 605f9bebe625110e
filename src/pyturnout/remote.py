"""Remote estimates service: the interface the engine consumes and its production backend."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Protocol

import aiohttp

from pyturnout._api import estimates as _estimates_api
from pyturnout._api import submissions as _submissions_api
from pyturnout._mqtt import BrokerSettings, ChangeFeedRuntime, FeedMessage
from pyturnout._transport import RestTransport, Transport
from pyturnout.config import TurnoutConfig
from pyturnout.exceptions import TurnoutConfigError, TurnoutFeedError
from pyturnout.models.estimate import EstimateRecord
from pyturnout.models.observation import RawObservation
from pyturnout.models.submission import SubmissionResult

_logger = logging.getLogger(__name__)

#: Receives one raw change-feed payload (row or change envelope).
EventHandler = Callable[[Any], None]
#: Receives the push channel's connectivity.
StatusHandler = Callable[[bool], None]


class Subscription(Protocol):
    """Handle for an open push subscription."""

    @property
    def active(self) -> bool: ...

    async def close(self) -> None: ...


class RemoteEstimates(Protocol):
    """Structural interface of the remote estimates service.

    ``subscribe`` handlers are invoked on the event loop. Payloads may
    belong to any key or partition and may be malformed; callers parse
    and filter them.
    """

    async def fetch_all(self, partition: str) -> list[EstimateRecord]: ...

    async def subscribe(
        self,
        partition: str,
        on_event: EventHandler,
        on_status: StatusHandler,
    ) -> Subscription: ...

    async def submit(self, observation: RawObservation) -> SubmissionResult: ...

    async def fetch_history(self, partition: str, limit: int) -> list[RawObservation]: ...

    async def subscribe_observations(self, partition: str, on_observation: EventHandler) -> Subscription: ...

    async def close(self) -> None: ...


class FeedSubscription:
    """:class:`Subscription` backed by a :class:`ChangeFeedRuntime`."""

    def __init__(self, runtime: ChangeFeedRuntime, loop: asyncio.AbstractEventLoop) -> None:
        self._runtime = runtime
        self._loop = loop
        self._closed = False

    @property
    def topic(self) -> str:
        return self._runtime.topic

    @property
    def active(self) -> bool:
        return not self._closed and self._runtime.is_connected

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._loop.run_in_executor(None, self._runtime.stop)
        except Exception:
            _logger.debug("MQTT runtime stop failed topic=%s", self._runtime.topic, exc_info=True)


class InactiveSubscription:
    """Subscription that never connects (push channel not configured)."""

    @property
    def active(self) -> bool:
        return False

    async def close(self) -> None:
        return None


class RemoteBackend:
    """Production :class:`RemoteEstimates`: REST over aiohttp, push over MQTT.

    Usage::

        async with RemoteBackend(config) as remote:
            records = await remote.fetch_all("midterm_2026")
    """

    def __init__(
        self,
        config: TurnoutConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport
        self._subscriptions: set[FeedSubscription] = set()

    @classmethod
    def from_config(cls, config: TurnoutConfig, session: aiohttp.ClientSession | None = None) -> RemoteBackend:
        if not config.api_url:
            raise TurnoutConfigError("api_url is required to reach the estimates API")
        return cls(config, session=session)

    async def __aenter__(self) -> RemoteBackend:
        self._ensure_transport()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    def _ensure_transport(self) -> Transport:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = RestTransport(self._config, self._http_session)
        return self._transport

    async def fetch_all(self, partition: str) -> list[EstimateRecord]:
        return await _estimates_api.fetch_estimates(self._ensure_transport(), partition)

    async def submit(self, observation: RawObservation) -> SubmissionResult:
        return await _submissions_api.submit_observation(self._ensure_transport(), observation)

    async def fetch_history(self, partition: str, limit: int) -> list[RawObservation]:
        return await _submissions_api.fetch_observation_history(self._ensure_transport(), partition, limit)

    async def subscribe(
        self,
        partition: str,
        on_event: EventHandler,
        on_status: StatusHandler,
    ) -> Subscription:
        return await self._open_feed(self._config.estimates_topic(partition), on_event, on_status)

    async def subscribe_observations(self, partition: str, on_observation: EventHandler) -> Subscription:
        return await self._open_feed(self._config.submissions_topic(partition), on_observation, None)

    async def _open_feed(
        self,
        topic: str,
        on_event: EventHandler,
        on_status: StatusHandler | None,
    ) -> Subscription:
        if not self._config.push_enabled:
            _logger.debug("Push channel not configured; %s stays inactive", topic)
            return InactiveSubscription()

        def on_message(message: FeedMessage) -> None:
            on_event(message.payload)

        loop = asyncio.get_running_loop()
        runtime = ChangeFeedRuntime(
            loop=loop,
            topic=topic,
            on_message=on_message,
            on_status=on_status,
            logger=_logger,
        )
        try:
            await loop.run_in_executor(None, runtime.start, BrokerSettings.from_config(self._config))
        except (OSError, ValueError) as exc:
            await loop.run_in_executor(None, runtime.stop)
            raise TurnoutFeedError(f"Cannot open change feed {topic}: {exc}") from exc
        subscription = FeedSubscription(runtime, loop)
        self._subscriptions.add(subscription)
        return subscription

    async def close(self) -> None:
        """Close every open subscription and the owned HTTP session."""
        subscriptions = list(self._subscriptions)
        self._subscriptions.clear()
        for subscription in subscriptions:
            await subscription.close()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
        self._http_session = None
        self._transport = None
