from __future__ import annotations

import asyncio
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import pytest

from pyturnout._mqtt import BrokerSettings, ChangeFeedRuntime, FeedMessage
from pyturnout.config import TurnoutConfig
from pyturnout.exceptions import TurnoutConfigError
from pyturnout.remote import InactiveSubscription, RemoteBackend


@dataclass
class RecordingTransport:
    rows: list[dict[str, Any]] = field(default_factory=list)
    calls: list[tuple[str, str]] = field(default_factory=list)

    async def get_json(self, endpoint: str, params: Mapping[str, str] | None = None) -> Any:
        self.calls.append(("GET", endpoint))
        return self.rows

    async def post_json(self, endpoint: str, payload: Any) -> Any:
        self.calls.append(("POST", endpoint))
        return [{"id": 1}]


def test_broker_settings_require_host() -> None:
    with pytest.raises(TurnoutConfigError):
        BrokerSettings.from_config(TurnoutConfig())

    settings = BrokerSettings.from_config(TurnoutConfig(mqtt_host="broker", mqtt_port=1883, mqtt_tls=False))
    assert (settings.host, settings.port, settings.tls) == ("broker", 1883, False)


def test_backend_from_config_requires_api_url() -> None:
    with pytest.raises(TurnoutConfigError):
        RemoteBackend.from_config(TurnoutConfig())


@pytest.mark.asyncio
async def test_backend_reads_through_transport() -> None:
    transport = RecordingTransport(rows=[{"geo_id": "P1", "election_type": "A", "mu_prior": 0.5}])
    backend = RemoteBackend(TurnoutConfig(), transport=transport)

    records = await backend.fetch_all("A")

    assert [r.key for r in records] == ["P1"]
    assert transport.calls == [("GET", "/posterior_estimates")]


@pytest.mark.asyncio
async def test_backend_without_broker_returns_inactive_subscriptions() -> None:
    backend = RemoteBackend(TurnoutConfig(), transport=RecordingTransport())

    estimates = await backend.subscribe("A", lambda payload: None, lambda connected: None)
    observations = await backend.subscribe_observations("A", lambda payload: None)

    assert isinstance(estimates, InactiveSubscription)
    assert isinstance(observations, InactiveSubscription)
    assert estimates.active is False
    await estimates.close()
    await backend.close()


@pytest.mark.asyncio
async def test_runtime_dispatches_from_network_thread_onto_loop() -> None:
    loop = asyncio.get_running_loop()
    received: list[tuple[FeedMessage, int]] = []
    statuses: list[bool] = []
    runtime = ChangeFeedRuntime(
        loop=loop,
        topic="turnout/estimates/A",
        on_message=lambda message: received.append((message, threading.get_ident())),
        on_status=statuses.append,
    )
    # Bypass the broker; dispatch only requires a running runtime.
    runtime._running = True  # type: ignore[attr-defined]
    message = FeedMessage(topic=runtime.topic, payload={"geo_id": "P1"})

    def network_thread() -> None:
        runtime._set_connected(True)  # type: ignore[attr-defined]
        loop.call_soon_threadsafe(runtime._dispatch_message, message)  # type: ignore[attr-defined]

    worker = threading.Thread(target=network_thread)
    worker.start()
    worker.join()
    await asyncio.sleep(0.01)

    assert runtime.is_connected
    assert statuses == [True]
    assert received == [(message, threading.get_ident())]


@pytest.mark.asyncio
async def test_runtime_drops_callbacks_after_stop() -> None:
    loop = asyncio.get_running_loop()
    received: list[FeedMessage] = []
    statuses: list[bool] = []
    runtime = ChangeFeedRuntime(
        loop=loop,
        topic="turnout/estimates/A",
        on_message=received.append,
        on_status=statuses.append,
    )
    runtime._running = True  # type: ignore[attr-defined]

    runtime._set_connected(True)  # type: ignore[attr-defined]
    loop.call_soon_threadsafe(
        runtime._dispatch_message,  # type: ignore[attr-defined]
        FeedMessage(topic=runtime.topic, payload={}),
    )
    runtime.stop()
    await asyncio.sleep(0.01)

    assert not runtime.is_running
    assert not runtime.is_connected
    assert received == []
    assert statuses == []
