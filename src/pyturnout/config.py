"""Engine configuration for pyturnout."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

from pyturnout.exceptions import TurnoutConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclass(frozen=True)
class TurnoutConfig:
    """Engine configuration.

    Parameters
    ----------
    api_url : str
        Base URL of the estimates REST API (PostgREST-style), e.g.
        ``"https://example.supabase.co/rest/v1"``.
    api_key : str or None
        Key sent as ``apikey`` and bearer token on every request.
    mqtt_host : str or None
        Change-feed broker host. ``None`` disables the push channel, so
        the engine runs on polling alone.
    mqtt_port : int
        Broker port.
    mqtt_tls : bool
        Use TLS for the broker connection.
    mqtt_username, mqtt_password : str or None
        Broker credentials.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    mqtt_topic_prefix : str
        Topic prefix; estimates are published on
        ``<prefix>/estimates/<partition>`` and observations on
        ``<prefix>/submissions/<partition>``.
    default_partition : str
        Partition (election type) selected when the engine starts.
    poll_interval : float
        Seconds between full-state fetches while the push channel is down.
    highlight_seconds : float
        Length of the highlight window opened by a material change.
    event_log_capacity : int
        Maximum number of classified signals retained.
    request_timeout : float
        Total timeout for a single HTTP request, in seconds.
    refresh_on_observation : bool
        Pull a fresh snapshot whenever a live observation arrives.
    history_limit : int
        Past observations loaded into the event log on partition start.
        ``0`` disables the history load.
    """

    api_url: str = ""
    api_key: str | None = None
    mqtt_host: str | None = None
    mqtt_port: int = 8883
    mqtt_tls: bool = True
    mqtt_username: str | None = None
    mqtt_password: str | None = None
    mqtt_keepalive: int = 60
    mqtt_topic_prefix: str = "turnout"
    default_partition: str = "midterm_2026"
    poll_interval: float = 2.0
    highlight_seconds: float = 2.0
    event_log_capacity: int = 50
    request_timeout: float = 10.0
    refresh_on_observation: bool = True
    history_limit: int = 50

    def __post_init__(self) -> None:
        if self.poll_interval <= 0:
            raise TurnoutConfigError(f"poll_interval must be positive, got {self.poll_interval}")
        if self.highlight_seconds <= 0:
            raise TurnoutConfigError(f"highlight_seconds must be positive, got {self.highlight_seconds}")
        if self.event_log_capacity <= 0:
            raise TurnoutConfigError(f"event_log_capacity must be positive, got {self.event_log_capacity}")
        if self.history_limit < 0:
            raise TurnoutConfigError(f"history_limit must not be negative, got {self.history_limit}")
        if not self.default_partition.strip():
            raise TurnoutConfigError("default_partition must be non-empty")

    @property
    def push_enabled(self) -> bool:
        """Whether a change-feed broker is configured."""
        return bool(self.mqtt_host)

    def estimates_topic(self, partition: str) -> str:
        return f"{self.mqtt_topic_prefix}/estimates/{partition}"

    def submissions_topic(self, partition: str) -> str:
        return f"{self.mqtt_topic_prefix}/submissions/{partition}"

    @classmethod
    def from_env(cls, **overrides: Any) -> TurnoutConfig:
        """Create configuration from environment variables.

        Reads ``TURNOUT_API_URL``, ``TURNOUT_API_KEY`` and the optional
        ``TURNOUT_*`` variables below. Explicit keyword arguments override
        environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        TurnoutConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "TURNOUT_API_URL": "api_url",
            "TURNOUT_API_KEY": "api_key",
            "TURNOUT_MQTT_HOST": "mqtt_host",
            "TURNOUT_MQTT_USERNAME": "mqtt_username",
            "TURNOUT_MQTT_PASSWORD": "mqtt_password",
            "TURNOUT_MQTT_TOPIC_PREFIX": "mqtt_topic_prefix",
            "TURNOUT_PARTITION": "default_partition",
        }
        _ENV_INT_MAP = {
            "TURNOUT_MQTT_PORT": "mqtt_port",
            "TURNOUT_MQTT_KEEPALIVE": "mqtt_keepalive",
            "TURNOUT_EVENT_LOG_CAPACITY": "event_log_capacity",
            "TURNOUT_HISTORY_LIMIT": "history_limit",
        }
        _ENV_FLOAT_MAP = {
            "TURNOUT_POLL_INTERVAL": "poll_interval",
            "TURNOUT_HIGHLIGHT_SECONDS": "highlight_seconds",
            "TURNOUT_REQUEST_TIMEOUT": "request_timeout",
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        try:
            for env_key, field_name in _ENV_INT_MAP.items():
                val = env.get(env_key)
                if val is not None and field_name not in overrides:
                    config_kwargs[field_name] = int(val)
            for env_key, field_name in _ENV_FLOAT_MAP.items():
                val = env.get(env_key)
                if val is not None and field_name not in overrides:
                    config_kwargs[field_name] = float(val)
        except ValueError as exc:
            raise TurnoutConfigError(f"Invalid numeric TURNOUT_* value: {exc}") from exc

        if "mqtt_tls" not in overrides:
            config_kwargs["mqtt_tls"] = _env_bool(env.get("TURNOUT_MQTT_TLS"), True)

        if "refresh_on_observation" not in overrides:
            config_kwargs["refresh_on_observation"] = _env_bool(
                env.get("TURNOUT_REFRESH_ON_OBSERVATION"),
                True,
            )

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
