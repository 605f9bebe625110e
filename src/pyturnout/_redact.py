"""Helpers for safe debug logging.

Two kinds of values must never reach logs: credentials (the API key is
sent both as ``apikey`` and as a bearer ``authorization`` header, and the
broker password lives in the config) and anything that could tie an
individual submission back to a voter. Published estimates are only
k-anonymous while single submissions stay unlinkable.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel

# Compared after lower-casing and dropping "-" and "_", so "x-api-key",
# "api_key" and "apiKey" all match "apikey".
_CREDENTIAL_KEYS: frozenset[str] = frozenset(
    {
        "apikey",
        "xapikey",
        "authorization",
        "password",
        "mqttpassword",
        "accesstoken",
        "refreshtoken",
        "cookie",
    }
)

# A submission's own answer; the aggregate columns stay loggable.
_VOTER_KEYS: frozenset[str] = frozenset(
    {
        "voteintent",
        "field3",
        "voterid",
        "votername",
        "phone",
        "phonenumber",
        "ipaddress",
    }
)

_REDACTED = "<redacted>"
_MAX_ITEMS = 20


def _normalize_key(key: Any) -> str:
    return str(key).lower().replace("-", "").replace("_", "")


def is_sensitive_key(key: Any) -> bool:
    normalized = _normalize_key(key)
    return normalized in _CREDENTIAL_KEYS or normalized in _VOTER_KEYS


def redact_for_log(value: Any, *, max_string: int = 256, max_items: int = _MAX_ITEMS) -> Any:
    """Return a copy of *value* with credentials and voter fields masked.

    Handles the shapes pyturnout logs: decoded JSON rows and change
    envelopes, batches of rows, pydantic models and raw feed bytes.
    Batches longer than *max_items* are cut and summarized.
    """
    return _redact(value, max_string, max_items, 0)


def _redact(value: Any, max_string: int, max_items: int, depth: int) -> Any:
    if depth > 8:
        return "<max-depth>"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return value if len(value) <= max_string else f"{value[:max_string]}...<{len(value)} chars>"
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json")
    if isinstance(value, Mapping):
        return {
            str(k): _REDACTED if is_sensitive_key(k) else _redact(v, max_string, max_items, depth + 1)
            for k, v in value.items()
        }
    if isinstance(value, Sequence):
        items = [_redact(v, max_string, max_items, depth + 1) for v in value[:max_items]]
        if len(value) > max_items:
            items.append(f"<+{len(value) - max_items} more>")
        return items
    return repr(value)
