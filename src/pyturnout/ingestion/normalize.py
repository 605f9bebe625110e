"""Normalization helpers.

Centralizes defensive parsing of change-feed envelopes.
"""

from __future__ import annotations

import json
import math
from typing import Any


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or value == "--":
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return result


def unwrap_change_row(payload: Any) -> dict[str, Any] | None:
    """Return the row carried by a change-feed payload.

    Accepts a bare row, a change envelope (``{"new": row, ...}``) or a
    ``{"record": row}`` wrapper. Returns ``None`` when no row object is
    present, e.g. for ``DELETE`` envelopes whose ``new`` is empty.
    """
    if not isinstance(payload, dict):
        return None
    for key in ("new", "record"):
        if key in payload:
            candidate = payload[key]
            return candidate if isinstance(candidate, dict) and candidate else None
    return payload if payload else None


def decode_json_object(raw: bytes | str) -> dict[str, Any] | None:
    """Decode a JSON object, returning ``None`` for anything else."""
    try:
        text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        parsed = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    return parsed if isinstance(parsed, dict) else None
