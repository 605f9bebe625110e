"""Row → model conversion for estimates and observations.

Every path that receives remote data (full fetch, poll, push, history)
goes through these helpers, so malformed input is handled the same way
everywhere: single rows raise :class:`MalformedRecordError`, batches
drop the bad rows and keep the rest.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from pyturnout._redact import redact_for_log
from pyturnout.exceptions import MalformedRecordError
from pyturnout.ingestion.normalize import unwrap_change_row
from pyturnout.models.estimate import EstimateRecord
from pyturnout.models.observation import RawObservation

_logger = logging.getLogger(__name__)


def parse_estimate(payload: Any, *, default_partition: str | None = None) -> EstimateRecord:
    """Parse one estimate row or change envelope.

    *default_partition* is stamped on rows that do not carry one (the
    change feed is partition-scoped by topic).
    """
    if isinstance(payload, EstimateRecord):
        return payload
    row = unwrap_change_row(payload)
    if row is None:
        raise MalformedRecordError("estimate payload carries no row", payload=payload)
    if default_partition is not None and not row.get("election_type") and not row.get("partition"):
        row = {**row, "partition": default_partition}
    try:
        return EstimateRecord.model_validate(row)
    except ValidationError as exc:
        raise MalformedRecordError(f"invalid estimate row: {exc.error_count()} error(s)", payload=payload) from exc


def parse_estimates(rows: Iterable[Any], *, default_partition: str | None = None) -> list[EstimateRecord]:
    """Parse a batch of estimate rows, dropping malformed ones."""
    records: list[EstimateRecord] = []
    for row in rows:
        try:
            records.append(parse_estimate(row, default_partition=default_partition))
        except MalformedRecordError:
            _logger.debug("Dropping malformed estimate row %s", redact_for_log(row), exc_info=True)
    return records


def parse_observation(payload: Any, *, default_partition: str | None = None) -> RawObservation:
    """Parse one observation row or change envelope."""
    if isinstance(payload, RawObservation):
        return payload
    row = unwrap_change_row(payload)
    if row is None:
        raise MalformedRecordError("observation payload carries no row", payload=payload)
    if default_partition is not None and not row.get("election_type") and not row.get("partition"):
        row = {**row, "partition": default_partition}
    try:
        return RawObservation.model_validate(row)
    except ValidationError as exc:
        raise MalformedRecordError(
            f"invalid observation row: {exc.error_count()} error(s)",
            payload=payload,
        ) from exc


def parse_observations(rows: Iterable[Any], *, default_partition: str | None = None) -> list[RawObservation]:
    """Parse a batch of observation rows, dropping malformed ones."""
    observations: list[RawObservation] = []
    for row in rows:
        try:
            observations.append(parse_observation(row, default_partition=default_partition))
        except MalformedRecordError:
            _logger.debug("Dropping malformed observation row %s", redact_for_log(row), exc_info=True)
    return observations
