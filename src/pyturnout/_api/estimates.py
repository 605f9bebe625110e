"""Estimate read endpoint.

Endpoint:
  - GET /posterior_estimates?election_type=eq.<partition>
"""

from __future__ import annotations

import logging

from pyturnout._transport import Transport
from pyturnout.exceptions import TurnoutTransportError
from pyturnout.ingestion.rows import parse_estimates
from pyturnout.models.estimate import EstimateRecord

_logger = logging.getLogger(__name__)

_ENDPOINT = "/posterior_estimates"


async def fetch_estimates(transport: Transport, partition: str) -> list[EstimateRecord]:
    """Fetch the full estimate snapshot for *partition*.

    Malformed rows are dropped; rows reporting a different partition are
    kept here and filtered by the caller.
    """
    rows = await transport.get_json(
        _ENDPOINT,
        {"select": "*", "election_type": f"eq.{partition}"},
    )
    if rows is None:
        return []
    if not isinstance(rows, list):
        raise TurnoutTransportError(f"{_ENDPOINT} returned a non-list body", endpoint=_ENDPOINT)
    records = parse_estimates(rows)
    _logger.debug("Fetched %d/%d estimate rows for partition=%s", len(records), len(rows), partition)
    return records
