"""Observation endpoints.

Endpoints:
  - POST /poll_submissions               (record an observation)
  - POST /rpc/process_poll_submission    (ask the remote to recompute)
  - GET  /poll_submissions               (observation history)
"""

from __future__ import annotations

import logging
from typing import Any

from pyturnout._transport import Transport
from pyturnout.exceptions import TurnoutApiError, TurnoutSubmissionError, TurnoutTransportError
from pyturnout.ingestion.rows import parse_observations
from pyturnout.models.observation import RawObservation
from pyturnout.models.submission import SubmissionResult

_logger = logging.getLogger(__name__)

_INSERT_ENDPOINT = "/poll_submissions"
_PROCESS_ENDPOINT = "/rpc/process_poll_submission"
_HISTORY_ENDPOINT = "/poll_submissions"


def _build_process_params(observation: RawObservation) -> dict[str, Any]:
    params: dict[str, Any] = {
        "p_geo_id": observation.entity_key,
        "p_neighbor_turnout": observation.neighbor_turnout.value,
        "p_turnout_direction": observation.turnout_direction.value,
        "p_vote_intent": observation.vote_intent.value if observation.vote_intent is not None else None,
    }
    if observation.partition is not None:
        params["p_election_type"] = observation.partition
    return params


async def submit_observation(transport: Transport, observation: RawObservation) -> SubmissionResult:
    """Record *observation*, then request the remote recomputation.

    A failed insert raises :class:`TurnoutSubmissionError`. A failed
    recomputation is logged and reported via ``recomputed=False``: the
    observation is already recorded at that point.
    """
    try:
        inserted = await transport.post_json(_INSERT_ENDPOINT, observation.to_row())
    except (TurnoutApiError, TurnoutTransportError) as exc:
        code = exc.code if isinstance(exc, TurnoutApiError) else ""
        raise TurnoutSubmissionError(
            f"Observation for {observation.entity_key} was not recorded: {exc}",
            code=code,
            endpoint=_INSERT_ENDPOINT,
        ) from exc

    row: dict[str, Any] = {}
    if isinstance(inserted, list) and inserted and isinstance(inserted[0], dict):
        row = inserted[0]
    elif isinstance(inserted, dict):
        row = inserted
    observation_id = row.get("id")

    try:
        result = await transport.post_json(_PROCESS_ENDPOINT, _build_process_params(observation))
    except (TurnoutApiError, TurnoutTransportError):
        _logger.warning("Recomputation failed for key=%s; observation kept", observation.entity_key, exc_info=True)
        return SubmissionResult(
            observation_id=str(observation_id) if observation_id is not None else None,
            recomputed=False,
            raw=row,
        )

    return SubmissionResult(
        observation_id=str(observation_id) if observation_id is not None else None,
        recomputed=True,
        raw=result if isinstance(result, dict) else row,
    )


async def fetch_observation_history(transport: Transport, partition: str, limit: int) -> list[RawObservation]:
    """Fetch the latest *limit* observations for *partition*, oldest first."""
    if limit <= 0:
        return []
    rows = await transport.get_json(
        _HISTORY_ENDPOINT,
        {
            "select": "id,geo_id,election_type,neighbor_turnout,turnout_direction,vote_intent,created_at",
            "election_type": f"eq.{partition}",
            "order": "created_at.desc",
            "limit": str(limit),
        },
    )
    if rows is None:
        return []
    if not isinstance(rows, list):
        raise TurnoutTransportError(f"{_HISTORY_ENDPOINT} returned a non-list body", endpoint=_HISTORY_ENDPOINT)
    observations = parse_observations(rows, default_partition=partition)
    observations.sort(key=lambda obs: obs.submitted_at)
    return observations
