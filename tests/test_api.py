from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import pytest

from pyturnout._api.estimates import fetch_estimates
from pyturnout._api.submissions import fetch_observation_history, submit_observation
from pyturnout.exceptions import TurnoutApiError, TurnoutSubmissionError, TurnoutTransportError
from pyturnout.models.observation import RawObservation


@dataclass
class FakeTransport:
    responses: dict[tuple[str, str], Any] = field(default_factory=dict)
    errors: dict[tuple[str, str], Exception] = field(default_factory=dict)
    calls: list[tuple[str, str, Any]] = field(default_factory=list)

    async def get_json(self, endpoint: str, params: Mapping[str, str] | None = None) -> Any:
        self.calls.append(("GET", endpoint, dict(params or {})))
        return self._respond("GET", endpoint)

    async def post_json(self, endpoint: str, payload: Any) -> Any:
        self.calls.append(("POST", endpoint, payload))
        return self._respond("POST", endpoint)

    def _respond(self, method: str, endpoint: str) -> Any:
        error = self.errors.get((method, endpoint))
        if error is not None:
            raise error
        return self.responses.get((method, endpoint))


def _observation() -> RawObservation:
    return RawObservation.model_validate(
        {
            "geo_id": "P1",
            "election_type": "A",
            "neighbor_turnout": "almost_all",
            "turnout_direction": "much_higher",
        }
    )


@pytest.mark.asyncio
async def test_fetch_estimates_filters_by_partition_and_drops_bad_rows() -> None:
    transport = FakeTransport(
        responses={
            ("GET", "/posterior_estimates"): [
                {"geo_id": "P1", "election_type": "A", "mu_prior": 0.6},
                {"election_type": "A"},
            ]
        }
    )

    records = await fetch_estimates(transport, "A")

    assert [r.key for r in records] == ["P1"]
    method, endpoint, params = transport.calls[0]
    assert (method, endpoint) == ("GET", "/posterior_estimates")
    assert params["election_type"] == "eq.A"


@pytest.mark.asyncio
async def test_fetch_estimates_rejects_non_list_body() -> None:
    transport = FakeTransport(responses={("GET", "/posterior_estimates"): {"oops": True}})

    with pytest.raises(TurnoutTransportError):
        await fetch_estimates(transport, "A")


@pytest.mark.asyncio
async def test_submit_inserts_then_requests_recompute() -> None:
    transport = FakeTransport(
        responses={
            ("POST", "/poll_submissions"): [{"id": 99, "geo_id": "P1"}],
            ("POST", "/rpc/process_poll_submission"): {"mu_post": 0.64},
        }
    )

    result = await submit_observation(transport, _observation())

    assert result.observation_id == "99"
    assert result.recomputed is True
    assert result.raw == {"mu_post": 0.64}
    assert [c[1] for c in transport.calls] == ["/poll_submissions", "/rpc/process_poll_submission"]
    assert transport.calls[0][2]["geo_id"] == "P1"
    assert transport.calls[1][2]["p_election_type"] == "A"


@pytest.mark.asyncio
async def test_submit_failed_insert_raises_submission_error() -> None:
    transport = FakeTransport(
        errors={("POST", "/poll_submissions"): TurnoutApiError("rejected", code="23505", endpoint="/poll_submissions")}
    )

    with pytest.raises(TurnoutSubmissionError) as excinfo:
        await submit_observation(transport, _observation())

    assert excinfo.value.code == "23505"
    assert len(transport.calls) == 1


@pytest.mark.asyncio
async def test_submit_failed_recompute_still_succeeds() -> None:
    transport = FakeTransport(
        responses={("POST", "/poll_submissions"): [{"id": 5}]},
        errors={("POST", "/rpc/process_poll_submission"): TurnoutTransportError("down", status_code=503)},
    )

    result = await submit_observation(transport, _observation())

    assert result.recomputed is False
    assert result.observation_id == "5"


@pytest.mark.asyncio
async def test_history_is_returned_oldest_first() -> None:
    transport = FakeTransport(
        responses={
            ("GET", "/poll_submissions"): [
                {
                    "id": 2,
                    "geo_id": "P2",
                    "neighbor_turnout": "most",
                    "turnout_direction": "about_same",
                    "created_at": "2026-11-03T12:05:00Z",
                },
                {"id": 3, "geo_id": "P3", "neighbor_turnout": "most"},
                {
                    "id": 1,
                    "geo_id": "P1",
                    "neighbor_turnout": "most",
                    "turnout_direction": "about_same",
                    "created_at": "2026-11-03T12:00:00Z",
                },
            ]
        }
    )

    history = await fetch_observation_history(transport, "A", 10)

    assert [o.id for o in history] == ["1", "2"]
    assert all(o.partition == "A" for o in history)
    params = transport.calls[0][2]
    assert params["order"] == "created_at.desc"
    assert params["limit"] == "10"


@pytest.mark.asyncio
async def test_history_limit_zero_skips_request() -> None:
    transport = FakeTransport()

    assert await fetch_observation_history(transport, "A", 0) == []
    assert transport.calls == []
