"""Observation submission acknowledgement."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SubmissionResult(BaseModel):
    """Returned by a successful submit.

    ``recomputed`` is ``False`` when the observation was recorded but the
    remote recomputation call failed; the estimate will still catch up on
    the remote's next run, so this is not an error.
    """

    model_config = ConfigDict(frozen=True)

    observation_id: str | None = None
    recomputed: bool = False
    raw: dict[str, Any] = Field(default_factory=dict)
