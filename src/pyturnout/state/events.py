"""Merge notifications emitted by the engine.

All ingestion paths (initial fetch, fallback poll, push, manual refresh)
end in the same store merge; :class:`RecordUpdate` tells listeners what
was merged and where it came from.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from pyturnout.models.estimate import EstimateRecord


class IngestionSource(StrEnum):
    FETCH = "fetch"
    POLL = "poll"
    PUSH = "push"
    REFRESH = "refresh"


class RecordUpdate(BaseModel):
    """An accepted merge into the entity store."""

    model_config = ConfigDict(frozen=True)

    record: EstimateRecord
    previous: EstimateRecord | None = None
    source: IngestionSource
    changed: bool
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def key(self) -> str:
        return self.record.key
