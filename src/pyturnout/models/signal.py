"""Classified signal model (event log entries)."""

from __future__ import annotations

from enum import StrEnum

from pydantic import Field

from pyturnout.models._base import TurnoutBaseModel, TurnoutTimestamp


class SignalDirection(StrEnum):
    """Whether an observation points above, at, or below the baseline."""

    HIGHER = "higher"
    SAME = "same"
    LOWER = "lower"


class SignalImpact(StrEnum):
    """How surprising the target entity already is when the signal lands."""

    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class ClassifiedSignal(TurnoutBaseModel):
    """Compact categorical summary of one raw observation.

    ``estimated_shift`` is illustrative only (native units, i.e. a
    turnout fraction) and is never fed back into the entity store.
    """

    id: str
    timestamp: TurnoutTimestamp
    entity_key: str
    label: str
    direction: SignalDirection
    impact: SignalImpact
    estimated_shift: float = Field(default=0.0)
