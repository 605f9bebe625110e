"""Raw observation (poll submission) model."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import AliasChoices, Field, field_validator

from pyturnout.models._base import TurnoutBaseModel, TurnoutTimestamp


class NeighborTurnout(StrEnum):
    """Answer to "will most of your neighbors vote?" (primary field)."""

    ALMOST_ALL = "almost_all"
    MOST = "most"
    ABOUT_HALF = "about_half"
    PROBABLY_NOT = "probably_not"
    DEFINITELY_NOT = "definitely_not"


class TurnoutDirection(StrEnum):
    """Answer to "higher or lower than last time?" (secondary field)."""

    MUCH_HIGHER = "much_higher"
    LITTLE_HIGHER = "little_higher"
    ABOUT_SAME = "about_same"
    LITTLE_LOWER = "little_lower"
    MUCH_LOWER = "much_lower"


class VoteIntent(StrEnum):
    """Answer to "are you personally likely to vote?".

    Collected and forwarded, but not used for signal classification.
    """

    DEFINITELY_YES = "definitely_yes"
    PROBABLY_YES = "probably_yes"
    NOT_SURE = "not_sure"
    PROBABLY_NOT = "probably_not"
    DEFINITELY_NOT = "definitely_not"


class RawObservation(TurnoutBaseModel):
    """A single multi-field observation about one precinct.

    Immutable once created. Remote rows use ``geo_id`` / ``created_at``;
    both the remote column names and the field names are accepted.
    """

    id: str | None = Field(default=None, validation_alias=AliasChoices("id", "submission_id"))
    entity_key: str = Field(validation_alias=AliasChoices("entity_key", "geo_id", "key", "entityKey"))
    partition: str | None = Field(default=None, validation_alias=AliasChoices("partition", "election_type"))
    neighbor_turnout: NeighborTurnout = Field(validation_alias=AliasChoices("neighbor_turnout", "field1"))
    turnout_direction: TurnoutDirection = Field(validation_alias=AliasChoices("turnout_direction", "field2"))
    vote_intent: VoteIntent | None = Field(default=None, validation_alias=AliasChoices("vote_intent", "field3"))
    submitted_at: TurnoutTimestamp = Field(
        default_factory=lambda: datetime.now(UTC),
        validation_alias=AliasChoices("submitted_at", "created_at", "submittedAt"),
    )

    @field_validator("entity_key")
    @classmethod
    def _normalize_key(cls, value: str) -> str:
        key = value.strip()
        if not key:
            raise ValueError("entity_key must be non-empty")
        return key

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: object) -> str | None:
        if value is None:
            return None
        return str(value)

    def to_row(self) -> dict[str, str]:
        """Serialize into the remote ``poll_submissions`` column layout."""
        row: dict[str, str] = {
            "geo_id": self.entity_key,
            "neighbor_turnout": self.neighbor_turnout.value,
            "turnout_direction": self.turnout_direction.value,
        }
        if self.vote_intent is not None:
            row["vote_intent"] = self.vote_intent.value
        if self.partition is not None:
            row["election_type"] = self.partition
        return row
