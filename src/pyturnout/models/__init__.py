"""Data models for estimates, observations and classified signals."""

from pyturnout.models._base import TurnoutBaseModel, TurnoutTimestamp, parse_timestamp
from pyturnout.models.derived import DerivedAttributes
from pyturnout.models.estimate import EstimateRecord
from pyturnout.models.observation import NeighborTurnout, RawObservation, TurnoutDirection, VoteIntent
from pyturnout.models.partition import Partition
from pyturnout.models.signal import ClassifiedSignal, SignalDirection, SignalImpact
from pyturnout.models.submission import SubmissionResult

__all__ = [
    "ClassifiedSignal",
    "DerivedAttributes",
    "EstimateRecord",
    "NeighborTurnout",
    "Partition",
    "RawObservation",
    "SignalDirection",
    "SignalImpact",
    "SubmissionResult",
    "TurnoutBaseModel",
    "TurnoutDirection",
    "TurnoutTimestamp",
    "VoteIntent",
    "parse_timestamp",
]
