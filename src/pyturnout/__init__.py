"""pyturnout - Real-time reconciliation engine for live turnout estimates."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyturnout")
except PackageNotFoundError:
    __version__ = "0+local"
from pyturnout.config import TurnoutConfig
from pyturnout.context import PrecinctDirectory, PrecinctInfo
from pyturnout.engine import TurnoutEngine
from pyturnout.exceptions import (
    MalformedRecordError,
    TurnoutApiError,
    TurnoutConfigError,
    TurnoutError,
    TurnoutFeedError,
    TurnoutSubmissionError,
    TurnoutTransportError,
)
from pyturnout.models import (
    ClassifiedSignal,
    DerivedAttributes,
    EstimateRecord,
    NeighborTurnout,
    Partition,
    RawObservation,
    SignalDirection,
    SignalImpact,
    SubmissionResult,
    TurnoutDirection,
    VoteIntent,
)
from pyturnout.remote import RemoteBackend, RemoteEstimates, Subscription
from pyturnout.state.event_log import EventLog
from pyturnout.state.highlight import HighlightScheduler
from pyturnout.state.store import EntityStore
from pyturnout.sync.channel import SyncChannel
from pyturnout.tables import DEFAULT_DISPLAY_TABLE, DEFAULT_SIGNAL_TABLE, DisplayTable, SignalTable

__all__ = [
    "__version__",
    "ClassifiedSignal",
    "DEFAULT_DISPLAY_TABLE",
    "DEFAULT_SIGNAL_TABLE",
    "DerivedAttributes",
    "DisplayTable",
    "EntityStore",
    "EstimateRecord",
    "EventLog",
    "HighlightScheduler",
    "MalformedRecordError",
    "NeighborTurnout",
    "Partition",
    "PrecinctDirectory",
    "PrecinctInfo",
    "RawObservation",
    "RemoteBackend",
    "RemoteEstimates",
    "SignalDirection",
    "SignalImpact",
    "SignalTable",
    "SubmissionResult",
    "Subscription",
    "SyncChannel",
    "TurnoutApiError",
    "TurnoutConfig",
    "TurnoutConfigError",
    "TurnoutDirection",
    "TurnoutEngine",
    "TurnoutError",
    "TurnoutFeedError",
    "TurnoutSubmissionError",
    "TurnoutTransportError",
    "VoteIntent",
]
