"""Custom exception hierarchy for pyturnout."""

from __future__ import annotations


class TurnoutError(Exception):
    """Base exception for all pyturnout errors."""


class TurnoutConfigError(TurnoutError):
    """Invalid or missing configuration."""


class TurnoutTransportError(TurnoutError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class TurnoutApiError(TurnoutError):
    """The remote API rejected a request (application-level error)."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "",
        endpoint: str = "",
    ) -> None:
        self.code = code
        self.endpoint = endpoint
        super().__init__(message)


class TurnoutSubmissionError(TurnoutApiError):
    """An observation could not be recorded by the remote.

    This is the only failure the sync core surfaces to its caller. No
    local state is rolled back because nothing is applied optimistically.
    """


class TurnoutFeedError(TurnoutError):
    """Push feed (MQTT) could not be started or was lost."""


class MalformedRecordError(TurnoutError):
    """A raw row or push payload could not be parsed into a model.

    Callers inside the sync core drop the offending record and leave the
    store untouched.
    """

    def __init__(self, message: str, *, payload: object = None) -> None:
        self.payload = payload
        super().__init__(message)
