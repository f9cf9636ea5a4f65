"""Exceptions raised by trafficwatch."""

from __future__ import annotations


class TrafficWatchError(Exception):
    """Base class for all trafficwatch errors."""


class SampleValidationError(TrafficWatchError, ValueError):
    """A sample carries values outside the counter or timestamp domain.

    Raised before the rate engine touches its state, so the previous
    reference sample survives.
    """


class SamplerError(TrafficWatchError):
    """Fetching counters from the device failed."""

    def __init__(self, message: str, *, host: str | None = None) -> None:
        self.message = message
        self.host = host
        super().__init__(message)


class SamplerTimeoutError(SamplerError):
    """The fetch did not complete within the poll timeout."""


class UnknownInterfaceError(TrafficWatchError, LookupError):
    """The interface index is not in the monitored set."""

    def __init__(self, if_index: int) -> None:
        self.if_index = if_index
        super().__init__(f"Interface {if_index} is not monitored")
