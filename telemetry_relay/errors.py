"""Error types raised inside the relay."""
from typing import Optional


class RelayError(Exception):
    """Base class for relay errors."""


class DecodeError(RelayError):
    """A transport notification could not be decoded into an event."""


class DeliveryError(RelayError):
    """A delivery attempt to the collector failed.

    Network faults, timeouts and non-2xx responses all end up here; the
    retry policy does not look at the cause.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PersistenceError(RelayError):
    """The durable queue entry could not be read or written."""
