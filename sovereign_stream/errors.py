"""
Exception hierarchy for sovereign-stream.

Only transport-level failures and cancellation travel as exceptions.
Decode noise (non-JSON lines, keepalives) never leaves the record layer.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Category of a failed request."""
    CONNECTION = "connection"
    TIMEOUT = "timeout"
    HTTP_STATUS = "http_status"
    SERVER = "server"
    INTERNAL = "internal"


class SovereignStreamError(Exception):
    """Base exception for sovereign-stream."""
    pass


class TransportError(SovereignStreamError):
    """Connection refused, timeout, or non-2xx HTTP status."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


class RequestCancelled(SovereignStreamError):
    """Raised by a transport when it observes a cancellation signal."""
    pass


class BackendUnavailable(SovereignStreamError):
    """Availability probe failed. A pre-flight warning, not a stream error."""
    pass
