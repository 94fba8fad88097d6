"""
Caller-visible stream events.

A request produces zero or more Delta events followed by exactly one
terminal event: Complete, Error, or Cancelled.
"""

from dataclasses import dataclass
from typing import Union

from sovereign_stream.errors import ErrorKind


@dataclass(frozen=True)
class Delta:
    """A new piece of text plus the whole answer so far."""

    text: str
    accumulated: str


@dataclass(frozen=True)
class Complete:
    text: str


@dataclass(frozen=True)
class Error:
    kind: ErrorKind
    message: str


@dataclass(frozen=True)
class Cancelled:
    """Request stopped by the caller. `partial` is what had been assembled."""

    partial: str = ""


TerminalEvent = Union[Complete, Error, Cancelled]
StreamEvent = Union[Delta, Complete, Error, Cancelled]


def is_terminal(event: StreamEvent) -> bool:
    return isinstance(event, (Complete, Error, Cancelled))
