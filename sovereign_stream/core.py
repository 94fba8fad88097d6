"""
Core logic: single-shot requests outside of a conversation session.

Non-chat operations (explain, review, generate, refactor, fix, tests) send
one payload, wait for the finished text, and optionally pull the code block
out of it. They run through the same decode/interpret/assemble pipeline as
chat sessions.
"""

import logging
from contextlib import aclosing
from typing import Awaitable, Callable, Optional

from sovereign_stream.adapters.base import StreamTransport
from sovereign_stream.adapters.schema import RequestPayload
from sovereign_stream.assembler import SideChannelHandler, assemble
from sovereign_stream.cancellation import CancelToken
from sovereign_stream.errors import BackendUnavailable, RequestCancelled, TransportError
from sovereign_stream.events import Cancelled, Delta, Error, TerminalEvent
from sovereign_stream.extraction import extract_code

logger = logging.getLogger(__name__)

# async callback(delta_event)
DeltaHandler = Optional[Callable[[Delta], Awaitable[None]]]


async def probe_backend(transport: StreamTransport) -> None:
    """
    Pre-flight check before submitting.

    Raises BackendUnavailable when the status probe fails.
    """
    if not await transport.is_available():
        raise BackendUnavailable(
            f"Backend not reachable via {type(transport).__name__}"
        )


async def run_request(
    transport: StreamTransport,
    payload: RequestPayload,
    cancel: Optional[CancelToken] = None,
    on_delta: DeltaHandler = None,
    on_side_channel: SideChannelHandler = None,
) -> TerminalEvent:
    """
    Run one request to its terminal event.

    Deltas are handed to `on_delta` in arrival order; the terminal event is
    returned rather than delivered.
    """
    lines = transport.stream_lines(payload, cancel)
    terminal: Optional[TerminalEvent] = None
    async with aclosing(assemble(lines, on_side_channel)) as events:
        async for event in events:
            if isinstance(event, Delta):
                if on_delta:
                    await on_delta(event)
            else:
                terminal = event
    if terminal is None:
        raise RuntimeError("assemble() ended without a terminal event")
    return terminal


async def complete_text(
    transport: StreamTransport,
    payload: RequestPayload,
    cancel: Optional[CancelToken] = None,
    on_delta: DeltaHandler = None,
) -> str:
    """
    Get the finished response text.

    Raises TransportError on failure and RequestCancelled on cancellation.
    """
    terminal = await run_request(transport, payload, cancel=cancel, on_delta=on_delta)
    if isinstance(terminal, Error):
        raise TransportError(terminal.kind, terminal.message)
    if isinstance(terminal, Cancelled):
        raise RequestCancelled("Request cancelled")
    return terminal.text


async def generate_code(
    transport: StreamTransport,
    payload: RequestPayload,
    cancel: Optional[CancelToken] = None,
) -> str:
    """complete_text() followed by code extraction."""
    text = await complete_text(transport, payload, cancel=cancel)
    return extract_code(text)
