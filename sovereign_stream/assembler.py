"""
Response assembly: frames for one request -> Delta events + one terminal event.

The assembler owns a single growing buffer. Every Delta carries the whole
buffer so a renderer can redraw from cumulative state instead of stitching
increments together. A non-empty `result` on the terminal record
replaces the buffer.
"""

import logging
from contextlib import aclosing
from typing import AsyncIterator, Callable, Optional

from sovereign_stream.errors import ErrorKind, RequestCancelled, TransportError
from sovereign_stream.events import (
    Cancelled, Complete, Delta, Error, StreamEvent, TerminalEvent, is_terminal,
)
from sovereign_stream.records import EndFrame, Frame, SideChannelFrame, TextFrame, interpret_line

logger = logging.getLogger(__name__)

# Called with the raw record of a stats/memories response.
SideChannelHandler = Optional[Callable[[dict], None]]

REQUEST_FAILED_MESSAGE = "request failed"


class ResponseAssembler:
    """
    Fold interpreted frames into one answer.

    apply() is the pure fold step; run() drives it from a line source and
    guarantees exactly one terminal event, emitted after the source is closed.
    """

    def __init__(self, on_side_channel: SideChannelHandler = None):
        self._buffer = ""
        self._on_side_channel = on_side_channel

    @property
    def text(self) -> str:
        return self._buffer

    def apply(self, frame: Frame) -> Optional[StreamEvent]:
        """Advance the buffer by one frame. Returns the event to emit, if any."""
        if isinstance(frame, TextFrame):
            if not frame.text:
                return None
            self._buffer += frame.text
            return Delta(text=frame.text, accumulated=self._buffer)

        if isinstance(frame, EndFrame):
            if frame.error:
                return Error(ErrorKind.SERVER, frame.error)
            if frame.success is False:
                return Error(ErrorKind.SERVER, REQUEST_FAILED_MESSAGE)
            if frame.result:
                self._buffer = frame.result
            return Complete(self._buffer)

        if isinstance(frame, SideChannelFrame):
            if self._on_side_channel is not None:
                self._on_side_channel(frame.payload)
            return None

        return None

    async def run(self, lines: AsyncIterator[str]) -> AsyncIterator[StreamEvent]:
        """
        Consume `lines` until a terminal frame or end of stream.

        TransportError becomes Error, RequestCancelled becomes Cancelled with
        the partial buffer, and a stream that simply ends completes with
        whatever was accumulated.
        """
        terminal: Optional[TerminalEvent] = None
        try:
            async for line in lines:
                for frame in interpret_line(line):
                    event = self.apply(frame)
                    if event is None:
                        continue
                    if is_terminal(event):
                        terminal = event
                        break
                    yield event
                if terminal is not None:
                    break
        except RequestCancelled:
            logger.debug("Request cancelled after %d chars", len(self._buffer))
            terminal = Cancelled(partial=self._buffer)
        except TransportError as e:
            logger.warning("Transport error (%s): %s", e.kind.value, e.message)
            terminal = Error(e.kind, e.message)
        finally:
            aclose = getattr(lines, "aclose", None)
            if aclose is not None:
                await aclose()

        if terminal is None:
            terminal = Complete(self._buffer)
        yield terminal


async def assemble(
    lines: AsyncIterator[str],
    on_side_channel: SideChannelHandler = None,
) -> AsyncIterator[StreamEvent]:
    """Convenience wrapper: a fresh ResponseAssembler over `lines`."""
    async with aclosing(ResponseAssembler(on_side_channel).run(lines)) as events:
        async for event in events:
            yield event
