"""
Conversation sessions: one chat surface, one message history, at most one
generation in flight.

State per session:
- messages: append-only, except the in-progress assistant placeholder,
  which is rewritten in place as deltas arrive
- active_request: set for exactly the lifetime of one generation;
  `generating` is derived from it so the two can never disagree

Sessions share nothing. Each one owns its history and its cancel token, so
any number of surfaces can stream at the same time without interfering.
"""

import asyncio
import logging
from contextlib import aclosing
from typing import AsyncIterator, Optional

from sovereign_stream.adapters.base import StreamTransport
from sovereign_stream.adapters.schema import RequestPayload
from sovereign_stream.assembler import SideChannelHandler, assemble
from sovereign_stream.cancellation import CancelToken
from sovereign_stream.config import (
    DEFAULT_SYSTEM_PROMPT, ERROR_PREFIX, ChatMessage, get_default_model,
)
from sovereign_stream.errors import ErrorKind
from sovereign_stream.events import (
    Cancelled, Complete, Delta, Error, StreamEvent, TerminalEvent, is_terminal,
)

logger = logging.getLogger(__name__)


class ActiveRequest:
    """
    Handle for one in-flight generation.

    Events are delivered through a queue in the order they were assembled;
    the terminal event is always last. events() is meant for a single
    consumer; wait() can be awaited by anyone.
    """

    def __init__(self, payload: RequestPayload, placeholder: ChatMessage):
        self.payload = payload
        self.placeholder = placeholder
        self.cancel_token = CancelToken()
        self._queue: asyncio.Queue[StreamEvent] = asyncio.Queue()
        self._terminal: asyncio.Future = asyncio.get_running_loop().create_future()
        self._task: Optional[asyncio.Task] = None

    @property
    def done(self) -> bool:
        return self._terminal.done()

    @property
    def terminal(self) -> Optional[TerminalEvent]:
        return self._terminal.result() if self._terminal.done() else None

    def cancel(self) -> None:
        """Ask the transport to stop, aborting any read still in progress."""
        self.cancel_token.cancel()

    async def wait(self) -> TerminalEvent:
        """Wait for and return the terminal event."""
        return await asyncio.shield(self._terminal)

    async def events(self) -> AsyncIterator[StreamEvent]:
        """Yield every Delta, then the terminal event."""
        while True:
            event = await self._queue.get()
            yield event
            if is_terminal(event):
                return

    def _publish(self, event: StreamEvent) -> None:
        self._queue.put_nowait(event)

    def _resolve(self, terminal: TerminalEvent) -> None:
        if self._terminal.done():
            return
        self._queue.put_nowait(terminal)
        self._terminal.set_result(terminal)


class ConversationSession:
    """
    Owns one conversation's request lifecycle.

    State machine: Idle -> Generating (submit) -> Idle (Complete, Error,
    Cancelled). submit() while Generating is refused, not queued.
    """

    def __init__(
        self,
        transport: StreamTransport,
        model: Optional[str] = None,
        system_prompt: Optional[str] = DEFAULT_SYSTEM_PROMPT,
        stream: bool = True,
        on_side_channel: SideChannelHandler = None,
    ):
        self.transport = transport
        self.model = model or get_default_model()
        self.system_prompt = system_prompt
        self.stream = stream
        self.messages: list[ChatMessage] = []
        self.active_request: Optional[ActiveRequest] = None
        self._on_side_channel = on_side_channel

    @property
    def generating(self) -> bool:
        return self.active_request is not None

    def history(self) -> list[dict]:
        """Messages in wire format."""
        return [m.to_wire() for m in self.messages]

    def _build_payload(self) -> RequestPayload:
        return RequestPayload(
            model=self.model,
            messages=[m.model_copy() for m in self.messages],
            system=self.system_prompt or None,
            stream=self.stream,
        )

    async def submit(self, text: str) -> Optional[ActiveRequest]:
        """
        Start generating a reply to `text`.

        Returns the ActiveRequest handle, or None (and changes nothing) if a
        generation is already running on this session.
        """
        if self.generating:
            logger.debug("submit() ignored: session already generating")
            return None

        self.messages.append(ChatMessage(role="user", content=text))
        payload = self._build_payload()
        placeholder = ChatMessage(role="assistant", content="")
        self.messages.append(placeholder)

        request = ActiveRequest(payload, placeholder)
        self.active_request = request
        request._task = asyncio.create_task(self._run(request))
        return request

    def cancel(self) -> bool:
        """Signal the active request to stop. Returns False when idle."""
        if self.active_request is None:
            return False
        self.active_request.cancel()
        return True

    def clear(self) -> None:
        """Discard the whole history, cancelling any running generation."""
        self.cancel()
        self.messages = []

    async def close(self) -> None:
        """Cancel any running generation and wait until it has ended."""
        request = self.active_request
        if request is not None:
            request.cancel()
            await request.wait()

    async def _run(self, request: ActiveRequest) -> None:
        terminal: Optional[TerminalEvent] = None
        try:
            lines = self.transport.stream_lines(request.payload, request.cancel_token)
            async with aclosing(assemble(lines, self._on_side_channel)) as events:
                async for event in events:
                    if isinstance(event, Delta):
                        request.placeholder.content = event.accumulated
                        request._publish(event)
                    else:
                        terminal = event
        except asyncio.CancelledError:
            terminal = Cancelled(partial=request.placeholder.content)
            raise
        except Exception as e:
            logger.exception("Generation failed unexpectedly")
            terminal = Error(ErrorKind.INTERNAL, str(e))
        finally:
            if terminal is None:
                terminal = Error(ErrorKind.INTERNAL, "stream ended without a terminal event")
            self._finish(request, terminal)

    def _finish(self, request: ActiveRequest, terminal: TerminalEvent) -> None:
        if isinstance(terminal, Complete):
            request.placeholder.content = terminal.text
        elif isinstance(terminal, Error):
            request.placeholder.content = f"{ERROR_PREFIX}{terminal.message}"
        elif isinstance(terminal, Cancelled):
            # Partial output stays in the record.
            request.placeholder.content = terminal.partial

        if self.active_request is request:
            self.active_request = None
        request._resolve(terminal)
