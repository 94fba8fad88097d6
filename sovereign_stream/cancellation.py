"""
Cooperative cancellation.

A CancelToken is owned by one request. Transports wrap every pending read in
race(), so a cancel aborts a read that is still waiting for the server
instead of being noticed only when the next chunk arrives. Whatever was
already read stays read.
"""

import asyncio
from typing import Awaitable, AsyncIterable, AsyncIterator, Optional, TypeVar

from sovereign_stream.errors import RequestCancelled

T = TypeVar("T")


class CancelToken:
    """One-shot cancellation signal for a single request."""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RequestCancelled("Request cancelled")

    async def wait(self) -> None:
        await self._event.wait()


async def race(
    read: Awaitable[T],
    cancel: Optional[CancelToken],
    timeout: Optional[float] = None,
) -> T:
    """
    Await `read` unless `cancel` fires first.

    Raises RequestCancelled (after aborting the read) when the token wins,
    and asyncio.TimeoutError when neither finishes within `timeout`.
    """
    if cancel is None:
        return await asyncio.wait_for(read, timeout)
    if cancel.cancelled:
        # Never started, so nothing was read.
        close = getattr(read, "close", None)
        if close is not None:
            close()
        raise RequestCancelled("Request cancelled")

    read_task = asyncio.ensure_future(read)
    cancel_task = asyncio.ensure_future(cancel.wait())
    try:
        done, _ = await asyncio.wait(
            {read_task, cancel_task},
            timeout=timeout,
            return_when=asyncio.FIRST_COMPLETED,
        )
    finally:
        cancel_task.cancel()
        if not read_task.done():
            read_task.cancel()
            await asyncio.gather(read_task, return_exceptions=True)

    if read_task in done:
        return read_task.result()
    if cancel_task in done:
        raise RequestCancelled("Request cancelled")
    raise asyncio.TimeoutError()


async def guarded(
    source: AsyncIterable[T],
    cancel: Optional[CancelToken],
) -> AsyncIterator[T]:
    """Re-yield `source`, raising RequestCancelled as soon as the token fires."""
    iterator = source.__aiter__()
    while True:
        try:
            item = await race(iterator.__anext__(), cancel)
        except StopAsyncIteration:
            return
        yield item
