"""Tests for sovereign_stream.cancellation module."""

import asyncio

import pytest

from sovereign_stream.cancellation import CancelToken, guarded, race
from sovereign_stream.errors import RequestCancelled


async def _value(value):
    return value


class _Stall:
    """Awaitable read that never finishes on its own."""

    def __init__(self):
        self.started = asyncio.Event()
        self.aborted = asyncio.Event()

    async def read(self):
        self.started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.aborted.set()
            raise


async def _chunks_then_stall(chunks, stall: _Stall):
    for chunk in chunks:
        yield chunk
    await stall.read()


class TestRace:

    @pytest.mark.asyncio
    async def test_returns_read_result(self):
        assert await race(_value("chunk"), CancelToken()) == "chunk"

    @pytest.mark.asyncio
    async def test_without_token(self):
        assert await race(_value("chunk"), None) == "chunk"

    @pytest.mark.asyncio
    async def test_already_cancelled_never_starts_read(self):
        cancel = CancelToken()
        cancel.cancel()
        read = _value("chunk")

        with pytest.raises(RequestCancelled):
            await race(read, cancel)

        assert read.cr_frame is None

    @pytest.mark.asyncio
    async def test_cancel_aborts_pending_read(self):
        stall = _Stall()
        cancel = CancelToken()

        task = asyncio.create_task(race(stall.read(), cancel))
        await stall.started.wait()
        cancel.cancel()

        with pytest.raises(RequestCancelled):
            await asyncio.wait_for(task, timeout=1)
        assert stall.aborted.is_set()

    @pytest.mark.asyncio
    async def test_timeout(self):
        stall = _Stall()

        with pytest.raises(asyncio.TimeoutError):
            await race(stall.read(), CancelToken(), timeout=0.01)

        assert stall.aborted.is_set()

    @pytest.mark.asyncio
    async def test_read_error_propagates(self):
        async def failing():
            raise OSError("reset")

        with pytest.raises(OSError):
            await race(failing(), CancelToken())


class TestGuarded:

    @pytest.mark.asyncio
    async def test_passes_items_through(self):
        stall = _Stall()
        source = _chunks_then_stall([b"a", b"b"], stall)
        items = []

        async for item in guarded(source, CancelToken()):
            items.append(item)
            if len(items) == 2:
                break

        assert items == [b"a", b"b"]

    @pytest.mark.asyncio
    async def test_cancel_during_stalled_read(self):
        stall = _Stall()
        cancel = CancelToken()
        received = []

        async def consume():
            async for item in guarded(_chunks_then_stall([b"a"], stall), cancel):
                received.append(item)

        task = asyncio.create_task(consume())
        await stall.started.wait()
        cancel.cancel()

        with pytest.raises(RequestCancelled):
            await asyncio.wait_for(task, timeout=1)
        assert received == [b"a"]
        assert stall.aborted.is_set()
