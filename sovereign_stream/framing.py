"""
Frame decoding: arbitrarily chunked bytes -> complete lines.

Transports hand over bytes in whatever pieces the network delivers. A JSON
record can be split across reads, several records can arrive in one read, and
a multi-byte UTF-8 character can straddle two reads. LineDecoder keeps a
carry-over buffer so the output never depends on how the input was chunked.
"""

import codecs
import json
import logging
from typing import AsyncIterable, AsyncIterator

logger = logging.getLogger(__name__)


class LineDecoder:
    """
    Incremental newline splitter.

    feed() returns the lines completed by a fragment; finish() flushes the
    remainder at end of stream. A trailing remainder is only surfaced if it
    is a complete JSON document; partial trailing garbage is dropped.
    """

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._finished = False

    def feed(self, data: bytes) -> list[str]:
        if self._finished:
            raise RuntimeError("LineDecoder.feed() called after finish()")
        self._buffer += self._decoder.decode(data)
        if "\n" not in self._buffer:
            return []
        *complete, self._buffer = self._buffer.split("\n")
        return [line.strip() for line in complete if line.strip()]

    def finish(self) -> list[str]:
        if self._finished:
            return []
        self._finished = True
        self._buffer += self._decoder.decode(b"", final=True)
        remainder, self._buffer = self._buffer.strip(), ""
        if not remainder:
            return []
        try:
            json.loads(remainder)
        except ValueError:
            logger.debug("Dropping unterminated trailing data: %r", remainder[:80])
            return []
        return [remainder]

    @property
    def pending(self) -> str:
        """Text received but not yet terminated by a newline."""
        return self._buffer


async def decode_lines(chunks: AsyncIterable[bytes]) -> AsyncIterator[str]:
    """Lazily yield complete lines from an async byte stream."""
    decoder = LineDecoder()
    async for chunk in chunks:
        for line in decoder.feed(chunk):
            yield line
    for line in decoder.finish():
        yield line
