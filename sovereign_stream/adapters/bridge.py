"""
BridgeAdapter - daemon WebSocket implementation of StreamTransport.

Protocol:
    request   {"command": str, "args": null, "stream": bool}
    responses {"type": "stream", "content": str}          (repeated)
              {"type": "end", "result"?: str, "error"?: str}
              {"success": bool, "result"?: str, "error"?: str}

Each WebSocket text message carries one record and is yielded as one line.
The socket stays open after the terminal record, so the consumer stops
iterating and closing the iterator closes the connection.
"""

import asyncio
import json
import logging
from typing import AsyncIterator, Optional

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK, WebSocketException

from sovereign_stream.adapters.schema import RequestPayload
from sovereign_stream.cancellation import CancelToken, race
from sovereign_stream.config import get_bridge_url, get_connect_timeout_seconds, get_timeout_seconds
from sovereign_stream.errors import ErrorKind, TransportError

logger = logging.getLogger(__name__)

PROBE_TIMEOUT_SECONDS = 5.0


class BridgeAdapter:
    """WebSocket bridge to the local daemon."""

    def __init__(
        self,
        ws_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        connect_timeout_seconds: Optional[float] = None,
    ):
        self.ws_url = ws_url or get_bridge_url()
        self._read_timeout = (
            timeout_seconds if timeout_seconds is not None else get_timeout_seconds()
        )
        self._open_timeout = (
            connect_timeout_seconds
            if connect_timeout_seconds is not None
            else get_connect_timeout_seconds()
        )

    async def stream_lines(
        self,
        payload: RequestPayload,
        cancel: Optional[CancelToken] = None,
    ) -> AsyncIterator[str]:
        """Send the command envelope and yield each response message."""
        if cancel is not None:
            cancel.raise_if_cancelled()

        try:
            async with ws_connect(self.ws_url, open_timeout=self._open_timeout) as ws:
                await ws.send(json.dumps(payload.to_bridge_envelope()))
                while True:
                    try:
                        raw = await race(ws.recv(), cancel, timeout=self._read_timeout)
                    except ConnectionClosedOK:
                        return
                    if isinstance(raw, bytes):
                        raw = raw.decode("utf-8", errors="replace")
                    line = raw.strip()
                    if line:
                        yield line
        except (asyncio.TimeoutError, TimeoutError) as e:
            raise TransportError(
                ErrorKind.TIMEOUT, f"Bridge timed out waiting for {self.ws_url}"
            ) from e
        except ConnectionClosedError as e:
            raise TransportError(
                ErrorKind.CONNECTION, f"Bridge connection closed: {e}"
            ) from e
        except (OSError, WebSocketException) as e:
            raise TransportError(
                ErrorKind.CONNECTION, f"Bridge connection error: {e}"
            ) from e

    async def is_available(self) -> bool:
        """Open and immediately close a connection."""
        try:
            async with ws_connect(self.ws_url, open_timeout=PROBE_TIMEOUT_SECONDS):
                return True
        except (OSError, TimeoutError, asyncio.TimeoutError, WebSocketException) as e:
            logger.debug("Bridge probe failed for %s: %s", self.ws_url, e)
            return False

    async def list_models(self) -> list[str]:
        """The daemon serves a single fixed model and has no listing command."""
        return []
