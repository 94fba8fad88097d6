"""
StreamTransport Protocol - defines the contract for generation backends.

This is the WHAT (interface), not the HOW (implementation).
See ollama.py and bridge.py for concrete implementations.
"""

from typing import AsyncIterator, Optional, Protocol

from sovereign_stream.adapters.schema import RequestPayload
from sovereign_stream.cancellation import CancelToken


class StreamTransport(Protocol):
    """
    Contract for generation backends.

    Implementations must provide:
    - Line streaming (stream_lines): one JSON record per yielded line
    - Availability probe (is_available)
    - Model discovery (list_models)
    """

    def stream_lines(
        self,
        payload: RequestPayload,
        cancel: Optional[CancelToken] = None,
    ) -> AsyncIterator[str]:
        """
        Issue the request and yield raw record lines as they arrive.

        Args:
            payload: Immutable request description
            cancel: Checked before every read; once set, the transport
                raises RequestCancelled and releases its connection

        Yields:
            One undecoded record per line (may include non-JSON noise)

        Raises:
            TransportError on connection failure, timeout or non-2xx status
            RequestCancelled when the cancel token is observed
        """
        ...

    async def is_available(self) -> bool:
        """True when the backend answers its status probe."""
        ...

    async def list_models(self) -> list[str]:
        """Model names the backend can serve. Empty on failure."""
        ...
