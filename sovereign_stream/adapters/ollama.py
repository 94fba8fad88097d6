"""
OllamaAdapter - Ollama-compatible HTTP implementation of StreamTransport.

Speaks /api/generate (single prompt) and /api/chat (multi-turn). With
stream=true the body is newline-delimited JSON; with stream=false it is one
JSON object. Both go through the same frame decoder.
"""

import json
import logging
from typing import AsyncIterator, Optional

import httpx

from sovereign_stream.adapters.schema import RequestPayload
from sovereign_stream.cancellation import CancelToken, guarded
from sovereign_stream.config import (
    CHAT_PATH, GENERATE_PATH, STATUS_PATH,
    get_connect_timeout_seconds, get_ollama_url, get_timeout_seconds,
)
from sovereign_stream.errors import ErrorKind, TransportError
from sovereign_stream.framing import decode_lines

logger = logging.getLogger(__name__)

PROBE_TIMEOUT_SECONDS = 5.0


def parse_ollama_error(status_code: int, reason: str, body: bytes) -> str:
    """Build a human-readable message from a non-2xx response."""
    message = f"Ollama error: {status_code} {reason}".rstrip()
    try:
        data = json.loads(body)
    except ValueError:
        data = None
    detail = ""
    # Ollama returns {"error": "..."}; some proxies use {"error": {"message": "..."}}
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict):
            detail = error.get("message", "")
        elif isinstance(error, str):
            detail = error
    elif body:
        detail = body.decode("utf-8", errors="replace")[:200].strip()
    return f"{message}: {detail}" if detail else message


class OllamaAdapter:
    """
    Ollama implementation of StreamTransport.

    A fresh httpx.AsyncClient is opened per request and closed when the
    line iterator is exhausted, closed early, or cancelled.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        connect_timeout_seconds: Optional[float] = None,
    ):
        self.base_url = (base_url or get_ollama_url()).rstrip("/")
        self._timeout = httpx.Timeout(
            timeout_seconds if timeout_seconds is not None else get_timeout_seconds(),
            connect=(
                connect_timeout_seconds
                if connect_timeout_seconds is not None
                else get_connect_timeout_seconds()
            ),
        )

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def stream_lines(
        self,
        payload: RequestPayload,
        cancel: Optional[CancelToken] = None,
    ) -> AsyncIterator[str]:
        """Stream record lines from the server."""
        if cancel is not None:
            cancel.raise_if_cancelled()

        path = CHAT_PATH if payload.is_chat else GENERATE_PATH
        logger.debug("POST %s model=%s stream=%s", path, payload.model, payload.stream)

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                async with client.stream(
                    "POST",
                    self._url(path),
                    json=payload.to_http_body(),
                ) as response:
                    if response.status_code >= 400:
                        error_body = await response.aread()
                        raise TransportError(
                            ErrorKind.HTTP_STATUS,
                            parse_ollama_error(
                                response.status_code, response.reason_phrase, error_body
                            ),
                        )

                    async for line in decode_lines(guarded(response.aiter_bytes(), cancel)):
                        yield line
        except httpx.TimeoutException as e:
            raise TransportError(
                ErrorKind.TIMEOUT, f"Ollama timeout for '{payload.model}': {e}"
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(
                ErrorKind.CONNECTION, f"Ollama connection error: {e}"
            ) from e

    async def is_available(self) -> bool:
        """GET the status endpoint; any 2xx means reachable."""
        try:
            async with httpx.AsyncClient(timeout=PROBE_TIMEOUT_SECONDS) as client:
                response = await client.get(self._url(STATUS_PATH))
                return response.is_success
        except httpx.HTTPError as e:
            logger.debug("Availability probe failed for %s: %s", self.base_url, e)
            return False

    async def list_models(self) -> list[str]:
        """Model names from the status endpoint, [] when unreachable."""
        try:
            async with httpx.AsyncClient(timeout=PROBE_TIMEOUT_SECONDS) as client:
                response = await client.get(self._url(STATUS_PATH))
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.debug("Model listing failed for %s: %s", self.base_url, e)
            return []
        # Ollama returns {"models": [{"name": "qwen2.5-coder:14b", ...}, ...]}
        return [m["name"] for m in data.get("models", []) if isinstance(m, dict) and "name" in m]
