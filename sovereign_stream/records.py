"""
Record interpretation: one decoded line -> zero or more neutral frames.

The server speaks several JSON dialects. Each record is matched against the
known shapes in order and the first match decides its meaning:

    1. {"type": "stream", "content": ...}          bridge text chunk
    2. {"type": "end", ...} or {"success": ...}    bridge terminal, may carry
                                                   "result" and/or "error"
    3. {"response": ..., "done": ...}              /api/generate
    4. {"message": {"content": ...}, "done": ...}  /api/chat
    5. {"done": true}                              bare terminal
    6. {"stats": ...} or {"memories": ...}         bridge side-channel data
    7. {"error": "..."}                            server-reported failure

Anything else, including lines that are not JSON at all, is ignored. The
server may interleave keepalives and other noise, so nothing here raises.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextFrame:
    text: str


@dataclass(frozen=True)
class EndFrame:
    """
    Terminal marker.

    `result`, when non-empty, is the authoritative final text and replaces
    whatever was accumulated from TextFrames.
    """

    result: Optional[str] = None
    error: Optional[str] = None
    success: Optional[bool] = None


@dataclass(frozen=True)
class SideChannelFrame:
    """Stats/memory payloads that belong to another display path."""

    payload: dict[str, Any] = field(default_factory=dict)


Frame = Union[TextFrame, EndFrame, SideChannelFrame]


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _with_done(text: str, record: dict) -> list[Frame]:
    frames: list[Frame] = []
    if text:
        frames.append(TextFrame(text))
    if record.get("done") is True:
        frames.append(EndFrame())
    return frames


def interpret_record(record: Any) -> list[Frame]:
    """Map one parsed JSON value to frames. Unknown shapes map to []."""
    if not isinstance(record, dict):
        return []

    kind = record.get("type")
    if kind == "stream":
        content = _text(record.get("content"))
        return [TextFrame(content)] if content else []

    if kind == "end" or "success" in record:
        success = record.get("success")
        return [EndFrame(
            result=_optional_text(record.get("result")),
            error=_optional_text(record.get("error")) or None,
            success=success if isinstance(success, bool) else None,
        )]

    if "response" in record:
        return _with_done(_text(record.get("response")), record)

    message = record.get("message")
    if isinstance(message, dict):
        return _with_done(_text(message.get("content")), record)

    if record.get("done") is True:
        return [EndFrame()]

    if "stats" in record or "memories" in record:
        return [SideChannelFrame(record)]

    error = record.get("error")
    if error:
        if isinstance(error, dict):
            error = error.get("message") or json.dumps(error)
        return [EndFrame(error=str(error))]

    logger.debug("Ignoring unrecognized record with keys %s", sorted(record))
    return []


def interpret_line(line: str) -> list[Frame]:
    """Parse one line leniently. Malformed JSON yields no frames."""
    try:
        record = json.loads(line)
    except ValueError:
        logger.debug("Skipping non-JSON line: %r", line[:80])
        return []
    return interpret_record(record)
