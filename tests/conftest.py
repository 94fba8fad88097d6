"""Shared test fixtures for sovereign-stream tests."""

import asyncio
import json
from typing import AsyncIterator, Optional

import pytest


# ─────────────────────────────────────────────────────────────────────
# MOCK DATA
# ─────────────────────────────────────────────────────────────────────

MOCK_SERVER = "http://ollama.test:11434"
MOCK_BRIDGE = "ws://daemon.test:7656"
MOCK_MODEL = "qwen2.5-coder:14b"

MOCK_TAGS_RESPONSE = {
    "models": [
        {"name": MOCK_MODEL, "size": 9000000000},
        {"name": "llama3.2:3b", "size": 2000000000},
    ]
}

MOCK_GENERATE_LINES = [
    '{"model":"qwen2.5-coder:14b","response":"The","done":false}',
    '{"model":"qwen2.5-coder:14b","response":" capital","done":false}',
    '{"model":"qwen2.5-coder:14b","response":" of France","done":false}',
    '{"model":"qwen2.5-coder:14b","response":" is Paris.","done":false}',
    '{"model":"qwen2.5-coder:14b","response":"","done":true,"total_duration":123}',
]

MOCK_CHAT_LINES = [
    '{"model":"qwen2.5-coder:14b","message":{"role":"assistant","content":"Hello"},"done":false}',
    '{"model":"qwen2.5-coder:14b","message":{"role":"assistant","content":" there"},"done":false}',
    '{"model":"qwen2.5-coder:14b","message":{"role":"assistant","content":""},"done":true}',
]

MOCK_BRIDGE_MESSAGES = [
    {"type": "stream", "content": "Indexed "},
    {"type": "stream", "content": "42 files"},
    {"type": "end"},
]


def ndjson(lines: list[str]) -> bytes:
    """Join record lines into a newline-delimited body."""
    return ("\n".join(lines) + "\n").encode("utf-8")


# ─────────────────────────────────────────────────────────────────────
# FAKE TRANSPORT
# ─────────────────────────────────────────────────────────────────────

class FakeTransport:
    """
    In-memory StreamTransport.

    Yields the scripted lines, checking the cancel token before each one
    like a real transport checks before each read. `gate` lets a test hold
    the stream open after a given number of lines.
    """

    def __init__(
        self,
        lines: Optional[list[str]] = None,
        error: Optional[Exception] = None,
        available: bool = True,
        pause_after: Optional[int] = None,
    ):
        self.lines = list(lines or [])
        self.error = error
        self.available = available
        self.pause_after = pause_after
        self.gate = asyncio.Event()
        self.payloads = []
        self.closed = 0

    async def stream_lines(self, payload, cancel=None) -> AsyncIterator[str]:
        self.payloads.append(payload)
        try:
            for i, line in enumerate(self.lines):
                if self.pause_after is not None and i == self.pause_after:
                    await self.gate.wait()
                if cancel is not None:
                    cancel.raise_if_cancelled()
                yield line
            if cancel is not None:
                cancel.raise_if_cancelled()
            if self.error is not None:
                raise self.error
        finally:
            self.closed += 1

    async def is_available(self) -> bool:
        return self.available

    async def list_models(self) -> list[str]:
        return [MOCK_MODEL] if self.available else []


# ─────────────────────────────────────────────────────────────────────
# FIXTURES
# ─────────────────────────────────────────────────────────────────────

@pytest.fixture
def generate_lines():
    """Return /api/generate streaming lines."""
    return MOCK_GENERATE_LINES.copy()


@pytest.fixture
def chat_lines():
    """Return /api/chat streaming lines."""
    return MOCK_CHAT_LINES.copy()


@pytest.fixture
def bridge_messages():
    """Return bridge WebSocket messages as JSON strings."""
    return [json.dumps(m) for m in MOCK_BRIDGE_MESSAGES]


@pytest.fixture
def prompt_payload():
    from sovereign_stream.adapters.schema import RequestPayload
    return RequestPayload(model=MOCK_MODEL, prompt="What is the capital of France?")


@pytest.fixture
def chat_payload():
    from sovereign_stream.adapters.schema import RequestPayload
    from sovereign_stream.config import ChatMessage
    return RequestPayload(
        model=MOCK_MODEL,
        messages=[ChatMessage(role="user", content="Hi")],
        system="You are a test assistant.",
    )


@pytest.fixture
def clean_env(monkeypatch):
    """Remove SOVEREIGN_* variables so defaults apply."""
    for key in (
        "SOVEREIGN_OLLAMA_URL",
        "SOVEREIGN_BRIDGE_URL",
        "SOVEREIGN_MODEL",
        "SOVEREIGN_TIMEOUT_SECONDS",
        "SOVEREIGN_CONNECT_TIMEOUT_SECONDS",
    ):
        monkeypatch.delenv(key, raising=False)
