"""
Configuration constants and Pydantic models for sovereign-stream.
"""

import os
from typing import Literal

from pydantic import BaseModel


# ─────────────────────────────────────────────────────────────────────
# DEFAULTS - Overridable via environment / .env
# ─────────────────────────────────────────────────────────────────────

DEFAULT_OLLAMA_URL: str = "http://localhost:11434"
DEFAULT_BRIDGE_URL: str = "ws://127.0.0.1:7656"
DEFAULT_MODEL: str = "qwen2.5-coder:14b"
DEFAULT_TIMEOUT_SECONDS: float = 120.0
DEFAULT_CONNECT_TIMEOUT_SECONDS: float = 30.0
DEFAULT_SYSTEM_PROMPT: str = (
    "You are a helpful AI coding assistant. You are knowledgeable about "
    "programming, software architecture, and best practices. "
    "Be concise but thorough."
)


# ─────────────────────────────────────────────────────────────────────
# INTERNAL CONSTANTS - Wire paths
# ─────────────────────────────────────────────────────────────────────

GENERATE_PATH: str = "/api/generate"
CHAT_PATH: str = "/api/chat"
STATUS_PATH: str = "/api/tags"
ERROR_PREFIX: str = "Error: "


# ─────────────────────────────────────────────────────────────────────
# ENVIRONMENT LOADING
# ─────────────────────────────────────────────────────────────────────

def _env_float(key: str, default: float) -> float:
    try:
        return float(os.environ.get(key, default))
    except ValueError:
        return default


def get_ollama_url() -> str:
    """
    Get the Ollama-compatible server URL.

    Set SOVEREIGN_OLLAMA_URL in .env (default: http://localhost:11434).
    """
    url = os.environ.get("SOVEREIGN_OLLAMA_URL", "").strip()
    return (url or DEFAULT_OLLAMA_URL).rstrip("/")


def get_bridge_url() -> str:
    """
    Get the daemon WebSocket bridge URL.

    Set SOVEREIGN_BRIDGE_URL in .env (default: ws://127.0.0.1:7656).
    """
    url = os.environ.get("SOVEREIGN_BRIDGE_URL", "").strip()
    return url or DEFAULT_BRIDGE_URL


def get_default_model() -> str:
    """Get model name from SOVEREIGN_MODEL, or the default coder model."""
    model = os.environ.get("SOVEREIGN_MODEL", "").strip()
    return model or DEFAULT_MODEL


def get_timeout_seconds() -> float:
    """
    Get read timeout for generation requests.

    Set SOVEREIGN_TIMEOUT_SECONDS in .env (default: 120).
    """
    return _env_float("SOVEREIGN_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS)


def get_connect_timeout_seconds() -> float:
    """
    Get connect timeout.

    Set SOVEREIGN_CONNECT_TIMEOUT_SECONDS in .env (default: 30).
    """
    return _env_float("SOVEREIGN_CONNECT_TIMEOUT_SECONDS", DEFAULT_CONNECT_TIMEOUT_SECONDS)


# ─────────────────────────────────────────────────────────────────────
# DATA MODELS
# ─────────────────────────────────────────────────────────────────────

Role = Literal["user", "assistant", "system"]


class ChatMessage(BaseModel):
    """A single message in a conversation.

    Mutable on purpose: the in-progress assistant message is rewritten in
    place while its response streams in.
    """
    role: Role
    content: str = ""

    def to_wire(self) -> dict:
        """Convert to the {"role", "content"} shape sent to the server."""
        return {"role": self.role, "content": self.content}
