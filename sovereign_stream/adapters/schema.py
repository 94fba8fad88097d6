from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, model_validator

from sovereign_stream.config import ChatMessage


class RequestPayload(BaseModel):
    """
    Standardized request object for a generation call across all transports.

    Exactly one of `prompt` (single-prompt form) or `messages` (multi-turn
    form) is set. Frozen: a payload never changes once submitted.
    """
    model_config = ConfigDict(frozen=True)

    model: str
    prompt: Optional[str] = None
    messages: Optional[List[ChatMessage]] = None
    system: Optional[str] = None
    stream: bool = True

    @model_validator(mode="after")
    def _one_input_form(self) -> "RequestPayload":
        if (self.prompt is None) == (self.messages is None):
            raise ValueError("RequestPayload needs exactly one of 'prompt' or 'messages'")
        return self

    @property
    def is_chat(self) -> bool:
        return self.messages is not None

    def last_user_text(self) -> str:
        """The newest user turn, or the prompt for single-prompt payloads."""
        if self.prompt is not None:
            return self.prompt
        for message in reversed(self.messages or []):
            if message.role == "user":
                return message.content
        return ""

    def to_http_body(self) -> dict[str, Any]:
        """Body for POST /api/generate (prompt) or /api/chat (messages)."""
        body: dict[str, Any] = {"model": self.model, "stream": self.stream}
        if self.prompt is not None:
            body["prompt"] = self.prompt
            if self.system:
                body["system"] = self.system
        else:
            messages = [m.to_wire() for m in self.messages or []]
            if self.system:
                messages.insert(0, {"role": "system", "content": self.system})
            body["messages"] = messages
        return body

    def to_bridge_envelope(self) -> dict[str, Any]:
        """Envelope for the daemon WebSocket bridge."""
        return {"command": self.last_user_text(), "args": None, "stream": self.stream}
