"""
sovereign-stream: streaming client engine for locally hosted text-generation servers.
"""

from sovereign_stream.adapters import BridgeAdapter, OllamaAdapter, RequestPayload, StreamTransport
from sovereign_stream.config import ChatMessage
from sovereign_stream.events import Cancelled, Complete, Delta, Error, StreamEvent
from sovereign_stream.extraction import extract_code
from sovereign_stream.session import ActiveRequest, ConversationSession

__version__ = "0.1.0"

__all__ = [
    "ActiveRequest",
    "BridgeAdapter",
    "Cancelled",
    "ChatMessage",
    "Complete",
    "ConversationSession",
    "Delta",
    "Error",
    "OllamaAdapter",
    "RequestPayload",
    "StreamEvent",
    "StreamTransport",
    "extract_code",
]
