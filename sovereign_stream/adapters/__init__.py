"""
Transports for local generation backends.

Protocol defines WHAT, implementations define HOW.
"""

from .base import StreamTransport
from .bridge import BridgeAdapter
from .ollama import OllamaAdapter
from .schema import RequestPayload

__all__ = ["StreamTransport", "BridgeAdapter", "OllamaAdapter", "RequestPayload"]
