"""Tests for sovereign_stream.config and the request schema."""

import pytest
from pydantic import ValidationError

from sovereign_stream.adapters.schema import RequestPayload
from sovereign_stream.config import (
    DEFAULT_BRIDGE_URL, DEFAULT_MODEL, DEFAULT_OLLAMA_URL, DEFAULT_TIMEOUT_SECONDS,
    ChatMessage, get_bridge_url, get_connect_timeout_seconds, get_default_model,
    get_ollama_url, get_timeout_seconds,
)


class TestEnvironment:

    def test_defaults(self, clean_env):
        assert get_ollama_url() == DEFAULT_OLLAMA_URL
        assert get_bridge_url() == DEFAULT_BRIDGE_URL
        assert get_default_model() == DEFAULT_MODEL
        assert get_timeout_seconds() == DEFAULT_TIMEOUT_SECONDS

    def test_overrides(self, clean_env, monkeypatch):
        monkeypatch.setenv("SOVEREIGN_OLLAMA_URL", "http://gpu-box:11434/")
        monkeypatch.setenv("SOVEREIGN_MODEL", "llama3.2:3b")
        monkeypatch.setenv("SOVEREIGN_TIMEOUT_SECONDS", "30")

        assert get_ollama_url() == "http://gpu-box:11434"
        assert get_default_model() == "llama3.2:3b"
        assert get_timeout_seconds() == 30.0

    def test_invalid_number_falls_back(self, clean_env, monkeypatch):
        monkeypatch.setenv("SOVEREIGN_CONNECT_TIMEOUT_SECONDS", "soon")

        assert get_connect_timeout_seconds() == 30.0

    def test_blank_values_fall_back(self, clean_env, monkeypatch):
        monkeypatch.setenv("SOVEREIGN_MODEL", "   ")

        assert get_default_model() == DEFAULT_MODEL


class TestChatMessage:

    def test_rejects_unknown_role(self):
        with pytest.raises(ValidationError):
            ChatMessage(role="tool", content="x")

    def test_wire_format(self):
        assert ChatMessage(role="user", content="hi").to_wire() == {"role": "user", "content": "hi"}


class TestRequestPayload:

    def test_requires_exactly_one_input_form(self):
        with pytest.raises(ValidationError):
            RequestPayload(model=DEFAULT_MODEL)
        with pytest.raises(ValidationError):
            RequestPayload(model=DEFAULT_MODEL, prompt="a", messages=[])

    def test_frozen(self, prompt_payload):
        with pytest.raises(ValidationError):
            prompt_payload.stream = False

    def test_generate_body_omits_empty_system(self, prompt_payload):
        body = prompt_payload.to_http_body()

        assert "system" not in body
        assert body["stream"] is True

    def test_bridge_envelope_for_prompt(self, prompt_payload):
        envelope = prompt_payload.to_bridge_envelope()

        assert envelope == {
            "command": "What is the capital of France?",
            "args": None,
            "stream": True,
        }

    def test_last_user_text_without_user_turn(self):
        payload = RequestPayload(
            model=DEFAULT_MODEL, messages=[{"role": "assistant", "content": "hello"}],
        )

        assert payload.last_user_text() == ""
