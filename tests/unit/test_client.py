"""
tests/unit/test_client.py — Unit tests for llm/client.py

The OpenAI SDK client is patched; no request leaves the process.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

import pytest
from unittest.mock import MagicMock, patch
from config import settings
from llm.client import LLMClient


def make_response(content: str | None) -> MagicMock:
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    return response


@pytest.fixture
def sdk():
    with patch("llm.client.OpenAI") as mock_openai:
        instance = mock_openai.return_value
        instance.chat.completions.create.return_value = make_response('{"hasChanges": false}')
        yield mock_openai


# ── Construction ──────────────────────────────────────────────────────────────

class TestLLMClientInit:
    def test_uses_settings_by_default(self, sdk):
        client = LLMClient()
        kwargs = sdk.call_args[1]
        assert kwargs["base_url"] == settings.llm_base_url
        assert kwargs["timeout"] == settings.llm_timeout_seconds
        assert kwargs["max_retries"] == settings.llm_max_retries
        assert client.model == settings.llm_model

    def test_overrides(self, sdk):
        client = LLMClient(api_key="k", base_url="https://llm.example.com/v1", model="other-model")
        kwargs = sdk.call_args[1]
        assert kwargs["api_key"] == "k"
        assert kwargs["base_url"] == "https://llm.example.com/v1"
        assert client.model == "other-model"


# ── complete() ────────────────────────────────────────────────────────────────

class TestComplete:
    def test_returns_text(self, sdk):
        assert LLMClient().complete(system="s", user="u") == '{"hasChanges": false}'

    def test_sends_system_then_user(self, sdk):
        LLMClient().complete(system="instructions", user="payload")
        messages = sdk.return_value.chat.completions.create.call_args[1]["messages"]
        assert messages == [
            {"role": "system", "content": "instructions"},
            {"role": "user", "content": "payload"},
        ]

    def test_default_temperature(self, sdk):
        LLMClient().complete(system="s", user="u")
        kwargs = sdk.return_value.chat.completions.create.call_args[1]
        assert kwargs["temperature"] == settings.llm_temperature
        assert kwargs["model"] == settings.llm_model

    def test_temperature_override(self, sdk):
        LLMClient().complete(system="s", user="u", temperature=0.9)
        assert sdk.return_value.chat.completions.create.call_args[1]["temperature"] == 0.9

    def test_json_mode_adds_response_format(self, sdk):
        LLMClient().complete(system="s", user="u", json_mode=True)
        kwargs = sdk.return_value.chat.completions.create.call_args[1]
        assert kwargs["response_format"] == {"type": "json_object"}

    def test_json_mode_off(self, sdk):
        LLMClient().complete(system="s", user="u", json_mode=False)
        kwargs = sdk.return_value.chat.completions.create.call_args[1]
        assert "response_format" not in kwargs

    def test_none_content_is_empty_string(self, sdk):
        sdk.return_value.chat.completions.create.return_value = make_response(None)
        assert LLMClient().complete(system="s", user="u") == ""

    def test_no_choices_is_empty_string(self, sdk):
        response = MagicMock()
        response.choices = []
        sdk.return_value.chat.completions.create.return_value = response
        assert LLMClient().complete(system="s", user="u") == ""

    def test_sdk_errors_propagate(self, sdk):
        sdk.return_value.chat.completions.create.side_effect = RuntimeError("rate limited")
        with pytest.raises(RuntimeError):
            LLMClient().complete(system="s", user="u")
