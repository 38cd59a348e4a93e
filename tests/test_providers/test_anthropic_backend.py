"""
Tests for the Anthropic backend.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import MagicMock, Mock, patch

import pytest

from shellai.config.models import BackendConfig
from shellai.errors import GenerationError
from shellai.providers.anthropic import AnthropicBackend

HISTORY = [{"role": "user", "content": "list collections"}]


@pytest.fixture
def backend_config():
    return BackendConfig(provider="anthropic", model="claude-sonnet-4-0", api_key="test-key")


def test_generate_joins_text_blocks(backend_config):
    with patch("shellai.providers.anthropic.Anthropic") as mock_anthropic:
        mock_client = Mock()
        mock_client.messages.create.return_value = SimpleNamespace(
            content=[SimpleNamespace(text="show"), SimpleNamespace(type="tool_use"), SimpleNamespace(text="collections")]
        )
        mock_anthropic.return_value = mock_client

        text = asyncio.run(AnthropicBackend(backend_config).generate(HISTORY, "expert"))

    assert text == "show\ncollections"
    mock_anthropic.assert_called_once_with(api_key="test-key")
    kwargs = mock_client.messages.create.call_args.kwargs
    assert kwargs["system"] == "expert"
    assert kwargs["messages"] == HISTORY
    assert kwargs["model"] == "claude-sonnet-4-0"


def test_stream_reads_text_stream(backend_config):
    with patch("shellai.providers.anthropic.Anthropic") as mock_anthropic:
        mock_client = Mock()
        stream = MagicMock()
        stream.__enter__.return_value = SimpleNamespace(text_stream=iter(["show ", "", "dbs"]))
        mock_client.messages.stream.return_value = stream
        mock_anthropic.return_value = mock_client

        async def collect():
            return [chunk async for chunk in AnthropicBackend(backend_config).stream(HISTORY)]

        assert asyncio.run(collect()) == ["show ", "dbs"]

    stream.__exit__.assert_called_once()


def test_missing_key(monkeypatch):
    for name in ("SHELLAI_ANTHROPIC_API_KEY", "ANTHROPIC_API_KEY", "CLAUDE_API_KEY"):
        monkeypatch.delenv(name, raising=False)

    backend = AnthropicBackend(BackendConfig(provider="anthropic"))

    assert backend.model == AnthropicBackend.default_model
    with pytest.raises(GenerationError, match="ANTHROPIC_API_KEY not set"):
        asyncio.run(backend.generate(HISTORY))
