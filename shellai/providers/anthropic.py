"""
Anthropic Claude provider implementation.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Sequence

from anthropic import Anthropic

from shellai.config.models import BackendConfig
from shellai.logging import get_logger
from .base import BaseModelBackend, Message
from .helpers import resolve_model

logger = get_logger(__name__)


class AnthropicBackend(BaseModelBackend):
    """
    Anthropic Claude backend.

    Configuration:
        provider: anthropic
        model: claude-3-5-haiku-latest
        api_key: ${ANTHROPIC_API_KEY}
    """

    supports_streaming = True
    default_model = "claude-3-5-haiku-latest"

    def __init__(self, config: BackendConfig):
        self.config = config
        self._model = resolve_model(config.model, self.default_model)
        self._api_key = config.api_key
        self._client: Optional[Anthropic] = None
        super().__init__()
        logger.debug(f"Initialized Anthropic backend with model: {self._model}")

    @property
    def name(self) -> str:
        return "anthropic"

    @property
    def model(self) -> str:
        return self._model

    def is_available(self) -> bool:
        return bool(self._api_key)

    @property
    def client(self) -> Anthropic:
        if self._client is None:
            if not self.is_available():
                raise ValueError(
                    "ANTHROPIC_API_KEY not set. "
                    "Set SHELLAI_ANTHROPIC_API_KEY or ANTHROPIC_API_KEY in the environment."
                )
            self._client = Anthropic(api_key=self._api_key)
        return self._client

    def _extract_text(self, response: Any) -> str:
        parts = []
        for part in getattr(response, "content", []) or []:
            text = getattr(part, "text", None)
            if text:
                parts.append(text)
        return "\n".join(parts).strip()

    def _is_retryable_error(self, error: Exception) -> bool:
        name = error.__class__.__name__
        return name in {
            "RateLimitError",
            "APIConnectionError",
            "APITimeoutError",
            "InternalServerError",
            "OverloadedError",
        }

    def _request_args(self, messages: Sequence[Message], system: Optional[str]) -> Dict[str, Any]:
        request_args: Dict[str, Any] = {
            "model": self._model,
            "max_tokens": self.config.max_tokens,
            "messages": [
                {"role": message["role"], "content": message["content"]}
                for message in messages
            ],
        }
        if system:
            request_args["system"] = system
        if self.config.temperature is not None:
            request_args["temperature"] = self.config.temperature
        return request_args

    def _send_message(self, messages: Sequence[Message], system: Optional[str]) -> str:
        request_args = self._request_args(messages, system)
        resp = self._with_retry(
            lambda: self.client.messages.create(**request_args),
            "generate",
            retry_on=self._is_retryable_error,
        )
        return self._extract_text(resp)

    def _send_streaming_message(
        self,
        messages: Sequence[Message],
        system: Optional[str],
    ) -> Iterable[str]:
        request_args = self._request_args(messages, system)
        with self.client.messages.stream(**request_args) as stream:
            for text in stream.text_stream:
                if text:
                    yield text
