"""
Mistral provider implementation.

Mistral exposes an OpenAI-compatible chat completions API, so the OpenAI SDK is
pointed at Mistral's base URL.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Sequence

from shellai.config.models import BackendConfig
from shellai.logging import get_logger
from .base import Message
from .helpers import to_chat_messages
from .openai import OpenAIBackend

logger = get_logger(__name__)

_DEFAULT_BASE_URL = "https://api.mistral.ai/v1"


class MistralBackend(OpenAIBackend):
    """
    Mistral backend.

    Configuration:
        provider: mistral
        model: mistral-small-latest
        api_key: ${MISTRAL_API_KEY}
    """

    supports_streaming = True
    default_model = "mistral-small-latest"

    def __init__(self, config: BackendConfig):
        if not config.base_url:
            config.base_url = _DEFAULT_BASE_URL
        super().__init__(config)

    @property
    def name(self) -> str:
        return "mistral"

    def _chat_args(self, messages: Sequence[Message], system: Optional[str]) -> Dict[str, Any]:
        request_args: Dict[str, Any] = {
            "model": self.model,
            "messages": to_chat_messages(messages, system),
            "max_tokens": self.config.max_tokens,
        }
        if self.config.temperature is not None:
            request_args["temperature"] = self.config.temperature
        return request_args

    @staticmethod
    def _message_text(response: Any) -> str:
        choices = getattr(response, "choices", []) or []
        if not choices:
            return ""
        message = getattr(choices[0], "message", None)
        return (getattr(message, "content", None) or "").strip()

    def _send_message(self, messages: Sequence[Message], system: Optional[str]) -> str:
        request_args = self._chat_args(messages, system)
        resp = self._with_retry(
            lambda: self.client.chat.completions.create(**request_args),
            "generate",
            retry_on=self._is_retryable_error,
        )
        return self._message_text(resp)

    def _send_streaming_message(
        self,
        messages: Sequence[Message],
        system: Optional[str],
    ) -> Iterable[str]:
        request_args = self._chat_args(messages, system)
        stream = self.client.chat.completions.create(**request_args, stream=True)
        for chunk in stream:
            choices = getattr(chunk, "choices", []) or []
            if not choices:
                continue
            delta = getattr(choices[0], "delta", None)
            content = getattr(delta, "content", None)
            if content:
                yield content
            if getattr(choices[0], "finish_reason", None):
                break
