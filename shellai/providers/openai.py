"""
OpenAI provider implementation.

Uses OpenAI's Responses API; the conversation history goes in ``input`` and
the system prompt in ``instructions``.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Sequence

from openai import OpenAI

from shellai.config.models import BackendConfig
from shellai.logging import get_logger
from .base import BaseModelBackend, Message
from .helpers import extract_event_delta, is_completion_event, resolve_model, to_responses_input

logger = get_logger(__name__)


def _model_supports_temperature(model: str) -> bool:
    return not model.startswith(("gpt-5", "o1", "o3", "o4"))


class OpenAIBackend(BaseModelBackend):
    """
    OpenAI backend.

    Configuration:
        provider: openai
        model: gpt-4.1-mini
        api_key: ${OPENAI_API_KEY}
    """

    supports_streaming = True
    default_model = "gpt-4.1-mini"

    def __init__(self, config: BackendConfig):
        """
        Initialize OpenAI backend.

        Args:
            config: Backend configuration with API key and model settings
        """
        self.config = config
        self._model = resolve_model(config.model, self.default_model)
        self._client: Optional[OpenAI] = None
        super().__init__()
        logger.debug(f"Initialized {self.name} backend with model: {self._model}")

    def _client_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"api_key": self.config.api_key}
        if self.config.base_url:
            kwargs["base_url"] = self.config.base_url
        return kwargs

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            if not self.is_available():
                raise ValueError(
                    f"API key for {self.name} not set. "
                    f"Set SHELLAI_{self.name.upper()}_API_KEY in the environment."
                )
            self._client = OpenAI(**self._client_kwargs())
        return self._client

    @property
    def name(self) -> str:
        return "openai"

    @property
    def model(self) -> str:
        return self._model

    def is_available(self) -> bool:
        return bool(self.config.api_key)

    def _is_retryable_error(self, error: Exception) -> bool:
        name = error.__class__.__name__
        return name in {
            "RateLimitError",
            "APIConnectionError",
            "APITimeoutError",
            "InternalServerError",
            "ServiceUnavailableError",
        }

    def _request_args(self, messages: Sequence[Message], system: Optional[str]) -> Dict[str, Any]:
        request_args: Dict[str, Any] = {
            "model": self._model,
            "input": to_responses_input(messages),
            "max_output_tokens": self.config.max_tokens,
        }
        if system:
            request_args["instructions"] = system
        if self.config.temperature is not None and _model_supports_temperature(self._model):
            request_args["temperature"] = self.config.temperature
        return request_args

    def _send_message(self, messages: Sequence[Message], system: Optional[str]) -> str:
        request_args = self._request_args(messages, system)
        resp = self._with_retry(
            lambda: self.client.responses.create(**request_args),
            "generate",
            retry_on=self._is_retryable_error,
        )
        text = (resp.output_text or "").strip()
        logger.debug(f"{self.name} response length: {len(text)} chars")
        return text

    def _send_streaming_message(
        self,
        messages: Sequence[Message],
        system: Optional[str],
    ) -> Iterable[str]:
        request_args = self._request_args(messages, system)
        stream = self.client.responses.create(**request_args, stream=True)
        for event in stream:
            delta = extract_event_delta(event)
            if delta:
                yield delta
            elif is_completion_event(event):
                break
