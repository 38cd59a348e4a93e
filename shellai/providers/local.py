"""
Local model provider implementation (Ollama).
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, Optional, Sequence

import requests

from shellai.config.models import BackendConfig
from shellai.logging import get_logger
from .base import BaseModelBackend, Message
from .helpers import resolve_model, to_chat_messages

logger = get_logger(__name__)


class OllamaBackend(BaseModelBackend):
    """
    Local model backend using Ollama's HTTP API.

    Configuration:
        provider: ollama
        model: qwen2.5-coder:7b
        base_url: http://localhost:11434
    """

    supports_streaming = True
    default_model = "qwen2.5-coder:7b"

    def __init__(self, config: BackendConfig):
        self.config = config
        self._model = resolve_model(config.model, self.default_model)
        self.base_url = (config.base_url or "http://localhost:11434").rstrip("/")
        super().__init__()
        logger.debug(f"Initialized Ollama backend with model: {self._model}")

    @property
    def name(self) -> str:
        return "ollama"

    @property
    def model(self) -> str:
        return self._model

    def is_available(self) -> bool:
        return bool(self.base_url)

    def health_check(self) -> Dict[str, Any]:
        data = super().health_check()
        data["base_url"] = self.base_url
        return data

    def _is_retryable_error(self, error: Exception) -> bool:
        return isinstance(error, requests.exceptions.ConnectionError)

    def _payload(self, messages: Sequence[Message], system: Optional[str], stream: bool) -> Dict[str, Any]:
        options: Dict[str, Any] = {"num_predict": self.config.max_tokens}
        if self.config.temperature is not None:
            options["temperature"] = self.config.temperature
        return {
            "model": self._model,
            "messages": to_chat_messages(messages, system),
            "stream": stream,
            "options": options,
        }

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        response = requests.post(url, json=payload, timeout=self.config.request_timeout)
        response.raise_for_status()
        return response.json()

    def _send_message(self, messages: Sequence[Message], system: Optional[str]) -> str:
        payload = self._payload(messages, system, stream=False)
        resp = self._with_retry(
            lambda: self._post("/api/chat", payload),
            "chat",
            retry_on=self._is_retryable_error,
        )
        message = resp.get("message", {}) if isinstance(resp, dict) else {}
        return (message.get("content") or "").strip()

    def _send_streaming_message(
        self,
        messages: Sequence[Message],
        system: Optional[str],
    ) -> Iterable[str]:
        payload = self._payload(messages, system, stream=True)
        url = f"{self.base_url}/api/chat"
        response = requests.post(url, json=payload, stream=True, timeout=self.config.request_timeout)
        try:
            response.raise_for_status()
            for line in response.iter_lines(decode_unicode=True):
                if not line:
                    continue
                try:
                    data = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if not isinstance(data, dict):
                    continue
                if data.get("error"):
                    raise RuntimeError(f"Ollama error: {data['error']}")
                content = (data.get("message") or {}).get("content")
                if content:
                    yield content
                if data.get("done"):
                    break
        finally:
            response.close()
