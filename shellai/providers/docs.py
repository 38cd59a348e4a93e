"""
Documentation knowledge-base provider.

The primary provider: answers come from a hosted documentation-search
assistant exposed through an OpenAI-compatible Responses endpoint. It needs no
API key, runs a fixed model and never serves more than one request at a time.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from openai import OpenAI

from shellai import __version__
from shellai.config.models import BackendConfig
from shellai.logging import get_logger
from .helpers import user_agent
from .openai import OpenAIBackend

logger = get_logger(__name__)

DEFAULT_DOCS_BASE_URL = "https://knowledge.mongodb.com/api/v1"


class DocsBackend(OpenAIBackend):
    """Knowledge-base backend."""

    supports_streaming = True
    supports_custom_models = False
    single_flight = True
    default_model = "mongodb-chat-latest"

    def __init__(self, config: BackendConfig):
        self.base_url = (config.base_url or DEFAULT_DOCS_BASE_URL).rstrip("/")
        super().__init__(config)

    @property
    def name(self) -> str:
        return "docs"

    def is_available(self) -> bool:
        return bool(self.base_url)

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(**self._client_kwargs())
        return self._client

    def _client_kwargs(self) -> Dict[str, Any]:
        agent = user_agent(__version__)
        return {
            # The knowledge base is anonymous; the SDK still requires a key.
            "api_key": self.config.api_key or "",
            "base_url": self.base_url,
            "default_headers": {
                "X-Request-Origin": agent,
                "User-Agent": agent,
            },
        }

    def health_check(self) -> Dict[str, Any]:
        data = super().health_check()
        data["base_url"] = self.base_url
        return data

    def _request_args(self, messages, system: Optional[str]) -> Dict[str, Any]:
        request_args = super()._request_args(messages, system)
        request_args.pop("temperature", None)
        return request_args
