"""
Model backend abstractions for the AI command suite.

Provides a uniform interface over the knowledge-base service, hosted APIs
(OpenAI, Mistral, Anthropic) and local models (Ollama).
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

from .factory import create_backend, get_backend_class, list_available_providers, register_provider

_LAZY_EXPORTS = {
    "BaseModelBackend": ("shellai.providers.base", "BaseModelBackend"),
    "UnconfiguredBackend": ("shellai.providers.base", "UnconfiguredBackend"),
    "DocsBackend": ("shellai.providers.docs", "DocsBackend"),
    "OpenAIBackend": ("shellai.providers.openai", "OpenAIBackend"),
    "MistralBackend": ("shellai.providers.mistral", "MistralBackend"),
    "AnthropicBackend": ("shellai.providers.anthropic", "AnthropicBackend"),
    "OllamaBackend": ("shellai.providers.local", "OllamaBackend"),
}


def __getattr__(name: str) -> Any:
    if name in _LAZY_EXPORTS:
        module_name, attr_name = _LAZY_EXPORTS[name]
        module = import_module(module_name)
        value = getattr(module, attr_name)
        globals()[name] = value
        return value
    raise AttributeError(f"module 'shellai.providers' has no attribute '{name}'")


def __dir__() -> list[str]:
    return sorted(set(globals().keys()) | set(_LAZY_EXPORTS.keys()) | set(__all__))


__all__ = [
    "BaseModelBackend",
    "UnconfiguredBackend",
    "DocsBackend",
    "OpenAIBackend",
    "MistralBackend",
    "AnthropicBackend",
    "OllamaBackend",
    "create_backend",
    "get_backend_class",
    "list_available_providers",
    "register_provider",
]
