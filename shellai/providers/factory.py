"""
Backend factory for creating model backends.

Handles backend instantiation based on the configured provider and model.
"""

from __future__ import annotations

from importlib import import_module
from typing import Dict, Optional, Type

from shellai.config.models import DEFAULT_MODEL, BackendConfig
from shellai.logging import get_logger
from .base import BaseModelBackend

logger = get_logger(__name__)

# Registry maps provider name -> "module:ClassName"
PROVIDER_REGISTRY: Dict[str, str | Type[BaseModelBackend]] = {
    "docs": "shellai.providers.docs:DocsBackend",
    "openai": "shellai.providers.openai:OpenAIBackend",
    "mistral": "shellai.providers.mistral:MistralBackend",
    "anthropic": "shellai.providers.anthropic:AnthropicBackend",
    "ollama": "shellai.providers.local:OllamaBackend",
}


def _load_backend_class(ref: str | Type[BaseModelBackend]) -> Type[BaseModelBackend]:
    """Load a backend class from a module reference string."""
    if isinstance(ref, type):
        return ref
    module_name, class_name = ref.split(":", 1)
    module = import_module(module_name)
    return getattr(module, class_name)


def get_backend_class(provider: str) -> Type[BaseModelBackend]:
    """
    Resolve the backend class registered for ``provider``.

    Raises:
        ValueError: If the provider is not registered or cannot be imported
    """
    provider_name = provider.lower()
    if provider_name not in PROVIDER_REGISTRY:
        available = ", ".join(PROVIDER_REGISTRY.keys())
        raise ValueError(
            f"Unsupported provider: '{provider_name}'. "
            f"Available providers: {available}"
        )
    try:
        return _load_backend_class(PROVIDER_REGISTRY[provider_name])
    except Exception as exc:
        raise ValueError(
            f"Provider '{provider_name}' is configured but unavailable: {exc}"
        ) from exc


def create_backend(
    provider: str,
    model: Optional[str] = None,
    config: Optional[BackendConfig] = None,
) -> BaseModelBackend:
    """
    Create a model backend.

    Args:
        provider: Provider name
        model: Model identifier; None or "default" selects the provider default
        config: Optional full backend configuration (provider/model taken from
            the explicit arguments)

    Returns:
        Initialized backend instance

    Raises:
        ValueError: If the provider is not supported, the model is invalid or
            the sampling settings are out of range

    Example:
        >>> backend = create_backend("openai", "gpt-4.1-mini")
        >>> print(backend)
        openai/gpt-4.1-mini
    """
    backend_class = get_backend_class(provider)
    if config is None:
        config = BackendConfig(provider=provider.lower(), model=model or DEFAULT_MODEL)
    else:
        config.provider = provider.lower()
        config.model = model or DEFAULT_MODEL
    config.validate(providers=PROVIDER_REGISTRY)

    logger.debug(f"Creating backend: {provider} ({config.model})")
    backend = backend_class(config)

    if not backend.is_available():
        logger.warning(
            f"Provider '{provider}' is not available. "
            f"Check API key configuration."
        )

    return backend


def list_available_providers() -> list[str]:
    """Get list of registered provider names."""
    return list(PROVIDER_REGISTRY.keys())


def register_provider(name: str, backend_class: Type[BaseModelBackend]) -> None:
    """
    Register a custom backend.

    Raises:
        TypeError: If backend_class doesn't inherit from BaseModelBackend
    """
    if not issubclass(backend_class, BaseModelBackend):
        raise TypeError(
            f"Backend class must inherit from BaseModelBackend, "
            f"got {backend_class}"
        )

    logger.info(f"Registering custom provider: {name}")
    PROVIDER_REGISTRY[name] = backend_class
