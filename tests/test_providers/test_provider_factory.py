"""
Tests for the backend factory and registry.
"""

import pytest

from shellai.config.models import BackendConfig
from shellai.errors import ValidationError
from shellai.providers import factory
from shellai.providers.base import BaseModelBackend
from shellai.providers.docs import DocsBackend
from shellai.providers.local import OllamaBackend
from shellai.providers.openai import OpenAIBackend


def test_create_backend_resolves_default_model() -> None:
    backend = factory.create_backend("openai", "default", BackendConfig(provider="openai", api_key="k"))

    assert isinstance(backend, OpenAIBackend)
    assert backend.model == OpenAIBackend.default_model
    assert str(backend) == f"openai/{OpenAIBackend.default_model}"


def test_create_backend_keeps_custom_model() -> None:
    backend = factory.create_backend("ollama", "llama3.1:8b")

    assert isinstance(backend, OllamaBackend)
    assert backend.model == "llama3.1:8b"
    assert backend.base_url == "http://localhost:11434"


def test_create_backend_docs_is_fixed_model() -> None:
    backend = factory.create_backend("docs")

    assert isinstance(backend, DocsBackend)
    assert backend.model == DocsBackend.default_model
    assert backend.supports_custom_models is False
    assert backend.single_flight is True


def test_create_backend_rejects_unknown_provider() -> None:
    with pytest.raises(ValueError, match="Unsupported provider: 'gemini'"):
        factory.create_backend("gemini")


def test_create_backend_rejects_model_with_whitespace() -> None:
    with pytest.raises(ValueError, match="whitespace"):
        factory.create_backend("ollama", "llama 3")


def test_create_backend_rejects_blank_model() -> None:
    with pytest.raises(ValueError, match="must not be empty"):
        factory.create_backend("ollama", "   ")


def test_get_backend_class_reports_import_failures(monkeypatch) -> None:
    monkeypatch.setitem(factory.PROVIDER_REGISTRY, "broken", "shellai.providers.missing:Nope")

    with pytest.raises(ValueError, match="configured but unavailable"):
        factory.get_backend_class("broken")


def test_register_provider_requires_base_class(monkeypatch) -> None:
    class NotABackend:
        pass

    with pytest.raises(TypeError):
        factory.register_provider("custom", NotABackend)

    class CustomBackend(OllamaBackend):
        pass

    monkeypatch.setattr(factory, "PROVIDER_REGISTRY", dict(factory.PROVIDER_REGISTRY))
    factory.register_provider("custom", CustomBackend)
    assert factory.get_backend_class("custom") is CustomBackend
    assert issubclass(factory.get_backend_class("custom"), BaseModelBackend)


def test_list_available_providers() -> None:
    assert factory.list_available_providers() == ["docs", "openai", "mistral", "anthropic", "ollama"]


@pytest.mark.parametrize(
    "settings, message",
    [
        ({"temperature": 3.0}, "Temperature must be between"),
        ({"max_tokens": 0}, "max_tokens must be positive"),
    ],
)
def test_create_backend_rejects_out_of_range_settings(settings, message) -> None:
    with pytest.raises(ValidationError, match=message):
        factory.create_backend("ollama", "llama3.1:8b", BackendConfig(provider="ollama", **settings))


def test_create_backend_accepts_registered_custom_provider(monkeypatch) -> None:
    class CustomBackend(OllamaBackend):
        pass

    monkeypatch.setattr(factory, "PROVIDER_REGISTRY", dict(factory.PROVIDER_REGISTRY))
    factory.register_provider("custom", CustomBackend)

    backend = factory.create_backend("custom", "llama3.1:8b")

    assert isinstance(backend, CustomBackend)
    assert backend.config.provider == "custom"
