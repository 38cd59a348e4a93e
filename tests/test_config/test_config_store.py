"""Tests for the validated configuration store."""

import asyncio

import pytest

from shellai.config import Config, ConfigChange, MemoryKeyValueStore
from shellai.errors import InvalidKey, ValidationError


def _config(data=None) -> Config:
    return asyncio.run(Config.create(MemoryKeyValueStore(data)))


def test_defaults_when_store_is_empty() -> None:
    config = _config()
    assert config.get("provider") == "docs"
    assert config.get("model") == "default"
    assert config.get("include_sample_docs") is False
    assert config.get("default_collection") is None
    assert config.get("parallel_requests") is False


def test_set_round_trip_emits_one_change() -> None:
    store = MemoryKeyValueStore()
    config = asyncio.run(Config.create(store))
    events = []
    config.on_change(events.append)

    asyncio.run(config.set("provider", "openai"))

    assert config.get("provider") == "openai"
    assert store.data["provider"] == "openai"
    assert events == [ConfigChange(key="provider", value="openai")]


def test_change_carries_validated_value() -> None:
    config = _config()
    events = []
    config.on_change(events.append)

    result = asyncio.run(config.set("includeSampleDocs", "yes"))

    assert result is True
    assert events == [ConfigChange(key="include_sample_docs", value=True)]


def test_invalid_key_names_valid_keys() -> None:
    config = _config()

    with pytest.raises(InvalidKey) as exc_info:
        asyncio.run(config.set("temperature", 1))

    message = str(exc_info.value)
    assert message.startswith("Invalid config key: temperature.")
    for key in Config.keys():
        assert key in message
    with pytest.raises(KeyError):
        config.get("temperature")


def test_validation_error_before_persistence() -> None:
    store = MemoryKeyValueStore()
    config = asyncio.run(Config.create(store))
    events = []
    config.on_change(events.append)

    with pytest.raises(ValidationError):
        asyncio.run(config.set("provider", "gemini"))
    with pytest.raises(ValidationError):
        asyncio.run(config.set("parallel_requests", "maybe"))

    assert store.data == {}
    assert events == []
    assert config.get("provider") == "docs"


def test_persist_happens_before_memory_update() -> None:
    class FailingStore(MemoryKeyValueStore):
        async def set(self, key, value):
            raise OSError("disk full")

    config = asyncio.run(Config.create(FailingStore()))
    events = []
    config.on_change(events.append)

    with pytest.raises(OSError):
        asyncio.run(config.set("provider", "openai"))

    assert config.get("provider") == "docs"
    assert events == []


def test_async_listener_is_awaited_and_errors_propagate() -> None:
    config = _config()
    seen = []

    async def listener(change):
        seen.append(change.key)
        raise RuntimeError("listener failed")

    config.on_change(listener)

    with pytest.raises(RuntimeError, match="listener failed"):
        asyncio.run(config.set("model", "gpt-4.1"))
    assert seen == ["model"]
    assert config.get("model") == "gpt-4.1"


def test_unsubscribe_stops_events() -> None:
    config = _config()
    events = []
    unsubscribe = config.on_change(events.append)
    unsubscribe()
    unsubscribe()

    asyncio.run(config.set("provider", "ollama"))
    assert events == []


def test_load_falls_back_on_invalid_persisted_values() -> None:
    config = _config({"provider": "bogus", "include_sample_docs": "on", "default_collection": "orders"})

    assert config.get("provider") == "docs"
    assert config.get("include_sample_docs") is True
    assert config.get("default_collection") == "orders"


def test_environment_overrides_defaults(monkeypatch) -> None:
    monkeypatch.setenv("SHELLAI_PROVIDER", "ollama")
    monkeypatch.setenv("SHELLAI_PARALLEL_REQUESTS", "true")

    config = _config()

    assert config.get("provider") == "ollama"
    assert config.get("parallel_requests") is True


def test_empty_optional_string_clears_value() -> None:
    config = _config({"default_collection": "orders"})
    assert asyncio.run(config.set("default_collection", "  ")) is None
    assert config.get("default_collection") is None


def test_format_lists_every_key() -> None:
    config = _config()
    rendered = config.format()
    for key in Config.keys():
        assert key in rendered
    assert "docs | openai | mistral | anthropic | ollama" in rendered


def test_as_dict_snapshot_is_a_copy() -> None:
    config = _config({"provider": "mistral"})
    snapshot = config.as_dict()

    assert snapshot["provider"] == "mistral"
    assert set(snapshot) == set(Config.keys())
    snapshot["provider"] = "ollama"
    assert config.get("provider") == "mistral"
