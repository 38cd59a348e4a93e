"""Tests for persistent key/value collaborators."""

import asyncio
import json

import pytest
import yaml

from shellai.config import (
    DEFAULT_PREFIX,
    Config,
    FileKeyValueStore,
    MemoryKeyValueStore,
    PrefixedKeyValueStore,
)


def test_memory_store_get_set() -> None:
    store = MemoryKeyValueStore()
    asyncio.run(store.set("a", 1))
    assert asyncio.run(store.get("a")) == 1
    assert asyncio.run(store.get("missing")) is None


def test_json_file_store_persists(tmp_path) -> None:
    path = tmp_path / "nested" / "settings.json"
    store = FileKeyValueStore(path)

    asyncio.run(store.set("provider", "openai"))
    asyncio.run(store.set("parallel_requests", True))

    assert json.loads(path.read_text(encoding="utf-8")) == {
        "parallel_requests": True,
        "provider": "openai",
    }
    assert asyncio.run(FileKeyValueStore(path).get("provider")) == "openai"


def test_yaml_file_store_persists(tmp_path) -> None:
    path = tmp_path / "settings.yaml"
    store = FileKeyValueStore(path)

    asyncio.run(store.set("default_collection", None))
    asyncio.run(store.set("model", "gpt-4.1"))

    assert yaml.safe_load(path.read_text(encoding="utf-8")) == {
        "default_collection": None,
        "model": "gpt-4.1",
    }


def test_file_store_missing_file_reads_none(tmp_path) -> None:
    store = FileKeyValueStore(tmp_path / "absent.yml")
    assert asyncio.run(store.get("provider")) is None


def test_file_store_rejects_unknown_suffix(tmp_path) -> None:
    with pytest.raises(ValueError, match="Unsupported config format"):
        FileKeyValueStore(tmp_path / "settings.toml")


def test_file_store_rejects_non_mapping(tmp_path) -> None:
    path = tmp_path / "settings.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError, match="must contain a mapping"):
        asyncio.run(FileKeyValueStore(path).get("provider"))


def test_prefixed_store_namespaces_keys() -> None:
    inner = MemoryKeyValueStore({"provider": "unrelated"})
    store = PrefixedKeyValueStore(inner)

    asyncio.run(store.set("provider", "ollama"))

    assert inner.data == {"provider": "unrelated", f"{DEFAULT_PREFIX}provider": "ollama"}
    assert asyncio.run(store.get("provider")) == "ollama"


def test_config_over_prefixed_file_store(tmp_path) -> None:
    path = tmp_path / "shell.json"
    path.write_text(json.dumps({"snippet_ai_provider": "mistral"}), encoding="utf-8")

    config = asyncio.run(Config.create(PrefixedKeyValueStore(FileKeyValueStore(path))))

    assert config.get("provider") == "mistral"
