"""
Shared pytest fixtures for shellai tests.

Provides fake collaborators for the session core (database context, input and
output sinks, indicator) and a scripted model backend.
"""

import asyncio
from typing import Any, Dict, List, Optional, Sequence

import pytest

from shellai.config import Config, MemoryKeyValueStore
from shellai.providers.base import BaseModelBackend
from shellai.signals import CancelSignal

HANG = object()
"""Scripted response that blocks until the request's signal fires."""


# -----------------------------------------------------------------------------
# Environment
# -----------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep developer environment settings out of the tests."""
    for name in (
        "SHELLAI_PROVIDER",
        "SHELLAI_MODEL",
        "SHELLAI_INCLUDE_SAMPLE_DOCS",
        "SHELLAI_DEFAULT_COLLECTION",
        "SHELLAI_PARALLEL_REQUESTS",
        "SHELLAI_DOCS_BASE_URL",
        "SHELLAI_DEBUG",
        "OLLAMA_BASE_URL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def reset_health_stats():
    BaseModelBackend._GLOBAL_HEALTH_STATS = {}


# -----------------------------------------------------------------------------
# Fake collaborators
# -----------------------------------------------------------------------------

class FakeDatabase:
    def __init__(
        self,
        name: str = "shop",
        collections: Optional[List[str]] = None,
        samples: Optional[Dict[str, List[Dict[str, Any]]]] = None,
    ):
        self.name = name
        self.collections = list(collections or [])
        self.samples = samples or {}
        self.sample_calls: List[tuple] = []

    def current_database_name(self) -> str:
        return self.name

    async def list_collection_names(self) -> List[str]:
        return list(self.collections)

    async def sample_documents(self, collection_name: str, n: int) -> List[Dict[str, Any]]:
        self.sample_calls.append((collection_name, n))
        return list(self.samples.get(collection_name, []))[:n]


class RecordingOutput:
    def __init__(self) -> None:
        self.writes: List[str] = []

    def write(self, text: str) -> None:
        self.writes.append(text)

    @property
    def text(self) -> str:
        return "".join(self.writes)


class RecordingInput:
    def __init__(self) -> None:
        self.chunks: List[str] = []

    def push(self, text: str) -> None:
        self.chunks.append(text)


class FakeIndicator:
    def __init__(self) -> None:
        self.starts = 0
        self.stops = 0
        self.running = False

    def start(self, signal: CancelSignal) -> None:
        self.starts += 1
        self.running = True

    def stop(self) -> None:
        self.stops += 1
        self.running = False


class ScriptedBackend(BaseModelBackend):
    """
    Backend answering from a queue of scripted responses.

    Items may be a string, a list of fragments, an exception to raise, or
    ``HANG`` to block until the request is cancelled.
    """

    def __init__(
        self,
        responses: Optional[Sequence[Any]] = None,
        *,
        streaming: bool = False,
        single_flight: bool = False,
        custom_models: bool = True,
        provider: str = "scripted",
    ):
        self.responses = list(responses or [])
        self.supports_streaming = streaming
        self.single_flight = single_flight
        self.supports_custom_models = custom_models
        self._provider = provider
        self.calls: List[Dict[str, Any]] = []
        self.events: List[tuple] = []
        super().__init__()

    @property
    def name(self) -> str:
        return self._provider

    @property
    def model(self) -> str:
        return "scripted-model"

    def is_available(self) -> bool:
        return True

    def _send_message(self, messages, system):
        raise AssertionError("scripted backend is async only")

    async def _answer(self, messages, system_prompt, signal) -> Any:
        signal = signal or CancelSignal()
        signal.raise_if_aborted()
        prompt = messages[-1]["content"] if messages else ""
        self.calls.append({"messages": [dict(m) for m in messages], "system": system_prompt})
        self.events.append(("call", prompt))
        item = self.responses.pop(0) if self.responses else ""
        if item is HANG:
            await signal.wait()
            self.events.append(("aborted", prompt))
            raise signal.error()
        await asyncio.sleep(0)
        if isinstance(item, BaseException):
            raise item
        return item

    async def generate(self, messages, system_prompt=None, signal=None) -> str:
        item = await self._answer(messages, system_prompt, signal)
        return "".join(item) if isinstance(item, list) else item

    async def stream(self, messages, system_prompt=None, signal=None):
        item = await self._answer(messages, system_prompt, signal)
        for fragment in item if isinstance(item, list) else [item]:
            await asyncio.sleep(0)
            yield fragment


async def wait_for_calls(backend: ScriptedBackend, count: int) -> None:
    """Yield to the loop until the backend has seen ``count`` calls."""
    for _ in range(1000):
        if len(backend.calls) >= count:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"backend saw {len(backend.calls)} calls, expected {count}")


# -----------------------------------------------------------------------------
# Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture
def store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def make_config(store):
    def _make(**values: Any) -> Config:
        for key, value in values.items():
            store.data[key] = value
        return asyncio.run(Config.create(store))

    return _make


@pytest.fixture
def config(make_config) -> Config:
    return make_config(provider="openai")


@pytest.fixture
def database() -> FakeDatabase:
    return FakeDatabase(collections=["orders"])


@pytest.fixture
def output() -> RecordingOutput:
    return RecordingOutput()


@pytest.fixture
def input_sink() -> RecordingInput:
    return RecordingInput()


@pytest.fixture
def indicator() -> FakeIndicator:
    return FakeIndicator()


@pytest.fixture
def backend() -> ScriptedBackend:
    return ScriptedBackend()


@pytest.fixture
def make_session(config, database, output, input_sink, indicator, backend):
    from shellai.session.core import AISession

    def _make(**overrides: Any) -> AISession:
        options: Dict[str, Any] = {
            "config": config,
            "database": database,
            "output": output,
            "input_sink": input_sink,
            "indicator": indicator,
            "backend": backend,
        }
        options.update(overrides)
        cfg = options.pop("config")
        db = options.pop("database")
        return AISession(cfg, db, **options)

    return _make


@pytest.fixture
def session(make_session):
    return make_session()
