"""
Persistent key/value collaborators for the configuration store.

The store only needs async ``get``/``set``. Keys are namespaced by
``PrefixedKeyValueStore`` so AI settings never collide with unrelated shell
settings kept in the same backing store.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

import yaml

from shellai.logging import get_logger

logger = get_logger(__name__)

DEFAULT_PREFIX = "snippet_ai_"


class KeyValueStore(Protocol):
    """Async key/value persistence used by ``Config``."""

    async def get(self, key: str) -> Any:
        ...

    async def set(self, key: str, value: Any) -> None:
        ...


class MemoryKeyValueStore:
    """In-process store, used for tests and throwaway sessions."""

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self.data: Dict[str, Any] = data if data is not None else {}

    async def get(self, key: str) -> Any:
        return self.data.get(key)

    async def set(self, key: str, value: Any) -> None:
        self.data[key] = value


class FileKeyValueStore:
    """
    Store backed by a JSON or YAML file.

    The format follows the file suffix (.json, .yaml, .yml). The whole file is
    rewritten on every ``set``.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        suffix = self.path.suffix.lower()
        if suffix not in {".json", ".yaml", ".yml"}:
            raise ValueError(
                f"Unsupported config format: {suffix}. "
                f"Use .json, .yaml, or .yml"
            )
        self._lock = asyncio.Lock()

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        content = self.path.read_text(encoding="utf-8")
        if self.path.suffix.lower() == ".json":
            data = json.loads(content) if content.strip() else {}
        else:
            data = yaml.safe_load(content) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {self.path} must contain a mapping")
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if self.path.suffix.lower() == ".json":
            text = json.dumps(data, indent=2, sort_keys=True) + "\n"
        else:
            text = yaml.safe_dump(data, sort_keys=False)
        self.path.write_text(text, encoding="utf-8")

    async def get(self, key: str) -> Any:
        data = await asyncio.to_thread(self._read)
        return data.get(key)

    async def set(self, key: str, value: Any) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            data[key] = value
            await asyncio.to_thread(self._write, data)
        logger.debug(f"Persisted {key} to {self.path}")


class PrefixedKeyValueStore:
    """Namespaces every key of an underlying store with a fixed prefix."""

    def __init__(self, inner: KeyValueStore, prefix: str = DEFAULT_PREFIX):
        self.inner = inner
        self.prefix = prefix

    async def get(self, key: str) -> Any:
        return await self.inner.get(f"{self.prefix}{key}")

    async def set(self, key: str, value: Any) -> None:
        await self.inner.set(f"{self.prefix}{key}", value)
