"""
Validated configuration store with change notifications.

``Config`` is loaded once from a persistent key/value collaborator. Every
``set`` validates first, persists second, updates the in-memory map third and
finally emits a single change event carrying the validated value.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Union

from shellai.errors import InvalidKey, ValidationError
from shellai.logging import Colors, colorize, get_logger
from .backends import KeyValueStore
from .models import CONFIG_KEYS, ConfigKeySpec, canonical_key, default_values

logger = get_logger(__name__)


@dataclass(frozen=True)
class ConfigChange:
    """Payload of a configuration change event."""

    key: str
    value: Any


ChangeListener = Callable[[ConfigChange], Union[None, Awaitable[None]]]


class Config:
    """
    Process-lifetime configuration.

    Use ``await Config.create(store)`` to build an instance populated from the
    persistent store.
    """

    def __init__(self, store: KeyValueStore):
        self._store = store
        self._values: Dict[str, Any] = default_values()
        self._listeners: List[ChangeListener] = []

    @classmethod
    async def create(cls, store: KeyValueStore) -> "Config":
        """Create a config and load persisted values for every key."""
        config = cls(store)
        await config.load()
        return config

    async def load(self) -> None:
        """Reload every key from the store, falling back to defaults."""
        for name, spec in CONFIG_KEYS.items():
            raw = await self._store.get(name)
            if raw is None:
                self._values[name] = spec.default_value()
                continue
            try:
                self._values[name] = spec.validate(raw)
            except ValidationError as exc:
                logger.warning(f"Ignoring persisted value for {name}: {exc}")
                self._values[name] = spec.default_value()

    @staticmethod
    def keys() -> List[str]:
        return list(CONFIG_KEYS.keys())

    def _spec(self, key: str) -> ConfigKeySpec:
        name = canonical_key(key)
        spec = CONFIG_KEYS.get(name)
        if spec is None:
            raise InvalidKey(key, CONFIG_KEYS.keys())
        return spec

    def get(self, key: str) -> Any:
        """
        Get the current value of a key.

        Raises:
            InvalidKey: If the key is unknown
        """
        spec = self._spec(key)
        return self._values[spec.name]

    async def set(self, key: str, value: Any) -> Any:
        """
        Validate, persist and publish a new value.

        Returns:
            The validated value

        Raises:
            InvalidKey: If the key is unknown
            ValidationError: If the value fails the key's schema
        """
        spec = self._spec(key)
        validated = spec.validate(value)

        await self._store.set(spec.name, validated)
        self._values[spec.name] = validated
        logger.debug(f"Config {spec.name} set to {validated!r}")

        await self._emit_change(ConfigChange(key=spec.name, value=validated))
        return validated

    def on_change(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a change listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def _emit_change(self, change: ConfigChange) -> None:
        for listener in list(self._listeners):
            result = listener(change)
            if inspect.isawaitable(result):
                await result

    def as_dict(self) -> Dict[str, Any]:
        return dict(self._values)

    def format(self) -> str:
        """Human-readable listing of every key with its type hint."""
        lines = []
        for name, spec in CONFIG_KEYS.items():
            value = self._values[name]
            shown = "none" if value is None else repr(value)
            hint = colorize(f"  # {spec.describe()}", Colors.GRAY)
            lines.append(f"  {colorize(name, Colors.YELLOW)}: {colorize(shown, Colors.WHITE)}{hint}")
        return "{\n" + "\n".join(lines) + "\n}"

    def __repr__(self) -> str:
        return f"Config({self._values!r})"
