"""
Configuration for the AI command suite.
"""

from .backends import (
    DEFAULT_PREFIX,
    FileKeyValueStore,
    KeyValueStore,
    MemoryKeyValueStore,
    PrefixedKeyValueStore,
)
from .models import CONFIG_KEYS, DEFAULT_MODEL, PROVIDERS, ConfigKeySpec, canonical_key
from .store import Config, ConfigChange

__all__ = [
    "CONFIG_KEYS",
    "DEFAULT_MODEL",
    "DEFAULT_PREFIX",
    "PROVIDERS",
    "Config",
    "ConfigChange",
    "ConfigKeySpec",
    "FileKeyValueStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "PrefixedKeyValueStore",
    "canonical_key",
]
