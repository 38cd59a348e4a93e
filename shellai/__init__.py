from __future__ import annotations

from importlib import import_module
from typing import Any

__version__ = "0.3.0"

_LAZY_EXPORTS = {
    "AISession": ("shellai.session.core", "AISession"),
    "AICommands": ("shellai.shell.commands", "AICommands"),
    "Config": ("shellai.config.store", "Config"),
    "create_ai_commands": ("shellai.shell.commands", "create_ai_commands"),
}

__all__ = ["__version__", "AISession", "AICommands", "Config", "create_ai_commands"]


def __getattr__(name: str) -> Any:
    if name in _LAZY_EXPORTS:
        module_name, attr_name = _LAZY_EXPORTS[name]
        module = import_module(module_name)
        value = getattr(module, attr_name)
        globals()[name] = value
        return value
    raise AttributeError(f"module 'shellai' has no attribute '{name}'")
