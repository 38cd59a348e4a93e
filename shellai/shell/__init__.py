"""
Shell-facing layer: command surface, presentation helpers and terminal host.
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

_LAZY_EXPORTS = {
    "AICommands": ("shellai.shell.commands", "AICommands"),
    "CommandRegistry": ("shellai.shell.commands", "CommandRegistry"),
    "create_ai_commands": ("shellai.shell.commands", "create_ai_commands"),
    "LoadingAnimation": ("shellai.shell.indicator", "LoadingAnimation"),
    "NullIndicator": ("shellai.shell.indicator", "NullIndicator"),
    "format_help_commands": ("shellai.shell.help", "format_help_commands"),
    "run_repl": ("shellai.shell.host", "run_repl"),
}


def __getattr__(name: str) -> Any:
    if name in _LAZY_EXPORTS:
        module_name, attr_name = _LAZY_EXPORTS[name]
        module = import_module(module_name)
        value = getattr(module, attr_name)
        globals()[name] = value
        return value
    raise AttributeError(f"module 'shellai.shell' has no attribute '{name}'")


__all__ = list(_LAZY_EXPORTS.keys())
