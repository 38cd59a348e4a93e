"""
AI session: conversation state, prompts and output post-processing.
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

_LAZY_EXPORTS = {
    "AISession": ("shellai.session.core", "AISession"),
    "build_system_prompt": ("shellai.session.prompts", "build_system_prompt"),
    "encode_input_injection": ("shellai.session.formatting", "encode_input_injection"),
    "format_response": ("shellai.session.formatting", "format_response"),
}


def __getattr__(name: str) -> Any:
    if name in _LAZY_EXPORTS:
        module_name, attr_name = _LAZY_EXPORTS[name]
        module = import_module(module_name)
        value = getattr(module, attr_name)
        globals()[name] = value
        return value
    raise AttributeError(f"module 'shellai.session' has no attribute '{name}'")


__all__ = list(_LAZY_EXPORTS.keys())
