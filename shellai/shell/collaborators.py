"""
Contracts of the collaborators the session core depends on.

The shell host supplies concrete implementations; tests supply fakes.
"""

from __future__ import annotations

from typing import Any, Dict, List, Protocol

from shellai.signals import CancelSignal


class DatabaseContext(Protocol):
    """Read-only view of the shell's current database."""

    def current_database_name(self) -> str:
        ...

    async def list_collection_names(self) -> List[str]:
        ...

    async def sample_documents(self, collection_name: str, n: int) -> List[Dict[str, Any]]:
        ...


class InputSink(Protocol):
    """Accepts text to be treated as the next user-typed input."""

    def push(self, text: str) -> None:
        ...


class OutputSink(Protocol):
    """Accepts text for immediate display."""

    def write(self, text: str) -> None:
        ...


class Indicator(Protocol):
    """Animated status display for in-flight requests."""

    def start(self, signal: CancelSignal) -> None:
        ...

    def stop(self) -> None:
        ...
