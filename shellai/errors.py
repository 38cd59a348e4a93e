"""
Error taxonomy for the AI command suite.

Configuration and collection errors are user errors and are printed by the
command surface as command failures. Generation errors wrap whatever the model
backend raised; ``Aborted`` is kept separate so expected cancellations can be
told apart from real failures.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence


class ShellAIError(Exception):
    """Base class for all shellai errors."""


class ValidationError(ShellAIError, ValueError):
    """A configuration or command value failed validation."""


class InvalidKey(ShellAIError, KeyError):
    """An unknown configuration key was referenced."""

    def __init__(self, key: str, valid_keys: Iterable[str]):
        self.key = key
        self.valid_keys = tuple(valid_keys)
        super().__init__(
            f"Invalid config key: {key}. Valid keys are: {', '.join(self.valid_keys)}."
        )

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0])


class CommandArgumentError(ValidationError):
    """A command was called with the wrong number of arguments."""


class InvalidModel(ValidationError):
    """A model identifier was rejected by the selected provider."""


class NoActiveCollection(ShellAIError):
    """A collection-scoped operation could not resolve a collection."""

    def __init__(self, message: str, collections: Sequence[str] = ()):
        self.collections = tuple(collections)
        super().__init__(message)


class UnsupportedModelOverride(ShellAIError):
    """A custom model was requested for a provider with a fixed model."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"{provider} does not support custom models")


class GenerationError(ShellAIError):
    """The model backend failed for a reason other than cancellation."""

    def __init__(self, message: str, provider: Optional[str] = None):
        self.provider = provider
        super().__init__(message)


class ProviderSetupError(GenerationError):
    """The backend is a placeholder because setup has not completed."""


class Aborted(ShellAIError):
    """A generation request was cancelled (timeout or superseding request)."""

    def __init__(self, reason: Optional[str] = None, *, superseded: bool = False):
        self.reason = reason or "Request was aborted"
        self.superseded = superseded
        super().__init__(self.reason)


class ParallelRequestRejected(ShellAIError):
    """A new request was refused while a cancelled one is still cleaning up."""
