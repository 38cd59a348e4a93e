"""Shared parsing and formatting helpers for AI shell commands."""

from __future__ import annotations

from typing import Sequence


class CommandParseError(ValueError):
    """Raised when command tokenization fails."""


def normalize_argument(value: object) -> str:
    """Normalize a single argument to a trimmed string."""
    if value is None:
        return ""
    return str(value).strip()


def join_arguments(values: Sequence[object]) -> str:
    """Join positional arguments with single spaces and trim the result."""
    return " ".join(str(value) for value in values).strip()


def tokenize_command(command: str) -> list[str]:
    """Split a command string into whitespace-separated tokens."""
    text = normalize_argument(command)
    if not text:
        return []
    return text.split()


def format_command_error(message: str) -> str:
    """Format command/parser errors consistently with trailing newline."""
    return f"{normalize_argument(message)}\n"
