"""
Post-processing of generated text.

Commands are stripped of markdown fences before being handed back to the
shell; multi-line commands are encoded for the shell's line editor.
"""

from __future__ import annotations

import re
from typing import List

from shellai.logging import Colors, colorize

EXPECTED_COMMAND = "command"
EXPECTED_RESPONSE = "response"
EXPECTED_OUTPUTS = (EXPECTED_COMMAND, EXPECTED_RESPONSE)

EDITOR_MODE_MARKER = ".editor\n"
"""Puts the shell's line editor into multi-line mode."""

BACKSPACE = "\b"

_FENCE_WITH_LANG = re.compile(r"```\w*")


def strip_code_fences(text: str) -> str:
    """Remove every markdown code fence marker and surrounding whitespace."""
    return _FENCE_WITH_LANG.sub("", text).replace("```", "").strip()


def format_response(text: str, expected_output: str) -> str:
    """
    Clean generated text for its destination.

    Args:
        text: Raw generated text
        expected_output: 'command' (re-injected as input) or 'response'

    Returns:
        Fence-stripped command text, or the response unchanged
    """
    if expected_output == EXPECTED_COMMAND:
        return strip_code_fences(text)
    if expected_output == EXPECTED_RESPONSE:
        return text
    raise ValueError(f"Unknown expected output: {expected_output!r}")


def answer_prefix() -> str:
    return colorize("Answer: ", Colors.BOLD, Colors.BLUE)


def _indent_width(line: str) -> int:
    return len(line) - len(line.lstrip(" \t"))


def encode_input_injection(text: str) -> List[str]:
    """
    Encode text for injection into the shell's input stream.

    Single-line text is injected as-is (trimmed). Multi-line text is preceded
    by the editor-mode marker; each line after the first gets enough
    backspaces to cancel the indentation the line editor carries over from the
    previous line.

    Returns:
        Chunks to push, in order
    """
    trimmed = text.strip()
    if "\n" not in trimmed and "\r" not in trimmed:
        return [trimmed]

    lines = trimmed.splitlines()
    encoded = lines[0]
    for previous, line in zip(lines, lines[1:]):
        encoded += "\n" + BACKSPACE * _indent_width(previous) + line
    return [EDITOR_MODE_MARKER, encoded]


def decode_input_injection(chunks: List[str]) -> str:
    """
    Reverse ``encode_input_injection`` into plain text.

    Backspaces remove the carried-over indentation at the start of a line;
    since the original line keeps its own indentation, they are dropped.
    """
    text = "".join(chunk for chunk in chunks if chunk != EDITOR_MODE_MARKER)
    return text.replace(BACKSPACE, "")
