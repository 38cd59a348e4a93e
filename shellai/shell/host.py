"""
Minimal terminal host for the AI commands.

Stands in for the database shell: provides the output and input sinks, a
static database context and a line loop that routes ``ai.*`` commands.
"""

from __future__ import annotations

import asyncio
import json
import re
import shlex
import sys
from collections import deque
from pathlib import Path
from typing import Any, Callable, Deque, Dict, List, Optional, TextIO, Tuple

import yaml

from shellai.logging import Colors, colorize, get_logger
from shellai.session.formatting import EDITOR_MODE_MARKER, decode_input_injection
from .commands import DEFAULT_ENTRY, DEFAULT_PREFIX, AICommands
from .common import CommandParseError, format_command_error, tokenize_command

logger = get_logger(__name__)

EXIT_WORDS = frozenset({"exit", "quit", ".exit"})


class StreamOutputSink:
    """Output sink writing to a text stream."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout

    def write(self, text: str) -> None:
        self.stream.write(text)
        self.stream.flush()


class QueuedInputSink:
    """FIFO of injected input chunks, consumed by the REPL loop."""

    def __init__(self) -> None:
        self._chunks: Deque[str] = deque()

    def push(self, text: str) -> None:
        self._chunks.append(text)

    def pending(self) -> List[str]:
        return list(self._chunks)

    def take_command(self) -> Optional[str]:
        """
        Pop the next injected command as plain text.

        A multi-line command spans the editor-mode marker and the chunk after
        it; backspaces are applied.
        """
        if not self._chunks:
            return None
        chunks = [self._chunks.popleft()]
        if chunks[0] == EDITOR_MODE_MARKER and self._chunks:
            chunks.append(self._chunks.popleft())
        return decode_input_injection(chunks)


class StaticDatabaseContext:
    """Database context backed by in-memory sample data."""

    def __init__(
        self,
        name: str = "test",
        collections: Optional[List[str]] = None,
        samples: Optional[Dict[str, List[Dict[str, Any]]]] = None,
    ):
        self.name = name
        self.samples = samples or {}
        if collections is None:
            collections = sorted(self.samples)
        self.collections = list(collections)

    def current_database_name(self) -> str:
        return self.name

    async def list_collection_names(self) -> List[str]:
        return list(self.collections)

    async def sample_documents(self, collection_name: str, n: int) -> List[Dict[str, Any]]:
        return list(self.samples.get(collection_name, []))[:n]


def load_samples(path: Path | str) -> Dict[str, List[Dict[str, Any]]]:
    """
    Load sample documents from a JSON or YAML file.

    The file holds a mapping of collection name to a list of documents.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the format or content shape is unsupported
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Samples file not found: {path}")

    suffix = path.suffix.lower()
    content = path.read_text(encoding="utf-8")
    if suffix in {".yaml", ".yml"}:
        raw = yaml.safe_load(content) or {}
    elif suffix == ".json":
        raw = json.loads(content)
    else:
        raise ValueError(f"Unsupported samples format: {suffix}. Use .json, .yaml, or .yml")

    if not isinstance(raw, dict):
        raise ValueError("Samples file must map collection names to lists of documents")
    samples: Dict[str, List[Dict[str, Any]]] = {}
    for name, documents in raw.items():
        if not isinstance(documents, list):
            raise ValueError(f"Samples for '{name}' must be a list of documents")
        samples[str(name)] = [doc for doc in documents if isinstance(doc, dict)]
    return samples


def _call_arguments(inner: str) -> List[str]:
    lexer = shlex.shlex(inner, posix=True)
    lexer.whitespace += ","
    lexer.whitespace_split = True
    try:
        return list(lexer)
    except ValueError as exc:
        raise CommandParseError(str(exc)) from exc


def parse_command_line(line: str, prefix: str = DEFAULT_PREFIX) -> Optional[Tuple[str, List[str]]]:
    """
    Parse an ``ai`` command line.

    Supports ``ai.name words``, ``ai.name("a", "b")`` and bare ``ai text``.

    Returns:
        ``(command_name, args)`` or None if the line is not an AI command

    Raises:
        CommandParseError: If call-style arguments cannot be tokenized
    """
    text = line.strip()
    pattern = re.compile(
        rf"^{re.escape(prefix)}(?:\.(?P<name>[A-Za-z_][\w.]*))?(?P<rest>[\s(].*)?$",
        re.DOTALL,
    )
    match = pattern.match(text)
    if match is None:
        return None

    name = (match.group("name") or DEFAULT_ENTRY).rstrip(".")
    rest = (match.group("rest") or "").strip()
    if rest.startswith("(") and rest.endswith(")"):
        args = _call_arguments(rest[1:-1])
    elif name == DEFAULT_ENTRY:
        args = [rest] if rest else []
    else:
        args = tokenize_command(rest)
    return name, args


async def run_repl(
    commands: AICommands,
    input_sink: QueuedInputSink,
    output: StreamOutputSink,
    read_line: Callable[[str], str] = input,
    prompt: str = "shellai> ",
) -> None:
    """
    Read lines and route ``ai.*`` commands until EOF or an exit word.

    A command injected by the previous AI call takes the place of the next
    read and is displayed instead of executed.
    """
    while True:
        injected = input_sink.take_command()
        if injected is not None:
            output.write(f"{colorize('Generated command:', Colors.BOLD, Colors.GREEN)}\n{injected}\n")
            continue

        try:
            line = await asyncio.to_thread(read_line, prompt)
        except EOFError:
            output.write("\n")
            return

        text = line.strip()
        if not text:
            continue
        if text in EXIT_WORDS:
            return

        try:
            parsed = parse_command_line(text)
        except CommandParseError as exc:
            output.write(colorize(format_command_error(str(exc)), Colors.RED))
            continue
        if parsed is None:
            output.write(
                colorize(
                    format_command_error(f"Not an AI command: {text}. Try {DEFAULT_PREFIX}.help"),
                    Colors.RED,
                )
            )
            continue

        name, args = parsed
        result = await commands.invoke(name, *args)
        if result.ok:
            output.write("\n")
