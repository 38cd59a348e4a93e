"""Help-text formatting for the AI command suite."""

from __future__ import annotations

from typing import Mapping, Optional, Sequence

from shellai.logging import Colors, colorize

HelpEntry = Mapping[str, str]

DEFAULT_HELP_COMMANDS: tuple[dict[str, str], ...] = (
    {"cmd": "ai.ask", "desc": "ask MongoDB questions", "example": "ai.ask how do I run queries in mongosh?"},
    {"cmd": "ai.data", "desc": "generate data-related mongosh commands", "example": "ai.data insert some sample user info"},
    {"cmd": "ai.query", "desc": "generate a MongoDB query", "example": 'ai.query find documents where name = "Ada"'},
    {"cmd": "ai.aggregate", "desc": "generate a MongoDB aggregation", "example": "ai.aggregate count users by country"},
    {"cmd": "ai.collection", "desc": "set the active collection", "example": 'ai.collection("users")'},
    {"cmd": "ai.shell", "desc": "generate administrative mongosh commands", "example": "ai.shell get sharding info"},
    {"cmd": "ai.general", "desc": "use your model for general questions", "example": "ai.general what is the meaning of life?"},
    {"cmd": "ai.config", "desc": "configure the AI commands", "example": 'ai.config.set("provider", "ollama")'},
)


def format_help_commands(
    commands: Sequence[HelpEntry],
    *,
    provider: str,
    model: str,
    collection: Optional[str] = None,
) -> str:
    """
    Render the command table shown by ``ai.help``.

    Args:
        commands: Entries with ``cmd``, ``desc`` and optional ``example``
        provider: Active provider name
        model: Active model identifier
        collection: Active collection, if any

    Returns:
        Multi-line help text (no trailing newline)
    """
    width = max((len(entry["cmd"]) for entry in commands), default=0)
    rows = []
    for entry in commands:
        padding = " " * (width - len(entry["cmd"]))
        row = f"  {colorize(entry['cmd'], Colors.YELLOW)}{padding} {colorize(entry['desc'], Colors.WHITE)}"
        example = entry.get("example")
        if example:
            row = f"{row} {colorize(f'| {example}', Colors.GRAY)}"
        rows.append(row)

    title = colorize("AI command suite for mongosh", Colors.BOLD, Colors.BLUE)
    shown_collection = colorize(collection or "not set", Colors.BOLD, Colors.WHITE)
    collection_line = colorize(
        f'Collection: {shown_collection}. Set it with ai.collection("collection_name")',
        Colors.GRAY,
    )
    footer = colorize(
        f"Using {colorize(provider, Colors.BOLD, Colors.WHITE)} as provider "
        f"and its {colorize(model, Colors.BOLD, Colors.WHITE)} model",
        Colors.GRAY,
    )
    return "\n".join([title, collection_line, "", *rows, "", footer])
