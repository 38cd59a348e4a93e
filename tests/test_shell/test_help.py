import re

from shellai.shell.help import DEFAULT_HELP_COMMANDS, format_help_commands

ANSI = re.compile(r"\x1b\[[0-9;]*m")


def _plain(text: str) -> str:
    return ANSI.sub("", text)


def test_help_table_aligns_commands():
    text = _plain(
        format_help_commands(
            [
                {"cmd": "ai.ask", "desc": "ask questions", "example": "ai.ask what is an index?"},
                {"cmd": "ai.aggregate", "desc": "generate a pipeline"},
            ],
            provider="openai",
            model="gpt-4.1-mini",
        )
    )
    lines = text.split("\n")

    assert lines[0] == "AI command suite for mongosh"
    assert lines[1] == 'Collection: not set. Set it with ai.collection("collection_name")'
    assert "  ai.ask       ask questions | ai.ask what is an index?" in lines
    assert "  ai.aggregate generate a pipeline" in lines
    assert lines[-1] == "Using openai as provider and its gpt-4.1-mini model"


def test_help_shows_active_collection():
    text = _plain(format_help_commands(DEFAULT_HELP_COMMANDS, provider="docs", model="m", collection="orders"))
    assert "Collection: orders." in text
    for entry in DEFAULT_HELP_COMMANDS:
        assert entry["cmd"] in text


def test_help_with_no_commands():
    text = _plain(format_help_commands([], provider="docs", model="m"))
    assert text.startswith("AI command suite for mongosh")
