"""
System prompts for the AI commands.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence

EXPERT_PREAMBLE = "You are a MongoDB and mongosh expert."

AGGREGATE_TASK = "You generate the exact mongosh aggregate command that matches the user's request"
QUERY_TASK = "You generate the exact mongosh find command that matches the user's request"
SHELL_TASK = "You generate a runnable administrative mongosh command that matches the user's request"
DATA_TASK = "You generate a runnable mongosh command that reads or modifies data as the user requests"

GENERAL_PROMPT = "Give brief answers without any formatting or markdown."
ASK_PROMPT = f"{EXPERT_PREAMBLE} Give brief answers without any formatting."

NO_COLLECTION = "none"


def _serialize_documents(documents: Sequence[Dict[str, Any]]) -> str:
    # ObjectId, datetime and friends are not JSON-native
    return json.dumps(list(documents), default=str)


def build_system_prompt(
    task: str,
    database_name: str,
    collection: Optional[str] = None,
    sample_documents: Optional[Sequence[Dict[str, Any]]] = None,
) -> str:
    """
    Build the system prompt for a command-generating request.

    Args:
        task: What the model should generate
        database_name: Current database
        collection: Active collection, if any
        sample_documents: Documents sampled from the collection, if enabled

    Returns:
        System prompt text
    """
    parts: List[str] = [
        f"{EXPERT_PREAMBLE} {task.rstrip('.')}.",
        "Do not provide any text, explanation or formatting.",
        f"Current Database: {database_name}.",
    ]
    if collection:
        parts.append(f"Current Collection: {collection}.")
    if collection and sample_documents:
        parts.append(
            f"Sample documents from {database_name}.{collection}: "
            f"{_serialize_documents(sample_documents)}."
        )
        parts.append("Skip the use command to switch to the database, it is already set.")
    return " ".join(parts)


def build_collection_prompt(collections: Sequence[str]) -> str:
    """System prompt asking the model to pick a collection for a user prompt."""
    listed = "; ".join(collections) if collections else "(no collections)"
    return (
        "A user prompted about something which is likely related to a collection. "
        "You pick the collection that clearly matches the user's request. "
        f"The collections you have access to are: {listed}. "
        f"If there is no clear match or if no collection is needed, return '{NO_COLLECTION}'. "
        "Otherwise, return the collection name. "
        "Output only the collection name and nothing else, without formatting."
    )


def parse_collection_choice(text: str) -> str:
    """Normalize the model's collection pick (strip quotes, fences, whitespace)."""
    cleaned = text.replace("```", "").strip()
    return cleaned.strip("'\"` ").strip()
