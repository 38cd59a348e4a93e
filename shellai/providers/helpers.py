"""
Shared helpers for provider implementations.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from shellai.config.models import DEFAULT_MODEL

Message = Dict[str, str]

USER_AGENT_NAME = "shellai"


def resolve_model(model: Optional[str], default: str) -> str:
    """
    Resolve the model identifier, mapping the default sentinel.

    Raises:
        ValueError: If the model name is blank
    """
    if model is None or model == DEFAULT_MODEL:
        return default
    value = str(model).strip()
    if not value:
        raise ValueError("Model name must not be empty")
    if any(ch.isspace() for ch in value):
        raise ValueError(f"Model name must not contain whitespace: {value!r}")
    return value


def to_chat_messages(
    messages: Sequence[Message],
    system: Optional[str] = None,
) -> List[Dict[str, str]]:
    """Build a chat-completions style message list with optional system turn."""
    payload: List[Dict[str, str]] = []
    if system:
        payload.append({"role": "system", "content": system})
    for message in messages:
        payload.append({"role": message["role"], "content": message["content"]})
    return payload


def to_responses_input(messages: Sequence[Message]) -> List[Dict[str, Any]]:
    """Build a Responses API ``input`` list (system goes in ``instructions``)."""
    return [
        {"role": message["role"], "content": message["content"]}
        for message in messages
    ]


def extract_event_delta(event: Any) -> Optional[str]:
    """Pull a text delta from a Responses API stream event, if it carries one."""
    event_type = getattr(event, "type", None)
    if event_type is None and isinstance(event, dict):
        event_type = event.get("type")
    if event_type not in {"response.output_text.delta", "response.output_text"}:
        return None
    delta = getattr(event, "delta", None)
    if delta is None and isinstance(event, dict):
        delta = event.get("delta")
    return delta or None


def is_completion_event(event: Any) -> bool:
    event_type = getattr(event, "type", None)
    if event_type is None and isinstance(event, dict):
        event_type = event.get("type")
    return event_type == "response.completed"


def user_agent(version: str) -> str:
    return f"{USER_AGENT_NAME}/{version}"
