"""
Configuration schema for the AI command suite.

Each setting is described by a ``ConfigKeySpec``; validation returns the
normalized value that is persisted and broadcast to listeners.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Tuple

from shellai.errors import ValidationError

PROVIDERS: Tuple[str, ...] = ("docs", "openai", "mistral", "anthropic", "ollama")
"""Selectable model backends. ``docs`` is the knowledge-base provider."""

DEFAULT_MODEL = "default"
"""Sentinel meaning "use the provider's built-in default model"."""

TRUE_VALUES: frozenset[str] = frozenset({"on", "true", "yes", "1"})
FALSE_VALUES: frozenset[str] = frozenset({"off", "false", "no", "0"})

KEY_ALIASES: Dict[str, str] = {
    "includeSampleDocs": "include_sample_docs",
    "defaultCollection": "default_collection",
    "parallelRequests": "parallel_requests",
}


def parse_bool(value: Any) -> bool:
    """Parse a boolean or an on/off word into a bool."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in TRUE_VALUES:
            return True
        if normalized in FALSE_VALUES:
            return False
    raise ValidationError(f"Expected a boolean, got {value!r}")


@dataclass(frozen=True)
class ConfigKeySpec:
    """Schema for a single configuration key."""

    name: str
    """Canonical key name."""

    kind: str
    """One of 'enum', 'string', 'bool', 'optional_string'."""

    default: Any = None
    """Value used when nothing valid is persisted."""

    choices: Tuple[str, ...] = field(default_factory=tuple)
    """Allowed values for 'enum' keys."""

    env_var: Optional[str] = None
    """Environment variable overriding the built-in default."""

    def default_value(self) -> Any:
        """Resolve the default, preferring the environment variable."""
        if self.env_var:
            raw = os.getenv(self.env_var)
            if raw is not None and raw != "":
                try:
                    return self.validate(raw)
                except ValidationError:
                    pass
        return self.default

    def validate(self, value: Any) -> Any:
        """
        Validate and normalize a value for this key.

        Raises:
            ValidationError: If the value does not match the schema
        """
        if self.kind == "enum":
            if not isinstance(value, str) or value.strip() not in self.choices:
                raise ValidationError(
                    f"Invalid value for {self.name}: {value!r}. "
                    f"Expected one of: {', '.join(self.choices)}"
                )
            return value.strip()

        if self.kind == "string":
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(
                    f"Invalid value for {self.name}: expected a non-empty string, got {value!r}"
                )
            return value.strip()

        if self.kind == "optional_string":
            if value is None:
                return None
            if not isinstance(value, str):
                raise ValidationError(
                    f"Invalid value for {self.name}: expected a string, got {value!r}"
                )
            return value.strip() or None

        if self.kind == "bool":
            try:
                return parse_bool(value)
            except ValidationError:
                raise ValidationError(
                    f"Invalid value for {self.name}: expected a boolean, got {value!r}"
                ) from None

        raise ValidationError(f"Unknown schema kind for {self.name}: {self.kind}")

    def describe(self) -> str:
        """Short type hint shown next to the value when listing config."""
        if self.kind == "enum":
            return " | ".join(self.choices)
        if self.kind == "bool":
            return "true | false"
        if self.kind == "optional_string":
            return "string | none"
        return "string"


CONFIG_KEYS: Dict[str, ConfigKeySpec] = {
    "provider": ConfigKeySpec(
        name="provider",
        kind="enum",
        default="docs",
        choices=PROVIDERS,
        env_var="SHELLAI_PROVIDER",
    ),
    "model": ConfigKeySpec(
        name="model",
        kind="string",
        default=DEFAULT_MODEL,
        env_var="SHELLAI_MODEL",
    ),
    "include_sample_docs": ConfigKeySpec(
        name="include_sample_docs",
        kind="bool",
        default=False,
        env_var="SHELLAI_INCLUDE_SAMPLE_DOCS",
    ),
    "default_collection": ConfigKeySpec(
        name="default_collection",
        kind="optional_string",
        default=None,
        env_var="SHELLAI_DEFAULT_COLLECTION",
    ),
    "parallel_requests": ConfigKeySpec(
        name="parallel_requests",
        kind="bool",
        default=False,
        env_var="SHELLAI_PARALLEL_REQUESTS",
    ),
}


@dataclass
class BackendConfig:
    """
    Effective model backend configuration used at runtime.
    """

    provider: str
    """Provider name (one of PROVIDERS)."""

    model: str = DEFAULT_MODEL
    """Model identifier, or the default sentinel."""

    api_key: Optional[str] = None
    """API key. If None, loaded from the environment based on provider."""

    base_url: Optional[str] = None
    """Base URL for local or OpenAI-compatible hosted providers."""

    temperature: Optional[float] = None
    """Sampling temperature; None leaves the provider default."""

    max_tokens: int = 2000
    """Maximum tokens to generate."""

    request_timeout: float = 60.0
    """Transport-level timeout in seconds for a single HTTP call."""

    def __post_init__(self):
        """Load API key and base URL from the environment if not provided."""
        if not self.api_key:
            fallbacks = {
                "openai": ("OPENAI_API_KEY",),
                "mistral": ("MISTRAL_API_KEY",),
                "anthropic": ("ANTHROPIC_API_KEY", "CLAUDE_API_KEY"),
            }.get(self.provider, ())
            for env_var in (f"SHELLAI_{self.provider.upper()}_API_KEY", *fallbacks):
                value = os.getenv(env_var)
                if value:
                    self.api_key = value
                    break

        if not self.base_url:
            if self.provider == "ollama":
                self.base_url = os.getenv("OLLAMA_BASE_URL") or "http://localhost:11434"
            elif self.provider == "docs":
                self.base_url = os.getenv("SHELLAI_DOCS_BASE_URL")

    def validate(self, providers: Optional[Iterable[str]] = None) -> None:
        """
        Validate backend configuration.

        Args:
            providers: Provider names to accept; defaults to the built-in ones
        """
        known = list(providers) if providers is not None else list(PROVIDERS)
        if self.provider not in known:
            raise ValidationError(
                f"Unsupported provider '{self.provider}'. "
                f"Available providers: {', '.join(known)}"
            )
        if self.temperature is not None and not 0.0 <= self.temperature <= 2.0:
            raise ValidationError(f"Temperature must be between 0.0 and 2.0, got {self.temperature}")
        if self.max_tokens < 1:
            raise ValidationError(f"max_tokens must be positive, got {self.max_tokens}")


def canonical_key(key: str) -> str:
    """Map camelCase aliases onto canonical key names."""
    return KEY_ALIASES.get(key, key)


def default_values() -> Dict[str, Any]:
    """Resolve defaults for every key."""
    return {name: spec.default_value() for name, spec in CONFIG_KEYS.items()}
