"""
AI command surface.

Named shell entry points (``ai.ask``, ``ai.query``, ...) are kept in an
explicit registration table. Each entry carries its help metadata and an
argument policy that is enforced before the session is called.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Any, Callable, Dict, List, MutableMapping, Optional

from shellai.config.store import Config
from shellai.errors import Aborted, CommandArgumentError, ShellAIError
from shellai.logging import Colors, colorize, get_logger
from shellai.session.core import AISession
from .collaborators import DatabaseContext, Indicator, InputSink, OutputSink
from .common import format_command_error, join_arguments

logger = get_logger(__name__)

DEFAULT_PREFIX = "ai"
DEFAULT_ENTRY = "default"


class ArgPolicy(str, Enum):
    """Whether a command rejects, accepts or requires free-text arguments."""

    NONE = "none"
    OPTIONAL = "optional"
    REQUIRED = "required"


@dataclass(frozen=True)
class CommandSpec:
    """A registered command and its help metadata."""

    name: str
    handler: Callable[..., Any]
    description: str = ""
    example: str = ""
    alias: Optional[str] = None
    arg_policy: ArgPolicy = ArgPolicy.REQUIRED
    hidden: bool = False
    help_on_empty: bool = False

    def format_help(self, prefix: str = DEFAULT_PREFIX) -> str:
        lines = [f"{colorize(f'{prefix}.{self.name}', Colors.YELLOW)} {self.description}"]
        if self.alias:
            lines.append(f"  alias: {prefix}.{self.alias}")
        if self.example:
            lines.append(colorize(f"  example: {self.example}", Colors.GRAY))
        return "\n".join(lines)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a command invocation."""

    ok: bool
    value: Any = None
    error: Optional[str] = None
    cancelled: bool = False


def ai_command(
    handler: Callable[..., Any],
    *,
    name: str,
    description: str = "",
    example: str = "",
    alias: Optional[str] = None,
    arg_policy: ArgPolicy = ArgPolicy.REQUIRED,
    hidden: bool = False,
    help_on_empty: bool = False,
    respond: Optional[Callable[[str], None]] = None,
) -> CommandSpec:
    """
    Build a command entry whose handler enforces the argument policy.

    Positional arguments are stringified, joined with single spaces and
    trimmed before being handed to ``handler``. Handlers may be sync or async.

    Args:
        handler: Callable taking the joined prompt (no argument for
            ``ArgPolicy.NONE``; the prompt or None for ``ArgPolicy.OPTIONAL``)
        respond: Output used to print the command's own help when a required
            prompt is missing and ``help_on_empty`` is set

    Returns:
        CommandSpec with the wrapped async handler
    """
    spec: Optional[CommandSpec] = None

    async def wrapped(*args: Any) -> Any:
        prompt = join_arguments(args)
        if arg_policy is ArgPolicy.NONE:
            if args:
                raise CommandArgumentError("This command does not accept any arguments")
            result = handler()
        elif arg_policy is ArgPolicy.OPTIONAL:
            result = handler(prompt or None)
        else:
            if not prompt:
                if help_on_empty and respond is not None and spec is not None:
                    respond(spec.format_help())
                    return None
                raise CommandArgumentError("Please specify arguments to run")
            result = handler(prompt)

        if inspect.isawaitable(result):
            result = await result
        return result

    spec = CommandSpec(
        name=name,
        handler=wrapped,
        description=description,
        example=example,
        alias=alias,
        arg_policy=arg_policy,
        hidden=hidden,
        help_on_empty=help_on_empty,
    )
    return spec


class CommandRegistry:
    """Static table of commands, built once and routed by name or alias."""

    def __init__(self, respond: Callable[[str], None]):
        self.respond = respond
        self._commands: Dict[str, CommandSpec] = {}
        self._aliases: Dict[str, str] = {}

    def register(self, spec: CommandSpec) -> CommandSpec:
        names = [spec.name] + ([spec.alias] if spec.alias else [])
        for name in names:
            if name in self._commands or name in self._aliases:
                raise ValueError(f"Command already registered: {name}")
        self._commands[spec.name] = spec
        if spec.alias:
            self._aliases[spec.alias] = spec.name
        return spec

    def resolve(self, name: str) -> CommandSpec:
        """
        Find a command by name or alias.

        Raises:
            CommandArgumentError: If no such command exists
        """
        key = self._aliases.get(name, name)
        spec = self._commands.get(key)
        if spec is None:
            raise CommandArgumentError(
                f"Unknown command: {name}. Use {DEFAULT_PREFIX}.help to list commands."
            )
        return spec

    def __contains__(self, name: str) -> bool:
        return name in self._commands or name in self._aliases

    def visible(self) -> List[CommandSpec]:
        return [spec for spec in self._commands.values() if not spec.hidden]

    async def invoke(self, name: str, *args: Any) -> CommandResult:
        """
        Run a command, reporting user-facing failures through ``respond``.

        A request cancelled because a newer one superseded it is not an error
        worth showing; it is reported as cancelled.
        """
        try:
            spec = self.resolve(name)
            value = await spec.handler(*args)
        except Aborted as exc:
            if exc.superseded:
                logger.debug(f"{name} superseded: {exc}")
                return CommandResult(ok=False, error=str(exc), cancelled=True)
            self.respond(colorize(format_command_error(str(exc)), Colors.RED))
            return CommandResult(ok=False, error=str(exc), cancelled=True)
        except ShellAIError as exc:
            logger.debug(f"{name} failed: {exc}")
            self.respond(colorize(format_command_error(str(exc)), Colors.RED))
            return CommandResult(ok=False, error=str(exc))
        return CommandResult(ok=True, value=value)

    def install(self, namespace: MutableMapping[str, Any], prefix: str = DEFAULT_PREFIX) -> None:
        """Expose every command as ``prefix.name`` (and aliases) in ``namespace``."""
        for spec in self._commands.values():
            if spec.name == DEFAULT_ENTRY:
                namespace[prefix] = partial(self.invoke, spec.name)
                continue
            namespace[f"{prefix}.{spec.name}"] = partial(self.invoke, spec.name)
            if spec.alias:
                namespace[f"{prefix}.{spec.alias}"] = partial(self.invoke, spec.name)


class AICommands:
    """
    The ``ai`` command suite.

    Thin adapter from named shell commands onto an ``AISession``; provider
    and model switches go through the validated config.
    """

    def __init__(self, session: AISession, config: Config):
        self.session = session
        self.config = config
        self.registry = CommandRegistry(respond=session.respond)
        self._register_commands()

    def _register_commands(self) -> None:
        session = self.session
        respond = session.respond
        register = self.registry.register

        register(ai_command(
            session.ask, name="ask", description="ask MongoDB questions",
            example="ai.ask how do I run queries in mongosh?", help_on_empty=True, respond=respond,
        ))
        register(ai_command(
            session.data, name="data", description="generate data-related mongosh commands",
            example="ai.data insert some sample user info", help_on_empty=True, respond=respond,
        ))
        register(ai_command(
            session.query, name="query", description="generate a MongoDB query",
            example='ai.query find documents where name = "Ada"', help_on_empty=True, respond=respond,
        ))
        register(ai_command(
            session.aggregate, name="aggregate", alias="find",
            description="generate a MongoDB aggregation",
            example="ai.aggregate count users by country", help_on_empty=True, respond=respond,
        ))
        register(ai_command(
            session.collection, name="collection", description="set the active collection",
            example='ai.collection("users")', arg_policy=ArgPolicy.OPTIONAL,
        ))
        register(ai_command(
            session.shell, name="shell", alias="cmd",
            description="generate administrative mongosh commands",
            example="ai.shell get sharding info", help_on_empty=True, respond=respond,
        ))
        register(ai_command(
            session.general, name="general", description="use your model for general questions",
            example="ai.general what is the meaning of life?", help_on_empty=True, respond=respond,
        ))
        register(ai_command(
            self.provider, name="provider", description="switch the model provider",
            example='ai.provider("ollama")',
        ))
        register(ai_command(
            self.model, name="model", description="switch the model",
            example='ai.model("gpt-4.1")',
        ))
        register(ai_command(
            self.show_config, name="config", description="show the AI command configuration",
            example='ai.config.set("provider", "ollama")', arg_policy=ArgPolicy.NONE,
        ))
        register(ai_command(
            self.set_config, name="config.set", description="change a configuration value",
            example='ai.config.set("include_sample_docs", true)', hidden=True,
        ))
        register(ai_command(
            self.get_config, name="config.get", description="read a configuration value",
            example='ai.config.get("provider")', hidden=True,
        ))
        register(ai_command(
            session.clear, name="clear", description="clear the session",
            example="ai.clear", arg_policy=ArgPolicy.NONE,
        ))
        register(ai_command(
            self.help, name="help", description="show this help",
            example="ai.help", arg_policy=ArgPolicy.NONE, hidden=True,
        ))
        register(ai_command(
            self.default, name=DEFAULT_ENTRY, description="ask a question, or show help",
            arg_policy=ArgPolicy.OPTIONAL, hidden=True,
        ))

    def help_entries(self, prefix: str = DEFAULT_PREFIX) -> List[Dict[str, str]]:
        return [
            {"cmd": f"{prefix}.{spec.name}", "desc": spec.description, "example": spec.example}
            for spec in self.registry.visible()
        ]

    def help(self) -> None:
        self.session.help(self.help_entries())

    async def default(self, prompt: Optional[str]) -> Any:
        if not prompt:
            self.help()
            return None
        return await self.session.ask(prompt)

    async def provider(self, provider: str) -> str:
        value = await self.config.set("provider", provider)
        self.session.respond(f"Switched to {colorize(value, Colors.BLUE)} provider")
        return value

    async def model(self, model: str) -> str:
        value = await self.config.set("model", model)
        self.session.respond(f"Switched to {colorize(value, Colors.BLUE)} model")
        return value

    def show_config(self) -> None:
        self.session.respond(self.config.format())

    async def set_config(self, text: str) -> Any:
        """Handle ``config.set key value``; the value may be empty."""
        key, _, value = text.partition(" ")
        validated = await self.config.set(key, value.strip())
        self.session.respond(f"{colorize(key, Colors.YELLOW)} set to {colorize(repr(validated), Colors.WHITE)}")
        return validated

    def get_config(self, key: str) -> Any:
        value = self.config.get(key)
        self.session.respond(repr(value))
        return value

    async def invoke(self, name: str, *args: Any) -> CommandResult:
        return await self.registry.invoke(name, *args)

    def install(self, namespace: MutableMapping[str, Any], prefix: str = DEFAULT_PREFIX) -> None:
        self.registry.install(namespace, prefix)


def create_ai_commands(
    config: Config,
    database: DatabaseContext,
    *,
    output: OutputSink,
    input_sink: InputSink,
    indicator: Optional[Indicator] = None,
    **session_options: Any,
) -> AICommands:
    """
    Wire up a session and its command surface.

    Args:
        config: Loaded configuration
        database: Database context collaborator
        output: Output sink
        input_sink: Input sink for re-injected commands
        indicator: Optional "thinking" indicator
        **session_options: Extra ``AISession`` keyword arguments

    Returns:
        Ready-to-install AICommands
    """
    session = AISession(
        config,
        database,
        output=output,
        input_sink=input_sink,
        indicator=indicator,
        **session_options,
    )
    return AICommands(session, config)
