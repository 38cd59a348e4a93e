"""
Main CLI entry point for shellai.

Provides a small terminal host for the AI command suite with subcommands to
inspect and change configuration, ask a single question, or start a REPL.
"""

import argparse
import asyncio
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from shellai.logging import configure_logging_from_args, get_logger

DEFAULT_CONFIG_PATH = Path.home() / ".shellai" / "config.yaml"


def build_parser() -> argparse.ArgumentParser:
    """
    Build the main argument parser with subcommands.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog="shellai",
        description="shellai - AI command suite for the database shell",
        epilog="Use 'shellai <command> --help' for more information on a specific command.",
    )

    # Global flags (available to all commands)
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to the persisted settings file (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output (DEBUG level)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set logging level (overrides --verbose)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        help="Write logs to file",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        description="Available commands",
        required=False,  # Without a command the REPL starts
    )

    # -------------------------------------------------------------------------
    # Config subcommand
    # -------------------------------------------------------------------------
    config_parser = subparsers.add_parser(
        "config",
        help="Show or change AI settings",
    )
    config_subparsers = config_parser.add_subparsers(
        dest="config_command",
        title="config commands",
        required=True,
    )
    config_subparsers.add_parser("show", help="Show every setting")
    get_parser = config_subparsers.add_parser("get", help="Show one setting")
    get_parser.add_argument("key", help="Setting name")
    set_parser = config_subparsers.add_parser("set", help="Change one setting")
    set_parser.add_argument("key", help="Setting name")
    set_parser.add_argument("value", nargs="?", default="", help="New value (empty clears optional settings)")

    # -------------------------------------------------------------------------
    # Ask subcommand
    # -------------------------------------------------------------------------
    ask_parser = subparsers.add_parser(
        "ask",
        help="Ask a single question and print the answer",
    )
    ask_parser.add_argument("prompt", nargs="+", help="Question text")

    # -------------------------------------------------------------------------
    # REPL subcommand
    # -------------------------------------------------------------------------
    repl_parser = subparsers.add_parser(
        "repl",
        help="Start an interactive session routing ai.* commands",
    )
    _add_database_arguments(repl_parser)

    return parser


def _add_database_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--database",
        default="test",
        help="Current database name (default: test)",
    )
    parser.add_argument(
        "--collection",
        action="append",
        dest="collections",
        help="Collection name available to the session (repeatable)",
    )
    parser.add_argument(
        "--samples",
        type=Path,
        help="JSON/YAML file mapping collection names to sample documents",
    )


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


async def _load_config(path: Path):
    from shellai.config import Config, FileKeyValueStore, PrefixedKeyValueStore

    store = PrefixedKeyValueStore(FileKeyValueStore(path))
    return await Config.create(store)


async def run_config(args: argparse.Namespace) -> int:
    config = await _load_config(args.config)
    if args.config_command == "show":
        print(config.format())
    elif args.config_command == "get":
        print(repr(config.get(args.key)))
    else:
        value = await config.set(args.key, args.value)
        print(f"{args.key} set to {value!r}")
    return 0


def _build_commands(config, args: argparse.Namespace, interactive: bool):
    from shellai.shell.commands import create_ai_commands
    from shellai.shell.host import (
        QueuedInputSink,
        StaticDatabaseContext,
        StreamOutputSink,
        load_samples,
    )
    from shellai.shell.indicator import LoadingAnimation, NullIndicator

    samples = load_samples(args.samples) if getattr(args, "samples", None) else {}
    database = StaticDatabaseContext(
        getattr(args, "database", "test"),
        getattr(args, "collections", None),
        samples,
    )
    output = StreamOutputSink()
    input_sink = QueuedInputSink()
    indicator = LoadingAnimation(output) if interactive and sys.stdout.isatty() else NullIndicator()
    commands = create_ai_commands(
        config,
        database,
        output=output,
        input_sink=input_sink,
        indicator=indicator,
    )
    return commands, input_sink, output


async def run_ask(args: argparse.Namespace) -> int:
    config = await _load_config(args.config)
    commands, _, _ = _build_commands(config, args, interactive=True)
    result = await commands.invoke("ask", *args.prompt)
    return 0 if result.ok else 1


async def run_repl_command(args: argparse.Namespace) -> int:
    from shellai.shell.host import run_repl

    config = await _load_config(args.config)
    commands, input_sink, output = _build_commands(config, args, interactive=True)
    commands.help()
    output.write("\n")
    await run_repl(commands, input_sink, output)
    return 0


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the shellai CLI.

    Args:
        argv: Command-line arguments (for testing)

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging_from_args(
        verbose=args.verbose or _env_flag("SHELLAI_DEBUG"),
        log_level=args.log_level,
        log_file=str(args.log_file) if args.log_file else None,
    )

    logger = get_logger(__name__)
    logger.debug(f"Parsed arguments: {args}")

    from shellai.errors import ShellAIError

    try:
        if args.command == "config":
            return asyncio.run(run_config(args))
        if args.command == "ask":
            return asyncio.run(run_ask(args))
        if args.command in (None, "repl"):
            if args.command is None:
                _add_defaults(args)
            return asyncio.run(run_repl_command(args))

        parser.print_help()
        return 1

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        print("\nInterrupted by user.")
        return 130  # Standard exit code for SIGINT

    except ShellAIError as e:
        logger.debug(f"Command failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except Exception as e:
        logger.exception("Unhandled exception in main")
        print(f"\nError: {e}", file=sys.stderr)
        if args.verbose:
            raise
        return 1


def _add_defaults(args: argparse.Namespace) -> None:
    args.database = "test"
    args.collections = None
    args.samples = None


if __name__ == "__main__":
    sys.exit(main())
