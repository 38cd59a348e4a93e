"""
AI session core.

Owns the conversation history, the active collection and the bookkeeping of
in-flight generation requests for one shell. Every AI command funnels into
``AISession.process_response``.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Sequence, Tuple

from shellai.config.models import DEFAULT_MODEL
from shellai.config.store import Config, ConfigChange
from shellai.errors import (
    Aborted,
    GenerationError,
    InvalidModel,
    NoActiveCollection,
    ParallelRequestRejected,
    UnsupportedModelOverride,
)
from shellai.logging import Colors, colorize, format_exception_summary, get_logger
from shellai.providers.base import BaseModelBackend, Message, UnconfiguredBackend
from shellai.providers.factory import create_backend, get_backend_class
from shellai.shell.collaborators import DatabaseContext, Indicator, InputSink, OutputSink
from shellai.shell.help import DEFAULT_HELP_COMMANDS, format_help_commands
from shellai.shell.indicator import NullIndicator
from shellai.signals import SUPERSEDED_REASON, CancelSignal
from . import prompts
from .formatting import (
    EXPECTED_COMMAND,
    EXPECTED_OUTPUTS,
    EXPECTED_RESPONSE,
    answer_prefix,
    encode_input_injection,
    format_response,
)

logger = get_logger(__name__)

SAMPLE_DOCUMENT_COUNT = 3


class _ActiveRequest:
    """Cancellation handle of the request currently holding the session."""

    def __init__(self, signal: CancelSignal):
        self.signal = signal
        self.finished = asyncio.Event()


class AISession:
    """
    Conversational state for one shell's AI commands.

    The session learns about provider and model switches only through the
    configuration's change events; it subscribes at construction.
    """

    def __init__(
        self,
        config: Config,
        database: DatabaseContext,
        *,
        output: OutputSink,
        input_sink: InputSink,
        indicator: Optional[Indicator] = None,
        backend: Optional[BaseModelBackend] = None,
        request_timeout: float = 30.0,
        classification_timeout: float = 10.0,
        cancel_grace: float = 5.0,
    ):
        self.config = config
        self.database = database
        self.output = output
        self.input_sink = input_sink
        self.indicator: Indicator = indicator or NullIndicator()
        self.request_timeout = request_timeout
        self.classification_timeout = classification_timeout
        self.cancel_grace = cancel_grace

        self.messages: List[Message] = []
        self.active_collection: Optional[str] = config.get("default_collection")
        self._active_request: Optional[_ActiveRequest] = None

        if backend is None:
            backend = self._initial_backend()
        self.backend = backend

        self._unsubscribe = config.on_change(self.on_config_change)

    # ------------------------------------------------------------------
    # Backend selection
    # ------------------------------------------------------------------

    def _initial_backend(self) -> BaseModelBackend:
        provider = self.config.get("provider")
        try:
            return self._build_backend(provider, self.config.get("model"))
        except ValueError as exc:
            logger.warning(f"Could not set up provider '{provider}': {exc}")
            return UnconfiguredBackend()

    @staticmethod
    def _build_backend(provider: str, model: Optional[str]) -> BaseModelBackend:
        if not get_backend_class(provider).supports_custom_models:
            model = DEFAULT_MODEL
        return create_backend(provider, model)

    @property
    def active_provider(self) -> str:
        return self.backend.name

    @property
    def active_model(self) -> str:
        return self.backend.model

    @property
    def allows_parallel_requests(self) -> bool:
        """True when requests may overlap instead of superseding each other."""
        if self.backend.single_flight:
            return False
        return bool(self.config.get("parallel_requests"))

    async def on_config_change(self, change: ConfigChange) -> None:
        """
        React to provider/model configuration changes.

        Raises:
            UnsupportedModelOverride: A custom model was set for a provider
                with a fixed model; the config is reverted to the default first
            InvalidModel: The model identifier was rejected by the provider
        """
        if change.key == "provider":
            self.backend = self._build_backend(change.value, DEFAULT_MODEL)
            logger.info(f"Provider switched to {self.backend}")
            return

        if change.key != "model":
            return

        provider = self.config.get("provider")
        if change.value != DEFAULT_MODEL and not self.backend.supports_custom_models:
            await self.config.set("model", DEFAULT_MODEL)
            raise UnsupportedModelOverride(provider)

        try:
            self.backend = self._build_backend(provider, change.value)
        except ValueError as exc:
            raise InvalidModel(
                f"Invalid model, please ensure your name is correct: {change.value}"
            ) from exc
        logger.info(f"Model switched to {self.backend}")

    def close(self) -> None:
        """Stop listening for configuration changes."""
        self._unsubscribe()

    # ------------------------------------------------------------------
    # Output routing
    # ------------------------------------------------------------------

    def respond(self, text: str) -> None:
        """Write text straight to the output sink."""
        self.output.write(text)

    def set_input(self, text: str) -> None:
        """Push generated text onto the shell input as if the user typed it."""
        for chunk in encode_input_injection(text):
            self.input_sink.push(chunk)

    # ------------------------------------------------------------------
    # Database context
    # ------------------------------------------------------------------

    def get_database_context(self) -> Tuple[str, str]:
        return self.database.current_database_name(), self.active_collection or ""

    async def get_sample_documents(
        self, collection: str, n: int = SAMPLE_DOCUMENT_COUNT
    ) -> List[Dict[str, Any]]:
        return list(await self.database.sample_documents(collection, n))

    async def _system_prompt(self, task: str, include_sample_docs: bool) -> str:
        database_name, collection = self.get_database_context()
        samples: Sequence[Dict[str, Any]] = ()
        if include_sample_docs and collection and self.config.get("include_sample_docs"):
            samples = await self.get_sample_documents(collection)
        return prompts.build_system_prompt(task, database_name, collection or None, samples)

    # ------------------------------------------------------------------
    # Collection handling
    # ------------------------------------------------------------------

    async def ensure_collection_name(self, prompt: str) -> None:
        """
        Make sure an active collection is set before a collection-scoped command.

        A lone collection is adopted without asking the model. Otherwise the
        model picks one from the database's collections.

        Raises:
            NoActiveCollection: If no collection could be determined
        """
        if self.active_collection:
            return

        collections = list(await self.database.list_collection_names())
        if len(collections) == 1:
            self.active_collection = collections[0]
            self.respond(
                f"Active collection set to {colorize(self.active_collection, Colors.BLUE)}. "
                f"Use {colorize('ai.collection', Colors.YELLOW)} to set a different collection.\n"
            )
            return

        choice = await self._classify_collection(prompt, collections)
        if choice in collections:
            self.active_collection = choice
            self.respond(
                f"Active collection was determined to be {colorize(choice, Colors.BLUE)}. "
                f"Use {colorize('ai.collection', Colors.YELLOW)} to set a different collection.\n"
            )
            return

        database_name = self.database.current_database_name()
        set_command = colorize('ai.collection("collection_name")', Colors.YELLOW)
        listed = ", ".join(collections) if collections else "(none)"
        raise NoActiveCollection(
            f"No active collection set. Use {set_command} to set a collection.\n"
            f"Collections in {colorize(database_name, Colors.WHITE)}: "
            f"{colorize(listed, Colors.GRAY)}",
            collections,
        )

    async def _classify_collection(self, prompt: str, collections: Sequence[str]) -> str:
        # Auxiliary request: never touches the conversation history.
        signal = CancelSignal.timeout(self.classification_timeout)
        try:
            text = await self.backend.generate(
                [{"role": "user", "content": f"User's prompt: {prompt}"}],
                prompts.build_collection_prompt(collections),
                signal,
            )
        finally:
            signal.dispose()
        choice = prompts.parse_collection_choice(text)
        logger.debug(f"Collection classification returned {choice!r}")
        return choice

    def collection(self, name: Optional[str] = None) -> None:
        """Set the active collection; an empty name clears it."""
        self.active_collection = name or None
        self.respond(
            f"Active collection set to {colorize(self.active_collection or 'none', Colors.BLUE)}"
        )

    def clear(self) -> None:
        """Forget the conversation and restore the default collection."""
        self.messages = []
        self.active_collection = self.config.get("default_collection")
        self.respond("Session cleared")

    def help(self, commands: Optional[Sequence[Dict[str, str]]] = None) -> None:
        self.respond(
            format_help_commands(
                commands if commands is not None else DEFAULT_HELP_COMMANDS,
                provider=self.active_provider,
                model=self.active_model,
                collection=self.active_collection,
            )
        )

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def process_response(
        self,
        prompt: str,
        *,
        system_prompt: Optional[str] = None,
        signal: Optional[CancelSignal] = None,
        expected_output: str = EXPECTED_RESPONSE,
    ) -> str:
        """
        Run one conversational turn against the active backend.

        Args:
            prompt: User prompt, appended to the history as a user turn
            system_prompt: Optional system instruction
            signal: Optional caller cancellation signal
            expected_output: 'command' re-injects the cleaned text as shell
                input; 'response' writes it to the output

        Returns:
            The generated text

        Raises:
            Aborted: The request timed out or was cancelled
            ParallelRequestRejected: A superseded request did not finish its
                cleanup in time
            GenerationError: The backend failed
        """
        if expected_output not in EXPECTED_OUTPUTS:
            raise ValueError(f"Unknown expected output: {expected_output!r}")
        if signal is not None:
            signal.raise_if_aborted()

        timeout = CancelSignal.timeout(self.request_timeout)
        request_signal = CancelSignal.any(timeout, signal)
        request = _ActiveRequest(request_signal)
        try:
            if not self.allows_parallel_requests:
                await self._claim_request_slot(request)
            return await self._run_turn(prompt, system_prompt, request_signal, expected_output)
        finally:
            request_signal.dispose()
            timeout.dispose()
            request.finished.set()
            if self._active_request is request:
                self._active_request = None

    async def _claim_request_slot(self, request: _ActiveRequest) -> None:
        previous = self._active_request
        self._active_request = request
        if previous is None or previous.finished.is_set():
            return

        logger.debug("Superseding in-flight request")
        previous.signal.abort(SUPERSEDED_REASON, superseded=True)
        try:
            await request.signal.run(
                asyncio.wait_for(previous.finished.wait(), self.cancel_grace)
            )
        except asyncio.TimeoutError:
            raise ParallelRequestRejected(
                "Parallel request was stopped: the previous request is still "
                "being cancelled. Please try again."
            ) from None

    async def _run_turn(
        self,
        prompt: str,
        system_prompt: Optional[str],
        signal: CancelSignal,
        expected_output: str,
    ) -> str:
        self.indicator.start(signal)
        turn: Message = {"role": "user", "content": prompt}
        self.messages.append(turn)
        try:
            text = await self._generate(system_prompt, signal, expected_output)
        except (Aborted, GenerationError, asyncio.CancelledError):
            self._remove_turn(turn)
            raise
        except Exception as exc:
            self._remove_turn(turn)
            raise GenerationError(
                f"Error generating text: {format_exception_summary(exc)}",
                provider=self.active_provider,
            ) from exc
        finally:
            self.indicator.stop()

        self.messages.append({"role": "assistant", "content": text})
        if expected_output == EXPECTED_COMMAND:
            self.set_input(format_response(text, EXPECTED_COMMAND))
        return text

    async def _generate(
        self,
        system_prompt: Optional[str],
        signal: CancelSignal,
        expected_output: str,
    ) -> str:
        backend = self.backend
        history = list(self.messages)
        printing = expected_output == EXPECTED_RESPONSE

        if not backend.supports_streaming:
            text = await backend.generate(history, system_prompt, signal)
            if printing:
                self.indicator.stop()
                self.respond(answer_prefix() + text + "\n")
            return text

        fragments: List[str] = []
        async for fragment in backend.stream(history, system_prompt, signal):
            if printing:
                if not fragments:
                    self.indicator.stop()
                    self.respond(answer_prefix())
                self.respond(fragment)
            fragments.append(fragment)
        if printing and fragments:
            self.respond("\n")
        return "".join(fragments)

    def _remove_turn(self, turn: Message) -> None:
        # Concurrent turns may have been appended since; match by identity.
        for index, message in enumerate(self.messages):
            if message is turn:
                del self.messages[index]
                return

    async def _collection_command(self, prompt: str, task: str) -> str:
        await self.ensure_collection_name(prompt)
        system_prompt = await self._system_prompt(task, include_sample_docs=True)
        return await self.process_response(
            prompt, system_prompt=system_prompt, expected_output=EXPECTED_COMMAND
        )

    async def aggregate(self, prompt: str) -> str:
        """Generate an aggregation pipeline command for the active collection."""
        return await self._collection_command(prompt, prompts.AGGREGATE_TASK)

    async def query(self, prompt: str) -> str:
        """Generate a find command for the active collection."""
        return await self._collection_command(prompt, prompts.QUERY_TASK)

    async def data(self, prompt: str) -> str:
        """Generate a data read/write command for the active collection."""
        return await self._collection_command(prompt, prompts.DATA_TASK)

    async def shell(self, prompt: str) -> str:
        """Generate an administrative shell command."""
        system_prompt = await self._system_prompt(prompts.SHELL_TASK, include_sample_docs=False)
        return await self.process_response(
            prompt, system_prompt=system_prompt, expected_output=EXPECTED_COMMAND
        )

    async def general(self, prompt: str) -> str:
        return await self.process_response(
            prompt, system_prompt=prompts.GENERAL_PROMPT, expected_output=EXPECTED_RESPONSE
        )

    async def ask(self, prompt: str) -> str:
        return await self.process_response(
            prompt, system_prompt=prompts.ASK_PROMPT, expected_output=EXPECTED_RESPONSE
        )

    def __repr__(self) -> str:
        return (
            f"AISession(backend={self.backend}, collection={self.active_collection!r}, "
            f"messages={len(self.messages)})"
        )
