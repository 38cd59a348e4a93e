"""
Base model backend interface.

Every backend exposes one capability: produce text from a message history and
an optional system instruction, honoring a cancellation signal. Concrete
providers implement the blocking ``_send_message`` and
``_send_streaming_message`` calls; this class runs them off the event loop and
maps their outcome onto ``GenerationError`` / ``Aborted``.
"""

from __future__ import annotations

import asyncio
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, AsyncIterator, Callable, Dict, Iterable, Iterator, Optional, Sequence

from shellai.errors import Aborted, GenerationError, ProviderSetupError
from shellai.logging import format_exception_summary, get_logger
from shellai.signals import CancelSignal

logger = get_logger(__name__)

Message = Dict[str, str]

_STREAM_DONE = object()


class _StreamPuller:
    """
    Pulls fragments from a blocking iterator on worker threads.

    ``close`` never blocks the event loop: when a pull is still running in its
    thread, the iterator is closed by that thread once ``next`` returns.
    """

    def __init__(self, iterator: Iterator[str], label: str = "stream") -> None:
        self._iterator = iterator
        self._label = label
        self._lock = threading.Lock()
        self._busy = False
        self._close_requested = False

    def pull(self) -> Any:
        with self._lock:
            if self._close_requested:
                return _STREAM_DONE
            self._busy = True
        try:
            return next(self._iterator, _STREAM_DONE)
        finally:
            with self._lock:
                self._busy = False
                deferred = self._close_requested
            if deferred:
                self._close_iterator()

    def close(self) -> None:
        with self._lock:
            if self._close_requested:
                return
            self._close_requested = True
            busy = self._busy
        if busy:
            logger.debug(f"Deferring close of {self._label} stream until the pending read returns")
            return
        self._close_iterator()

    def _close_iterator(self) -> None:
        close = getattr(self._iterator, "close", None)
        if close is None:
            return
        try:
            close()
        except Exception as exc:
            logger.debug(f"Failed to close {self._label} stream: {exc}")


@dataclass
class ProviderHealthStats:
    """Track provider call outcomes for health monitoring."""
    success_count: int = 0
    failure_count: int = 0
    consecutive_failures: int = 0
    last_success: Optional[datetime] = None
    last_failure: Optional[datetime] = None
    last_error: Optional[str] = None
    last_error_category: Optional[str] = None
    circuit_open_until: Optional[datetime] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "consecutive_failures": self.consecutive_failures,
            "last_success": self.last_success.isoformat() if self.last_success else None,
            "last_failure": self.last_failure.isoformat() if self.last_failure else None,
            "last_error": self.last_error,
            "last_error_category": self.last_error_category,
            "circuit_open_until": (
                self.circuit_open_until.isoformat() if self.circuit_open_until else None
            ),
        }


class BaseModelBackend(ABC):
    """
    Abstract base class for model backends.

    Capability flags:
        supports_streaming: ``stream`` yields fragments incrementally.
        supports_custom_models: users may select a model other than the default.
        single_flight: at most one request may be in flight, regardless of
            the ``parallel_requests`` setting.
    """

    supports_streaming: bool = False
    supports_custom_models: bool = True
    single_flight: bool = False
    default_model: str = ""

    _GLOBAL_HEALTH_STATS: Dict[str, ProviderHealthStats] = {}
    CIRCUIT_BREAKER_THRESHOLD = 5
    CIRCUIT_BREAKER_COOLDOWN_SECONDS = 30.0

    def __init__(self) -> None:
        key = f"{self.name}:{self.model}"
        if key not in self._GLOBAL_HEALTH_STATS:
            self._GLOBAL_HEALTH_STATS[key] = ProviderHealthStats()
        self._health_stats = self._GLOBAL_HEALTH_STATS[key]

    @abstractmethod
    def _send_message(
        self,
        messages: Sequence[Message],
        system: Optional[str],
    ) -> str:
        """
        Send a single non-streaming request to the provider.

        Args:
            messages: Conversation history (role/content dicts)
            system: Optional system instruction

        Returns:
            Generated text
        """
        pass

    def _send_streaming_message(
        self,
        messages: Sequence[Message],
        system: Optional[str],
    ) -> Iterable[str]:
        """
        Send a streaming request to the provider.

        The default implementation yields the whole non-streaming answer as a
        single fragment.

        Yields:
            Text fragments in arrival order
        """
        yield self._send_message(messages, system)

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the provider is configured and available."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (e.g., 'openai', 'ollama')."""
        pass

    @property
    @abstractmethod
    def model(self) -> str:
        """Model identifier in use."""
        pass

    async def generate(
        self,
        messages: Sequence[Message],
        system_prompt: Optional[str] = None,
        signal: Optional[CancelSignal] = None,
    ) -> str:
        """
        Generate the full response text.

        Raises:
            Aborted: If ``signal`` fires before completion (or already fired)
            GenerationError: For any backend failure
        """
        signal = signal or CancelSignal()
        signal.raise_if_aborted()
        history = [dict(message) for message in messages]

        try:
            text = await signal.run(
                asyncio.to_thread(self._send_message, history, system_prompt)
            )
        except Aborted:
            logger.debug(f"{self} generation aborted")
            raise
        except GenerationError:
            raise
        except Exception as exc:
            self._record_failure(exc, "generate")
            raise GenerationError(
                f"Error generating text: {format_exception_summary(exc)}",
                provider=self.name,
            ) from exc

        self._record_success("generate")
        return text or ""

    async def stream(
        self,
        messages: Sequence[Message],
        system_prompt: Optional[str] = None,
        signal: Optional[CancelSignal] = None,
    ) -> AsyncIterator[str]:
        """
        Generate the response as a finite sequence of text fragments.

        The sequence ends when the backend signals completion; it raises
        ``Aborted`` when ``signal`` fires first.
        """
        signal = signal or CancelSignal()
        signal.raise_if_aborted()
        if self._is_circuit_open():
            raise GenerationError(
                f"Error generating text: {format_exception_summary(self._circuit_open_error())}",
                provider=self.name,
            )
        history = [dict(message) for message in messages]

        puller: Optional[_StreamPuller] = None
        emitted = False
        try:
            puller = _StreamPuller(
                await signal.run(
                    asyncio.to_thread(
                        lambda: iter(self._send_streaming_message(history, system_prompt))
                    )
                ),
                label=str(self),
            )
            while True:
                chunk = await signal.run(asyncio.to_thread(puller.pull))
                if chunk is _STREAM_DONE:
                    break
                if chunk:
                    emitted = True
                    yield chunk
        except Aborted:
            logger.debug(f"{self} stream aborted")
            raise
        except GenerationError:
            raise
        except Exception as exc:
            self._record_failure(exc, "stream")
            raise GenerationError(
                f"Error generating text: {format_exception_summary(exc)}",
                provider=self.name,
            ) from exc
        finally:
            if puller is not None:
                puller.close()

        self._record_success("stream")
        if not emitted:
            logger.warning(f"{self} stream completed without text output")

    def health_check(self) -> Dict[str, Any]:
        """Return provider health and recent call stats."""
        available = self.is_available()
        return {
            "provider": self.name,
            "model": self.model,
            "available": available,
            "status": "available" if available else "unavailable",
            "stats": self._health_stats.as_dict(),
        }

    def __str__(self) -> str:
        return f"{self.name}/{self.model}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model='{self.model}')"

    def _record_success(self, context: Optional[str] = None) -> None:
        """Record a successful provider call."""
        self._health_stats.success_count += 1
        self._health_stats.consecutive_failures = 0
        self._health_stats.last_success = datetime.utcnow()
        self._health_stats.circuit_open_until = None
        if context:
            logger.debug(f"{self.name}/{self.model} call succeeded: {context}")

    def _record_failure(self, error: Exception, context: Optional[str] = None) -> None:
        """Record a failed provider call and log centrally."""
        self._health_stats.failure_count += 1
        self._health_stats.consecutive_failures += 1
        self._health_stats.last_failure = datetime.utcnow()
        self._health_stats.last_error = str(error)
        self._health_stats.last_error_category = self.categorize_error(error)
        if self._health_stats.consecutive_failures >= self.CIRCUIT_BREAKER_THRESHOLD:
            self._health_stats.circuit_open_until = datetime.utcnow() + timedelta(
                seconds=self.CIRCUIT_BREAKER_COOLDOWN_SECONDS
            )
        label = f"{self.name}/{self.model}"
        if context:
            label = f"{label} ({context})"
        logger.error(f"Provider error in {label}: {error}")

    def categorize_error(self, error: Exception) -> str:
        """Categorize provider exceptions as retryable or fatal."""
        if isinstance(error, (TimeoutError, ConnectionError)):
            return "retryable"
        if isinstance(error, (PermissionError, ValueError)):
            return "fatal"

        message = str(error).lower()
        retryable_markers = (
            "timeout",
            "timed out",
            "temporar",
            "unavailable",
            "rate limit",
            "429",
            "503",
            "connection reset",
            "connection aborted",
            "try again",
        )
        for marker in retryable_markers:
            if marker in message:
                return "retryable"
        return "fatal"

    def is_retryable_error(self, error: Exception) -> bool:
        """Return True if an exception should be retried."""
        return self.categorize_error(error) == "retryable"

    def _is_circuit_open(self) -> bool:
        until = self._health_stats.circuit_open_until
        if until is None:
            return False
        if datetime.utcnow() >= until:
            self._health_stats.circuit_open_until = None
            return False
        return True

    def _circuit_open_error(self) -> RuntimeError:
        return RuntimeError(
            f"Circuit breaker open for {self.name}/{self.model}; "
            "recent failures exceeded threshold."
        )

    def _with_retry(
        self,
        func: Callable[[], Any],
        action: str,
        max_attempts: int = 3,
        base_delay: float = 0.5,
        max_delay: float = 8.0,
        retry_on: Optional[Callable[[Exception], bool]] = None,
    ) -> Any:
        """
        Execute a blocking provider call with exponential backoff retries.

        Runs inside the worker thread, so sleeping here never blocks the loop.
        """
        if self._is_circuit_open():
            raise self._circuit_open_error()

        attempt = 0
        while True:
            try:
                return func()
            except Exception as e:
                attempt += 1
                should_retry = attempt < max_attempts
                checker = retry_on or self.is_retryable_error
                should_retry = should_retry and checker(e)

                if not should_retry:
                    raise

                delay = min(max_delay, base_delay * (2 ** (attempt - 1)))
                logger.warning(
                    f"{self.name}/{self.model} {action} failed (attempt {attempt}/{max_attempts}): {e}. "
                    f"Retrying in {delay:.2f}s..."
                )
                time.sleep(delay)


class UnconfiguredBackend(BaseModelBackend):
    """Placeholder used until configuration has been loaded."""

    SETUP_ERROR = (
        "AI commands have not finished setup yet. "
        "Set SHELLAI_PROVIDER=<provider> if you need quick setup"
    )

    def __init__(self) -> None:
        super().__init__()

    @property
    def name(self) -> str:
        return "unconfigured"

    @property
    def model(self) -> str:
        return "none"

    def is_available(self) -> bool:
        return False

    def _send_message(self, messages: Sequence[Message], system: Optional[str]) -> str:
        raise ProviderSetupError(self.SETUP_ERROR, provider=self.name)

    async def generate(
        self,
        messages: Sequence[Message],
        system_prompt: Optional[str] = None,
        signal: Optional[CancelSignal] = None,
    ) -> str:
        raise ProviderSetupError(self.SETUP_ERROR, provider=self.name)
