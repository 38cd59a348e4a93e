"""
Cancellation signals for generation requests.

A ``CancelSignal`` is shared between whoever may cancel a request (a timeout,
a newer request, the user) and the code doing the work. Signals are bound to
the asyncio event loop; they are not thread-safe.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, List, Optional, Tuple, TypeVar

from shellai.errors import Aborted
from shellai.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Listener = Callable[[], Any]

SUPERSEDED_REASON = "Request was superseded by a newer request"


class CancelSignal:
    """One-shot cancellation signal with listeners and an awaitable wait()."""

    def __init__(self) -> None:
        self._aborted = False
        self._reason: Optional[str] = None
        self._superseded = False
        self._listeners: List[Listener] = []
        self._event: Optional[asyncio.Event] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._sources: List[Tuple["CancelSignal", Listener]] = []

    @classmethod
    def timeout(cls, seconds: float) -> "CancelSignal":
        """Create a signal that aborts itself after ``seconds``."""
        signal = cls()
        loop = asyncio.get_running_loop()
        signal._timer = loop.call_later(
            seconds,
            signal.abort,
            f"Request timed out after {seconds:g}s",
        )
        return signal

    @classmethod
    def any(cls, *signals: Optional["CancelSignal"]) -> "CancelSignal":
        """Create a signal that aborts as soon as any of ``signals`` aborts."""
        combined = cls()
        for source in signals:
            if source is None:
                continue

            def _forward(source: "CancelSignal" = source) -> None:
                combined.abort(source.reason, superseded=source.superseded)

            source.add_listener(_forward)
            combined._sources.append((source, _forward))
        return combined

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    @property
    def superseded(self) -> bool:
        return self._superseded

    def abort(self, reason: Optional[str] = None, *, superseded: bool = False) -> None:
        """Abort the signal. Only the first call has any effect."""
        if self._aborted:
            return
        self._aborted = True
        self._reason = reason or "Request was aborted"
        self._superseded = superseded
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._event is not None:
            self._event.set()

        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            try:
                listener()
            except Exception as exc:
                logger.warning(f"Cancel listener failed: {exc}")

    def dispose(self) -> None:
        """Cancel a pending timeout and detach from source signals without aborting."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        sources, self._sources = self._sources, []
        for source, listener in sources:
            source.remove_listener(listener)

    def add_listener(self, listener: Listener) -> None:
        """Call ``listener`` once on abort (immediately if already aborted)."""
        if self._aborted:
            listener()
            return
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def error(self) -> Aborted:
        return Aborted(self._reason, superseded=self._superseded)

    def raise_if_aborted(self) -> None:
        if self._aborted:
            raise self.error()

    async def wait(self) -> None:
        """Block until the signal is aborted."""
        if self._aborted:
            return
        if self._event is None:
            self._event = asyncio.Event()
        await self._event.wait()

    async def run(self, awaitable: Awaitable[T]) -> T:
        """
        Await ``awaitable`` unless the signal fires first.

        Raises:
            Aborted: If the signal was already aborted or fires before the
                awaitable completes. The awaitable's task is cancelled.
        """
        if self._aborted:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise self.error()

        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task.done():
            return task.result()

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as exc:
            logger.debug(f"Cancelled task finished with error: {exc}")
        raise self.error()
