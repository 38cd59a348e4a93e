"""
"Thinking..." indicator shown while a request is in flight.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from shellai.logging import Colors, colorize, get_logger
from shellai.signals import CancelSignal
from .collaborators import OutputSink

logger = get_logger(__name__)

FRAMES = ("⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏")
CLEAR_LINE = "\r\x1b[K"


class LoadingAnimation:
    """
    Braille spinner written to an output sink.

    ``start`` and ``stop`` are idempotent. The animation stops by itself when
    the signal passed to ``start`` fires.
    """

    def __init__(self, output: OutputSink, message: str = "Thinking...", interval: float = 0.08):
        self.output = output
        self.message = message
        self.interval = interval
        self._task: Optional[asyncio.Task] = None
        self._signal: Optional[CancelSignal] = None
        self._frame = 0

    @property
    def running(self) -> bool:
        return self._task is not None

    def start(self, signal: CancelSignal) -> None:
        if self._task is not None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; indicator not started")
            return

        self._task = loop.create_task(self._animate())
        self._signal = signal
        signal.add_listener(self.stop)

    def stop(self) -> None:
        if self._signal is not None:
            self._signal.remove_listener(self.stop)
            self._signal = None
        if self._task is None:
            return
        self._task.cancel()
        self._task = None
        self.output.write(CLEAR_LINE)

    async def _animate(self) -> None:
        while True:
            self._frame = (self._frame + 1) % len(FRAMES)
            self.output.write(colorize(f"\r{FRAMES[self._frame]} {self.message}", Colors.BLUE))
            await asyncio.sleep(self.interval)


class NullIndicator:
    """Indicator that shows nothing, for non-interactive output."""

    def start(self, signal: CancelSignal) -> None:
        pass

    def stop(self) -> None:
        pass
