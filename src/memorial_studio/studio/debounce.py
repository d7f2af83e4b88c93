"""Single-timer debounce with a generation counter."""

import asyncio
from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")


class Debouncer(Generic[T]):
    """Delay a callback until input has been quiet for `delay` seconds.

    Holds at most one pending timer. Every `call` bumps `generation`, so the
    callback can tell whether it still represents the latest input.
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[[T, int], None],
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.delay = delay
        self._callback = callback
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None
        self._fired: asyncio.Event | None = None
        self.generation = 0

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def call(self, value: T) -> int:
        """Restart the timer with the latest value and return its generation."""
        self.cancel()
        self.generation += 1
        loop = self._loop or asyncio.get_running_loop()
        self._fired = asyncio.Event()
        self._handle = loop.call_later(self.delay, self._fire, value, self.generation)
        return self.generation

    def cancel(self) -> None:
        """Drop the pending timer, if any."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._fired is not None:
            self._fired.set()
            self._fired = None

    async def wait(self) -> None:
        """Wait until the pending timer fires or is cancelled."""
        while self._fired is not None:
            await self._fired.wait()

    def _fire(self, value: T, generation: int) -> None:
        self._handle = None
        fired, self._fired = self._fired, None
        try:
            self._callback(value, generation)
        finally:
            if fired is not None:
                fired.set()
