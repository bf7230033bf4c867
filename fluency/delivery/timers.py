"""
Cancelable delayed callbacks.

Drill sessions run on a single asyncio event loop. Question deadlines,
round timers, auto-advance and key-buffer windows are all one-shot
callbacks that a newer event can supersede. A TimerSlot holds at most one
pending callback: scheduling again or cancelling invalidates the previous
one, and a stale callback that still reaches the loop does nothing.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class SupportsCallLater(Protocol):
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...


class TimerSlot:
    """A single cancelable timer; last schedule wins."""

    def __init__(self, name: str = "timer", loop: SupportsCallLater | None = None):
        """
        Args:
            name: Label for debugging
            loop: Anything with asyncio's call_later (the running loop if None)
        """
        self.name = name
        self._loop = loop
        self._handle: TimerHandle | None = None
        self._generation = 0

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, delay_ms: float, callback: Callable[..., Any], *args: Any) -> None:
        """Replace any pending callback with a new one after delay_ms."""
        self.cancel()
        loop = self._loop if self._loop is not None else asyncio.get_running_loop()
        generation = self._generation
        self._handle = loop.call_later(max(0.0, delay_ms) / 1000, self._fire, generation, callback, args)

    def cancel(self) -> None:
        """Drop the pending callback, if any."""
        self._generation += 1
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, generation: int, callback: Callable[..., Any], args: tuple[Any, ...]) -> None:
        if generation != self._generation:
            return
        self._handle = None
        self._generation += 1
        callback(*args)
