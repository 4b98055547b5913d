"""One-shot timers on top of the asyncio loop the host runs.

The demo host runs a qasync loop, so these timers fire on the Qt thread
alongside every other editor callback.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Protocol

from .protocols import Releasable


class TimerFactory(Protocol):
    def start(self, delay_ms: int, callback: Callable[[], None]) -> Releasable | None:
        ...


class AsyncioTimer:
    """One-shot timer backed by :meth:`asyncio.AbstractEventLoop.call_later`."""

    __slots__ = ("_handle", "_callback", "_fired", "_released")

    def __init__(self, loop: asyncio.AbstractEventLoop, delay_ms: int, callback: Callable[[], None]) -> None:
        self._callback = callback
        self._fired = False
        self._released = False
        self._handle: asyncio.TimerHandle | None = loop.call_later(max(0, delay_ms) / 1000.0, self._fire)

    def _fire(self) -> None:
        if self._released:
            return
        self._fired = True
        self._handle = None
        self._callback()

    def is_valid(self) -> bool:
        return not (self._fired or self._released)

    def stop(self) -> None:
        handle = self._handle
        self._handle = None
        if handle is not None and not handle.cancelled():
            handle.cancel()

    def release(self) -> None:
        self.stop()
        self._released = True


class AsyncioTimerFactory:
    """Creates :class:`AsyncioTimer` instances on ``loop``."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def _resolve_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def start(self, delay_ms: int, callback: Callable[[], None]) -> AsyncioTimer:
        loop = self._resolve_loop()
        if loop.is_closed():
            raise RuntimeError("event loop is closed")
        return AsyncioTimer(loop, delay_ms, callback)


__all__ = ["AsyncioTimer", "AsyncioTimerFactory", "TimerFactory"]
