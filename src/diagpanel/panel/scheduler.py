"""Single-slot debounce scheduler for panel refreshes."""

from __future__ import annotations

import logging
from typing import Callable

from ..host.protocols import Releasable, guarded, release_handle
from ..host.timers import TimerFactory

LOGGER = logging.getLogger(__name__)


class DebounceScheduler:
    """Coalesces refresh requests into one delayed call.

    At most one timer is pending. Every :meth:`request` cancels the unfired
    timer and starts a new one, so a burst of triggers runs the callback
    once, at the last trigger's deadline, for the last requested document.
    The callback receives only the document id; it must read live state
    itself.
    """

    def __init__(
        self,
        timer_factory: TimerFactory,
        delay_ms: int,
        callback: Callable[[str], object],
    ) -> None:
        self._timer_factory = timer_factory
        self._delay_ms = delay_ms
        self._callback = callback
        self._timer: Releasable | None = None
        self._document_id: str | None = None
        self._generation = 0

    @property
    def pending(self) -> bool:
        return self._timer is not None

    @property
    def pending_document(self) -> str | None:
        return self._document_id if self._timer is not None else None

    def request(self, document_id: str) -> None:
        self.cancel()
        self._document_id = document_id
        generation = self._generation
        result = guarded(
            "timer.start",
            self._timer_factory.start,
            self._delay_ms,
            lambda: self._fire(generation),
        )
        if generation != self._generation:
            # Fired synchronously from inside start().
            release_handle(result.value)
            return
        if not result.ok or result.value is None:
            LOGGER.debug("Timer unavailable (%s); refreshing %s immediately", result.reason or "no handle", document_id)
            self._document_id = None
            self._invoke(document_id)
            return
        self._timer = result.value

    def cancel(self) -> None:
        # Bumping the generation disarms a timer whose expiry is already queued.
        self._generation += 1
        timer = self._timer
        self._timer = None
        self._document_id = None
        release_handle(timer)

    def _fire(self, generation: int) -> None:
        if generation != self._generation:
            return
        document_id = self._document_id
        self.cancel()
        if document_id is not None:
            self._invoke(document_id)

    def _invoke(self, document_id: str) -> None:
        try:
            self._callback(document_id)
        except Exception:
            LOGGER.exception("Debounced refresh for %s failed", document_id)


__all__ = ["DebounceScheduler"]
