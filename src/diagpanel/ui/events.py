"""Typed event bus carrying host editor notifications to the panel.

Hosts publish the editor-side events (document entered, diagnostics
changed, cursor idle, overlay dismissed, visual properties changed,
shutdown); the panel controller subscribes to the ones its trigger
toggles enable and publishes :class:`PanelStateChanged` in return.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Callable, TypeVar
from weakref import WeakMethod

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")

Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for every event published on the bus."""

    pass


# High-frequency event types that should not log each publish
_QUIET_EVENT_TYPES: set[type] = set()


# =============================================================================
# Host editor events
# =============================================================================


@dataclass(slots=True)
class DocumentEntered(Event):
    """The user switched to (or opened) a document.

    Attributes:
        document_id: Identifier of the document that gained focus.
    """

    document_id: str


@dataclass(slots=True)
class DiagnosticsChanged(Event):
    """The diagnostics provider replaced the record list of a document.

    Attributes:
        document_id: Identifier of the document whose diagnostics changed.
    """

    document_id: str


@dataclass(slots=True)
class CursorIdle(Event):
    """The cursor rested long enough for an idle refresh.

    Attributes:
        document_id: Active document when the host knows it, else ``None``.
    """

    document_id: str | None = None


@dataclass(slots=True)
class OverlayDismissed(Event):
    """The host destroyed an overlay out of band (window closed, etc.)."""

    handle_id: int


@dataclass(slots=True)
class VisualPropertiesChanged(Event):
    """Theme or highlight state changed; visual properties must be reapplied."""

    reason: str = ""


@dataclass(slots=True)
class EditorShutdown(Event):
    """The host is about to exit."""

    pass


# =============================================================================
# Panel events
# =============================================================================


@dataclass(slots=True)
class PanelStateChanged(Event):
    """Published by the panel controller after an open/close transition.

    Attributes:
        state: ``"open"`` or ``"closed"``.
        document_id: Document shown by the panel, ``None`` once closed.
        item_count: Number of rows displayed.
    """

    state: str
    document_id: str | None = None
    item_count: int = 0


_QUIET_EVENT_TYPES.add(CursorIdle)


class Subscription:
    """Registration handle returned by :meth:`EventBus.subscribe`.

    Bound methods are referenced weakly: once their owner is collected the
    subscription goes inactive and the bus drops it on the next publish.
    """

    __slots__ = ("event_type", "_target", "_weak", "_cancelled")

    def __init__(self, event_type: type[Event], handler: Handler) -> None:
        self.event_type = event_type
        self._weak = inspect.ismethod(handler)
        self._target: Handler | WeakMethod = WeakMethod(handler) if self._weak else handler
        self._cancelled = False

    @property
    def active(self) -> bool:
        return not self._cancelled and self.handler() is not None

    def handler(self) -> Handler | None:
        if self._weak:
            return self._target()  # type: ignore[operator]
        return self._target  # type: ignore[return-value]

    def cancel(self) -> None:
        """Stop delivery; safe to call more than once or mid-publish."""

        self._cancelled = True


class EventBus:
    """Synchronous publish-subscribe bus keyed by exact event type.

    Handlers run in subscription order on the publishing thread. A handler
    that raises is logged and does not stop delivery to the rest.
    """

    __slots__ = ("_subscriptions",)

    def __init__(self) -> None:
        self._subscriptions: dict[type[Event], list[Subscription]] = {}

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> Subscription:
        subscription = Subscription(event_type, handler)
        self._subscriptions.setdefault(event_type, []).append(subscription)
        logger.debug("%s subscribed to %s", _describe(handler), event_type.__name__)
        return subscription

    def publish(self, event: Event) -> None:
        event_type = type(event)
        live = [item for item in self._subscriptions.get(event_type, ()) if item.active]
        if live:
            self._subscriptions[event_type] = live
        else:
            self._subscriptions.pop(event_type, None)
        if event_type not in _QUIET_EVENT_TYPES:
            logger.debug("Publishing %s to %d subscriber(s)", event_type.__name__, len(live))

        # Snapshot: handlers may subscribe or cancel while we deliver.
        for subscription in tuple(live):
            if not subscription.active:
                continue
            handler = subscription.handler()
            try:
                handler(event)  # type: ignore[misc]
            except Exception:
                logger.exception("%s failed while handling %s", _describe(handler), event_type.__name__)


def _describe(handler: Handler | None) -> str:
    if inspect.ismethod(handler):
        return f"{type(handler.__self__).__name__}.{handler.__func__.__name__}"
    return getattr(handler, "__qualname__", None) or repr(handler)


__all__ = [
    "Event",
    "EventBus",
    "Handler",
    "Subscription",
    "CursorIdle",
    "DiagnosticsChanged",
    "DocumentEntered",
    "EditorShutdown",
    "OverlayDismissed",
    "PanelStateChanged",
    "VisualPropertiesChanged",
]
