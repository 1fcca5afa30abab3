"""Notifications raised by the preview manager and their synchronous emitter."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreviewStarted:
    patch: Any
    highlighted_paths: tuple[str, ...] = ()


@dataclass(frozen=True)
class PreviewAccepted:
    patch: Any


@dataclass(frozen=True)
class PreviewRejected:
    pass


@dataclass(frozen=True)
class Changed:
    document: Any


Event = Any
Callback = Callable[[Event], None]


@dataclass(eq=False)
class _Subscription:
    callback: Callback
    event_type: Optional[type] = None
    active: bool = field(default=True)


class EventEmitter:
    """Delivers events to subscribers in subscription order, before returning.

    A subscriber that raises is logged and skipped; the remaining
    subscribers still receive the event.
    """

    def __init__(self) -> None:
        self._subscriptions: list[_Subscription] = []

    def subscribe(
        self, callback: Callback, event_type: Optional[type] = None
    ) -> Callable[[], None]:
        """Register *callback*, optionally for one event type only.

        Returns a function that removes the subscription.
        """
        sub = _Subscription(callback, event_type)
        self._subscriptions.append(sub)

        def unsubscribe() -> None:
            sub.active = False
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)

        return unsubscribe

    def emit(self, event: Event) -> None:
        for sub in list(self._subscriptions):
            if not sub.active:
                continue
            if sub.event_type is not None and not isinstance(event, sub.event_type):
                continue
            try:
                sub.callback(event)
            except Exception:
                logger.exception(
                    "Subscriber %r failed while handling %s",
                    sub.callback,
                    type(event).__name__,
                )
