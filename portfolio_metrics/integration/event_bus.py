from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Protocol, Type, TypeVar

from portfolio_metrics.integration.events import DomainEvent


logger = logging.getLogger(__name__)

E = TypeVar("E", bound=DomainEvent)
Handler = Callable[[DomainEvent], None]


@dataclass(frozen=True)
class HandlerFailure:
    """A subscriber that raised while handling a published event."""

    event: DomainEvent
    handler: str
    error: str


class EventBus(Protocol):
    """Publish/subscribe interface for scheduling and benchmark events.

    publish() returns the failures of this delivery so publishers can
    report them next to the work they just did.
    """

    def publish(self, event: DomainEvent) -> list[HandlerFailure]:
        ...

    def subscribe(self, event_type: Type[E], handler: Callable[[E], None]) -> None:
        ...


def _handler_name(handler: Callable[..., object]) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)


class InMemoryEventBus(EventBus):
    """Synchronous in-process bus with type-hierarchy dispatch.

    A handler subscribed to an event class also receives its subclasses.
    Handlers for the most specific class run first, each group in
    subscription order. A failing handler is logged and recorded; the
    remaining handlers still run.
    """

    def __init__(self) -> None:
        self._handlers: defaultdict[type, list[Handler]] = defaultdict(list)
        self.failures: list[HandlerFailure] = []

    def subscribe(self, event_type: Type[E], handler: Callable[[E], None]) -> None:
        if not (isinstance(event_type, type) and issubclass(event_type, DomainEvent)):
            raise TypeError(f"Can only subscribe to DomainEvent types, got {event_type!r}")
        self._handlers[event_type].append(handler)  # type: ignore[arg-type]

    def unsubscribe(self, event_type: Type[E], handler: Callable[[E], None]) -> bool:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)  # type: ignore[arg-type]
            return True
        return False

    def handlers_for(self, event_type: type) -> list[Handler]:
        out: list[Handler] = []
        for cls in event_type.__mro__:
            if cls in self._handlers:
                out.extend(self._handlers[cls])
        return out

    def publish(self, event: DomainEvent) -> list[HandlerFailure]:
        failed: list[HandlerFailure] = []
        for handler in self.handlers_for(type(event)):
            try:
                handler(event)
            except Exception as exc:
                name = _handler_name(handler)
                logger.exception("Event handler %s failed for %s", name, type(event).__name__)
                failed.append(HandlerFailure(event=event, handler=name, error=repr(exc)))
        self.failures.extend(failed)
        return failed
