"""Base event system infrastructure.

Provides the domain event base class and the in-process event bus that
translated lightningd events are published on.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol
from uuid import UUID, uuid4

import structlog

from ...exceptions import EventPublishError

logger = structlog.get_logger("events")

DEFAULT_CHANNEL = "events"


@dataclass(frozen=True)
class BaseEvent:
    """Base class for all domain events.

    All events are immutable (frozen dataclass) and include standard metadata:
    - event_id: Unique identifier for this event instance
    - occurred_at: Timestamp when the event object was created (UTC)
    - context: Optional additional context data
    """

    event_id: UUID = field(default_factory=uuid4, init=False)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC), init=False)
    context: dict[str, Any] | None = field(default=None, kw_only=True)


class EventBus(Protocol):
    """Contract for buses the message worker publishes to."""

    def subscribe(
        self,
        event_type: type[BaseEvent],
        handler: Callable[[BaseEvent], Any],
        channel: str | None = None,
        priority: int = 0,
    ) -> None: ...

    def unsubscribe(
        self,
        event_type: type[BaseEvent],
        handler: Callable[[BaseEvent], Any],
    ) -> None: ...

    def publish(self, event: BaseEvent, channel: str = DEFAULT_CHANNEL) -> None: ...


@dataclass
class _HandlerRegistration:
    """Internal registration data for event handlers."""

    handler: Callable[[BaseEvent], Any]
    channel: str | None
    priority: int

    def accepts(self, channel: str) -> bool:
        return self.channel is None or self.channel == channel


class LocalEventBus:
    """In-process, synchronous event bus with named channels.

    Features:
    - Handlers subscribe per event type (subclasses match) and optionally per channel
    - Priority-based handler execution (higher priority = executed first)
    - Error isolation by default: one handler failure doesn't affect others
    - Strict mode: handler failures are re-raised as ``EventPublishError``
      once every handler has run, so publishers can refuse to acknowledge

    Example:
        >>> bus = LocalEventBus(strict=True)
        >>> bus.subscribe(LightningdInvoiceSettled, mark_invoice_paid, priority=10)
        >>> bus.publish(event, channel="events")
    """

    def __init__(self, strict: bool = False) -> None:
        self.strict = strict
        self._handlers: dict[type[BaseEvent], list[_HandlerRegistration]] = defaultdict(list)
        self._event_count: dict[str, int] = defaultdict(int)

    def subscribe(
        self,
        event_type: type[BaseEvent],
        handler: Callable[[BaseEvent], Any],
        channel: str | None = None,
        priority: int = 0,
    ) -> None:
        """Register a handler for the given event type.

        Args:
            event_type: The event class to listen for
            handler: Callable that processes the event
            channel: Only receive events published on this channel (None = all)
            priority: Handler priority (higher = executed first). Default: 0
        """
        registrations = self._handlers[event_type]
        registrations.append(
            _HandlerRegistration(handler=handler, channel=channel, priority=priority)
        )
        registrations.sort(key=lambda r: r.priority, reverse=True)

        logger.debug(
            "handler_registered",
            event_type=event_type.__name__,
            handler=_handler_name(handler),
            channel=channel,
            priority=priority,
        )

    def unsubscribe(
        self,
        event_type: type[BaseEvent],
        handler: Callable[[BaseEvent], Any],
    ) -> None:
        """Remove a handler for the given event type."""
        if event_type in self._handlers:
            self._handlers[event_type] = [
                reg for reg in self._handlers[event_type] if reg.handler != handler
            ]
            logger.debug(
                "handler_unregistered",
                event_type=event_type.__name__,
                handler=_handler_name(handler),
            )

    def publish(self, event: BaseEvent, channel: str = DEFAULT_CHANNEL) -> None:
        """Publish an event to every matching handler.

        Raises:
            EventPublishError: In strict mode, if any handler raised
        """
        event_name = type(event).__name__
        self._event_count[event_name] += 1

        logger.info(
            "event_published",
            event_type=event_name,
            event_id=str(event.event_id),
            channel=channel,
        )

        handlers = self._get_handlers_for_event(event, channel)
        if not handlers:
            logger.debug("no_handlers_found", event_type=event_name, channel=channel)
            return

        errors: list[Exception] = []
        for registration in handlers:
            try:
                registration.handler(event)
            except Exception as e:
                errors.append(e)
                logger.error(
                    "handler_failed",
                    event_type=event_name,
                    handler=_handler_name(registration.handler),
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True,
                )

        if errors and self.strict:
            raise EventPublishError(
                f"{len(errors)} handler(s) failed for {event_name}",
                event_type=event_name,
                errors=errors,
            )

    def _get_handlers_for_event(
        self, event: BaseEvent, channel: str
    ) -> list[_HandlerRegistration]:
        """Collect handlers for this event type (and its bases) on the channel."""
        handlers: list[_HandlerRegistration] = []
        for event_type, registrations in self._handlers.items():
            if isinstance(event, event_type):
                handlers.extend(r for r in registrations if r.accepts(channel))

        handlers.sort(key=lambda r: r.priority, reverse=True)
        return handlers

    def get_stats(self) -> dict[str, Any]:
        """Get event bus statistics."""
        handler_count = sum(len(regs) for regs in self._handlers.values())
        return {
            "total_handlers": handler_count,
            "event_types": len(self._handlers),
            "events_published": dict(self._event_count),
            "total_events": sum(self._event_count.values()),
        }


def _handler_name(handler: Callable[..., Any]) -> str:
    return getattr(handler, "__name__", type(handler).__name__)


# Global singleton instance
_event_bus: LocalEventBus | None = None


def get_event_bus() -> LocalEventBus:
    """Get the process-wide event bus.

    The shared bus is strict: handler failures reach the publisher as
    ``EventPublishError``.
    """
    global _event_bus
    if _event_bus is None:
        _event_bus = LocalEventBus(strict=True)
        logger.info("event_bus_initialized")
    return _event_bus
