"""In-process domain event system.

Example:
    >>> from lightningd_adapter.core.events import LocalEventBus
    >>> bus = LocalEventBus()
    >>> bus.subscribe(LightningdInvoiceSettled, my_handler)
    >>> bus.publish(event)
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_CHANNEL",
    "BaseEvent",
    "EventBus",
    "LocalEventBus",
    "get_event_bus",
]

from .base import DEFAULT_CHANNEL, BaseEvent, EventBus, LocalEventBus, get_event_bus
