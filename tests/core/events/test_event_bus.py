"""Tests for the in-process event bus."""

from dataclasses import dataclass

import pytest

from lightningd_adapter.core.events import BaseEvent, LocalEventBus, get_event_bus
from lightningd_adapter.exceptions import EventPublishError


@dataclass(frozen=True)
class SampleEvent(BaseEvent):
    """Test event for unit tests."""

    message: str


@dataclass(frozen=True)
class ChildSampleEvent(SampleEvent):
    """Child event to test inheritance."""

    child_data: str


@pytest.fixture
def bus():
    """Create a fresh event bus for each test."""
    return LocalEventBus()


def test_event_creation():
    """Test creating events with metadata."""
    event = SampleEvent(message="hello")

    assert event.message == "hello"
    assert event.event_id is not None
    assert event.occurred_at.tzinfo is not None
    assert event.context is None


def test_event_immutability():
    """Test that events are immutable (frozen dataclass)."""
    event = SampleEvent(message="hello")

    with pytest.raises(AttributeError):
        event.message = "changed"  # type: ignore[misc]


def test_subscribe_and_publish(bus):
    """Test basic subscribe and publish functionality."""
    received = []
    bus.subscribe(SampleEvent, received.append)

    event = SampleEvent(message="hello")
    bus.publish(event)

    assert received == [event]


def test_handler_priority(bus):
    """Test that handlers execute in priority order."""
    execution_order = []

    bus.subscribe(SampleEvent, lambda e: execution_order.append("low"), priority=1)
    bus.subscribe(SampleEvent, lambda e: execution_order.append("high"), priority=100)
    bus.subscribe(SampleEvent, lambda e: execution_order.append("medium"), priority=50)

    bus.publish(SampleEvent(message="x"))

    assert execution_order == ["high", "medium", "low"]


def test_error_isolation(bus):
    """Test that handler failures don't affect other handlers."""
    successful = []

    def failing_handler(event):
        raise ValueError("Handler error")

    bus.subscribe(SampleEvent, lambda e: successful.append(1))
    bus.subscribe(SampleEvent, failing_handler)
    bus.subscribe(SampleEvent, lambda e: successful.append(2))

    bus.publish(SampleEvent(message="x"))

    assert sorted(successful) == [1, 2]


def test_strict_mode_raises_after_all_handlers_ran():
    """A strict bus still runs every handler, then reports the failures."""
    bus = LocalEventBus(strict=True)
    successful = []

    def failing_handler(event):
        raise ValueError("Handler error")

    bus.subscribe(SampleEvent, failing_handler, priority=10)
    bus.subscribe(SampleEvent, lambda e: successful.append(e))

    with pytest.raises(EventPublishError) as exc_info:
        bus.publish(SampleEvent(message="x"))

    assert len(successful) == 1
    assert len(exc_info.value.errors) == 1
    assert isinstance(exc_info.value.original_error, ValueError)
    assert exc_info.value.context["event_type"] == "SampleEvent"


def test_event_type_filtering(bus):
    """Test that subclass events reach base-type handlers but not vice versa."""
    base_received = []
    child_received = []

    bus.subscribe(SampleEvent, base_received.append)
    bus.subscribe(ChildSampleEvent, child_received.append)

    bus.publish(SampleEvent(message="base"))
    assert len(base_received) == 1
    assert child_received == []

    bus.publish(ChildSampleEvent(message="child", child_data="data"))
    assert len(base_received) == 2
    assert len(child_received) == 1


def test_channel_filtering(bus):
    """Handlers bound to a channel only see events published on it."""
    on_events = []
    on_audit = []
    everywhere = []

    bus.subscribe(SampleEvent, on_events.append, channel="events")
    bus.subscribe(SampleEvent, on_audit.append, channel="audit")
    bus.subscribe(SampleEvent, everywhere.append)

    bus.publish(SampleEvent(message="x"))
    bus.publish(SampleEvent(message="y"), channel="audit")

    assert [e.message for e in on_events] == ["x"]
    assert [e.message for e in on_audit] == ["y"]
    assert len(everywhere) == 2


def test_unsubscribe_handler(bus):
    """Test handler removal."""
    received = []

    def handler(event):
        received.append(event)

    bus.subscribe(SampleEvent, handler)
    bus.publish(SampleEvent(message="x"))
    bus.unsubscribe(SampleEvent, handler)
    bus.publish(SampleEvent(message="y"))

    assert len(received) == 1


def test_get_stats(bus):
    """Test event bus statistics."""
    bus.subscribe(SampleEvent, lambda e: None)
    bus.subscribe(SampleEvent, lambda e: None)
    bus.subscribe(ChildSampleEvent, lambda e: None)

    bus.publish(SampleEvent(message="1"))
    bus.publish(SampleEvent(message="2"))
    bus.publish(ChildSampleEvent(message="3", child_data="c"))

    stats = bus.get_stats()

    assert stats["total_handlers"] == 3
    assert stats["event_types"] == 2
    assert stats["events_published"] == {"SampleEvent": 2, "ChildSampleEvent": 1}
    assert stats["total_events"] == 3


def test_singleton_instance():
    """Test that get_event_bus returns singleton instance."""
    assert get_event_bus() is get_event_bus()


def test_global_bus_is_strict():
    """Handler failures on the shared bus reach the publisher."""
    bus = get_event_bus()

    def failing_handler(event):
        raise ValueError("Handler error")

    bus.subscribe(SampleEvent, failing_handler)

    with pytest.raises(EventPublishError):
        bus.publish(SampleEvent(message="x"))
