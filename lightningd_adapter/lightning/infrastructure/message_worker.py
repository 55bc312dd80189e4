"""Worker consuming lightningd plugin messages from the broker.

Each delivery goes Received → Translating → Published+Acked, Ignored+Acked,
or Failed+Nacked. Prefetch is one, so deliveries are handled strictly one
at a time and in order. Every path ends in an ack or a nack.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

import pika
from pika.adapters.blocking_connection import BlockingChannel

from ...core.events.base import DEFAULT_CHANNEL, EventBus, get_event_bus
from ...exceptions import ConfigurationError
from ...utils.logging import clear_correlation_id, get_logger, set_correlation_id
from .message_translator import LightningdMessageTranslator

logger = get_logger(__name__)


class DeliveryOutcome(str, Enum):
    """How a single delivery was resolved."""

    PUBLISHED = "published"  # event published, then acked
    IGNORED = "ignored"  # nothing to translate, acked
    REJECTED = "rejected"  # translation or publishing failed, nacked

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Delivery:
    """One broker delivery, decoupled from pika's frame objects."""

    delivery_tag: int
    routing_key: str
    body: bytes
    timestamp: int | datetime | None

    @classmethod
    def from_pika(
        cls, method: Any, properties: pika.BasicProperties | None, body: bytes
    ) -> "Delivery":
        return cls(
            delivery_tag=method.delivery_tag,
            routing_key=method.routing_key,
            body=body,
            timestamp=getattr(properties, "timestamp", None),
        )


class LightningdMessageWorker:
    """Consumes a queue, translates deliveries and publishes domain events.

    Example:
        >>> worker = LightningdMessageWorker(open_channel(settings.amqp_url))
        >>> worker.run("lightningd.adapter.messages")  # blocks
    """

    def __init__(
        self,
        channel: BlockingChannel,
        event_bus: EventBus | None = None,
        translator: LightningdMessageTranslator | None = None,
        events_channel: str = DEFAULT_CHANNEL,
        requeue: bool = True,
    ):
        """Initialize the worker.

        Args:
            channel: Broker channel, not shared with anything else
            event_bus: Bus translated events are published on (defaults to the strict global bus)
            translator: Message translator
            events_channel: Bus channel name to publish on
            requeue: Whether nacked deliveries go back to the queue
        """
        self.channel = channel
        self.event_bus = event_bus or get_event_bus()
        self.translator = translator or LightningdMessageTranslator()
        self.events_channel = events_channel
        self.requeue = requeue

    def run(self, queue: str) -> None:
        """Consume ``queue`` until the broker or ``stop`` cancels the subscription."""
        if not queue or not queue.strip():
            raise ConfigurationError("Queue name must not be blank", setting="consumer_queue")

        self.channel.basic_qos(prefetch_count=1)
        logger.info(
            "lightningd_worker_started",
            queue=queue,
            routing_keys=sorted(self.translator.routing_keys),
        )

        for method, properties, body in self.channel.consume(queue, auto_ack=False):
            self.process(Delivery.from_pika(method, properties, body))

        logger.info("lightningd_worker_stopped", queue=queue)

    def stop(self) -> None:
        """Cancel the subscription; ``run`` returns after the current delivery."""
        self.channel.cancel()

    def process(self, delivery: Delivery) -> DeliveryOutcome:
        """Resolve one delivery to an ack or a nack."""
        trace_id = set_correlation_id()
        try:
            return self._process(delivery, trace_id)
        finally:
            clear_correlation_id()

    def _process(self, delivery: Delivery, trace_id: str) -> DeliveryOutcome:
        try:
            event = self.translator.translate(
                delivery.routing_key, delivery.body, delivery.timestamp
            )
            if event is not None:
                self.event_bus.publish(event, channel=self.events_channel)
        except Exception:
            logger.error(
                "lightningd_message_failed",
                routing_key=delivery.routing_key,
                delivery_tag=delivery.delivery_tag,
                trace_id=trace_id,
                exc_info=True,
            )
            self.channel.basic_nack(delivery_tag=delivery.delivery_tag, requeue=self.requeue)
            return DeliveryOutcome.REJECTED

        self.channel.basic_ack(delivery_tag=delivery.delivery_tag)

        if event is None:
            logger.debug("lightningd_message_ignored", routing_key=delivery.routing_key)
            return DeliveryOutcome.IGNORED

        logger.info(
            "lightningd_message_published",
            routing_key=delivery.routing_key,
            event_type=type(event).__name__,
            event_id=str(event.event_id),
        )
        return DeliveryOutcome.PUBLISHED


def open_channel(amqp_url: str) -> BlockingChannel:
    """Open a dedicated blocking connection and channel for the worker."""
    connection = pika.BlockingConnection(pika.URLParameters(amqp_url))
    return connection.channel()
