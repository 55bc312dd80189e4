"""Translation of lightningd plugin messages into domain events.

Dispatch is on the routing key alone. Unknown keys are ignored (``None``);
malformed payloads raise ``TranslationError`` for that one message.
"""

import hashlib
import json
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from ...core.events.base import BaseEvent
from ...exceptions import TranslationError
from ..domain.events import LightningdInvoiceSettled, LightningdPaymentSucceeded
from ..domain.value_objects import BitcoinAmount

MESSAGE_INVOICE_PAYMENT = "lightningd.message.invoice_payment"
MESSAGE_SENDPAY_SUCCESS = "lightningd.message.sendpay_success"

Timestamp = datetime | int | float | None


class LightningdMessageTranslator:
    """Turns broker deliveries into ``LightningdInvoiceSettled`` / ``LightningdPaymentSucceeded``."""

    def __init__(self) -> None:
        self._builders: dict[str, Callable[[dict[str, Any], datetime], BaseEvent]] = {
            MESSAGE_INVOICE_PAYMENT: self._invoice_settled,
            MESSAGE_SENDPAY_SUCCESS: self._payment_succeeded,
        }

    @property
    def routing_keys(self) -> frozenset[str]:
        return frozenset(self._builders)

    def translate(
        self, routing_key: str, body: bytes | str, timestamp: Timestamp
    ) -> BaseEvent | None:
        """Translate one delivery.

        Args:
            routing_key: AMQP routing key of the delivery
            body: Raw JSON payload
            timestamp: Broker delivery timestamp (unix seconds or datetime)

        Returns:
            The domain event, or None when the routing key is not handled

        Raises:
            TranslationError: If the payload is malformed
        """
        builder = self._builders.get(routing_key)
        if builder is None:
            return None

        try:
            payload = json.loads(body)
            return builder(payload, _delivery_time(timestamp))
        except (AttributeError, KeyError, TypeError, ValueError, OverflowError) as e:
            # JSONDecodeError and bytes.fromhex failures are ValueErrors.
            raise TranslationError(
                f"Malformed lightningd message: {e}",
                routing_key=routing_key,
                original_error=e,
            ) from e

    @staticmethod
    def _invoice_settled(payload: dict[str, Any], timestamp: datetime) -> LightningdInvoiceSettled:
        invoice = payload["invoice_payment"]
        preimage = invoice["preimage"]

        return LightningdInvoiceSettled(
            preimage_hash=hashlib.sha256(bytes.fromhex(preimage)).hexdigest(),
            preimage=preimage,
            amount_paid=BitcoinAmount.from_native(invoice["msat"].upper()),
            label=invoice["label"],
            timestamp=timestamp,
        )

    @staticmethod
    def _payment_succeeded(
        payload: dict[str, Any], timestamp: datetime
    ) -> LightningdPaymentSucceeded:
        payment = payload["sendpay_success"]

        # payment_hash is taken as reported; lightningd has verified it against the preimage.
        return LightningdPaymentSucceeded(
            preimage=payment["payment_preimage"],
            preimage_hash=payment["payment_hash"],
            amount=BitcoinAmount.from_native(payment["msatoshi"]),
            amount_paid=BitcoinAmount.from_native(payment["msatoshi_sent"]),
            timestamp=timestamp,
        )


def _delivery_time(timestamp: Timestamp) -> datetime:
    if timestamp is None:
        raise ValueError("delivery has no timestamp")
    if isinstance(timestamp, datetime):
        return timestamp if timestamp.tzinfo else timestamp.replace(tzinfo=UTC)
    return datetime.fromtimestamp(timestamp, UTC)
