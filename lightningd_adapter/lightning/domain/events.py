"""Domain events translated from lightningd plugin messages.

Built once from an inbound broker payload and never mutated afterwards.
"""

from dataclasses import dataclass
from datetime import datetime

from ...core.events.base import BaseEvent
from .value_objects import BitcoinAmount


@dataclass(frozen=True)
class LightningdInvoiceSettled(BaseEvent):
    """An invoice issued by this node was paid."""

    preimage_hash: str
    preimage: str
    amount_paid: BitcoinAmount
    label: str
    timestamp: datetime  # broker delivery time

    @property
    def context_data(self) -> dict:
        """Additional context for logging/monitoring."""
        return {
            "preimage_hash": self.preimage_hash,
            "amount_paid": str(self.amount_paid),
            "label": self.label,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class LightningdPaymentSucceeded(BaseEvent):
    """An outgoing payment from this node completed."""

    preimage: str
    preimage_hash: str
    amount: BitcoinAmount
    amount_paid: BitcoinAmount
    timestamp: datetime

    @property
    def fee_settled(self) -> BitcoinAmount:
        return self.amount_paid - self.amount

    @property
    def context_data(self) -> dict:
        """Additional context for logging/monitoring."""
        return {
            "preimage_hash": self.preimage_hash,
            "amount": str(self.amount),
            "amount_paid": str(self.amount_paid),
            "fee_settled": str(self.fee_settled),
            "timestamp": self.timestamp.isoformat(),
        }
