"""Transient invoice and payment records.

These are returned to callers on each RPC round trip; the adapter keeps no
store of them. Updates produce new instances via ``with_values``.
"""

from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Any

from .enums import InvoiceState, PaymentState
from .value_objects import BitcoinAmount, FeeLimit

DEFAULT_INVOICE_EXPIRY = 3600
DEFAULT_FEE_LIMIT = FeeLimit(Decimal("0.5"))


@dataclass(frozen=True)
class LightningInvoice:
    """An invoice this node issued, or one decoded from a bolt11 request.

    ``preimage`` and ``amount_paid`` are only known once the invoice is settled,
    except for a caller-chosen preimage passed in when requesting.
    """

    preimage_hash: str | None = None
    preimage: str | None = None
    request: str | None = None
    destination: str | None = None
    amount: BitcoinAmount = field(default_factory=BitcoinAmount.zero)
    amount_paid: BitcoinAmount | None = None
    label: str = ""
    description: str = ""
    expiry: int = DEFAULT_INVOICE_EXPIRY  # seconds from creation
    cltv_expiry: int | None = None
    block_height: int | None = None
    state: InvoiceState = InvoiceState.PENDING
    created_at: datetime | None = None
    settled_at: datetime | None = None

    def with_values(self, **changes: Any) -> "LightningInvoice":
        return replace(self, **changes)

    @property
    def is_settled(self) -> bool:
        return self.state is InvoiceState.SETTLED

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        data = asdict(self)
        data["amount"] = str(self.amount)
        data["amount_paid"] = str(self.amount_paid) if self.amount_paid is not None else None
        data["state"] = str(self.state)
        data["created_at"] = self.created_at.isoformat() if self.created_at else None
        data["settled_at"] = self.settled_at.isoformat() if self.settled_at else None
        return data


@dataclass(frozen=True)
class LightningPayment:
    """An outgoing payment of a bolt11 request.

    ``amount_paid`` is what was actually sent; the difference to ``amount``
    is the routing fee, recorded as ``fee_settled``.
    """

    request: str | None = None
    preimage_hash: str | None = None
    preimage: str | None = None
    destination: str | None = None
    amount: BitcoinAmount = field(default_factory=BitcoinAmount.zero)
    amount_paid: BitcoinAmount | None = None
    fee_limit: FeeLimit = DEFAULT_FEE_LIMIT
    fee_settled: BitcoinAmount | None = None
    label: str = ""
    state: PaymentState = PaymentState.PENDING
    created_at: datetime | None = None

    def with_values(self, **changes: Any) -> "LightningPayment":
        return replace(self, **changes)

    @property
    def is_completed(self) -> bool:
        return self.state is PaymentState.COMPLETED

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "request": self.request,
            "preimage_hash": self.preimage_hash,
            "preimage": self.preimage,
            "destination": self.destination,
            "amount": str(self.amount),
            "amount_paid": str(self.amount_paid) if self.amount_paid is not None else None,
            "fee_limit": self.fee_limit.format(),
            "fee_settled": str(self.fee_settled) if self.fee_settled is not None else None,
            "label": self.label,
            "state": str(self.state),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
