"""Domain enums for the lightningd adapter."""

from decimal import Decimal
from enum import Enum


class InvoiceState(str, Enum):
    """Normalized invoice state.

    Lifecycle:
        PENDING → SETTLED (preimage revealed, payment received)
        PENDING → CANCELLED (expired without payment)
    """

    PENDING = "pending"
    SETTLED = "settled"
    CANCELLED = "cancelled"

    def __str__(self) -> str:
        return self.value

    @property
    def is_terminal(self) -> bool:
        return self is not InvoiceState.PENDING


class PaymentState(str, Enum):
    """Normalized payment state.

    Lifecycle:
        PENDING → COMPLETED
        PENDING → FAILED
    """

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value

    @property
    def is_terminal(self) -> bool:
        return self is not PaymentState.PENDING


class LightningdInvoiceStatus(str, Enum):
    """Invoice status strings reported by lightningd (case-sensitive)."""

    UNPAID = "unpaid"
    PAID = "paid"
    EXPIRED = "expired"


class LightningdPaymentStatus(str, Enum):
    """Payment status strings reported by lightningd (case-sensitive)."""

    PENDING = "pending"
    COMPLETE = "complete"
    FAILED = "failed"


class LightningdErrorCode(int, Enum):
    """lightningd RPC error codes treated as transient."""

    ROUTE_NOT_FOUND = 205
    PAYMENT_TIMEOUT = 210


class SatoshiCurrency(str, Enum):
    """Bitcoin denominations understood by the money service."""

    MSAT = "MSAT"
    SAT = "SAT"
    BTC = "BTC"

    def __str__(self) -> str:
        return self.value

    @property
    def msat_factor(self) -> Decimal:
        """Millisatoshis per one unit of this denomination."""
        return {
            SatoshiCurrency.MSAT: Decimal(1),
            SatoshiCurrency.SAT: Decimal(1_000),
            SatoshiCurrency.BTC: Decimal(100_000_000_000),
        }[self]
