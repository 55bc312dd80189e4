"""Mapping of lightningd status strings to normalized states.

The mapping is closed: any status lightningd reports that is not listed
raises ``ServiceFailed`` instead of being defaulted.
"""

from ...exceptions import ServiceFailed
from .enums import InvoiceState, LightningdInvoiceStatus, LightningdPaymentStatus, PaymentState

INVOICE_STATES: dict[LightningdInvoiceStatus, InvoiceState] = {
    LightningdInvoiceStatus.UNPAID: InvoiceState.PENDING,
    LightningdInvoiceStatus.PAID: InvoiceState.SETTLED,
    LightningdInvoiceStatus.EXPIRED: InvoiceState.CANCELLED,
}

PAYMENT_STATES: dict[LightningdPaymentStatus, PaymentState] = {
    LightningdPaymentStatus.PENDING: PaymentState.PENDING,
    LightningdPaymentStatus.COMPLETE: PaymentState.COMPLETED,
    LightningdPaymentStatus.FAILED: PaymentState.FAILED,
}


def map_invoice_state(status: str) -> InvoiceState:
    """Normalize a ``listinvoices`` status.

    Raises:
        ServiceFailed: If the status is not one lightningd documents
    """
    try:
        return INVOICE_STATES[LightningdInvoiceStatus(status)]
    except (ValueError, TypeError):
        raise ServiceFailed(f"Unknown invoice state '{status}'.") from None


def map_payment_state(status: str) -> PaymentState:
    """Normalize a ``listpays``/``pay`` status.

    Raises:
        ServiceFailed: If the status is not one lightningd documents
    """
    try:
        return PAYMENT_STATES[LightningdPaymentStatus(status)]
    except (ValueError, TypeError):
        raise ServiceFailed(f"Unknown payment state '{status}'.") from None
