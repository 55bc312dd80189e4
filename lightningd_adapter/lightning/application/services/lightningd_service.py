"""Lightning payment service backed by a lightningd node.

Issues typed RPC calls, classifies daemon errors and normalizes daemon
replies into ``LightningInvoice`` / ``LightningPayment`` records.
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from ....exceptions import (
    PolicyViolation,
    RpcError,
    ServiceFailed,
    ServiceUnavailable,
)
from ....utils.config import Settings, get_settings
from ....utils.logging import get_logger
from ...domain.enums import InvoiceState, LightningdErrorCode
from ...domain.models import LightningInvoice, LightningPayment
from ...domain.state_mapping import map_invoice_state, map_payment_state
from ...domain.value_objects import AmountLike, BitcoinAmount
from ...infrastructure.money import MoneyService, SatoshiMoneyService
from ...infrastructure.rpc_transport import LightningdRpcTransport

logger = get_logger(__name__)

MIN_INVOICE_EXPIRY = 60
MAX_INVOICE_EXPIRY = 31_536_000

TRANSIENT_ERROR_CODES = frozenset(code.value for code in LightningdErrorCode)


class LightningdService:
    """RPC client for a single lightningd node.

    Calls are synchronous: each one blocks for exactly one round trip over
    the shared transport.

    Example:
        >>> service = LightningdService(transport)
        >>> invoice = service.request(LightningInvoice(amount=BitcoinAmount(50_000), label="o-1"))
        >>> invoice.request
        'lnbc500n1...'
    """

    def __init__(
        self,
        transport: LightningdRpcTransport,
        money_service: MoneyService | None = None,
        settings: Settings | None = None,
    ):
        """Initialize the service.

        Args:
            transport: RPC transport to the daemon
            money_service: Amount parser/converter (defaults to SatoshiMoneyService)
            settings: Policy and pay parameters (defaults to global settings)
        """
        self.transport = transport
        self.money_service = money_service or SatoshiMoneyService()
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Invoices
    # ------------------------------------------------------------------

    def request(self, invoice: LightningInvoice) -> LightningInvoice:
        """Ask lightningd for a new invoice.

        Raises:
            PolicyViolation: Amount not requestable or expiry out of range
            ServiceUnavailable | ServiceFailed: Daemon rejected the call
        """
        if not self.can_request(invoice.amount):
            raise PolicyViolation(
                "Lightningd service cannot request given amount.",
                field="amount",
                value=invoice.amount,
                constraint=f"enabled and >= {self.settings.request_minimum}",
            )

        expiry = invoice.expiry
        if not MIN_INVOICE_EXPIRY <= expiry <= MAX_INVOICE_EXPIRY:
            raise PolicyViolation(
                "Invoice expiry is not acceptable.",
                field="expiry",
                value=expiry,
                constraint=f"between {MIN_INVOICE_EXPIRY} and {MAX_INVOICE_EXPIRY}",
            )

        params: dict[str, Any] = {
            "msatoshi": self._convert(invoice.amount).msat,
            "label": invoice.label,
            "description": invoice.description,
            "expiry": expiry,
        }
        if invoice.preimage:
            params["preimage"] = invoice.preimage

        result = self._call("invoice", params)
        block_height = self.get_info().get("blockheight")

        logger.info("invoice_requested", label=invoice.label, amount=str(invoice.amount))

        try:
            preimage_hash, bolt11 = result["payment_hash"], result["bolt11"]
        except (KeyError, TypeError) as e:
            raise self._malformed("invoice", e) from e

        return invoice.with_values(
            preimage_hash=preimage_hash,
            request=bolt11,
            expiry=expiry,
            block_height=block_height,
            created_at=datetime.now(UTC),
        )

    def decode(self, request: str) -> LightningInvoice:
        """Decode a bolt11 request; no daemon-side invoice state is consulted."""
        result = self._call("decodepay", {"bolt11": request})

        try:
            return LightningInvoice(
                preimage_hash=result["payment_hash"],
                request=request,
                destination=result["payee"],
                amount=self._msat(result, "msatoshi", "amount_msat", default=0),
                description=result.get("description", ""),
                expiry=result["expiry"],
                cltv_expiry=result.get("min_final_cltv_expiry"),
                created_at=_timestamp(result.get("created_at")),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise self._malformed("decodepay", e) from e

    def get_invoice(self, preimage_hash: str) -> LightningInvoice | None:
        """Look up an invoice issued by this node, or None if unknown."""
        result = self._call("listinvoices", {"payment_hash": preimage_hash})
        invoices = result.get("invoices") or []
        if not invoices:
            return None

        row = invoices[0]
        try:
            state = map_invoice_state(row["status"])
            settled = state is InvoiceState.SETTLED
            amount_paid = (
                self._msat(row, "amount_received_msat", "msatoshi_received") if settled else None
            )
            return LightningInvoice(
                preimage=(row.get("payment_preimage") or row.get("preimage")) if settled else None,
                preimage_hash=row["payment_hash"],
                request=row.get("bolt11"),
                destination=row.get("destination"),
                amount=self._msat(row, "amount_msat", "msatoshi", default=0),
                amount_paid=amount_paid,
                label=row.get("label", ""),
                description=row.get("description", ""),
                state=state,
                settled_at=_timestamp(row.get("paid_at")),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise self._malformed("listinvoices", e) from e

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    def send(self, payment: LightningPayment) -> LightningPayment:
        """Pay a bolt11 request.

        Raises:
            PolicyViolation: Amount not sendable
            ServiceUnavailable: No route, or the payment timed out
            ServiceFailed: Any other daemon failure
        """
        if not self.can_send(payment.amount):
            raise PolicyViolation(
                "Lightningd service cannot send given amount.",
                field="amount",
                value=payment.amount,
                constraint=f"enabled and >= {self.settings.send_minimum}",
            )

        result = self._call(
            "pay",
            {
                "bolt11": payment.request,
                "label": payment.label,
                "retry_for": self.settings.send_timeout,
                "maxfeepercent": payment.fee_limit.format(6),
                "riskfactor": self.settings.send_riskfactor,
                "exemptfee": self._exempt_fee().msat,
            },
        )

        try:
            amount = self._msat(result, "msatoshi", "amount_msat")
            amount_sent = self._msat(result, "msatoshi_sent", "amount_sent_msat")
            changes: dict[str, Any] = {
                "preimage": result["payment_preimage"],
                "preimage_hash": result["payment_hash"],
                "amount_paid": amount_sent,
                "fee_settled": amount_sent - amount,
            }
            if "status" in result:
                changes["state"] = map_payment_state(result["status"])
        except (KeyError, TypeError, ValueError) as e:
            raise self._malformed("pay", e) from e

        logger.info(
            "payment_sent",
            preimage_hash=changes["preimage_hash"],
            amount=str(amount),
            fee_settled=str(changes["fee_settled"]),
        )
        return payment.with_values(**changes)

    def estimate_fee(self, payment: LightningPayment) -> BitcoinAmount:
        """Estimate the routing fee for ``payment``.

        The heuristic is the fee limit (rounded up) or the exempt fee, whichever
        is larger. The best route's fee is returned instead when it is positive
        and above the heuristic; a zero-cost route is not trusted, as the node
        will rarely actually route that way.
        """
        fee_limit = payment.amount.percentage(payment.fee_limit.percent, round_up=True)
        exempt_fee = self._exempt_fee()
        fee_estimate = fee_limit if fee_limit >= exempt_fee else exempt_fee

        result = self._call(
            "getroute",
            {
                "id": payment.destination,
                "msatoshi": payment.amount.msat,
                "riskfactor": self.settings.send_riskfactor,
            },
        )

        route_fee = BitcoinAmount.zero()
        try:
            for hop in result["route"]:
                route_fee += self._msat(hop, "amount_msat", "msatoshi") - payment.amount
        except (KeyError, TypeError, ValueError) as e:
            raise self._malformed("getroute", e) from e

        if not route_fee.is_zero and route_fee > fee_estimate:
            return route_fee
        return fee_estimate

    def get_payment(self, preimage_hash: str) -> LightningPayment | None:
        """Look up an outgoing payment, or None if unknown."""
        result = self._call("listpays", {"payment_hash": preimage_hash})
        pays = result.get("pays") or []
        if not pays:
            return None

        row = pays[0]
        try:
            amount = self._msat(row, "amount_msat", "msatoshi")
            amount_sent = self._msat(row, "amount_sent_msat", "msatoshi_sent")
            return LightningPayment(
                preimage=row.get("preimage"),
                preimage_hash=row["payment_hash"],
                request=row.get("bolt11"),
                destination=row.get("destination"),
                amount=amount,
                amount_paid=amount_sent,
                fee_settled=amount_sent - amount,
                label=row.get("label", ""),
                state=map_payment_state(row["status"]),
                created_at=_timestamp(row.get("created_at")),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise self._malformed("listpays", e) from e

    # ------------------------------------------------------------------
    # Node & policy
    # ------------------------------------------------------------------

    def get_info(self) -> dict[str, Any]:
        """Raw ``getinfo`` result."""
        return self._call("getinfo")

    def can_request(self, amount: AmountLike) -> bool:
        return self.settings.request_enabled and self.money_service.parse(
            amount
        ) >= self._convert(self.settings.request_minimum)

    def can_send(self, amount: AmountLike) -> bool:
        return self.settings.send_enabled and self.money_service.parse(
            amount
        ) >= self._convert(self.settings.send_minimum)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _call(self, method: str, params: dict[str, Any] | None = None) -> Any:
        try:
            return self.transport.call(method, params or {})
        except RpcError as e:
            if e.code in TRANSIENT_ERROR_CODES:
                raise ServiceUnavailable(e.message, code=e.code, original_error=e) from e

            logger.error(
                "lightningd_rpc_failed", method=method, code=e.code, daemon_message=e.message
            )
            raise ServiceFailed(
                f"Lightningd '{method}' request failed.", code=e.code, original_error=e
            ) from e

    def _convert(self, amount: AmountLike) -> BitcoinAmount:
        return self.money_service.to_msat(amount)

    def _exempt_fee(self) -> BitcoinAmount:
        return self._convert(self.settings.send_exemptfee)

    def _msat(
        self,
        data: Mapping[str, Any],
        key: str,
        fallback_key: str,
        default: AmountLike | None = None,
    ) -> BitcoinAmount:
        """Read an amount that lightningd reports under one of two keys.

        Older daemons use integer ``msatoshi*`` fields, newer ones
        ``*_msat`` fields that may carry a ``msat`` suffix.
        """
        value = data.get(key)
        if value is None:
            value = data.get(fallback_key)
        if value is None:
            if default is None:
                raise KeyError(key)
            value = default
        return self.money_service.parse(value.upper() if isinstance(value, str) else value)

    @staticmethod
    def _malformed(method: str, error: Exception) -> ServiceFailed:
        logger.error("lightningd_response_malformed", method=method, error=str(error))
        return ServiceFailed(f"Malformed lightningd '{method}' response.", original_error=error)


def _timestamp(value: Any) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), UTC)
