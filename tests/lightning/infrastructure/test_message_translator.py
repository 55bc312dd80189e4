"""Tests for LightningdMessageTranslator."""

import hashlib
import json
from datetime import UTC, datetime

import pytest

from lightningd_adapter.exceptions import TranslationError
from lightningd_adapter.lightning.domain.events import (
    LightningdInvoiceSettled,
    LightningdPaymentSucceeded,
)
from lightningd_adapter.lightning.domain.value_objects import BitcoinAmount
from lightningd_adapter.lightning.infrastructure.message_translator import (
    MESSAGE_INVOICE_PAYMENT,
    MESSAGE_SENDPAY_SUCCESS,
    LightningdMessageTranslator,
)

PREIMAGE = "ab12" * 16
DELIVERED_AT = 1_600_000_000


@pytest.fixture
def translator():
    return LightningdMessageTranslator()


def invoice_payment_body(**overrides) -> bytes:
    invoice = {"label": "order-1", "preimage": PREIMAGE, "msat": "50000msat"}
    invoice.update(overrides)
    return json.dumps({"invoice_payment": invoice}).encode()


def sendpay_success_body(**overrides) -> bytes:
    payment = {
        "id": 1,
        "payment_hash": "c3" * 32,
        "destination": "02" + "ab" * 32,
        "msatoshi": 100_000,
        "msatoshi_sent": 100_250,
        "status": "complete",
        "payment_preimage": PREIMAGE,
    }
    payment.update(overrides)
    return json.dumps({"sendpay_success": payment}).encode()


class TestInvoicePayment:
    """lightningd.message.invoice_payment."""

    def test_builds_invoice_settled_event(self, translator):
        event = translator.translate(MESSAGE_INVOICE_PAYMENT, invoice_payment_body(), DELIVERED_AT)

        assert isinstance(event, LightningdInvoiceSettled)
        assert event.preimage == PREIMAGE
        assert event.preimage_hash == hashlib.sha256(bytes.fromhex(PREIMAGE)).hexdigest()
        assert event.amount_paid == BitcoinAmount(50_000)
        assert event.label == "order-1"
        assert event.timestamp == datetime.fromtimestamp(DELIVERED_AT, UTC)

    def test_hash_is_of_decoded_bytes_not_hex_text(self, translator):
        event = translator.translate(MESSAGE_INVOICE_PAYMENT, invoice_payment_body(), DELIVERED_AT)

        assert event.preimage_hash != hashlib.sha256(PREIMAGE.encode()).hexdigest()

    def test_accepts_datetime_timestamp(self, translator):
        delivered = datetime(2024, 1, 2, 3, 4, 5)

        event = translator.translate(MESSAGE_INVOICE_PAYMENT, invoice_payment_body(), delivered)

        assert event.timestamp == delivered.replace(tzinfo=UTC)

    @pytest.mark.parametrize(
        "body",
        [
            b"{not json",
            json.dumps({"other": {}}).encode(),
            invoice_payment_body(preimage="zz"),
            invoice_payment_body(msat="lots"),
            invoice_payment_body(msat=50_000),
        ],
    )
    def test_malformed_payload(self, translator, body):
        with pytest.raises(TranslationError) as exc_info:
            translator.translate(MESSAGE_INVOICE_PAYMENT, body, DELIVERED_AT)

        assert exc_info.value.routing_key == MESSAGE_INVOICE_PAYMENT

    def test_missing_timestamp(self, translator):
        with pytest.raises(TranslationError):
            translator.translate(MESSAGE_INVOICE_PAYMENT, invoice_payment_body(), None)


class TestSendpaySuccess:
    """lightningd.message.sendpay_success."""

    def test_builds_payment_succeeded_event(self, translator):
        event = translator.translate(MESSAGE_SENDPAY_SUCCESS, sendpay_success_body(), DELIVERED_AT)

        assert isinstance(event, LightningdPaymentSucceeded)
        assert event.preimage == PREIMAGE
        assert event.preimage_hash == "c3" * 32
        assert event.amount == BitcoinAmount(100_000)
        assert event.amount_paid == BitcoinAmount(100_250)
        assert event.fee_settled == BitcoinAmount(250)
        assert event.context_data["fee_settled"] == "250MSAT"

    def test_missing_field(self, translator):
        body = json.dumps({"sendpay_success": {"payment_hash": "c3" * 32}}).encode()

        with pytest.raises(TranslationError):
            translator.translate(MESSAGE_SENDPAY_SUCCESS, body, DELIVERED_AT)


def test_unknown_routing_key_is_ignored(translator):
    assert translator.translate("lightningd.message.connect", b"{not json", DELIVERED_AT) is None


def test_routing_keys(translator):
    assert translator.routing_keys == {MESSAGE_INVOICE_PAYMENT, MESSAGE_SENDPAY_SUCCESS}
