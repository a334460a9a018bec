# services/fulfillment_service.py

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from config import BOT_LOCALE, RAZORPAY_WEBHOOK_SECRET
from services.actions import SendCertificate, SendText
from services.payment_service import PAID_EVENT, verify_and_parse_webhook
from utils.i18n import t
from utils.locks import KeyedLock
from utils.phone import mask_phone

logger = logging.getLogger("services.fulfillment_service")


class FulfillmentStatus(str, Enum):
    FULFILLED = "fulfilled"
    IGNORED = "ignored"          # not a final "paid" event
    DUPLICATE = "duplicate"      # already fulfilled, or never ours
    REJECTED = "rejected"        # amount / currency mismatch


@dataclass(frozen=True)
class FulfillmentResult:
    status: FulfillmentStatus
    payment_reference: Optional[str] = None

    @property
    def http_status(self):
        return 400 if self.status == FulfillmentStatus.REJECTED else 200


class PaymentFulfillmentHandler:
    """
    Delivers a paid certificate when the provider reports the payment link
    as paid. Webhooks are retried by the provider; the pending record is
    claimed with an atomic pop, so each reference is fulfilled at most once.
    """

    def __init__(self, pending_payments, sessions, dispatcher, locks=None,
                 webhook_secret=RAZORPAY_WEBHOOK_SECRET, locale=BOT_LOCALE,
                 parse_webhook=verify_and_parse_webhook):
        self.pending_payments = pending_payments
        self.sessions = sessions
        self.dispatcher = dispatcher
        self.locks = locks or KeyedLock()
        self.webhook_secret = webhook_secret
        self.locale = locale
        self.parse_webhook = parse_webhook

    def handle(self, raw_body: bytes, signature: str) -> FulfillmentResult:
        # -------------------------------------------------
        # 1. SECURITY GATE (raises AuthenticationError)
        # -------------------------------------------------
        event = self.parse_webhook(raw_body, signature, self.webhook_secret)

        # -------------------------------------------------
        # 2. Accept ONLY final payment event
        # -------------------------------------------------
        if event.event_type != PAID_EVENT:
            logger.info("Unhandled payment event ignored | type=%s", event.event_type)
            return FulfillmentResult(FulfillmentStatus.IGNORED)

        if not event.is_paid:
            logger.info(
                "Payment not finalized | ref=%s | payment=%s | link=%s",
                event.payment_reference,
                event.payment_status,
                event.link_status,
            )
            return FulfillmentResult(FulfillmentStatus.IGNORED, event.payment_reference)

        # -------------------------------------------------
        # 3. IDEMPOTENCY: claim the pending record
        # -------------------------------------------------
        record = self.pending_payments.pop(event.payment_reference)
        if not record:
            logger.info(
                "🔁 Duplicate or unknown payment ignored | ref=%s | payment_id=%s",
                event.payment_reference,
                event.payment_id,
            )
            return FulfillmentResult(FulfillmentStatus.DUPLICATE, event.payment_reference)

        # -------------------------------------------------
        # 4. AMOUNT + CURRENCY VALIDATION
        # -------------------------------------------------
        if event.amount != record.amount or event.currency != record.currency:
            logger.error(
                "❌ Amount mismatch | ref=%s | expected=%s %s | got=%s %s",
                record.payment_reference,
                record.amount,
                record.currency,
                event.amount,
                event.currency,
            )
            return FulfillmentResult(FulfillmentStatus.REJECTED, record.payment_reference)

        # -------------------------------------------------
        # 5. DELIVERY + SESSION CLOSE
        # -------------------------------------------------
        actions = [
            SendCertificate(
                to=record.recipient_number,
                certificate_id=record.certificate_id,
                recipient_name=record.recipient_name,
                custom_message=record.custom_message,
                sender_id=record.sender_id,
                paid=True,
                payment_reference=record.payment_reference,
            ),
            SendText(
                record.sender_id,
                t(self.locale, "payment_thanks", name=record.recipient_name),
            ),
        ]

        with self.locks.hold(record.sender_id):
            self.sessions.delete(record.sender_id)
            self.dispatcher.dispatch(actions)

        logger.info(
            "✅ Payment fulfilled | ref=%s | sender=%s",
            record.payment_reference,
            mask_phone(record.sender_id),
        )
        return FulfillmentResult(FulfillmentStatus.FULFILLED, record.payment_reference)
