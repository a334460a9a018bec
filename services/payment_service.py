# services/payment_service.py

import hashlib
import hmac
import json
import logging
import time
from dataclasses import dataclass
from typing import Optional

import razorpay

from config import (
    RAZORPAY_KEY_ID,
    RAZORPAY_KEY_SECRET,
    PAYMENT_CURRENCY,
    PAYMENT_CALLBACK_URL,
    PENDING_PAYMENT_TTL_MINUTES,
)
from services.errors import AuthenticationError, PaymentError

logger = logging.getLogger("services.payment_service")

PAID_EVENT = "payment_link.paid"

# Razorpay rejects payment links expiring sooner than this
MIN_LINK_LIFETIME_SECONDS = 16 * 60


@dataclass(frozen=True)
class CheckoutSession:
    payment_reference: str
    checkout_url: str
    amount: int
    currency: str


@dataclass(frozen=True)
class PaymentEvent:
    event_type: str
    payment_reference: Optional[str] = None
    payment_id: Optional[str] = None
    amount: Optional[int] = None
    currency: Optional[str] = None
    payment_status: Optional[str] = None
    link_status: Optional[str] = None

    @property
    def is_paid(self):
        return (
            self.event_type == PAID_EVENT
            and self.payment_status == "captured"
            and self.link_status == "paid"
        )


class PaymentGateway:
    """Razorpay payment links for paid certificates."""

    def __init__(self, client=None, currency=PAYMENT_CURRENCY,
                 callback_url=PAYMENT_CALLBACK_URL,
                 link_ttl_minutes=PENDING_PAYMENT_TTL_MINUTES):
        self._client = client or razorpay.Client(
            auth=(RAZORPAY_KEY_ID, RAZORPAY_KEY_SECRET)
        )
        self.currency = currency
        self.callback_url = callback_url
        self.link_ttl_seconds = max(link_ttl_minutes * 60, MIN_LINK_LIFETIME_SECONDS)

    def create_checkout(self, entry, sender_id, recipient_number, recipient_name,
                        custom_message=None) -> CheckoutSession:
        if entry.is_free:
            raise PaymentError(f"Certificate {entry.id} is free")

        request = {
            "amount": entry.price,
            "currency": self.currency,
            "accept_partial": False,
            "description": f"Certificate #{entry.id} for {recipient_name}",
            "customer": {
                "contact": f"+{sender_id}",
            },
            "notify": {
                "sms": False,
                "email": False
            },
            "reminder_enable": False,
            "expire_by": int(time.time()) + self.link_ttl_seconds,
            "notes": {
                "sender_id": sender_id,
                "recipient_number": recipient_number,
                "certificate_id": str(entry.id),
                "recipient_name": recipient_name,
                "custom_message": custom_message or "",
            },
        }
        if self.callback_url:
            request["callback_url"] = self.callback_url
            request["callback_method"] = "get"

        try:
            link = self._client.payment_link.create(request)
        except Exception as e:
            logger.exception(
                "Payment link creation failed | certificate=%s", entry.id
            )
            raise PaymentError(str(e)) from e

        if not link.get("id") or not link.get("short_url"):
            logger.error("Payment link response incomplete: %s", link)
            raise PaymentError("incomplete payment link response")

        logger.info(
            "Payment link created | ref=%s | certificate=%s", link["id"], entry.id
        )
        return CheckoutSession(
            payment_reference=link["id"],
            checkout_url=link["short_url"],
            amount=entry.price,
            currency=self.currency,
        )

    def cancel_checkout(self, payment_reference):
        """Cancels a payment link so it can no longer be paid."""
        try:
            self._client.payment_link.cancel(payment_reference)
        except Exception as e:
            logger.exception("Payment link cancel failed | ref=%s", payment_reference)
            raise PaymentError(str(e)) from e

        logger.info("Payment link cancelled | ref=%s", payment_reference)


def verify_signature(raw_body: bytes, signature: str, secret: str) -> None:
    if not secret:
        raise AuthenticationError("Webhook secret not configured")
    if not signature:
        raise AuthenticationError("Signature missing")

    expected_signature = hmac.new(
        secret.encode(), raw_body, hashlib.sha256
    ).hexdigest()

    if not hmac.compare_digest(expected_signature, signature):
        raise AuthenticationError("Invalid signature")


def verify_and_parse_webhook(raw_body: bytes, signature: str, secret: str) -> PaymentEvent:
    """
    Checks the X-Razorpay-Signature header, then reads the event.
    Nothing in the body is trusted before the signature matches.
    """
    verify_signature(raw_body, signature, secret)

    try:
        data = json.loads(raw_body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise PaymentError("Malformed webhook body") from e

    event_type = data.get("event", "")
    if event_type != PAID_EVENT:
        return PaymentEvent(event_type=event_type)

    try:
        payment = data["payload"]["payment"]["entity"]
        payment_link = data["payload"]["payment_link"]["entity"]
    except (KeyError, TypeError) as e:
        raise PaymentError("Webhook payload missing entities") from e

    return PaymentEvent(
        event_type=event_type,
        payment_reference=payment_link.get("id"),
        payment_id=payment.get("id"),
        amount=payment.get("amount"),        # smallest unit
        currency=payment.get("currency"),
        payment_status=payment.get("status"),
        link_status=payment_link.get("status"),
    )
