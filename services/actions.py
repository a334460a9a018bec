# services/actions.py

import logging
from dataclasses import dataclass
from typing import List, Optional

from config import CERTIFICATE_TEMPLATE, TEMPLATE_LANGUAGE
from services.errors import DeliveryError
from utils.phone import mask_phone

logger = logging.getLogger("services.actions")


# ===============================
# OUTBOUND ACTIONS
# ===============================
@dataclass(frozen=True)
class SendText:
    to: str
    body: str


@dataclass(frozen=True)
class SendTemplate:
    to: str
    template_name: str
    language: str = TEMPLATE_LANGUAGE
    components: Optional[list] = None


@dataclass(frozen=True)
class SendCertificate:
    to: str
    certificate_id: int
    recipient_name: str
    custom_message: Optional[str] = None
    # audit context
    sender_id: Optional[str] = None
    paid: bool = False
    payment_reference: Optional[str] = None


# ===============================
# DISPATCHER
# ===============================
class ActionDispatcher:
    """
    Performs outbound actions in order. A failed send is logged and the
    remaining actions still go out; nothing is rolled back or retried here.
    """

    def __init__(self, messenger, catalog, build_image_url, audit=None,
                 certificate_template=CERTIFICATE_TEMPLATE,
                 template_language=TEMPLATE_LANGUAGE):
        self.messenger = messenger
        self.catalog = catalog
        self.build_image_url = build_image_url
        self.audit = audit
        self.certificate_template = certificate_template
        self.template_language = template_language

    def dispatch(self, actions: List[object]) -> List[bool]:
        results = []
        for action in actions:
            try:
                self._deliver(action)
                results.append(True)
            except DeliveryError as e:
                logger.error(
                    "Delivery failed | action=%s | to=%s | error=%s",
                    type(action).__name__,
                    mask_phone(getattr(action, "to", "")),
                    e,
                )
                results.append(False)
        return results

    def _deliver(self, action):
        if isinstance(action, SendText):
            self._check(self.messenger.send_text(action.to, action.body))
        elif isinstance(action, SendTemplate):
            self._check(self.messenger.send_template(
                action.to, action.template_name, action.language, action.components
            ))
        elif isinstance(action, SendCertificate):
            self._send_certificate(action)
        else:
            raise DeliveryError(f"Unknown action {action!r}")

    def _send_certificate(self, action):
        entry = self.catalog.get(action.certificate_id)
        if not entry:
            raise DeliveryError(f"No certificate {action.certificate_id} in catalog")

        try:
            image_url = self.build_image_url(entry.media_asset_ref, action.recipient_name)
        except ValueError as e:
            # cloudinary raises ValueError when the cloud name is not configured
            raise DeliveryError(f"Certificate URL failed: {e}") from e
        components = self.messenger.certificate_components(
            image_url, action.recipient_name, action.custom_message
        )
        self._check(self.messenger.send_template(
            action.to, self.certificate_template, self.template_language, components
        ))
        logger.info(
            "Certificate sent | certificate=%s | to=%s | paid=%s",
            action.certificate_id,
            mask_phone(action.to),
            action.paid,
        )

        if self.audit:
            self.audit.record_delivery(
                sender=action.sender_id,
                certificate_id=action.certificate_id,
                recipient_name=action.recipient_name,
                recipient_number=action.to,
                paid=action.paid,
                payment_reference=action.payment_reference,
            )

    @staticmethod
    def _check(response):
        if isinstance(response, dict) and response.get("error"):
            raise DeliveryError(response["error"])
        return response
