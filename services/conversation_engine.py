# services/conversation_engine.py

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from config import (
    BOT_LOCALE,
    ASK_CUSTOM_MESSAGE,
    CUSTOM_MESSAGE_MAX_LENGTH,
    WELCOME_TEMPLATE,
    TEMPLATE_LANGUAGE,
    PHONE_STRICT_VALIDATION,
)
from services.actions import SendText, SendTemplate, SendCertificate
from services.commands import CommandKind, InboundMessage, parse_command
from services.errors import PaymentError, ValidationError
from services.payment_store import PendingPayment
from services.session_store import Session, Step
from utils.i18n import t
from utils.locks import KeyedLock
from utils.phone import normalize_phone, mask_phone

logger = logging.getLogger("services.conversation_engine")

# Returned by a step handler when the conversation is over
END = object()


@dataclass
class EngineResult:
    actions: List[object] = field(default_factory=list)
    session: Optional[Session] = None  # None once the session was deleted

    @property
    def ended(self):
        return self.session is None


class ConversationEngine:
    """
    Turns one inbound WhatsApp message into the next session state plus an
    ordered list of outbound actions.

    Messages from one sender are processed one at a time (KeyedLock); the
    session is read, changed and written back inside that lock.
    """

    def __init__(self, sessions, pending_payments, catalog, payments,
                 locks=None, locale=BOT_LOCALE,
                 ask_custom_message=ASK_CUSTOM_MESSAGE,
                 custom_message_max_length=CUSTOM_MESSAGE_MAX_LENGTH,
                 welcome_template=WELCOME_TEMPLATE,
                 template_language=TEMPLATE_LANGUAGE,
                 strict_phone_validation=PHONE_STRICT_VALIDATION,
                 clock=datetime.utcnow):
        self.sessions = sessions
        self.pending_payments = pending_payments
        self.catalog = catalog
        self.payments = payments
        self.locks = locks or KeyedLock()
        self.locale = locale
        self.ask_custom_message = ask_custom_message
        self.custom_message_max_length = custom_message_max_length
        self.welcome_template = welcome_template
        self.template_language = template_language
        self.strict_phone_validation = strict_phone_validation
        self.clock = clock

        self._handlers = {
            Step.WELCOME: self._welcome,
            Step.SELECT_CERTIFICATE: self._select_certificate,
            Step.ASK_RECIPIENT_NAME: self._ask_recipient_name,
            Step.ASK_RECIPIENT_NUMBER: self._ask_recipient_number,
            Step.ASK_CUSTOM_MESSAGE: self._ask_custom_message,
            Step.CONFIRM_SEND: self._confirm_send,
            Step.AWAIT_PAYMENT: self._await_payment,
            Step.ASK_ANOTHER: self._ask_another,
        }

    # ===============================
    # ENTRY POINTS
    # ===============================
    def handle(self, message: InboundMessage) -> EngineResult:
        with self.locks.hold(message.sender_id):
            return self._transition(message)

    def process(self, message: InboundMessage, dispatcher) -> EngineResult:
        """handle() and send the resulting actions before the next message from this sender."""
        with self.locks.hold(message.sender_id):
            result = self._transition(message)
            dispatcher.dispatch(result.actions)
            return result

    # ===============================
    # STATE MACHINE
    # ===============================
    def _transition(self, message):
        sender = message.sender_id
        command = parse_command(message)
        session = self.sessions.get(sender)
        actions = []

        # -------------------------------
        # Global overrides
        # -------------------------------
        if command.kind == CommandKind.STOP:
            self.sessions.delete(sender)
            actions.append(self._text(sender, "session_stopped"))
            logger.info("Session stopped | from=%s", mask_phone(sender))
            return EngineResult(actions, None)

        if session is None or command.kind == CommandKind.START:
            session = Session(
                certificates_sent_count=session.certificates_sent_count if session else 0,
            )
            logger.info("Session initialized | from=%s", mask_phone(sender))

        session.last_activity_at = self.clock()

        try:
            step = Step(session.step)
        except ValueError:
            logger.warning(
                "Unknown step %r | from=%s | resetting session",
                session.step,
                mask_phone(sender),
            )
            session = Session(
                certificates_sent_count=session.certificates_sent_count,
                last_activity_at=session.last_activity_at,
            )
            step = Step.WELCOME

        # -------------------------------
        # Step dispatch
        # -------------------------------
        try:
            outcome = self._handlers[step](sender, session, command, actions)
        except ValidationError as e:
            actions.append(self._text(sender, e.key, **e.params))
            outcome = None

        if outcome is END:
            self.sessions.delete(sender)
            logger.info("Session ended | from=%s | step=%s", mask_phone(sender), step.value)
            return EngineResult(actions, None)

        if session.step != step.value:
            logger.debug(
                "Step transition | from=%s | %s -> %s",
                mask_phone(sender), step.value, session.step,
            )

        self.sessions.set(sender, session)
        return EngineResult(actions, session)

    # -------------------------------
    # welcome
    # -------------------------------
    def _welcome(self, sender, session, command, actions):
        session.step = Step.SELECT_CERTIFICATE.value
        actions.append(SendTemplate(sender, self.welcome_template, self.template_language))

    # -------------------------------
    # select_certificate
    # -------------------------------
    def _select_certificate(self, sender, session, command, actions):
        entry = self.catalog.parse(command.text)
        if not entry:
            raise ValidationError("invalid_certificate")

        session.selected_certificate = entry.id
        session.step = Step.ASK_RECIPIENT_NAME.value
        actions.append(self._text(sender, "ask_recipient_name"))

    # -------------------------------
    # ask_recipient_name
    # -------------------------------
    def _ask_recipient_name(self, sender, session, command, actions):
        name = command.text.strip()
        if not name:
            raise ValidationError("invalid_name")

        session.recipient_name = name
        session.step = Step.ASK_RECIPIENT_NUMBER.value
        actions.append(self._text(sender, "ask_recipient_number"))

    # -------------------------------
    # ask_recipient_number
    # -------------------------------
    def _ask_recipient_number(self, sender, session, command, actions):
        number = normalize_phone(command.text, strict=self.strict_phone_validation)
        if not number:
            raise ValidationError("invalid_number")

        session.recipient_number = number

        if self.ask_custom_message:
            session.step = Step.ASK_CUSTOM_MESSAGE.value
            actions.append(self._text(
                sender, "ask_custom_message", max=self.custom_message_max_length
            ))
        else:
            session.step = Step.CONFIRM_SEND.value
            actions.append(self._text(sender, "confirm_send", name=session.recipient_name))

    # -------------------------------
    # ask_custom_message
    # -------------------------------
    def _ask_custom_message(self, sender, session, command, actions):
        text = command.text.strip()
        if (
            not text
            or "\n" in text
            or "\r" in text
            or len(text) > self.custom_message_max_length
        ):
            raise ValidationError(
                "invalid_custom_message", max=self.custom_message_max_length
            )

        session.custom_message = text
        session.step = Step.CONFIRM_SEND.value
        actions.append(self._text(sender, "confirm_send", name=session.recipient_name))

    # -------------------------------
    # confirm_send
    # -------------------------------
    def _confirm_send(self, sender, session, command, actions):
        if command.kind == CommandKind.NEGATIVE:
            actions.append(self._text(sender, "session_ended"))
            return END

        if command.kind != CommandKind.AFFIRMATIVE:
            raise ValidationError("answer_yes_no")

        entry = self.catalog.get(session.selected_certificate)
        if not entry or not session.recipient_name or not session.recipient_number:
            logger.warning(
                "Incomplete session at confirm_send | from=%s | certificate=%s",
                mask_phone(sender),
                session.selected_certificate,
            )
            actions.append(self._text(sender, "session_error"))
            return END

        if entry.is_free:
            actions.append(SendCertificate(
                to=session.recipient_number,
                certificate_id=entry.id,
                recipient_name=session.recipient_name,
                custom_message=session.custom_message,
                sender_id=sender,
            ))
            session.certificates_sent_count += 1
            session.step = Step.ASK_ANOTHER.value
            actions.append(self._text(sender, "certificate_sent"))
            actions.append(self._text(sender, "ask_another"))
            return None

        # ---------------------------------
        # Paid → hosted checkout
        # ---------------------------------
        try:
            checkout = self.payments.create_checkout(
                entry,
                sender_id=sender,
                recipient_number=session.recipient_number,
                recipient_name=session.recipient_name,
                custom_message=session.custom_message,
            )
        except PaymentError:
            actions.append(self._text(sender, "checkout_error"))
            return None

        superseded = self.pending_payments.put(PendingPayment(
            payment_reference=checkout.payment_reference,
            sender_id=sender,
            recipient_number=session.recipient_number,
            certificate_id=entry.id,
            recipient_name=session.recipient_name,
            custom_message=session.custom_message,
            amount=checkout.amount,
            currency=checkout.currency,
            checkout_url=checkout.checkout_url,
            created_at=self.clock(),
        ))
        if superseded:
            self._cancel_superseded(sender, superseded)

        session.payment_pending = True
        session.step = Step.AWAIT_PAYMENT.value
        actions.append(self._text(sender, "checkout_link", url=checkout.checkout_url))
        logger.info(
            "Awaiting payment | from=%s | ref=%s",
            mask_phone(sender),
            checkout.payment_reference,
        )
        return None

    # -------------------------------
    # await_payment
    # -------------------------------
    def _await_payment(self, sender, session, command, actions):
        # Only the payment webhook moves a session out of this step
        record = self.pending_payments.get_for_sender(sender)
        if record and record.checkout_url:
            actions.append(self._text(sender, "awaiting_payment_link", url=record.checkout_url))
        else:
            actions.append(self._text(sender, "awaiting_payment"))

    # -------------------------------
    # ask_another
    # -------------------------------
    def _ask_another(self, sender, session, command, actions):
        if command.kind == CommandKind.NEGATIVE:
            actions.append(self._text(sender, "session_ended"))
            return END

        if command.kind != CommandKind.AFFIRMATIVE:
            raise ValidationError("answer_yes_no")

        session.selected_certificate = None
        session.recipient_name = None
        session.recipient_number = None
        session.custom_message = None
        session.payment_pending = False
        session.step = Step.WELCOME.value
        return self._welcome(sender, session, command, actions)

    # ===============================
    # HELPERS
    # ===============================
    def _cancel_superseded(self, sender, record):
        # Its pending record is gone, so a payment on the old link would never deliver
        try:
            self.payments.cancel_checkout(record.payment_reference)
        except PaymentError:
            logger.error(
                "❌ Superseded payment link still open | from=%s | ref=%s | refund if paid",
                mask_phone(sender),
                record.payment_reference,
            )

    def _text(self, to, key, **kwargs):
        return SendText(to, t(self.locale, key, **kwargs))
