import logging
from dataclasses import dataclass

from flask import Flask, request, jsonify

# ===============================
# CONFIG
# ===============================
from config import (
    WHATSAPP_VERIFY_TOKEN,
    SESSION_BACKEND,
    START_SCHEDULER,
    BOT_LOCALE,
    LOG_LEVEL,
    ADMIN_TOKEN,
    PORT,
)

# ===============================
# INIT
# ===============================
from db import engine as db_engine, init_db, make_session_factory
from admin import create_admin_blueprint
from services import whatsapp_service
from services.actions import ActionDispatcher
from services.audit_service import AuditLog
from services.catalog import load_catalog
from services.commands import InboundMessage
from services.conversation_engine import ConversationEngine
from services.errors import AuthenticationError, PaymentError
from services.fulfillment_service import PaymentFulfillmentHandler
from services.media_service import build_certificate_url
from services.payment_service import PaymentGateway
from services.payment_store import InMemoryPendingPaymentStore, SqlPendingPaymentStore
from services.scheduler import start_scheduler
from services.session_store import InMemorySessionStore, SqlSessionStore
from utils.i18n import t
from utils.locks import KeyedLock
from utils.phone import mask_phone

# ===============================
# APP
# ===============================
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger("app")

app = Flask(__name__)


@dataclass
class Components:
    engine: ConversationEngine
    fulfillment: PaymentFulfillmentHandler
    dispatcher: ActionDispatcher
    sessions: object
    pending_payments: object
    audit: AuditLog


def build_components(backend=SESSION_BACKEND, bind=db_engine):
    init_db(bind=bind)
    session_factory = make_session_factory(bind)

    if backend == "sql":
        sessions = SqlSessionStore(session_factory)
        pending_payments = SqlPendingPaymentStore(session_factory)
    elif backend == "memory":
        sessions = InMemorySessionStore()
        pending_payments = InMemoryPendingPaymentStore()
    else:
        raise ValueError(f"Unknown SESSION_BACKEND {backend!r}")

    catalog = load_catalog()
    locks = KeyedLock()
    audit = AuditLog(session_factory)

    dispatcher = ActionDispatcher(
        messenger=whatsapp_service,
        catalog=catalog,
        build_image_url=build_certificate_url,
        audit=audit,
    )
    engine = ConversationEngine(
        sessions=sessions,
        pending_payments=pending_payments,
        catalog=catalog,
        payments=PaymentGateway(),
        locks=locks,
    )
    fulfillment = PaymentFulfillmentHandler(
        pending_payments=pending_payments,
        sessions=sessions,
        dispatcher=dispatcher,
        locks=locks,
    )
    logger.info("Components ready | backend=%s | certificates=%s", backend, len(catalog))
    return Components(engine, fulfillment, dispatcher, sessions, pending_payments, audit)


components = build_components()
app.register_blueprint(create_admin_blueprint(components.audit, ADMIN_TOKEN))

if START_SCHEDULER:
    scheduler = start_scheduler(components.sessions, components.pending_payments)


# ===============================
# HELPERS
# ===============================
def normalize_sender(wa_id):
    return (wa_id or "").strip().lstrip("+")


def parse_inbound(message):
    """
    WhatsApp message object -> InboundMessage.
    Text, interactive (button/list) replies and template quick-reply buttons
    carry a choice; other types (image, audio...) arrive empty.
    """
    sender = normalize_sender(message.get("from"))
    mtype = message.get("type")

    text_body = None
    interactive_id = None

    if mtype == "text":
        text_body = message.get("text", {}).get("body")
    elif mtype == "interactive":
        interactive = message.get("interactive", {})
        itype = interactive.get("type")
        interactive_id = interactive.get(itype, {}).get("id")
    elif mtype == "button":
        button = message.get("button", {})
        interactive_id = button.get("payload") or button.get("text")

    return InboundMessage(
        sender_id=sender,
        text=text_body,
        interactive_reply_id=interactive_id,
    )


def iter_messages(payload):
    for entry in payload.get("entry", []):
        for change in entry.get("changes", []):
            for message in change.get("value", {}).get("messages", []) or []:
                yield message


# ===============================
# ROUTES
# ===============================
@app.route("/webhook", methods=["GET"])
def verify():
    mode = request.args.get("hub.mode")
    token = request.args.get("hub.verify_token")
    challenge = request.args.get("hub.challenge")

    if not mode or not token:
        logger.warning("Webhook verification failed: missing mode or token")
        return "Missing mode or token", 400

    if mode == "subscribe" and token == WHATSAPP_VERIFY_TOKEN:
        logger.info("Webhook verified")
        return challenge or "", 200

    logger.warning("Webhook verification failed: invalid token or mode")
    return "Invalid token", 403


@app.route("/webhook", methods=["POST"])
def webhook():
    payload = request.get_json(force=True, silent=True) or {}

    if payload.get("object") not in (None, "whatsapp_business_account"):
        return jsonify({"status": "ignored"}), 200

    messages = list(iter_messages(payload))
    if not messages:
        # delivery / read status callbacks
        return jsonify({"status": "ignored"}), 200

    sender = ""
    try:
        for message in messages:
            inbound = parse_inbound(message)
            sender = inbound.sender_id
            if not sender:
                continue
            logger.info("Incoming message | from=%s | type=%s", mask_phone(sender), message.get("type"))
            components.engine.process(inbound, components.dispatcher)
        return jsonify({"status": "ok"}), 200
    except Exception:
        logger.exception("Webhook error for wa_id=%s", mask_phone(sender))
        return jsonify({"status": "error"}), 500


# ===============================
# PAYMENT WEBHOOK
# ===============================
@app.route("/payment/webhook", methods=["POST"])
def payment_webhook():
    # RAW payload (required for HMAC)
    payload = request.get_data()
    signature = request.headers.get("X-Razorpay-Signature", "")

    try:
        result = components.fulfillment.handle(payload, signature)
    except AuthenticationError as e:
        logger.warning("❌ Payment webhook rejected: %s", e)
        return "Invalid signature", 400
    except PaymentError as e:
        logger.error("❌ Payment webhook unreadable: %s", e)
        return "Bad request", 400
    except Exception:
        logger.exception("🔥 Razorpay webhook processing error")
        return "Internal error", 500

    return jsonify({"status": result.status.value}), result.http_status


@app.route("/payment-success", methods=["GET"])
def payment_success():
    logger.info("User redirected to payment-success page")
    return t(BOT_LOCALE, "payment_success_page"), 200


@app.route("/payment-cancel", methods=["GET"])
def payment_cancel():
    logger.info("User redirected to payment-cancel page")
    return t(BOT_LOCALE, "payment_cancel_page"), 200


@app.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "ok"}), 200


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=PORT)
