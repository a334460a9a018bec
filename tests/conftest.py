import os

# Must be set before config.py is imported anywhere
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["START_SCHEDULER"] = "false"
os.environ["BOT_LOCALE"] = "en"
os.environ["CLOUDINARY_CLOUD_NAME"] = "demo"
os.environ["RAZORPAY_WEBHOOK_SECRET"] = "whsec_test"
os.environ["WHATSAPP_VERIFY_TOKEN"] = "verify-me"
os.environ["ADMIN_TOKEN"] = "admin-secret"

from unittest.mock import Mock

import pytest

from db import init_db, make_engine, make_session_factory
from services import whatsapp_service
from services.actions import ActionDispatcher
from services.catalog import default_catalog
from services.conversation_engine import ConversationEngine
from services.errors import PaymentError
from services.payment_service import CheckoutSession
from services.payment_store import InMemoryPendingPaymentStore
from services.session_store import InMemorySessionStore
from utils.locks import KeyedLock

SENDER = "96891234567"
WEBHOOK_SECRET = "whsec_test"


class FakeMessenger:
    """Records outbound WhatsApp calls instead of hitting the Graph API."""

    def __init__(self):
        self.calls = []
        self.fail_to = set()

    def send_text(self, to, body):
        self.calls.append(("text", to, body))
        return {"error": "api_error"} if to in self.fail_to else {"messages": [{"id": "wamid.x"}]}

    def send_template(self, to, template_name, language=None, components=None):
        self.calls.append(("template", to, template_name, components))
        return {"error": "api_error"} if to in self.fail_to else {"messages": [{"id": "wamid.x"}]}

    certificate_components = staticmethod(whatsapp_service.certificate_components)

    def texts_to(self, to):
        return [c[2] for c in self.calls if c[0] == "text" and c[1] == to]

    def templates_to(self, to):
        return [c for c in self.calls if c[0] == "template" and c[1] == to]


class FakePayments:
    def __init__(self):
        self.created = []
        self.fail = False
        self.fail_cancel = False
        self.cancelled = []

    def create_checkout(self, entry, sender_id, recipient_number, recipient_name,
                        custom_message=None):
        if self.fail:
            raise PaymentError("razorpay down")
        n = len(self.created) + 1
        checkout = CheckoutSession(
            payment_reference=f"plink_{n}",
            checkout_url=f"https://rzp.io/i/{n}",
            amount=entry.price,
            currency="INR",
        )
        self.created.append((entry.id, sender_id, recipient_number, recipient_name, custom_message))
        return checkout

    def cancel_checkout(self, payment_reference):
        if self.fail_cancel:
            raise PaymentError("link already paid")
        self.cancelled.append(payment_reference)


@pytest.fixture
def catalog():
    return default_catalog(price=9900)


@pytest.fixture
def sessions():
    return InMemorySessionStore()


@pytest.fixture
def pending_payments():
    return InMemoryPendingPaymentStore()


@pytest.fixture
def payments():
    return FakePayments()


@pytest.fixture
def messenger():
    return FakeMessenger()


@pytest.fixture
def audit():
    return Mock()


@pytest.fixture
def locks():
    return KeyedLock()


@pytest.fixture
def dispatcher(messenger, catalog, audit):
    return ActionDispatcher(
        messenger=messenger,
        catalog=catalog,
        build_image_url=lambda asset, name: f"https://img.test/{asset}/{name}",
        audit=audit,
        certificate_template="gift",
        template_language="en",
    )


@pytest.fixture
def engine(sessions, pending_payments, catalog, payments, locks):
    return ConversationEngine(
        sessions=sessions,
        pending_payments=pending_payments,
        catalog=catalog,
        payments=payments,
        locks=locks,
        locale="en",
        ask_custom_message=True,
        custom_message_max_length=50,
        welcome_template="wel_sel",
        template_language="en",
    )


@pytest.fixture
def session_factory():
    engine = make_engine("sqlite://")
    init_db(bind=engine)
    yield make_session_factory(engine)
    engine.dispose()
