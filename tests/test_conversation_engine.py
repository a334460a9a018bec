import threading

import pytest

from services.actions import SendCertificate, SendTemplate, SendText
from services.commands import InboundMessage
from services.conversation_engine import ConversationEngine
from services.session_store import Session, Step
from utils.i18n import t

from conftest import SENDER


def say(engine, text, sender=SENDER):
    return engine.handle(InboundMessage(sender, text=text))


def texts(result):
    return [a.body for a in result.actions if isinstance(a, SendText)]


def walk_to_confirm(engine, certificate="1", message="Congrats!"):
    say(engine, "start")
    say(engine, certificate)
    say(engine, "Ahmed")
    say(engine, "96890000000")
    return say(engine, message)


class TestWelcome:
    def test_first_message_sends_welcome_template(self, engine, sessions):
        result = say(engine, "anything")

        assert result.actions == [SendTemplate(SENDER, "wel_sel", "en")]
        assert sessions.get(SENDER).step == Step.SELECT_CERTIFICATE.value

    def test_start_keyword_resets_mid_conversation(self, engine, sessions):
        say(engine, "hi")
        say(engine, "3")
        say(engine, "Ahmed")

        result = say(engine, "Hello")

        session = sessions.get(SENDER)
        assert isinstance(result.actions[0], SendTemplate)
        assert session.step == Step.SELECT_CERTIFICATE.value
        assert session.recipient_name is None
        assert session.selected_certificate is None


class TestFreeCertificate:
    def test_full_flow_sends_exactly_one_certificate(self, engine, sessions):
        say(engine, "start")
        assert texts(say(engine, "1")) == [t("en", "ask_recipient_name")]
        assert texts(say(engine, "Ahmed")) == [t("en", "ask_recipient_number")]
        assert texts(say(engine, "96890000000")) == [t("en", "ask_custom_message", max=50)]
        assert texts(say(engine, "Congrats!")) == [t("en", "confirm_send", name="Ahmed")]

        result = say(engine, "yes")

        certificates = [a for a in result.actions if isinstance(a, SendCertificate)]
        assert certificates == [SendCertificate(
            to="96890000000",
            certificate_id=1,
            recipient_name="Ahmed",
            custom_message="Congrats!",
            sender_id=SENDER,
        )]
        assert texts(result) == [t("en", "certificate_sent"), t("en", "ask_another")]

        session = sessions.get(SENDER)
        assert session.step == Step.ASK_ANOTHER.value
        assert session.certificates_sent_count == 1

    def test_normalized_recipient_number_is_stored(self, engine, sessions):
        say(engine, "start")
        say(engine, "5")
        say(engine, "Sara")
        say(engine, "+966 (50) 000-0000")
        assert sessions.get(SENDER).recipient_number == "966500000000"

    def test_declining_confirmation_ends_session(self, engine, sessions):
        walk_to_confirm(engine)

        result = say(engine, "no")

        assert result.ended
        assert texts(result) == [t("en", "session_ended")]
        assert sessions.get(SENDER) is None


class TestPaidCertificate:
    def test_confirm_creates_checkout_and_waits(self, engine, sessions, pending_payments, payments):
        walk_to_confirm(engine, certificate="2")

        result = say(engine, "yes")

        assert not any(isinstance(a, SendCertificate) for a in result.actions)
        assert texts(result) == [t("en", "checkout_link", url="https://rzp.io/i/1")]
        session = sessions.get(SENDER)
        assert session.step == Step.AWAIT_PAYMENT.value
        assert session.payment_pending is True

        record = pending_payments.get_for_sender(SENDER)
        assert record.payment_reference == "plink_1"
        assert record.certificate_id == 2
        assert record.recipient_number == "96890000000"
        assert record.custom_message == "Congrats!"
        assert record.amount == 9900
        assert payments.created == [(2, SENDER, "96890000000", "Ahmed", "Congrats!")]

    def test_chatting_while_awaiting_payment_only_repeats_notice(self, engine, sessions, payments):
        walk_to_confirm(engine, certificate="2")
        say(engine, "yes")

        for text in ("yes", "3", "hello?"):
            result = say(engine, text)
            assert texts(result) == [t("en", "awaiting_payment_link", url="https://rzp.io/i/1")]

        assert sessions.get(SENDER).step == Step.AWAIT_PAYMENT.value
        assert len(payments.created) == 1

    def test_second_checkout_cancels_previous_link(self, engine, pending_payments, payments):
        walk_to_confirm(engine, certificate="2")
        say(engine, "yes")
        walk_to_confirm(engine, certificate="3")

        result = say(engine, "yes")

        assert texts(result) == [t("en", "checkout_link", url="https://rzp.io/i/2")]
        assert payments.cancelled == ["plink_1"]
        assert pending_payments.get_for_sender(SENDER).payment_reference == "plink_2"

    def test_cancel_failure_does_not_block_new_checkout(self, engine, sessions,
                                                         pending_payments, payments):
        walk_to_confirm(engine, certificate="2")
        say(engine, "yes")
        walk_to_confirm(engine, certificate="3")
        payments.fail_cancel = True

        result = say(engine, "yes")

        assert texts(result) == [t("en", "checkout_link", url="https://rzp.io/i/2")]
        assert sessions.get(SENDER).step == Step.AWAIT_PAYMENT.value
        assert pending_payments.get_for_sender(SENDER).payment_reference == "plink_2"

    def test_first_checkout_cancels_nothing(self, engine, payments):
        walk_to_confirm(engine, certificate="2")
        say(engine, "yes")
        assert payments.cancelled == []

    def test_checkout_failure_keeps_confirm_step(self, engine, sessions, pending_payments, payments):
        walk_to_confirm(engine, certificate="2")
        payments.fail = True

        result = say(engine, "yes")

        assert texts(result) == [t("en", "checkout_error")]
        assert sessions.get(SENDER).step == Step.CONFIRM_SEND.value
        assert pending_payments.get_for_sender(SENDER) is None

    def test_stop_while_awaiting_keeps_pending_record(self, engine, sessions, pending_payments):
        walk_to_confirm(engine, certificate="2")
        say(engine, "yes")

        result = say(engine, "stop")

        assert result.ended
        assert sessions.get(SENDER) is None
        assert pending_payments.get_for_sender(SENDER) is not None


class TestValidation:
    @pytest.mark.parametrize("text", ["0", "11", "abc", "1.5"])
    def test_invalid_certificate(self, engine, sessions, text):
        say(engine, "start")
        result = say(engine, text)
        assert texts(result) == [t("en", "invalid_certificate")]
        assert sessions.get(SENDER).step == Step.SELECT_CERTIFICATE.value

    def test_blank_name(self, engine, sessions):
        say(engine, "start")
        say(engine, "1")
        result = engine.handle(InboundMessage(SENDER, text="   "))
        assert texts(result) == [t("en", "invalid_name")]
        assert sessions.get(SENDER).step == Step.ASK_RECIPIENT_NAME.value

    @pytest.mark.parametrize("number", ["123", "abc", "99912345678"])
    def test_invalid_number(self, engine, sessions, number):
        say(engine, "start")
        say(engine, "1")
        say(engine, "Ahmed")
        result = say(engine, number)
        assert texts(result) == [t("en", "invalid_number")]
        assert sessions.get(SENDER).step == Step.ASK_RECIPIENT_NUMBER.value

    @pytest.mark.parametrize("message", ["x" * 51, "two\nlines"])
    def test_invalid_custom_message(self, engine, sessions, message):
        say(engine, "start")
        say(engine, "1")
        say(engine, "Ahmed")
        say(engine, "96890000000")
        result = say(engine, message)
        assert texts(result) == [t("en", "invalid_custom_message", max=50)]
        assert sessions.get(SENDER).step == Step.ASK_CUSTOM_MESSAGE.value

    def test_custom_message_at_limit_accepted(self, engine, sessions):
        walk_to_confirm(engine, message="x" * 50)
        assert sessions.get(SENDER).custom_message == "x" * 50

    def test_confirm_needs_yes_or_no(self, engine, sessions):
        walk_to_confirm(engine)
        result = say(engine, "maybe")
        assert texts(result) == [t("en", "answer_yes_no")]
        assert sessions.get(SENDER).step == Step.CONFIRM_SEND.value


class TestAskAnother:
    def test_yes_starts_over_and_keeps_count(self, engine, sessions):
        walk_to_confirm(engine)
        say(engine, "yes")

        result = say(engine, "yes")

        assert result.actions == [SendTemplate(SENDER, "wel_sel", "en")]
        session = sessions.get(SENDER)
        assert session.step == Step.SELECT_CERTIFICATE.value
        assert session.certificates_sent_count == 1
        assert session.recipient_number is None

    def test_second_certificate_increments_count(self, engine, sessions):
        walk_to_confirm(engine)
        say(engine, "yes")
        say(engine, "yes")
        say(engine, "5")
        say(engine, "Sara")
        say(engine, "966500000000")
        say(engine, "Well done")
        say(engine, "yes")

        assert sessions.get(SENDER).certificates_sent_count == 2

    def test_no_ends_session(self, engine, sessions):
        walk_to_confirm(engine)
        say(engine, "yes")

        result = say(engine, "no")

        assert result.ended
        assert texts(result) == [t("en", "session_ended")]
        assert sessions.get(SENDER) is None

    def test_other_answer_reprompts(self, engine, sessions):
        walk_to_confirm(engine)
        say(engine, "yes")
        assert texts(say(engine, "what")) == [t("en", "answer_yes_no")]
        assert sessions.get(SENDER).step == Step.ASK_ANOTHER.value


class TestOverrides:
    def test_stop_from_any_step(self, engine, sessions):
        say(engine, "start")
        say(engine, "1")

        result = say(engine, "Cancel")

        assert result.ended
        assert texts(result) == [t("en", "session_stopped")]
        assert sessions.get(SENDER) is None

    def test_stop_without_session(self, engine, sessions):
        result = say(engine, "stop")
        assert texts(result) == [t("en", "session_stopped")]
        assert sessions.get(SENDER) is None

    def test_unknown_step_resets_to_welcome(self, engine, sessions):
        sessions.set(SENDER, Session(step="corrupted", certificates_sent_count=4))

        result = say(engine, "1")

        assert isinstance(result.actions[0], SendTemplate)
        session = sessions.get(SENDER)
        assert session.step == Step.SELECT_CERTIFICATE.value
        assert session.certificates_sent_count == 4

    def test_incomplete_session_at_confirm_ends(self, engine, sessions):
        sessions.set(SENDER, Session(step=Step.CONFIRM_SEND.value, selected_certificate=1))

        result = say(engine, "yes")

        assert result.ended
        assert texts(result) == [t("en", "session_error")]
        assert sessions.get(SENDER) is None

    def test_senders_do_not_share_sessions(self, engine, sessions):
        say(engine, "start", sender="a")
        say(engine, "1", sender="a")
        say(engine, "start", sender="b")

        assert sessions.get("a").step == Step.ASK_RECIPIENT_NAME.value
        assert sessions.get("b").step == Step.SELECT_CERTIFICATE.value


class TestWithoutCustomMessage:
    def test_number_goes_straight_to_confirm(self, sessions, pending_payments, catalog, payments):
        engine = ConversationEngine(
            sessions=sessions,
            pending_payments=pending_payments,
            catalog=catalog,
            payments=payments,
            locale="en",
            ask_custom_message=False,
            welcome_template="wel_sel",
            template_language="en",
        )
        say(engine, "start")
        say(engine, "1")
        say(engine, "Ahmed")

        result = say(engine, "96890000000")

        assert texts(result) == [t("en", "confirm_send", name="Ahmed")]

        confirmed = say(engine, "yes")

        sent = [a for a in confirmed.actions if isinstance(a, SendCertificate)]
        assert len(sent) == 1
        assert sent[0].custom_message is None
        assert sessions.get(SENDER).step == Step.ASK_ANOTHER.value
        assert payments.created == []


class TestProcess:
    def test_process_dispatches_actions(self, engine, dispatcher, messenger):
        engine.process(InboundMessage(SENDER, text="start"), dispatcher)
        assert messenger.templates_to(SENDER)[0][2] == "wel_sel"

    def test_concurrent_messages_from_one_sender_are_sequential(self, engine, sessions, dispatcher):
        say(engine, "start")
        say(engine, "1")
        say(engine, "Ahmed")
        say(engine, "96890000000")
        say(engine, "Congrats!")

        barrier = threading.Barrier(5)
        results = []

        def confirm():
            barrier.wait()
            results.append(engine.process(InboundMessage(SENDER, text="yes"), dispatcher))

        threads = [threading.Thread(target=confirm) for _ in range(5)]
        for th in threads:
            th.start()
        for th in threads:
            th.join()

        # First "yes" sends the certificate, the next ones start a new round
        sent = [a for r in results for a in r.actions if isinstance(a, SendCertificate)]
        assert len(sent) == 1
        assert sessions.get(SENDER).certificates_sent_count == 1
