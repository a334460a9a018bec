# services/errors.py


class BotError(Exception):
    """Base class for errors raised by the certificate bot."""


class ValidationError(BotError):
    """User input rejected by a conversation step. Never leaves the engine."""

    def __init__(self, key, **params):
        self.key = key
        self.params = params
        super().__init__(key)


class AuthenticationError(BotError):
    """Payment webhook signature missing or not matching the shared secret."""


class PaymentError(BotError):
    """Checkout creation failed at the payment provider."""


class DeliveryError(BotError):
    """An outbound WhatsApp send failed."""
