# config.py
import os


def _flag(name, default):
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# WhatsApp / Facebook Graph
WHATSAPP_TOKEN = os.getenv("WHATSAPP_TOKEN", "") or os.getenv("WHATSAPP_API_TOKEN", "")
WHATSAPP_PHONE_ID = (
    os.getenv("WHATSAPP_PHONE_ID", "") or
    os.getenv("WHATSAPP_PHONE_NUMBER_ID", "") or
    os.getenv("PHONE_NUMBER_ID", "")
)
WHATSAPP_API_URL = os.getenv("WHATSAPP_API_URL",
                             f"https://graph.facebook.com/v19.0/{WHATSAPP_PHONE_ID}/messages")
WHATSAPP_VERIFY_TOKEN = os.getenv("WHATSAPP_VERIFY_TOKEN", "") or os.getenv("VERIFY_TOKEN", "changeme_verify_token")

# Razorpay (payment links + webhook signature verification)
RAZORPAY_KEY_ID = os.getenv("RAZORPAY_KEY_ID", "")
RAZORPAY_KEY_SECRET = os.getenv("RAZORPAY_KEY_SECRET", "")
RAZORPAY_WEBHOOK_SECRET = os.getenv("RAZORPAY_WEBHOOK_SECRET", "")
PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "INR")
PAYMENT_CALLBACK_URL = os.getenv("PAYMENT_CALLBACK_URL", "")

# Cloudinary (certificate templates live there, names are overlaid via URL)
CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME", "")
CLOUDINARY_API_KEY = os.getenv("CLOUDINARY_API_KEY", "")
CLOUDINARY_API_SECRET = os.getenv("CLOUDINARY_API_SECRET", "")

# Deployment flavor
BOT_LOCALE = os.getenv("BOT_LOCALE", "ar")  # ar / en
ASK_CUSTOM_MESSAGE = _flag("ASK_CUSTOM_MESSAGE", "true")
CUSTOM_MESSAGE_MAX_LENGTH = int(os.getenv("CUSTOM_MESSAGE_MAX_LENGTH", "50"))
WELCOME_TEMPLATE = os.getenv("WELCOME_TEMPLATE", "wel_sel")
CERTIFICATE_TEMPLATE = os.getenv("CERTIFICATE_TEMPLATE", "gift")
TEMPLATE_LANGUAGE = os.getenv("TEMPLATE_LANGUAGE", BOT_LOCALE)
CERTIFICATE_CATALOG_PATH = os.getenv("CERTIFICATE_CATALOG_PATH", "")
CERTIFICATE_PRICE = int(os.getenv("CERTIFICATE_PRICE", "9900"))  # smallest currency unit
PHONE_STRICT_VALIDATION = _flag("PHONE_STRICT_VALIDATION", "false")

# Lifetimes
SESSION_IDLE_SECONDS = int(os.getenv("SESSION_IDLE_SECONDS", "300"))
SESSION_SWEEP_INTERVAL_SECONDS = int(os.getenv("SESSION_SWEEP_INTERVAL_SECONDS", "30"))
PENDING_PAYMENT_TTL_MINUTES = int(os.getenv("PENDING_PAYMENT_TTL_MINUTES", "60"))
# Razorpay retries a failed webhook delivery for up to 24 hours
PAYMENT_WEBHOOK_RETRY_MINUTES = int(os.getenv("PAYMENT_WEBHOOK_RETRY_MINUTES", "1440"))

# Storage
SESSION_BACKEND = os.getenv("SESSION_BACKEND", "memory")  # memory / sql
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./certificates.db")

# Runtime
START_SCHEDULER = _flag("START_SCHEDULER", "true")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# App / Admin
PORT = int(os.getenv("PORT", "3000"))
ADMIN_TOKEN = os.getenv("ADMIN_TOKEN", "admintoken")
