# models.py
from sqlalchemy import Column, Integer, String, DateTime, Boolean
from sqlalchemy.orm import declarative_base
from datetime import datetime

Base = declarative_base()


class SessionRecord(Base):
    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, index=True)
    whatsapp_id = Column(String, unique=True, index=True, nullable=False)

    step = Column(String, nullable=False, default="welcome")
    selected_certificate = Column(Integer, nullable=True)
    recipient_name = Column(String, nullable=True)
    recipient_number = Column(String, nullable=True)
    custom_message = Column(String, nullable=True)

    certificates_sent_count = Column(Integer, default=0)
    payment_pending = Column(Boolean, default=False)
    last_activity_at = Column(DateTime, default=datetime.utcnow, index=True)


class PendingPaymentRecord(Base):
    __tablename__ = "pending_payments"

    # -------------------------
    # PAYMENT REFERENCE
    # -------------------------
    id = Column(Integer, primary_key=True, index=True)
    payment_reference = Column(String, unique=True, index=True, nullable=False)
    checkout_url = Column(String, nullable=True)

    # -------------------------
    # FROZEN SESSION SNAPSHOT
    # -------------------------
    sender_id = Column(String, unique=True, index=True, nullable=False)
    recipient_number = Column(String, nullable=False)
    certificate_id = Column(Integer, nullable=False)
    recipient_name = Column(String, nullable=False)
    custom_message = Column(String, nullable=True)

    # -------------------------
    # PRICE CHARGED
    # -------------------------
    amount = Column(Integer, nullable=False)     # smallest currency unit
    currency = Column(String, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)


class DeliveryLog(Base):
    __tablename__ = "delivery_log"

    id = Column(Integer, primary_key=True)
    sender = Column(String, index=True, nullable=False)
    certificate_id = Column(Integer, nullable=False)
    recipient_name = Column(String, nullable=False)
    recipient_number = Column(String, nullable=False)
    paid = Column(Boolean, default=False)
    payment_reference = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
