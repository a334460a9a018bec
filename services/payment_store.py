# services/payment_store.py

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from models import PendingPaymentRecord

logger = logging.getLogger("services.payment_store")


@dataclass(frozen=True)
class PendingPayment:
    payment_reference: str
    sender_id: str
    recipient_number: str
    certificate_id: int
    recipient_name: str
    amount: int
    currency: str
    custom_message: Optional[str] = None
    checkout_url: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)


class PendingPaymentStore(ABC):
    """
    Checkout attempts awaiting the provider's "paid" webhook.

    pop() is the only way a record leaves the store on fulfillment, and it is
    a single check-and-delete: of two concurrent pops for one reference,
    exactly one gets the record.
    """

    @abstractmethod
    def put(self, record: PendingPayment) -> Optional[PendingPayment]:
        """Stores record, replacing the sender's previous one (returned)."""

    @abstractmethod
    def pop(self, payment_reference) -> Optional[PendingPayment]:
        ...

    @abstractmethod
    def get_for_sender(self, sender_id) -> Optional[PendingPayment]:
        ...

    @abstractmethod
    def expire(self, max_age_seconds, now=None) -> int:
        ...


# ===============================
# IN-MEMORY
# ===============================
class InMemoryPendingPaymentStore(PendingPaymentStore):
    def __init__(self):
        self._lock = threading.Lock()
        self._by_reference = {}
        self._by_sender = {}

    def put(self, record):
        with self._lock:
            previous_ref = self._by_sender.get(record.sender_id)
            previous = self._by_reference.pop(previous_ref, None) if previous_ref else None
            self._by_reference[record.payment_reference] = record
            self._by_sender[record.sender_id] = record.payment_reference
        if previous:
            logger.info(
                "Superseded pending payment | ref=%s | new_ref=%s",
                previous.payment_reference,
                record.payment_reference,
            )
        return previous

    def pop(self, payment_reference):
        with self._lock:
            record = self._by_reference.pop(payment_reference, None)
            if record and self._by_sender.get(record.sender_id) == payment_reference:
                del self._by_sender[record.sender_id]
            return record

    def get_for_sender(self, sender_id):
        with self._lock:
            ref = self._by_sender.get(sender_id)
            return self._by_reference.get(ref) if ref else None

    def expire(self, max_age_seconds, now=None):
        cutoff = (now or datetime.utcnow()) - timedelta(seconds=max_age_seconds)
        with self._lock:
            stale = [
                ref for ref, record in self._by_reference.items()
                if record.created_at < cutoff
            ]
            for ref in stale:
                record = self._by_reference.pop(ref)
                if self._by_sender.get(record.sender_id) == ref:
                    del self._by_sender[record.sender_id]
        return len(stale)

    def __len__(self):
        with self._lock:
            return len(self._by_reference)


# ===============================
# SQL (durable)
# ===============================
class SqlPendingPaymentStore(PendingPaymentStore):
    def __init__(self, session_factory):
        self._session_factory = session_factory

    @staticmethod
    def _to_record(row):
        return PendingPayment(
            payment_reference=row.payment_reference,
            sender_id=row.sender_id,
            recipient_number=row.recipient_number,
            certificate_id=row.certificate_id,
            recipient_name=row.recipient_name,
            amount=row.amount,
            currency=row.currency,
            custom_message=row.custom_message,
            checkout_url=row.checkout_url,
            created_at=row.created_at,
        )

    def put(self, record):
        db = self._session_factory()
        try:
            previous_row = (
                db.query(PendingPaymentRecord)
                .filter_by(sender_id=record.sender_id)
                .first()
            )
            previous = self._to_record(previous_row) if previous_row else None
            if previous_row:
                db.delete(previous_row)
                db.flush()

            db.add(PendingPaymentRecord(
                payment_reference=record.payment_reference,
                checkout_url=record.checkout_url,
                sender_id=record.sender_id,
                recipient_number=record.recipient_number,
                certificate_id=record.certificate_id,
                recipient_name=record.recipient_name,
                custom_message=record.custom_message,
                amount=record.amount,
                currency=record.currency,
                created_at=record.created_at,
            ))
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

        if previous:
            logger.info(
                "Superseded pending payment | ref=%s | new_ref=%s",
                previous.payment_reference,
                record.payment_reference,
            )
        return previous

    def pop(self, payment_reference):
        db = self._session_factory()
        try:
            row = (
                db.query(PendingPaymentRecord)
                .filter_by(payment_reference=payment_reference)
                .first()
            )
            if not row:
                return None

            record = self._to_record(row)

            # 🔐 The DELETE is the claim: a concurrent pop that read the same
            # row finds nothing left to delete and backs off.
            claimed = (
                db.query(PendingPaymentRecord)
                .filter_by(payment_reference=payment_reference)
                .delete(synchronize_session=False)
            )
            db.commit()
            return record if claimed == 1 else None
        finally:
            db.close()

    def get_for_sender(self, sender_id):
        db = self._session_factory()
        try:
            row = db.query(PendingPaymentRecord).filter_by(sender_id=sender_id).first()
            return self._to_record(row) if row else None
        finally:
            db.close()

    def expire(self, max_age_seconds, now=None):
        cutoff = (now or datetime.utcnow()) - timedelta(seconds=max_age_seconds)
        db = self._session_factory()
        try:
            removed = (
                db.query(PendingPaymentRecord)
                .filter(PendingPaymentRecord.created_at < cutoff)
                .delete(synchronize_session=False)
            )
            db.commit()
            return removed
        finally:
            db.close()
