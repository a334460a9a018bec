# services/session_store.py

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from models import SessionRecord

logger = logging.getLogger("services.session_store")


class Step(str, Enum):
    WELCOME = "welcome"
    SELECT_CERTIFICATE = "select_certificate"
    ASK_RECIPIENT_NAME = "ask_recipient_name"
    ASK_RECIPIENT_NUMBER = "ask_recipient_number"
    ASK_CUSTOM_MESSAGE = "ask_custom_message"
    CONFIRM_SEND = "confirm_send"
    AWAIT_PAYMENT = "await_payment"
    ASK_ANOTHER = "ask_another"


@dataclass
class Session:
    # Plain string so a corrupted value read back from storage survives
    # long enough for the engine to notice and reset it.
    step: str = Step.WELCOME.value
    selected_certificate: Optional[int] = None
    recipient_name: Optional[str] = None
    recipient_number: Optional[str] = None
    custom_message: Optional[str] = None
    certificates_sent_count: int = 0
    payment_pending: bool = False
    last_activity_at: datetime = field(default_factory=datetime.utcnow)

    def copy(self):
        return replace(self)


def _idle_cutoff(max_idle_seconds, now):
    return (now or datetime.utcnow()) - timedelta(seconds=max_idle_seconds)


class SessionStore(ABC):
    """
    Keyed conversation state. Implementations hand out copies, so a caller
    only changes stored state through set().
    """

    @abstractmethod
    def get(self, user_id) -> Optional[Session]:
        ...

    @abstractmethod
    def set(self, user_id, session: Session) -> None:
        ...

    @abstractmethod
    def delete(self, user_id) -> None:
        ...

    @abstractmethod
    def sweep(self, max_idle_seconds, now=None) -> int:
        """Removes sessions idle longer than max_idle_seconds; returns the count."""


# ===============================
# IN-MEMORY
# ===============================
class InMemorySessionStore(SessionStore):
    def __init__(self):
        self._lock = threading.Lock()
        self._sessions = {}

    def get(self, user_id):
        with self._lock:
            session = self._sessions.get(user_id)
            return session.copy() if session else None

    def set(self, user_id, session):
        with self._lock:
            self._sessions[user_id] = session.copy()

    def delete(self, user_id):
        with self._lock:
            self._sessions.pop(user_id, None)

    def sweep(self, max_idle_seconds, now=None):
        cutoff = _idle_cutoff(max_idle_seconds, now)
        with self._lock:
            expired = [
                user_id for user_id, s in self._sessions.items()
                if s.last_activity_at < cutoff
            ]
            for user_id in expired:
                del self._sessions[user_id]
        return len(expired)

    def __len__(self):
        with self._lock:
            return len(self._sessions)


# ===============================
# SQL (durable)
# ===============================
class SqlSessionStore(SessionStore):
    def __init__(self, session_factory):
        self._session_factory = session_factory

    @staticmethod
    def _to_session(row):
        return Session(
            step=row.step,
            selected_certificate=row.selected_certificate,
            recipient_name=row.recipient_name,
            recipient_number=row.recipient_number,
            custom_message=row.custom_message,
            certificates_sent_count=row.certificates_sent_count or 0,
            payment_pending=bool(row.payment_pending),
            last_activity_at=row.last_activity_at,
        )

    def get(self, user_id):
        db = self._session_factory()
        try:
            row = db.query(SessionRecord).filter_by(whatsapp_id=user_id).first()
            return self._to_session(row) if row else None
        finally:
            db.close()

    def set(self, user_id, session):
        db = self._session_factory()
        try:
            row = db.query(SessionRecord).filter_by(whatsapp_id=user_id).first()
            if not row:
                row = SessionRecord(whatsapp_id=user_id)
                db.add(row)

            step = session.step
            row.step = step.value if isinstance(step, Step) else step
            row.selected_certificate = session.selected_certificate
            row.recipient_name = session.recipient_name
            row.recipient_number = session.recipient_number
            row.custom_message = session.custom_message
            row.certificates_sent_count = session.certificates_sent_count
            row.payment_pending = session.payment_pending
            row.last_activity_at = session.last_activity_at
            db.commit()
        finally:
            db.close()

    def delete(self, user_id):
        db = self._session_factory()
        try:
            db.query(SessionRecord).filter_by(whatsapp_id=user_id).delete()
            db.commit()
        finally:
            db.close()

    def sweep(self, max_idle_seconds, now=None):
        cutoff = _idle_cutoff(max_idle_seconds, now)
        db = self._session_factory()
        try:
            removed = (
                db.query(SessionRecord)
                .filter(SessionRecord.last_activity_at < cutoff)
                .delete(synchronize_session=False)
            )
            db.commit()
            return removed
        finally:
            db.close()
