# services/audit_service.py

import logging
from datetime import datetime

from models import DeliveryLog

logger = logging.getLogger("services.audit_service")


class AuditLog:
    """
    Append-only record of delivered certificates.
    Never raises: a failed audit write must not undo a delivery.
    """

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def record_delivery(self, sender, certificate_id, recipient_name,
                        recipient_number, paid=False, payment_reference=None):
        db = self._session_factory()
        try:
            db.add(DeliveryLog(
                sender=sender,
                certificate_id=certificate_id,
                recipient_name=recipient_name,
                recipient_number=recipient_number,
                paid=paid,
                payment_reference=payment_reference,
                created_at=datetime.utcnow(),
            ))
            db.commit()
        except Exception:
            db.rollback()
            logger.exception(
                "Audit write failed | certificate=%s | ref=%s",
                certificate_id,
                payment_reference,
            )
        finally:
            db.close()

    def recent(self, limit=100):
        db = self._session_factory()
        try:
            return (
                db.query(DeliveryLog)
                .order_by(DeliveryLog.created_at.desc())
                .limit(limit)
                .all()
            )
        finally:
            db.close()
