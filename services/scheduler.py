# services/scheduler.py

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from config import (
    SESSION_IDLE_SECONDS,
    SESSION_SWEEP_INTERVAL_SECONDS,
    PENDING_PAYMENT_TTL_MINUTES,
    PAYMENT_WEBHOOK_RETRY_MINUTES,
)
from services.payment_service import MIN_LINK_LIFETIME_SECONDS

logger = logging.getLogger("services.scheduler")


def sweep_sessions(sessions, max_idle_seconds=SESSION_IDLE_SECONDS):
    removed = sessions.sweep(max_idle_seconds)
    if removed:
        logger.info("Idle sweep removed %s session(s)", removed)
    return removed


def expire_pending_payments(pending_payments, ttl_minutes=PENDING_PAYMENT_TTL_MINUTES,
                            retry_window_minutes=PAYMENT_WEBHOOK_RETRY_MINUTES):
    """
    Drops checkouts nobody paid. A record outlives its link by the provider's
    webhook retry window, so a payment made just before the link expired is
    still delivered when its webhook arrives late.
    """
    link_lifetime_seconds = max(ttl_minutes * 60, MIN_LINK_LIFETIME_SECONDS)
    removed = pending_payments.expire(link_lifetime_seconds + retry_window_minutes * 60)
    if removed:
        logger.info("Expired %s abandoned checkout(s)", removed)
    return removed


def start_scheduler(sessions, pending_payments,
                    interval_seconds=SESSION_SWEEP_INTERVAL_SECONDS,
                    max_idle_seconds=SESSION_IDLE_SECONDS,
                    ttl_minutes=PENDING_PAYMENT_TTL_MINUTES,
                    retry_window_minutes=PAYMENT_WEBHOOK_RETRY_MINUTES):
    scheduler = BackgroundScheduler(daemon=True)
    scheduler.add_job(
        sweep_sessions, "interval", seconds=interval_seconds,
        args=[sessions, max_idle_seconds],
        id="session_sweep", max_instances=1, coalesce=True,
    )
    scheduler.add_job(
        expire_pending_payments, "interval", seconds=interval_seconds,
        args=[pending_payments, ttl_minutes, retry_window_minutes],
        id="pending_payment_expiry", max_instances=1, coalesce=True,
    )
    scheduler.start()
    logger.info(
        "Scheduler started | every=%ss | idle=%ss | checkout_ttl=%smin | retry_window=%smin",
        interval_seconds, max_idle_seconds, ttl_minutes, retry_window_minutes,
    )
    return scheduler
