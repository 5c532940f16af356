#!/usr/bin/env python3
"""
Run the overdue-invoice check once.

Scheduling is external; e.g. a daily cron entry:
    0 8 * * * cd /srv/bizledger/backend && python run_overdue_check.py
Running it twice on the same day does not duplicate notifications.
"""
import logging
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from bizledger.core.database import Database, SessionLocal
from bizledger.core.errors import LedgerError
from bizledger.core.logging_config import configure_logging
from bizledger.services.notification_service import NotificationService

logger = logging.getLogger("run_overdue_check")


def run_overdue_check() -> int:
    with SessionLocal() as session:
        return NotificationService(Database(session)).check_overdue_invoices()


if __name__ == "__main__":
    configure_logging()
    try:
        processed = run_overdue_check()
    except LedgerError as exc:
        logger.error("Overdue check failed: %s", exc.detail)
        sys.exit(1)
    logger.info("Overdue check done: %s invoice(s) notified", processed)
