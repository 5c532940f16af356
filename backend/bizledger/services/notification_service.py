import logging
from datetime import datetime, time, timedelta
from typing import Optional

from sqlalchemy import bindparam, insert, select, update

from bizledger.core.database import Database
from bizledger.core.errors import NotFound
from bizledger.models import Customer, Invoice, InvoiceStatus, Notification


logger = logging.getLogger(__name__)

notifications = Notification.__table__
invoices = Invoice.__table__
customers = Customer.__table__

DEBT = "debt"
PAYMENT = "payment"
RECENT_LIMIT = 10


class NotificationService:
    def __init__(self, db: Database):
        self.db = db

    def create_notification(
        self,
        user_id: int,
        title: str,
        message: str,
        type_: str,
        related_id: Optional[int] = None,
        related_type: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> int:
        """Unconditional insert, unread."""
        self.db.query(insert(notifications))
        self.db.bind("user_id", user_id)
        self.db.bind("title", title)
        self.db.bind("message", message)
        self.db.bind("type", type_)
        self.db.bind("related_id", related_id)
        self.db.bind("related_type", related_type)
        self.db.bind("is_read", False)
        self.db.bind("created_at", created_at or datetime.now())
        self.db.execute()
        return self.db.last_insert_id()

    def get_user_notifications(self, user_id: int, unread_only: bool = False) -> list[dict]:
        stmt = select(notifications).where(notifications.c.user_id == bindparam("user_id"))
        if unread_only:
            stmt = stmt.where(notifications.c.is_read.is_(False))
        stmt = stmt.order_by(notifications.c.created_at.desc(), notifications.c.id.desc()).limit(RECENT_LIMIT)

        self.db.query(stmt)
        self.db.bind("user_id", user_id)
        return self.db.result_set()

    def mark_as_read(self, notification_id: int, user_id: Optional[int] = None) -> None:
        """Idempotent. When ``user_id`` is given only that user's notification matches."""
        stmt = update(notifications).where(notifications.c.id == bindparam("notification_id"))
        if user_id is not None:
            stmt = stmt.where(notifications.c.user_id == bindparam("owner_id"))

        self.db.query(stmt.values(is_read=True))
        self.db.bind("notification_id", notification_id)
        if user_id is not None:
            self.db.bind("owner_id", user_id)
        self.db.execute()
        if self.db.row_count() == 0:
            raise NotFound("Notification not found")

    def check_overdue_invoices(self, now: Optional[datetime] = None) -> int:
        """
        Raise one ``debt`` notification per overdue invoice that has not been
        notified yet today, addressed to the user who issued the invoice.
        Returns how many invoices were notified.
        """
        now = now or datetime.now()
        today = now.date()
        day_start = datetime.combine(today, time.min)

        notified_today = select(notifications.c.related_id).where(
            notifications.c.type == DEBT,
            notifications.c.related_type == "invoice",
            notifications.c.related_id.is_not(None),
            notifications.c.created_at >= bindparam("day_start"),
            notifications.c.created_at < bindparam("day_end"),
        )
        stmt = (
            select(
                invoices.c.id,
                invoices.c.invoice_number,
                invoices.c.due_date,
                invoices.c.created_by,
                customers.c.name.label("customer_name"),
            )
            .select_from(invoices.join(customers, invoices.c.customer_id == customers.c.id))
            .where(
                invoices.c.due_date < bindparam("today"),
                invoices.c.status != InvoiceStatus.paid.value,
                invoices.c.id.not_in(notified_today),
            )
            .order_by(invoices.c.due_date, invoices.c.id)
        )

        self.db.query(stmt)
        self.db.bind("today", today)
        self.db.bind("day_start", day_start)
        self.db.bind("day_end", day_start + timedelta(days=1))
        overdue = self.db.result_set()

        with self.db.transaction():
            for invoice in overdue:
                days_overdue = (today - invoice["due_date"]).days
                self.create_notification(
                    invoice["created_by"],
                    f"Overdue invoice: {invoice['customer_name']}",
                    f"Invoice {invoice['invoice_number']} is {days_overdue} day(s) overdue",
                    DEBT,
                    related_id=invoice["id"],
                    related_type="invoice",
                    created_at=now,
                )

        if overdue:
            logger.info("Raised %s overdue invoice notification(s)", len(overdue))
        return len(overdue)
