from datetime import date

from sqlalchemy import bindparam, func, select

from bizledger.core.database import Database
from bizledger.core.serialization_helpers import to_money
from bizledger.models import Customer, Invoice, InvoiceStatus, Payment, User


customers = Customer.__table__
invoices = Invoice.__table__
payments = Payment.__table__
users = User.__table__


class ReportService:
    """Read-only aggregates, always computed fresh from the invoice and payment tables."""

    def __init__(self, db: Database):
        self.db = db

    def get_debt_report(self) -> list[dict]:
        """Outstanding balance per customer over non-paid invoices, largest first."""
        total_debt = func.sum(invoices.c.amount - invoices.c.paid_amount)
        stmt = (
            select(customers, total_debt.label("total_debt"))
            .select_from(customers.join(invoices, invoices.c.customer_id == customers.c.id))
            .where(invoices.c.status != InvoiceStatus.paid.value)
            .group_by(*customers.c)
            .having(total_debt > 0)
            .order_by(total_debt.desc(), customers.c.id)
        )
        self.db.query(stmt)
        rows = self.db.result_set()
        for row in rows:
            row["total_debt"] = to_money(row["total_debt"])
        return rows

    def get_payment_report(self, start_date: date, end_date: date) -> list[dict]:
        """Payments with start_date <= payment_date <= end_date, newest first."""
        stmt = (
            select(
                payments,
                customers.c.name.label("customer_name"),
                users.c.username.label("recorded_by_name"),
            )
            .select_from(
                payments.join(invoices, payments.c.invoice_id == invoices.c.id)
                .join(customers, invoices.c.customer_id == customers.c.id)
                .join(users, payments.c.recorded_by == users.c.id)
            )
            .where(payments.c.payment_date.between(bindparam("start_date"), bindparam("end_date")))
            .order_by(payments.c.payment_date.desc(), payments.c.id.desc())
        )
        self.db.query(stmt)
        self.db.bind("start_date", start_date)
        self.db.bind("end_date", end_date)
        return self.db.result_set()

    def get_customer_activity(self, customer_id: int) -> list[dict]:
        """A customer's invoices with total paid and remaining balance per invoice."""
        paid_so_far = (
            select(func.coalesce(func.sum(payments.c.amount), 0))
            .where(payments.c.invoice_id == invoices.c.id)
            .correlate(invoices)
            .scalar_subquery()
        )
        stmt = (
            select(
                invoices,
                paid_so_far.label("total_paid"),
                (invoices.c.amount - paid_so_far).label("remaining"),
            )
            .where(invoices.c.customer_id == bindparam("customer_id"))
            .order_by(invoices.c.issued_date.desc(), invoices.c.id.desc())
        )
        self.db.query(stmt)
        self.db.bind("customer_id", customer_id)
        rows = self.db.result_set()
        for row in rows:
            row["total_paid"] = to_money(row["total_paid"])
            row["remaining"] = to_money(row["remaining"])
        return rows
