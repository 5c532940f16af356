import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import bindparam, insert, select, update

from bizledger.core.database import Database
from bizledger.core.errors import NotFound
from bizledger.core.invoice_numbers import generate_invoice_number
from bizledger.core.serialization_helpers import to_money
from bizledger.core.session import Principal
from bizledger.models import Customer, Invoice, InvoiceStatus, Payment, User
from bizledger.schemas import InvoiceCreate, PaymentCreate
from bizledger.services.notification_service import PAYMENT, NotificationService


logger = logging.getLogger(__name__)

customers = Customer.__table__
invoices = Invoice.__table__
payments = Payment.__table__
users = User.__table__


def derive_status(amount: Decimal, paid_amount: Decimal) -> InvoiceStatus:
    """
    unpaid -> partial -> paid, driven only by the cumulative paid amount.
    Over-payment still counts as paid.
    """
    if paid_amount >= amount:
        return InvoiceStatus.paid
    if paid_amount > 0:
        return InvoiceStatus.partial
    return InvoiceStatus.unpaid


class InvoiceService:
    def __init__(self, db: Database, notifications: Optional[NotificationService] = None):
        self.db = db
        self.notifications = notifications or NotificationService(db)

    def _invoice_number_taken(self, number: str) -> bool:
        self.db.query(select(invoices.c.id).where(invoices.c.invoice_number == bindparam("number")))
        self.db.bind("number", number)
        return self.db.single() is not None

    def _require_customer(self, customer_id: int) -> None:
        self.db.query(select(customers.c.id).where(customers.c.id == bindparam("customer_id")))
        self.db.bind("customer_id", customer_id)
        if self.db.single() is None:
            raise NotFound("Customer not found")

    def create_invoice(self, data: InvoiceCreate, principal: Principal) -> int:
        """
        Issue an invoice and add its amount to the customer's running debt.
        Both writes commit together.
        """
        amount = to_money(data.amount)

        with self.db.transaction():
            self._require_customer(data.customer_id)
            invoice_number = generate_invoice_number(data.issued_date, is_taken=self._invoice_number_taken)

            self.db.query(insert(invoices))
            self.db.bind("customer_id", data.customer_id)
            self.db.bind("invoice_number", invoice_number)
            self.db.bind("amount", amount)
            self.db.bind("paid_amount", Decimal("0.00"))
            self.db.bind("issued_date", data.issued_date)
            self.db.bind("due_date", data.due_date)
            self.db.bind("status", InvoiceStatus.unpaid.value)
            self.db.bind("created_by", principal.user_id)
            self.db.bind("created_at", datetime.now())
            self.db.execute()
            invoice_id = self.db.last_insert_id()

            self.db.query(
                update(customers)
                .where(customers.c.id == bindparam("customer_id"))
                .values(has_debt=True, debt_amount=customers.c.debt_amount + bindparam("amount"))
            )
            self.db.bind("customer_id", data.customer_id)
            self.db.bind("amount", amount)
            self.db.execute()

        logger.info("Invoice %s issued for customer %s: %s", invoice_number, data.customer_id, amount)
        return invoice_id

    def record_payment(self, data: PaymentCreate, principal: Principal) -> dict:
        """
        Append a payment and recompute the invoice's paid amount and status.
        Returns the payment id with the invoice's new state. Settling the
        invoice notifies the user who issued it.
        """
        amount = to_money(data.amount)

        with self.db.transaction():
            # FOR UPDATE serializes concurrent payments on the same invoice (no-op on SQLite)
            self.db.query(
                select(
                    invoices.c.id,
                    invoices.c.invoice_number,
                    invoices.c.amount,
                    invoices.c.paid_amount,
                    invoices.c.status,
                    invoices.c.created_by,
                )
                .where(invoices.c.id == bindparam("invoice_id"))
                .with_for_update()
            )
            self.db.bind("invoice_id", data.invoice_id)
            invoice = self.db.single()
            if invoice is None:
                raise NotFound("Invoice not found")

            self.db.query(insert(payments))
            self.db.bind("invoice_id", data.invoice_id)
            self.db.bind("amount", amount)
            self.db.bind("payment_date", data.payment_date)
            self.db.bind("payment_method", data.payment_method)
            self.db.bind("reference", data.reference)
            self.db.bind("notes", data.notes)
            self.db.bind("recorded_by", principal.user_id)
            self.db.bind("created_at", datetime.now())
            self.db.execute()
            payment_id = self.db.last_insert_id()

            paid_amount = to_money(invoice["paid_amount"]) + amount
            status = derive_status(to_money(invoice["amount"]), paid_amount)

            self.db.query(update(invoices).where(invoices.c.id == bindparam("invoice_id")))
            self.db.bind("invoice_id", data.invoice_id)
            self.db.bind("paid_amount", paid_amount)
            self.db.bind("status", status.value)
            self.db.execute()

            if status is InvoiceStatus.paid and invoice["status"] != InvoiceStatus.paid.value:
                self.notifications.create_notification(
                    invoice["created_by"],
                    "Invoice paid",
                    f"Invoice {invoice['invoice_number']} is fully paid ({paid_amount})",
                    PAYMENT,
                    related_id=data.invoice_id,
                    related_type="invoice",
                )

        logger.info(
            "Payment %s of %s recorded on invoice %s by %s (now %s)",
            payment_id, amount, data.invoice_id, principal.username, status.value,
        )
        return {
            "payment_id": payment_id,
            "invoice_id": data.invoice_id,
            "paid_amount": paid_amount,
            "status": status.value,
        }

    def _select_with_customer(self):
        return select(invoices, customers.c.name.label("customer_name")).select_from(
            invoices.join(customers, invoices.c.customer_id == customers.c.id)
        )

    def get_invoice(self, invoice_id: int) -> dict:
        self.db.query(self._select_with_customer().where(invoices.c.id == bindparam("invoice_id")))
        self.db.bind("invoice_id", invoice_id)
        invoice = self.db.single()
        if invoice is None:
            raise NotFound("Invoice not found")
        return invoice

    def get_customer_invoices(self, customer_id: int) -> list[dict]:
        self.db.query(
            select(invoices)
            .where(invoices.c.customer_id == bindparam("customer_id"))
            .order_by(invoices.c.due_date.desc(), invoices.c.id.desc())
        )
        self.db.bind("customer_id", customer_id)
        return self.db.result_set()

    def get_overdue_invoices(self, today: Optional[date] = None) -> list[dict]:
        self.db.query(
            self._select_with_customer()
            .where(
                invoices.c.due_date < bindparam("today"),
                invoices.c.status != InvoiceStatus.paid.value,
            )
            .order_by(invoices.c.due_date.asc(), invoices.c.id)
        )
        self.db.bind("today", today or date.today())
        return self.db.result_set()

    def get_invoice_payments(self, invoice_id: int) -> list[dict]:
        self.db.query(
            select(payments, users.c.username.label("recorded_by_name"))
            .select_from(payments.join(users, payments.c.recorded_by == users.c.id))
            .where(payments.c.invoice_id == bindparam("invoice_id"))
            .order_by(payments.c.payment_date.desc(), payments.c.id.desc())
        )
        self.db.bind("invoice_id", invoice_id)
        return self.db.result_set()
