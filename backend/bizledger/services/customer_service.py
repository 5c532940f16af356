from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy import bindparam, case, delete, func, insert, or_, select, update

from bizledger.core.database import Database
from bizledger.core.errors import ConstraintViolation, NotFound
from bizledger.core.serialization_helpers import to_money
from bizledger.core.session import Principal
from bizledger.models import Customer, Invoice, InvoiceStatus, User
from bizledger.schemas import CustomerCreate, CustomerFilters, CustomerUpdate
from bizledger.services.notification_service import DEBT, NotificationService


logger = logging.getLogger(__name__)

customers = Customer.__table__
invoices = Invoice.__table__
users = User.__table__


def _normalize_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None


def _customer_columns(data: CustomerCreate) -> dict:
    name = _normalize_text(data.name)
    customer_type = _normalize_text(data.type)
    if not name:
        raise ConstraintViolation("Customer name is required")
    if not customer_type:
        raise ConstraintViolation("Customer type is required")
    return {
        "name": name,
        "phone": _normalize_text(data.phone),
        "email": _normalize_text(data.email),
        "address": _normalize_text(data.address),
        "type": customer_type,
        "has_debt": data.has_debt,
        "debt_amount": to_money(data.debt_amount),
    }


class CustomerService:
    def __init__(self, db: Database, notifications: Optional[NotificationService] = None):
        self.db = db
        self.notifications = notifications or NotificationService(db)

    def add_customer(self, data: CustomerCreate, principal: Principal) -> int:
        """
        Insert a customer. A customer created with debt also raises a ``debt``
        notification for the creating user, in the same transaction.
        """
        columns = _customer_columns(data)

        with self.db.transaction():
            self.db.query(insert(customers))
            for name, value in columns.items():
                self.db.bind(name, value)
            self.db.bind("created_by", principal.user_id)
            self.db.bind("created_at", datetime.now())
            self.db.execute()
            customer_id = self.db.last_insert_id()

            if columns["has_debt"]:
                self.notifications.create_notification(
                    principal.user_id,
                    "New customer with debt",
                    f"Customer {columns['name']} was added with an outstanding debt of {columns['debt_amount']}",
                    DEBT,
                    related_id=customer_id,
                    related_type="customer",
                )

        logger.info("Customer %s created by %s", customer_id, principal.username)
        return customer_id

    def _select_with_creator(self):
        return select(customers, users.c.username.label("created_by_name")).select_from(
            customers.join(users, customers.c.created_by == users.c.id)
        )

    def get_customers(self, filters: Optional[CustomerFilters] = None) -> list[dict]:
        filters = filters or CustomerFilters()
        customer_type = _normalize_text(filters.type)
        search = _normalize_text(filters.search)

        stmt = self._select_with_creator()
        if filters.debt:
            stmt = stmt.where(customers.c.has_debt.is_(filters.debt == "with"))
        if customer_type:
            stmt = stmt.where(customers.c.type == bindparam("type"))
        if search:
            pattern = bindparam("search")
            stmt = stmt.where(
                or_(
                    customers.c.name.ilike(pattern),
                    customers.c.phone.ilike(pattern),
                    customers.c.email.ilike(pattern),
                )
            )
        stmt = stmt.order_by(customers.c.name, customers.c.id)

        self.db.query(stmt)
        if customer_type:
            self.db.bind("type", customer_type)
        if search:
            self.db.bind("search", f"%{search}%")
        return self.db.result_set()

    def get_customer_by_id(self, customer_id: int) -> dict:
        self.db.query(self._select_with_creator().where(customers.c.id == bindparam("customer_id")))
        self.db.bind("customer_id", customer_id)
        customer = self.db.single()
        if customer is None:
            raise NotFound("Customer not found")
        return customer

    def update_customer(self, customer_id: int, data: CustomerUpdate) -> None:
        """Full-row update."""
        columns = _customer_columns(data)

        self.db.query(update(customers).where(customers.c.id == bindparam("customer_id")))
        self.db.bind("customer_id", customer_id)
        for name, value in columns.items():
            self.db.bind(name, value)
        self.db.bind("updated_at", datetime.now())
        self.db.execute()
        if self.db.row_count() == 0:
            raise NotFound("Customer not found")

    def delete_customer(self, customer_id: int) -> None:
        """Hard delete, refused while the customer still has invoices."""
        with self.db.transaction():
            self.db.query(select(func.count()).select_from(invoices).where(invoices.c.customer_id == bindparam("customer_id")))
            self.db.bind("customer_id", customer_id)
            if self.db.scalar():
                raise ConstraintViolation("Customer has invoices and cannot be deleted")

            self.db.query(delete(customers).where(customers.c.id == bindparam("customer_id")))
            self.db.bind("customer_id", customer_id)
            self.db.execute()
            if self.db.row_count() == 0:
                raise NotFound("Customer not found")

        logger.info("Customer %s deleted", customer_id)

    def get_debt_summary(self) -> dict:
        self.db.query(
            select(
                func.count().label("total_customers"),
                func.coalesce(func.sum(case((customers.c.has_debt.is_(True), 1), else_=0)), 0).label("customers_with_debt"),
                func.coalesce(func.sum(customers.c.debt_amount), 0).label("total_debt"),
            ).select_from(customers)
        )
        row = self.db.single()
        return {
            "total_customers": int(row["total_customers"] or 0),
            "customers_with_debt": int(row["customers_with_debt"] or 0),
            "total_debt": to_money(row["total_debt"]),
        }

    def get_overdue_debts(self, today: Optional[date] = None) -> list[dict]:
        """Customers with at least one invoice past due and not paid, one row each."""
        has_overdue = (
            select(invoices.c.id)
            .where(
                invoices.c.customer_id == customers.c.id,
                invoices.c.due_date < bindparam("today"),
                invoices.c.status != InvoiceStatus.paid.value,
            )
            .exists()
        )
        self.db.query(select(customers).where(has_overdue).order_by(customers.c.name, customers.c.id))
        self.db.bind("today", today or date.today())
        return self.db.result_set()
