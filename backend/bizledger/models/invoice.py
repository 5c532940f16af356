from datetime import datetime
from enum import Enum
from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint

from bizledger.models.base import Base


class InvoiceStatus(str, Enum):
    unpaid = "unpaid"
    partial = "partial"
    paid = "paid"


class Invoice(Base):
    __tablename__ = "invoices"
    __table_args__ = (
        UniqueConstraint("invoice_number", name="uq_invoices_invoice_number"),
        CheckConstraint("amount >= 0", name="ck_invoices_amount_nonneg"),
        CheckConstraint("paid_amount >= 0", name="ck_invoices_paid_amount_nonneg"),
        CheckConstraint("due_date >= issued_date", name="ck_invoices_due_after_issue"),
    )

    id = Column(Integer, primary_key=True, index=True)
    # RESTRICT: customers with invoices cannot be deleted
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False, index=True)
    invoice_number = Column(String(32), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    paid_amount = Column(Numeric(12, 2), nullable=False, default=0)
    issued_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    status = Column(String(20), nullable=False, default=InvoiceStatus.unpaid.value)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
