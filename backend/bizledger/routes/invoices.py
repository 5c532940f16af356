from typing import List

from fastapi import APIRouter, Depends

from bizledger.core.database import Database
from bizledger.core.deps import get_database, require_employee
from bizledger.core.session import Principal
from bizledger.schemas import InvoiceCreate, InvoiceOut, PaymentCreate, PaymentOut, PaymentReceipt
from bizledger.services.customer_service import CustomerService
from bizledger.services.invoice_service import InvoiceService


router = APIRouter()


@router.post("/", response_model=InvoiceOut, status_code=201)
def create_invoice(
    data: InvoiceCreate,
    db: Database = Depends(get_database),
    principal: Principal = Depends(require_employee),
):
    service = InvoiceService(db)
    invoice_id = service.create_invoice(data, principal)
    return service.get_invoice(invoice_id)


@router.get("/overdue", response_model=List[InvoiceOut], dependencies=[Depends(require_employee)])
def overdue_invoices(db: Database = Depends(get_database)):
    return InvoiceService(db).get_overdue_invoices()


@router.post("/payments", response_model=PaymentReceipt, status_code=201)
def record_payment(
    data: PaymentCreate,
    db: Database = Depends(get_database),
    principal: Principal = Depends(require_employee),
):
    return InvoiceService(db).record_payment(data, principal)


@router.get("/customer/{customer_id}", response_model=List[InvoiceOut], dependencies=[Depends(require_employee)])
def customer_invoices(customer_id: int, db: Database = Depends(get_database)):
    CustomerService(db).get_customer_by_id(customer_id)
    return InvoiceService(db).get_customer_invoices(customer_id)


@router.get("/{invoice_id}", response_model=InvoiceOut, dependencies=[Depends(require_employee)])
def get_invoice(invoice_id: int, db: Database = Depends(get_database)):
    return InvoiceService(db).get_invoice(invoice_id)


@router.get("/{invoice_id}/payments", response_model=List[PaymentOut], dependencies=[Depends(require_employee)])
def invoice_payments(invoice_id: int, db: Database = Depends(get_database)):
    """Payment history of one invoice, newest first"""
    service = InvoiceService(db)
    service.get_invoice(invoice_id)
    return service.get_invoice_payments(invoice_id)
