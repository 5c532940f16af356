from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from bizledger.core.database import Database
from bizledger.core.deps import get_database, require_manager
from bizledger.schemas import CustomerDebtOut, InvoiceActivityOut, PaymentOut
from bizledger.services.customer_service import CustomerService
from bizledger.services.report_service import ReportService


router = APIRouter(dependencies=[Depends(require_manager)])


@router.get("/debts", response_model=List[CustomerDebtOut])
def debt_report(db: Database = Depends(get_database)):
    """Outstanding balance per customer, derived from unpaid invoices"""
    return ReportService(db).get_debt_report()


@router.get("/payments", response_model=List[PaymentOut])
def payment_report(
    start_date: date = Query(..., description="Inclusive, YYYY-MM-DD"),
    end_date: date = Query(..., description="Inclusive, YYYY-MM-DD"),
    db: Database = Depends(get_database),
):
    if end_date < start_date:
        raise HTTPException(status_code=400, detail="end_date must not be before start_date")
    return ReportService(db).get_payment_report(start_date, end_date)


@router.get("/customers/{customer_id}/activity", response_model=List[InvoiceActivityOut])
def customer_activity(customer_id: int, db: Database = Depends(get_database)):
    CustomerService(db).get_customer_by_id(customer_id)
    return ReportService(db).get_customer_activity(customer_id)
