from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query

from bizledger.core.database import Database
from bizledger.core.deps import get_database, require_employee, require_manager
from bizledger.core.session import Principal
from bizledger.schemas import (
    CreatedResponse,
    CustomerCreate,
    CustomerFilters,
    CustomerOut,
    CustomerUpdate,
    DebtSummary,
    MessageResponse,
)
from bizledger.services.customer_service import CustomerService


router = APIRouter()


@router.get("/", response_model=List[CustomerOut], dependencies=[Depends(require_employee)])
def list_customers(
    debt: Optional[Literal["with", "without"]] = Query(None, description="with | without"),
    type: Optional[str] = Query(None, description="Exact customer type"),
    search: Optional[str] = Query(None, description="Substring of name, phone or email"),
    db: Database = Depends(get_database),
):
    filters = CustomerFilters(debt=debt, type=type, search=search)
    return CustomerService(db).get_customers(filters)


@router.post("/", response_model=CreatedResponse, status_code=201)
def create_customer(
    data: CustomerCreate,
    db: Database = Depends(get_database),
    principal: Principal = Depends(require_employee),
):
    customer_id = CustomerService(db).add_customer(data, principal)
    return CreatedResponse(id=customer_id)


@router.get("/summary", response_model=DebtSummary, dependencies=[Depends(require_employee)])
def debt_summary(db: Database = Depends(get_database)):
    return CustomerService(db).get_debt_summary()


@router.get("/overdue", response_model=List[CustomerOut], dependencies=[Depends(require_employee)])
def overdue_debts(db: Database = Depends(get_database)):
    """Customers with at least one overdue, unpaid invoice"""
    return CustomerService(db).get_overdue_debts()


@router.get("/{customer_id}", response_model=CustomerOut, dependencies=[Depends(require_employee)])
def get_customer(customer_id: int, db: Database = Depends(get_database)):
    return CustomerService(db).get_customer_by_id(customer_id)


@router.put("/{customer_id}", response_model=CustomerOut, dependencies=[Depends(require_employee)])
def update_customer(customer_id: int, data: CustomerUpdate, db: Database = Depends(get_database)):
    service = CustomerService(db)
    service.update_customer(customer_id, data)
    return service.get_customer_by_id(customer_id)


@router.delete("/{customer_id}", response_model=MessageResponse, dependencies=[Depends(require_manager)])
def delete_customer(customer_id: int, db: Database = Depends(get_database)):
    CustomerService(db).delete_customer(customer_id)
    return MessageResponse(message="Customer deleted")
