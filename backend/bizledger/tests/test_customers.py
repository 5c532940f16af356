from datetime import date
from decimal import Decimal

import pytest

from bizledger.core.errors import ConstraintViolation, NotFound
from bizledger.schemas import CustomerFilters, CustomerUpdate, PaymentCreate
from bizledger.services.customer_service import CustomerService
from bizledger.services.invoice_service import InvoiceService
from bizledger.services.notification_service import NotificationService


def test_customer_with_debt_raises_one_notification(db, employee, make_customer):
    customer_id = make_customer("Ali", has_debt=True, debt_amount=Decimal("120.50"))

    notes = NotificationService(db).get_user_notifications(employee.user_id)
    assert len(notes) == 1
    assert notes[0]["type"] == "debt"
    assert notes[0]["related_id"] == customer_id
    assert notes[0]["related_type"] == "customer"
    assert not notes[0]["is_read"]


def test_customer_without_debt_raises_no_notification(db, employee, make_customer):
    make_customer("Ali")
    assert NotificationService(db).get_user_notifications(employee.user_id) == []


def test_add_customer_trims_fields_and_records_creator(db, employee, make_customer):
    customer_id = make_customer("  Ali  ", phone=" 0551 ", address="")

    customer = CustomerService(db).get_customer_by_id(customer_id)
    assert customer["name"] == "Ali"
    assert customer["phone"] == "0551"
    assert customer["address"] is None
    assert customer["type"] == "individual"
    assert customer["debt_amount"] == Decimal("0")
    assert customer["created_by"] == employee.user_id
    assert customer["created_by_name"] == "employee"


def test_blank_name_is_rejected(db, make_customer):
    with pytest.raises(ConstraintViolation):
        make_customer("   ")
    assert CustomerService(db).get_customers() == []


def test_get_customers_filters_combine(db, make_customer):
    make_customer("Ali", phone="0551", type="company", has_debt=True, debt_amount=Decimal("10"))
    make_customer("Bea", phone="0660", email="bea@example.com")
    make_customer("Cem", phone="0552", has_debt=True, debt_amount=Decimal("5"))
    service = CustomerService(db)

    def names(**filters):
        return [c["name"] for c in service.get_customers(CustomerFilters(**filters))]

    assert names() == ["Ali", "Bea", "Cem"]
    assert names(debt="with") == ["Ali", "Cem"]
    assert names(debt="without") == ["Bea"]
    assert names(type="company") == ["Ali"]
    assert names(search="055") == ["Ali", "Cem"]
    assert names(search="BEA@") == ["Bea"]
    assert names(search="ce") == ["Cem"]
    assert names(debt="with", search="055", type="individual") == ["Cem"]
    assert names(search="zzz") == []


def test_update_customer_replaces_the_row(db, make_customer):
    customer_id = make_customer("Ali", phone="0551")
    service = CustomerService(db)

    service.update_customer(customer_id, CustomerUpdate(name="Ali Veli", type="company"))

    customer = service.get_customer_by_id(customer_id)
    assert customer["name"] == "Ali Veli"
    assert customer["phone"] is None
    assert customer["type"] == "company"
    assert customer["updated_at"] is not None


def test_update_and_get_missing_customer(db):
    service = CustomerService(db)
    with pytest.raises(NotFound):
        service.update_customer(404, CustomerUpdate(name="Ghost"))
    with pytest.raises(NotFound):
        service.get_customer_by_id(404)


def test_delete_customer(db, make_customer):
    customer_id = make_customer("Ali")
    service = CustomerService(db)

    service.delete_customer(customer_id)

    with pytest.raises(NotFound):
        service.get_customer_by_id(customer_id)
    with pytest.raises(NotFound):
        service.delete_customer(customer_id)


def test_delete_customer_with_invoices_is_refused(db, make_customer, make_invoice):
    customer_id = make_customer("Ali")
    make_invoice(customer_id)

    with pytest.raises(ConstraintViolation):
        CustomerService(db).delete_customer(customer_id)
    assert CustomerService(db).get_customer_by_id(customer_id)["name"] == "Ali"


def test_debt_summary(db, make_customer, make_invoice):
    service = CustomerService(db)
    assert service.get_debt_summary() == {
        "total_customers": 0,
        "customers_with_debt": 0,
        "total_debt": Decimal("0.00"),
    }

    ali = make_customer("Ali")
    make_customer("Bea", has_debt=True, debt_amount=Decimal("40"))
    make_customer("Cem")
    make_invoice(ali, amount="500")

    assert service.get_debt_summary() == {
        "total_customers": 3,
        "customers_with_debt": 2,
        "total_debt": Decimal("540.00"),
    }


def test_overdue_debts_lists_each_customer_once(db, employee, make_customer, make_invoice):
    ali = make_customer("Ali")
    bea = make_customer("Bea")
    cem = make_customer("Cem")
    make_invoice(ali, due=date(2025, 7, 1))
    make_invoice(ali, due=date(2025, 7, 5))
    paid = make_invoice(bea, amount="100", due=date(2025, 7, 1))
    make_invoice(cem, due=date(2025, 8, 30))
    InvoiceService(db).record_payment(PaymentCreate(invoice_id=paid, amount=Decimal("100")), employee)

    overdue = CustomerService(db).get_overdue_debts(today=date(2025, 7, 10))

    assert [c["name"] for c in overdue] == ["Ali"]
