from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from bizledger.core.errors import NotFound
from bizledger.core.roles import Role
from bizledger.schemas import PaymentCreate
from bizledger.services.invoice_service import InvoiceService
from bizledger.services.notification_service import RECENT_LIMIT, NotificationService

from conftest import login_principal, register_user


MORNING = datetime(2025, 7, 10, 9, 0)


def test_recent_notifications_newest_first_and_limited(db, employee):
    service = NotificationService(db)
    start = datetime(2025, 7, 1, 8, 0)
    for i in range(RECENT_LIMIT + 2):
        service.create_notification(employee.user_id, f"n{i}", "msg", "info", created_at=start + timedelta(minutes=i))

    notes = service.get_user_notifications(employee.user_id)

    assert len(notes) == RECENT_LIMIT
    assert notes[0]["title"] == f"n{RECENT_LIMIT + 1}"
    assert notes[-1]["title"] == "n2"


def test_unread_only_and_mark_as_read(db, employee):
    service = NotificationService(db)
    first = service.create_notification(employee.user_id, "a", "msg", "info")
    service.create_notification(employee.user_id, "b", "msg", "info")

    service.mark_as_read(first)
    service.mark_as_read(first)

    unread = service.get_user_notifications(employee.user_id, unread_only=True)
    assert [n["title"] for n in unread] == ["b"]
    assert len(service.get_user_notifications(employee.user_id)) == 2


def test_mark_as_read_is_scoped_to_owner(db, employee, manager):
    service = NotificationService(db)
    note = service.create_notification(employee.user_id, "a", "msg", "info")

    with pytest.raises(NotFound):
        service.mark_as_read(note, user_id=manager.user_id)
    with pytest.raises(NotFound):
        service.mark_as_read(404)

    service.mark_as_read(note, user_id=employee.user_id)
    assert service.get_user_notifications(employee.user_id, unread_only=True) == []


def test_overdue_check_notifies_invoice_issuer_once_per_day(db, employee, make_customer, make_invoice):
    register_user(db, "night-clerk", Role.employee)
    other = login_principal(db, "night-clerk")
    invoice_id = make_invoice(make_customer("Ali"), due=date(2025, 7, 1))
    service = NotificationService(db)

    assert service.check_overdue_invoices(now=MORNING) == 1
    assert service.check_overdue_invoices(now=MORNING + timedelta(hours=8)) == 0

    notes = service.get_user_notifications(employee.user_id)
    assert len(notes) == 1
    assert notes[0]["related_id"] == invoice_id
    assert notes[0]["related_type"] == "invoice"
    assert notes[0]["title"] == "Overdue invoice: Ali"
    assert "9 day(s) overdue" in notes[0]["message"]
    assert service.get_user_notifications(other.user_id) == []

    assert service.check_overdue_invoices(now=MORNING + timedelta(days=1)) == 1
    assert len(service.get_user_notifications(employee.user_id)) == 2


def test_overdue_check_skips_paid_and_current_invoices(db, employee, make_customer, make_invoice):
    ali = make_customer("Ali")
    paid = make_invoice(ali, amount="50", due=date(2025, 7, 1))
    make_invoice(ali, due=date(2025, 7, 10))
    InvoiceService(db).record_payment(PaymentCreate(invoice_id=paid, amount=Decimal("50")), employee)

    assert NotificationService(db).check_overdue_invoices(now=MORNING) == 0


def test_customer_debt_notification_does_not_suppress_invoice_alert(db, employee, make_customer, make_invoice):
    # Customer and invoice ids coincide here
    customer_id = make_customer("Ali", has_debt=True, debt_amount=Decimal("10"))
    invoice_id = make_invoice(customer_id, due=date(2025, 7, 1))
    assert customer_id == invoice_id
    service = NotificationService(db)
    service.create_notification(employee.user_id, "debt", "msg", "debt", related_id=customer_id, related_type="customer", created_at=MORNING)

    assert service.check_overdue_invoices(now=MORNING) == 1
