from typing import List

from fastapi import APIRouter, Depends

from bizledger.core.database import Database
from bizledger.core.deps import get_database, require_employee
from bizledger.core.session import Principal
from bizledger.schemas import MessageResponse, NotificationOut, OverdueCheckResult
from bizledger.services.notification_service import NotificationService


router = APIRouter()


@router.get("/", response_model=List[NotificationOut])
def my_notifications(
    unread_only: bool = False,
    db: Database = Depends(get_database),
    principal: Principal = Depends(require_employee),
):
    """The caller's ten most recent notifications"""
    return NotificationService(db).get_user_notifications(principal.user_id, unread_only=unread_only)


@router.post("/check-overdue", response_model=OverdueCheckResult, dependencies=[Depends(require_employee)])
def check_overdue(db: Database = Depends(get_database)):
    return OverdueCheckResult(processed=NotificationService(db).check_overdue_invoices())


@router.post("/{notification_id}/read", response_model=MessageResponse)
def mark_read(
    notification_id: int,
    db: Database = Depends(get_database),
    principal: Principal = Depends(require_employee),
):
    NotificationService(db).mark_as_read(notification_id, user_id=principal.user_id)
    return MessageResponse(message="Notification marked as read")
