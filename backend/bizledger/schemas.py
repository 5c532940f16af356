from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, model_validator

from bizledger.core.roles import Role


Money = Annotated[Decimal, Field(ge=0, max_digits=12, decimal_places=2)]
PositiveMoney = Annotated[Decimal, Field(gt=0, max_digits=12, decimal_places=2)]

PaymentMethod = Literal["cash", "card", "transfer", "cheque"]


# ---------- Users ----------

class UserCreate(BaseModel):
    username: str = Field(min_length=3, max_length=100)
    password: str = Field(min_length=6)
    full_name: Optional[str] = None
    email: Optional[EmailStr] = None
    role: Role = Role.employee


class LoginRequest(BaseModel):
    username: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    username: str
    role: Role


class UserOut(BaseModel):
    id: int
    username: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    role: Role
    is_active: bool
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserActiveUpdate(BaseModel):
    is_active: bool


# ---------- Customers ----------

class CustomerCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    type: str = Field(default="individual", min_length=1, max_length=50)
    has_debt: bool = False
    debt_amount: Money = Decimal("0")


class CustomerUpdate(CustomerCreate):
    pass


class CustomerFilters(BaseModel):
    debt: Optional[Literal["with", "without"]] = None
    type: Optional[str] = None
    search: Optional[str] = None


class CustomerOut(BaseModel):
    id: int
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    type: str
    has_debt: bool
    debt_amount: Decimal
    created_by: int
    created_by_name: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CustomerDebtOut(CustomerOut):
    total_debt: Decimal


class DebtSummary(BaseModel):
    total_customers: int
    customers_with_debt: int
    total_debt: Decimal


# ---------- Invoices & payments ----------

class InvoiceCreate(BaseModel):
    customer_id: int
    amount: PositiveMoney
    issued_date: date = Field(default_factory=date.today)
    due_date: date

    @model_validator(mode="after")
    def _due_after_issue(self):
        if self.due_date < self.issued_date:
            raise ValueError("due_date cannot be before issued_date")
        return self


class InvoiceOut(BaseModel):
    id: int
    customer_id: int
    customer_name: Optional[str] = None
    invoice_number: str
    amount: Decimal
    paid_amount: Decimal
    issued_date: date
    due_date: date
    status: str
    created_by: int
    created_at: datetime

    class Config:
        from_attributes = True


class InvoiceActivityOut(InvoiceOut):
    total_paid: Decimal
    remaining: Decimal


class PaymentCreate(BaseModel):
    invoice_id: int
    amount: PositiveMoney
    payment_date: date = Field(default_factory=date.today)
    payment_method: PaymentMethod = "cash"
    reference: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = Field(default=None, max_length=500)


class PaymentOut(BaseModel):
    id: int
    invoice_id: int
    amount: Decimal
    payment_date: date
    payment_method: str
    reference: Optional[str] = None
    notes: Optional[str] = None
    recorded_by: int
    recorded_by_name: Optional[str] = None
    customer_name: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PaymentReceipt(BaseModel):
    payment_id: int
    invoice_id: int
    paid_amount: Decimal
    status: str


# ---------- Notifications ----------

class NotificationOut(BaseModel):
    id: int
    user_id: int
    title: str
    message: str
    type: str
    related_id: Optional[int] = None
    related_type: Optional[str] = None
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True


class OverdueCheckResult(BaseModel):
    processed: int


class CreatedResponse(BaseModel):
    id: int


class MessageResponse(BaseModel):
    message: str

