from .base import Base
from .user import User
from .customer import Customer
from .invoice import Invoice, InvoiceStatus
from .payment import Payment
from .notification import Notification

__all__ = ["Base", "User", "Customer", "Invoice", "InvoiceStatus", "Payment", "Notification"]
