from .auth import User, SessionToken
from .inventory import Category, Product
from .invoices import Invoice, InvoiceItem
from .notifications import Notification

__all__ = [
    'User', 'SessionToken',
    'Category', 'Product',
    'Invoice', 'InvoiceItem',
    'Notification',
]
