from .auth import User, SessionToken
from .catalog import Category, Supplier, Product
from .customers import Customer
from .inventory import StockMovement
from .sales import Sale, SaleItem, InvoiceSequence

__all__ = [
    'User', 'SessionToken',
    'Category', 'Supplier', 'Product',
    'Customer',
    'StockMovement',
    'Sale', 'SaleItem', 'InvoiceSequence',
]
