from .catalog import Brand, Category, SubCategory, Supplier, Product
from .auth import User
from .sales import Sale
from .invoices import Invoice, InvoiceItem
from .inventory import InventoryAdjustment

__all__ = [
    'Brand', 'Category', 'SubCategory', 'Supplier', 'Product',
    'User',
    'Sale',
    'Invoice', 'InvoiceItem',
    'InventoryAdjustment',
]
