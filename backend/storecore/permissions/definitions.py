# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- SALES --

SALES_PERMISSIONS = [
    (
        "CREATE_SALE",
        "Create Sale",
        "Register a sale and decrement stock",
        PermissionCategory.SALES,
    ),
    (
        "VIEW_OWN_SALES",
        "View Own Sales",
        "List sales registered by the current cashier",
        PermissionCategory.SALES,
    ),
    (
        "VIEW_ALL_SALES",
        "View All Sales",
        "List and inspect every sale",
        PermissionCategory.SALES,
    ),
    (
        "CANCEL_SALE",
        "Cancel Sale",
        "Cancel an active sale and restore its stock",
        PermissionCategory.SALES,
    ),
    (
        "RETURN_SALE",
        "Return Sale",
        "Mark an active sale as returned and restore its stock",
        PermissionCategory.SALES,
    ),
]

# -- INVOICES --

INVOICE_PERMISSIONS = [
    (
        "VIEW_OWN_INVOICES",
        "View Own Invoices",
        "Read invoices issued by the current cashier",
        PermissionCategory.INVOICES,
    ),
    (
        "VIEW_ALL_INVOICES",
        "View All Invoices",
        "Read and search every invoice",
        PermissionCategory.INVOICES,
    ),
    (
        "CREATE_INVOICE",
        "Create Invoice",
        "Generate an invoice document for an existing sale",
        PermissionCategory.INVOICES,
    ),
    (
        "UPDATE_INVOICE_STATUS",
        "Update Invoice Status",
        "Cancel or return an invoice together with its sale",
        PermissionCategory.INVOICES,
    ),
]

# -- INVENTORY --

INVENTORY_PERMISSIONS = [
    (
        "ADD_INVENTORY",
        "Add Inventory",
        "Record a stock supply entry",
        PermissionCategory.INVENTORY,
    ),
    (
        "VIEW_INVENTORY_HISTORY",
        "View Inventory History",
        "Browse stock supply entries",
        PermissionCategory.INVENTORY,
    ),
]

# -- FINANCE --

FINANCE_PERMISSIONS = [
    (
        "VIEW_FINANCE",
        "View Finance",
        "Read revenue, tax, cost and profit reports",
        PermissionCategory.FINANCE,
    ),
    (
        "EXPORT_FINANCE",
        "Export Finance",
        "Render finance reports through the document renderer",
        PermissionCategory.FINANCE,
    ),
]


PERMISSION_DEFINITIONS = (
    SALES_PERMISSIONS
    + INVOICE_PERMISSIONS
    + INVENTORY_PERMISSIONS
    + FINANCE_PERMISSIONS
)
