# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for grouping and display."""
    SALES = "SALES"
    INVOICES = "INVOICES"
    INVENTORY = "INVENTORY"
    FINANCE = "FINANCE"
