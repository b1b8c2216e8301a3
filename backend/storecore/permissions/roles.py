# Overview: Default role -> permission mapping.

from ..actor import ROLE_CASHIER, ROLE_MANAGER
from .definitions import PERMISSION_DEFINITIONS


DEFAULT_ROLE_PERMISSIONS = {
    # Manager: full access
    ROLE_MANAGER: [perm[0] for perm in PERMISSION_DEFINITIONS],
    # Cashier: point of sale and own records only
    ROLE_CASHIER: [
        "CREATE_SALE",
        "VIEW_OWN_SALES",
        "VIEW_OWN_INVOICES",
        "CREATE_INVOICE",
    ],
}
