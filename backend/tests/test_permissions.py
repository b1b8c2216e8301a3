"""
Role/permission matrix.

Managers hold every permission; cashiers only reach the point-of-sale
actions and their own records.
"""

import pytest

from storecore.decorators import require_any_permission, require_permission
from storecore.permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    PermissionCategory,
    get_all_permission_codes,
    get_permission_definition,
    role_has_permission,
    validate_permission_code,
)


def test_permission_codes_are_unique():
    codes = get_all_permission_codes()
    assert len(codes) == len(set(codes))


def test_role_maps_only_reference_known_codes():
    for codes in DEFAULT_ROLE_PERMISSIONS.values():
        for code in codes:
            assert validate_permission_code(code), code


def test_manager_has_everything():
    for code in get_all_permission_codes():
        assert role_has_permission("manager", code)


@pytest.mark.parametrize("code", ["CREATE_SALE", "VIEW_OWN_SALES", "VIEW_OWN_INVOICES", "CREATE_INVOICE"])
def test_cashier_point_of_sale_permissions(code):
    assert role_has_permission("cashier", code)


@pytest.mark.parametrize("code", [
    "VIEW_ALL_SALES",
    "CANCEL_SALE",
    "RETURN_SALE",
    "VIEW_ALL_INVOICES",
    "UPDATE_INVOICE_STATUS",
    "ADD_INVENTORY",
    "VIEW_INVENTORY_HISTORY",
    "VIEW_FINANCE",
    "EXPORT_FINANCE",
])
def test_cashier_denied_manager_permissions(code):
    assert not role_has_permission("cashier", code)


def test_unknown_role_has_nothing():
    assert not role_has_permission("owner", "CREATE_SALE")


def test_definition_lookup():
    definition = get_permission_definition("CANCEL_SALE")
    assert definition["category"] == PermissionCategory.SALES
    assert definition["name"] == "Cancel Sale"
    assert get_permission_definition("NOPE") is None


def test_decorators_reject_unknown_codes():
    with pytest.raises(ValueError):
        require_permission("CANCEL_EVERYTHING")
    with pytest.raises(ValueError):
        require_any_permission("VIEW_OWN_SALES", "VIEW_EVERYTHING")
