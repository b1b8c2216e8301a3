# Overview: Permission lookups used by the route decorators.

from .definitions import PERMISSION_DEFINITIONS
from .roles import DEFAULT_ROLE_PERMISSIONS


def get_all_permission_codes():
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def get_permission_definition(code):
    """Code, display name, description and category for a permission, or None."""
    for perm in PERMISSION_DEFINITIONS:
        if perm[0] == code:
            return {
                "code": perm[0],
                "name": perm[1],
                "description": perm[2],
                "category": perm[3],
            }
    return None


def validate_permission_code(code):
    return code in get_all_permission_codes()


def role_has_permission(role, code):
    """Static role check; unknown roles have no permissions."""
    return code in DEFAULT_ROLE_PERMISSIONS.get(role, ())
