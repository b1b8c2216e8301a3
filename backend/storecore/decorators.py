# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .actor import Actor, ROLES
from .permissions import get_permission_definition, role_has_permission, validate_permission_code


def _is_authenticated() -> bool:
    return hasattr(g, "actor")


def _check_codes(codes) -> None:
    unknown = [code for code in codes if not validate_permission_code(code)]
    if unknown:
        raise ValueError(f"Unknown permission code(s): {', '.join(unknown)}")


def _denied_message(code: str) -> str:
    definition = get_permission_definition(code)
    return f"Permission denied: {definition['name']}"


def require_actor(f):
    """
    Establish the actor context forwarded by the auth gateway.

    Sets g.actor from the X-Actor-Id / X-Actor-Role headers. Credentials are
    validated upstream; this only rejects missing or malformed identities.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw_id = request.headers.get("X-Actor-Id", "").strip()
        role = request.headers.get("X-Actor-Role", "").strip().lower()

        if not raw_id or not role:
            return jsonify({"error": "Authentication required"}), 401
        if not raw_id.isdigit() or role not in ROLES:
            return jsonify({"error": "Invalid actor context"}), 401

        g.actor = Actor(actor_id=int(raw_id), role=role)
        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """Require a permission granted to the actor's role."""
    _check_codes([permission_code])

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_actor was called first
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if not role_has_permission(g.actor.role, permission_code):
                current_app.logger.warning(
                    "Permission %s denied for actor %s (%s) on %s",
                    permission_code, g.actor.actor_id, g.actor.role, request.path,
                )
                return jsonify({
                    "error": _denied_message(permission_code),
                    "code": "FORBIDDEN",
                    "required_permission": permission_code,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_any_permission(*permission_codes):
    """Require any of the specified permissions."""
    _check_codes(permission_codes)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if not any(role_has_permission(g.actor.role, code) for code in permission_codes):
                return jsonify({
                    "error": "Permission denied",
                    "code": "FORBIDDEN",
                    "required_permissions": list(permission_codes),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
