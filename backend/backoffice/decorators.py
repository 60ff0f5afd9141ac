# Overview: Request authentication and role decorators for API routes.

from functools import wraps

from flask import g, jsonify, request

from .services import session_service


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Resolve the bearer token to an active user.

    Sets g.current_user and g.session_token; 401 when the header is missing
    or the session is unknown, expired or revoked.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({"error": "Autenticación requerida"}), 401

        user = session_service.validate_session(token)
        if not user:
            return jsonify({"error": "Sesión inválida o expirada"}), 401

        g.current_user = user
        g.session_token = token
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """Must be stacked under @require_auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = getattr(g, "current_user", None)
            if user is None:
                return jsonify({"error": "Autenticación requerida"}), 401
            if user.role not in roles:
                return jsonify({"error": "Permiso denegado"}), 403
            return f(*args, **kwargs)

        return decorated_function
    return decorator


def current_reseller_id() -> int | None:
    """
    Scope for list queries: None for admins (everything), else the caller's
    reseller id. A reseller account without a reseller row matches nothing.
    """
    user = g.current_user
    if user.is_admin:
        return None
    return user.reseller.id if user.reseller else -1
