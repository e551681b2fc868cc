# Overview: Request identity decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .models import ROLE_ADMIN, ROLE_MANAGER
from .responses import failure
from .services import session_service


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1]


def _set_identity(user) -> None:
    g.current_user = user
    g.customer = user.customer if user is not None else None


def require_auth(f):
    """
    Require a valid bearer token.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.customer: The user's Customer record (None for back-office users)

    Returns 401 if the header is missing, the token is unknown, expired or
    revoked, or the user account is deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        user = session_service.validate_session(token)
        if not user:
            return jsonify({"error": "Invalid or expired token"}), 401

        _set_identity(user)
        return f(*args, **kwargs)

    return decorated_function


def optional_auth(f):
    """
    Identify the caller when a token is sent; guests pass through with
    g.current_user = None. An invalid token is still rejected.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            _set_identity(None)
            return f(*args, **kwargs)

        user = session_service.validate_session(token)
        if not user:
            return jsonify({"error": "Invalid or expired token"}), 401

        _set_identity(user)
        return f(*args, **kwargs)

    return decorated_function


def require_customer(f):
    """Require an authenticated user linked to a customer record (apply after @require_auth)."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if getattr(g, "current_user", None) is None:
            return jsonify({"error": "Authentication required"}), 401
        if g.customer is None:
            return jsonify({"error": "Customer account required"}), 403
        return f(*args, **kwargs)

    return decorated_function


def require_customer_record(fallback: str):
    """
    Like require_customer, but a missing customer is reported the way form
    errors are: 422 for JSON clients, a flashed error and redirect otherwise.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if getattr(g, "current_user", None) is None:
                return jsonify({"error": "Authentication required"}), 401
            if g.customer is None:
                return failure({"error": "Customer record not found."}, fallback=fallback)
            return f(*args, **kwargs)

        return decorated_function

    return decorator


def require_role(*roles):
    """Require one of roles (apply after @require_auth)."""
    allowed = set(roles or (ROLE_ADMIN, ROLE_MANAGER))

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = getattr(g, "current_user", None)
            if user is None:
                return jsonify({"error": "Authentication required"}), 401
            if user.role not in allowed:
                return jsonify({
                    "error": "Permission denied",
                    "required_role": sorted(allowed),
                }), 403
            return f(*args, **kwargs)

        return decorated_function
    return decorator
