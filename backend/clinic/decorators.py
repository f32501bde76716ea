# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .extensions import db
from .models import User
from .services import session_service, permission_service


_UNSET = object()


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def current_identity():
    """
    Resolve the caller once per request.

    Sets g.identity (Identity or None) and g.current_user (User or None).
    """
    if getattr(g, "identity", _UNSET) is _UNSET:
        identity = session_service.resolve_identity(_bearer_token())
        g.identity = identity
        g.current_user = db.session.get(User, identity.user_id) if identity else None
    return g.identity


def _deny(decision, clinic_id: int, action: str):
    identity = g.identity
    permission_service.log_security_event(
        user_id=identity.user_id if identity else None,
        event_type="PERMISSION_DENIED",
        success=False,
        resource=request.path,
        action=action,
        reason=decision.reason,
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
        clinic_id=clinic_id,
    )
    if decision.status_code == 401:
        return jsonify({"error": "Authentication required"}), 401
    return jsonify({
        "error": "Permission denied",
        "reason": decision.reason,
        "required_permission": action,
    }), 403


def require_auth(f):
    """
    Require a valid bearer token.

    Sets g.identity and g.current_user. Returns 401 if the header is
    missing, the token is invalid or expired, or the account is inactive.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if current_identity() is None:
            return jsonify({"error": "Authentication required"}), 401
        return f(*args, **kwargs)

    return decorated_function


def optional_auth(f):
    """Resolve the caller if a token is present; never rejects."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        current_identity()
        return f(*args, **kwargs)

    return decorated_function


def require_clinic_permission(module: str, action: str):
    """
    Require (module, action) inside the clinic named by the <clinic_id> URL segment.

    Sets g.membership on success. Denials are logged to security_events.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            clinic_id = kwargs["clinic_id"]
            decision = permission_service.authorize(current_identity(), clinic_id, module, action)
            if not decision.allowed:
                return _deny(decision, clinic_id, f"{module}:{action}")

            g.membership = decision.membership
            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_clinic_manager(f):
    """Require SUPER_ADMIN or an OWNER/MANAGER membership in <clinic_id>."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        clinic_id = kwargs["clinic_id"]
        decision = permission_service.is_clinic_manager(current_identity(), clinic_id)
        if not decision.allowed:
            return _deny(decision, clinic_id, "clinic:manage")

        g.membership = decision.membership
        return f(*args, **kwargs)

    return decorated_function
