# Overview: Service-layer operations for permission; encapsulates business logic and database work.

"""
Clinic Authorization and Security Event Logging

WHY: Every clinic-scoped route is gated by a (module, action) pair.
Denials are written to the security_events audit table.

DECISION ORDER (authorize):
1. No identity                         -> deny 401 "unauthenticated"
2. No membership in the clinic         -> deny 403 "no clinic access"
3. SUPER_ADMIN or OWNER/MANAGER role   -> allow, no Permission lookup
4. Permission row present              -> allow, else deny 403 "missing permission"

DESIGN PRINCIPLES:
- Fail closed: Deny by default, require explicit permission grant
- Log denials only: Permission grants are not logged
- No ownership override: creating a record grants nothing on it
"""

from dataclasses import dataclass

from ..extensions import db
from ..models import ClinicMembership, Permission, SecurityEvent
from ..permissions import (
    ClinicRole,
    DEFAULT_ROLE_PERMISSIONS,
    GlobalRole,
    get_all_permission_keys,
    validate_permission,
)
from ..validation import NotFoundError, ValidationError
from .session_service import Identity
from clinic.time_utils import utcnow


class PermissionDeniedError(Exception):
    """Raised when the caller is not allowed to perform an operation."""

    def __init__(self, message: str, status_code: int = 403):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class AuthorizationDecision:
    allowed: bool
    reason: str | None = None
    status_code: int = 200
    membership: ClinicMembership | None = None

    @classmethod
    def allow(cls, membership: ClinicMembership | None) -> "AuthorizationDecision":
        return cls(allowed=True, membership=membership)

    @classmethod
    def deny(cls, reason: str, status_code: int = 403, membership=None) -> "AuthorizationDecision":
        return cls(allowed=False, reason=reason, status_code=status_code, membership=membership)


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    clinic_id: int | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail with clinic context.

    event_type examples:
    - PERMISSION_DENIED
    - LOGIN_FAILED
    - LOGOUT
    - PERMISSION_GRANTED
    - PERMISSION_REVOKED
    - INVITATION_ACCEPTED
    """
    event = SecurityEvent(
        user_id=user_id,
        clinic_id=clinic_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    db.session.commit()

    return event


def get_membership_for_user(clinic_id: int, user_id: int) -> ClinicMembership | None:
    return db.session.query(ClinicMembership).filter_by(
        clinic_id=clinic_id,
        user_id=user_id,
    ).first()


def authorize(identity: Identity | None, clinic_id: int, module: str, action: str) -> AuthorizationDecision:
    """
    Decide whether identity may perform (module, action) inside clinic_id.

    Membership is resolved before the role short-circuit, so a SUPER_ADMIN
    without a membership row is still denied here.
    """
    if identity is None:
        return AuthorizationDecision.deny("unauthenticated", 401)

    membership = get_membership_for_user(clinic_id, identity.user_id)
    if membership is None:
        return AuthorizationDecision.deny("no clinic access", 403)

    if identity.global_role == GlobalRole.SUPER_ADMIN or membership.role in ClinicRole.MANAGEMENT:
        return AuthorizationDecision.allow(membership)

    granted = db.session.query(Permission.id).filter_by(
        membership_id=membership.id,
        module=module,
        action=action,
    ).first()
    if granted is None:
        return AuthorizationDecision.deny("missing permission", 403, membership)

    return AuthorizationDecision.allow(membership)


def is_clinic_manager(identity: Identity | None, clinic_id: int) -> AuthorizationDecision:
    """Allow SUPER_ADMIN (with or without membership) or an OWNER/MANAGER membership."""
    if identity is None:
        return AuthorizationDecision.deny("unauthenticated", 401)

    membership = get_membership_for_user(clinic_id, identity.user_id)
    if identity.global_role == GlobalRole.SUPER_ADMIN:
        return AuthorizationDecision.allow(membership)
    if membership is None:
        return AuthorizationDecision.deny("no clinic access", 403)
    if membership.role not in ClinicRole.MANAGEMENT:
        return AuthorizationDecision.deny("clinic manager role required", 403, membership)
    return AuthorizationDecision.allow(membership)


def require_clinic_permission(
    identity: Identity | None,
    clinic_id: int,
    module: str,
    action: str,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> ClinicMembership | None:
    """
    Raise PermissionDeniedError (with 401/403 status) unless authorize() allows.

    Logs denials to security_events.

    Usage:
        require_clinic_permission(g.identity, clinic_id, "financial", "read", resource=request.path)
    """
    decision = authorize(identity, clinic_id, module, action)
    if not decision.allowed:
        log_security_event(
            user_id=identity.user_id if identity else None,
            event_type="PERMISSION_DENIED",
            success=False,
            resource=resource,
            action=f"{module}:{action}",
            reason=decision.reason,
            ip_address=ip_address,
            user_agent=user_agent,
            clinic_id=clinic_id,
        )
        raise PermissionDeniedError(f"Permission denied: {decision.reason}", decision.status_code)
    return decision.membership


# -- Permission Store --

def get_membership(clinic_id: int, membership_id: int) -> ClinicMembership:
    membership = db.session.query(ClinicMembership).filter_by(
        id=membership_id,
        clinic_id=clinic_id,
    ).first()
    if membership is None:
        raise NotFoundError("Membership not found")
    return membership


def _check_key(module: str, action: str) -> None:
    if not validate_permission(module, action):
        raise ValidationError(f"Unknown permission: {module}:{action}")


def list_permissions(membership_id: int) -> list[Permission]:
    return db.session.query(Permission).filter_by(
        membership_id=membership_id
    ).order_by(Permission.module, Permission.action).all()


def grant_permission(
    membership_id: int,
    module: str,
    action: str,
    granted_by_user_id: int | None = None,
) -> Permission:
    """
    Grant (module, action) to a membership.

    Idempotent: an existing grant is returned unchanged.
    """
    _check_key(module, action)

    existing = db.session.query(Permission).filter_by(
        membership_id=membership_id,
        module=module,
        action=action,
    ).first()
    if existing:
        return existing

    permission = Permission(
        membership_id=membership_id,
        module=module,
        action=action,
        granted_by_user_id=granted_by_user_id,
        granted_at=utcnow(),
    )
    db.session.add(permission)
    db.session.commit()
    return permission


def revoke_permission(clinic_id: int, membership_id: int, permission_id: int) -> None:
    """Delete a single grant; 404 when it does not belong to the clinic membership."""
    permission = db.session.query(Permission).join(
        ClinicMembership, Permission.membership_id == ClinicMembership.id
    ).filter(
        Permission.id == permission_id,
        Permission.membership_id == membership_id,
        ClinicMembership.clinic_id == clinic_id,
    ).first()
    if permission is None:
        raise NotFoundError("Permission not found")

    db.session.delete(permission)
    db.session.commit()


def revoke_permission_key(membership_id: int, module: str, action: str) -> bool:
    """Delete a grant by its key. Returns False when nothing was granted."""
    deleted = db.session.query(Permission).filter_by(
        membership_id=membership_id,
        module=module,
        action=action,
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted > 0


def _parse_permission_set(permission_set) -> list[tuple[str, str]]:
    if permission_set is None:
        return []
    if not isinstance(permission_set, list):
        raise ValidationError("permissions must be a list of {module, action} objects")

    keys: list[tuple[str, str]] = []
    for item in permission_set:
        if isinstance(item, dict):
            module, action = item.get("module"), item.get("action")
        elif isinstance(item, (list, tuple)) and len(item) == 2:
            module, action = item
        else:
            raise ValidationError("permissions must be a list of {module, action} objects")
        _check_key(module, action)
        if (module, action) not in keys:
            keys.append((module, action))
    return keys


def copy_permissions(
    membership_id: int,
    permission_set,
    granted_by_user_id: int | None = None,
    commit: bool = True,
) -> list[Permission]:
    """
    Bulk-copy a permission set into a membership.

    Pairs already granted are skipped. Returns the newly created rows.
    """
    keys = _parse_permission_set(permission_set)

    existing = {
        (p.module, p.action)
        for p in db.session.query(Permission).filter_by(membership_id=membership_id).all()
    }

    now = utcnow()
    created = []
    for module, action in keys:
        if (module, action) in existing:
            continue
        permission = Permission(
            membership_id=membership_id,
            module=module,
            action=action,
            granted_by_user_id=granted_by_user_id,
            granted_at=now,
        )
        db.session.add(permission)
        created.append(permission)

    if commit:
        db.session.commit()
    return created


def default_permission_set(role: str) -> list[dict]:
    return [
        {"module": module, "action": action}
        for module, action in DEFAULT_ROLE_PERMISSIONS.get(role, [])
    ]


def apply_role_defaults(membership: ClinicMembership, granted_by_user_id: int | None = None) -> list[Permission]:
    """Replace the membership's grants with its role's default set."""
    db.session.query(Permission).filter_by(
        membership_id=membership.id
    ).delete(synchronize_session=False)

    copy_permissions(
        membership.id,
        default_permission_set(membership.role),
        granted_by_user_id=granted_by_user_id,
        commit=False,
    )
    db.session.commit()
    return list_permissions(membership.id)


def list_my_permissions(identity: Identity | None, clinic_id: int) -> list[dict]:
    """
    Effective grants of the caller in a clinic.

    Unauthenticated callers and non-members get an empty list, matching
    authorize(). Members who are SUPER_ADMIN, OWNER or MANAGER get the
    whole catalogue.
    """
    if identity is None:
        return []

    membership = get_membership_for_user(clinic_id, identity.user_id)
    if membership is None:
        return []

    if identity.global_role == GlobalRole.SUPER_ADMIN or membership.role in ClinicRole.MANAGEMENT:
        return [{"module": m, "action": a} for m, a in get_all_permission_keys()]

    return [{"module": p.module, "action": p.action} for p in list_permissions(membership.id)]
