# Overview: Service-layer operations for clinic invitations; encapsulates business logic and database work.

import json
import secrets
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import Invitation, User
from ..permissions import ClinicRole
from ..validation import NotFoundError, ValidationError
from .auth_service import normalize_email
from .clinic_service import add_member
from .permission_service import (
    PermissionDeniedError,
    _parse_permission_set,
    copy_permissions,
    default_permission_set,
    get_membership_for_user,
    log_security_event,
)
from .session_service import Identity
from clinic.time_utils import utcnow


def create_invitation(clinic_id: int, invited_by_user_id: int, payload: dict) -> Invitation:
    """
    Invite an e-mail address to the clinic with a role and optional permission set.

    The permission set is validated against the catalogue now so that
    acceptance never fails on an unknown key.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    unknown = set(payload) - {"email", "role", "permissions"}
    if unknown:
        raise ValidationError(f"Field not allowed: {sorted(unknown)[0]}")

    email = normalize_email(payload.get("email"))
    if "@" not in email:
        raise ValidationError("A valid email is required")

    role = payload.get("role") or ClinicRole.STAFF
    if role not in ClinicRole.ALL:
        raise ValidationError(f"role must be one of {', '.join(ClinicRole.ALL)}")

    keys = _parse_permission_set(payload.get("permissions"))

    user = db.session.query(User).filter_by(email=email).first()
    if user and get_membership_for_user(clinic_id, user.id):
        raise ValidationError("User is already a member of this clinic")

    ttl_days = current_app.config.get("INVITATION_TTL_DAYS", 7)
    invitation = Invitation(
        clinic_id=clinic_id,
        email=email,
        role=role,
        token=secrets.token_hex(32),
        permissions_json=json.dumps([{"module": m, "action": a} for m, a in keys]) if keys else None,
        invited_by_user_id=invited_by_user_id,
        expires_at=utcnow() + timedelta(days=ttl_days),
        created_at=utcnow(),
    )
    db.session.add(invitation)
    db.session.commit()
    return invitation


def list_invitations(clinic_id: int) -> list[Invitation]:
    return db.session.query(Invitation).filter_by(
        clinic_id=clinic_id
    ).order_by(Invitation.created_at.desc(), Invitation.id.desc()).all()


def get_invitation(token: str) -> Invitation:
    """Public lookup by token: 404 when unknown, 400 when expired."""
    invitation = db.session.query(Invitation).filter_by(token=token).first()
    if invitation is None:
        raise NotFoundError("Invitation not found")
    if invitation.expires_at < utcnow():
        raise ValidationError("Invitation has expired")
    return invitation


def accept_invitation(identity: Identity, token: str) -> dict:
    """
    Accept an invitation as the authenticated user.

    Creates the membership and copies the embedded permission set (or the
    role's defaults when the invitation carries none) in a single commit.
    """
    invitation = get_invitation(token)

    if invitation.accepted_at is not None:
        raise ValidationError("Invitation has already been accepted")

    if normalize_email(identity.email) != invitation.email:
        raise PermissionDeniedError("Invitation was issued to a different email address")

    membership = add_member(
        invitation.clinic_id,
        identity.user_id,
        invitation.role,
        invited_by_user_id=invitation.invited_by_user_id,
        commit=False,
    )

    permission_set = invitation.permission_set or default_permission_set(invitation.role)
    copy_permissions(
        membership.id,
        permission_set,
        granted_by_user_id=invitation.invited_by_user_id,
        commit=False,
    )

    invitation.accepted_at = utcnow()
    invitation.accepted_by_user_id = identity.user_id
    db.session.commit()

    log_security_event(
        user_id=identity.user_id,
        event_type="INVITATION_ACCEPTED",
        success=True,
        resource=f"invitation:{invitation.id}",
        clinic_id=invitation.clinic_id,
    )
    return membership.to_dict()
