# Overview: Service-layer operations for maintenance; encapsulates business logic and database work.

from __future__ import annotations

from datetime import timedelta

from ..extensions import db
from ..models import Invitation, SecurityEvent
from clinic.time_utils import utcnow


def cleanup_security_events(*, retention_days: int = 90) -> int:
    """Delete security events older than retention_days."""
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(SecurityEvent).filter(
        SecurityEvent.occurred_at < cutoff
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted


def purge_expired_invitations() -> int:
    """Delete invitations that expired without being accepted."""
    deleted = db.session.query(Invitation).filter(
        Invitation.accepted_at.is_(None),
        Invitation.expires_at < utcnow(),
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted
