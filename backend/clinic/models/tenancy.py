from __future__ import annotations

import json

from ..extensions import db
from clinic.time_utils import to_utc_z


class Clinic(db.Model):
    """
    Multi-tenant root: every tenant is a Clinic.

    All clients, appointments and financial rows carry clinic_id and every
    clinic-scoped query must filter on it.
    """
    __tablename__ = "clinics"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    logo = db.Column(db.String(512), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    opening_hours = db.Column(db.String(255), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Clinic id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "logo": self.logo,
            "address": self.address,
            "phone": self.phone,
            "opening_hours": self.opening_hours,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ClinicMembership(db.Model):
    """
    Join between a user and a clinic, carrying the clinic-scoped role.

    A user holds at most one membership per clinic.
    """
    __tablename__ = "clinic_memberships"
    __table_args__ = (
        db.UniqueConstraint("clinic_id", "user_id", name="uq_clinic_memberships_clinic_user"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    clinic_id = db.Column(db.Integer, db.ForeignKey("clinics.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Clinic role (see clinic.permissions.roles.ClinicRole)
    role = db.Column(db.String(32), nullable=False, default="STAFF")

    invited_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    invited_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    accepted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    clinic = db.relationship("Clinic", backref=db.backref("memberships", lazy=True))
    user = db.relationship("User", foreign_keys=[user_id], backref=db.backref("memberships", lazy=True))

    def to_dict(self, include_user: bool = False) -> dict:
        data = {
            "id": self.id,
            "clinic_id": self.clinic_id,
            "user_id": self.user_id,
            "role": self.role,
            "invited_by_user_id": self.invited_by_user_id,
            "invited_at": to_utc_z(self.invited_at),
            "accepted_at": to_utc_z(self.accepted_at) if self.accepted_at else None,
        }
        if include_user:
            data["user"] = self.user.to_dict() if self.user else None
        return data


class Permission(db.Model):
    """
    Permission Store: one granted (module, action) pair for one membership.

    Absence of a row means "denied" unless the membership role or the
    user's global role short-circuits the check.
    """
    __tablename__ = "permissions"
    __table_args__ = (
        db.UniqueConstraint("membership_id", "module", "action", name="uq_permissions_membership_module_action"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    membership_id = db.Column(
        db.Integer, db.ForeignKey("clinic_memberships.id"), nullable=False, index=True
    )
    module = db.Column(db.String(32), nullable=False)
    action = db.Column(db.String(32), nullable=False)

    granted_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    granted_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    membership = db.relationship("ClinicMembership", backref=db.backref("permissions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "membership_id": self.membership_id,
            "module": self.module,
            "action": self.action,
            "granted_by_user_id": self.granted_by_user_id,
            "granted_at": to_utc_z(self.granted_at),
        }


class Invitation(db.Model):
    """
    Pending invitation to join a clinic.

    The embedded permission set is a JSON list of {"module", "action"}
    objects that is bulk-copied into Permission rows on acceptance.
    """
    __tablename__ = "invitations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    clinic_id = db.Column(db.Integer, db.ForeignKey("clinics.id"), nullable=False, index=True)
    email = db.Column(db.String(255), nullable=False, index=True)
    role = db.Column(db.String(32), nullable=False)
    token = db.Column(db.String(128), nullable=False, unique=True, index=True)
    permissions_json = db.Column(db.Text, nullable=True)

    invited_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    accepted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    accepted_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    clinic = db.relationship("Clinic", backref=db.backref("invitations", lazy=True))

    @property
    def permission_set(self) -> list[dict]:
        if not self.permissions_json:
            return []
        return json.loads(self.permissions_json)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "clinic_id": self.clinic_id,
            "email": self.email,
            "role": self.role,
            "permissions": self.permission_set,
            "invited_by_user_id": self.invited_by_user_id,
            "expires_at": to_utc_z(self.expires_at),
            "accepted_at": to_utc_z(self.accepted_at) if self.accepted_at else None,
            "created_at": to_utc_z(self.created_at),
        }
