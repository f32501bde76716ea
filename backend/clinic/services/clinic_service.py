"""
Clinic Service: Tenancy, Memberships and Scoping Helpers

WHY: Every tenant is a clinic. Clinic-owned rows are only ever read through
a query filtered by clinic_id, and an id that exists in another clinic is
reported as "not found" so its existence is never revealed.

SECURITY INVARIANTS:
1. Creating a clinic makes the creator its OWNER
2. A user holds at most one membership per clinic
3. A clinic never loses its last OWNER through self-removal
4. Removing a membership removes its Permission rows

USAGE:
    from clinic.services.clinic_service import get_clinic_scoped

    expense = get_clinic_scoped(Expense, expense_id, clinic_id)
"""

from ..extensions import db
from ..models import Clinic, ClinicMembership, Permission, User
from ..permissions import ClinicRole, GlobalRole
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    validate_payload,
)
from clinic.time_utils import utcnow


CLINIC_POLICY = ModelValidationPolicy(
    writable_fields={"name", "logo", "address", "phone", "opening_hours"},
    required_on_create={"name"},
)


def get_clinic_scoped(model, record_id: int, clinic_id: int):
    """
    Load a clinic-owned row by id, or raise NotFoundError.

    SECURITY: A row that belongs to a different clinic is indistinguishable
    from a missing row.
    """
    record = db.session.query(model).filter_by(id=record_id, clinic_id=clinic_id).first()
    if record is None:
        raise NotFoundError(f"{model.__name__} not found")
    return record


def get_clinic(clinic_id: int) -> Clinic:
    clinic = db.session.get(Clinic, clinic_id)
    if clinic is None:
        raise NotFoundError("Clinic not found")
    return clinic


def create_clinic(user_id: int, payload: dict) -> Clinic:
    """Create a clinic and an OWNER membership for the creator in one commit."""
    data = validate_payload(model=Clinic, payload=payload, policy=CLINIC_POLICY, partial=False)

    clinic = Clinic(**data)
    db.session.add(clinic)
    db.session.flush()

    now = utcnow()
    db.session.add(ClinicMembership(
        clinic_id=clinic.id,
        user_id=user_id,
        role=ClinicRole.OWNER,
        invited_at=now,
        accepted_at=now,
    ))
    db.session.commit()
    return clinic


def update_clinic(clinic_id: int, payload: dict) -> Clinic:
    clinic = get_clinic(clinic_id)
    patch = validate_payload(model=Clinic, payload=payload, policy=CLINIC_POLICY, partial=True)
    for key, value in patch.items():
        setattr(clinic, key, value)
    db.session.commit()
    return clinic


def list_clinics_for_user(user: User) -> list[Clinic]:
    """Clinics the user belongs to; every clinic for SUPER_ADMIN."""
    query = db.session.query(Clinic)
    if user.role != GlobalRole.SUPER_ADMIN:
        query = query.join(ClinicMembership, ClinicMembership.clinic_id == Clinic.id).filter(
            ClinicMembership.user_id == user.id
        )
    return query.order_by(Clinic.name.asc(), Clinic.id.asc()).all()


def list_members(clinic_id: int) -> list[ClinicMembership]:
    return db.session.query(ClinicMembership).filter_by(
        clinic_id=clinic_id
    ).order_by(ClinicMembership.id.asc()).all()


def add_member(
    clinic_id: int,
    user_id: int,
    role: str,
    invited_by_user_id: int | None = None,
    commit: bool = True,
) -> ClinicMembership:
    """Create a membership; a second membership for the same user is rejected."""
    if role not in ClinicRole.ALL:
        raise ValidationError(f"role must be one of {', '.join(ClinicRole.ALL)}")

    existing = db.session.query(ClinicMembership).filter_by(
        clinic_id=clinic_id, user_id=user_id
    ).first()
    if existing:
        raise ValidationError("User is already a member of this clinic")

    now = utcnow()
    membership = ClinicMembership(
        clinic_id=clinic_id,
        user_id=user_id,
        role=role,
        invited_by_user_id=invited_by_user_id,
        invited_at=now,
        accepted_at=now,
    )
    db.session.add(membership)
    if commit:
        db.session.commit()
    else:
        db.session.flush()
    return membership


def _owner_count(clinic_id: int) -> int:
    return db.session.query(ClinicMembership).filter_by(
        clinic_id=clinic_id, role=ClinicRole.OWNER
    ).count()


def update_member_role(clinic_id: int, membership_id: int, role: str) -> ClinicMembership:
    if role not in ClinicRole.ALL:
        raise ValidationError(f"role must be one of {', '.join(ClinicRole.ALL)}")

    membership = get_clinic_scoped(ClinicMembership, membership_id, clinic_id)
    if membership.role == ClinicRole.OWNER and role != ClinicRole.OWNER and _owner_count(clinic_id) <= 1:
        raise ValidationError("Clinic must keep at least one owner")

    membership.role = role
    db.session.commit()
    return membership


def remove_member(clinic_id: int, membership_id: int, actor_user_id: int) -> None:
    """
    Delete a membership and its grants.

    The clinic must keep at least one OWNER, whoever the actor is.
    """
    membership = get_clinic_scoped(ClinicMembership, membership_id, clinic_id)

    if membership.role == ClinicRole.OWNER and _owner_count(clinic_id) <= 1:
        if membership.user_id == actor_user_id:
            raise ValidationError("The sole owner cannot leave the clinic")
        raise ValidationError("Clinic must keep at least one owner")

    db.session.query(Permission).filter_by(
        membership_id=membership.id
    ).delete(synchronize_session=False)
    db.session.delete(membership)
    db.session.commit()
