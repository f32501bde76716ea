# Overview: Service-layer operations for clients, professionals and appointments of a clinic.

from datetime import date

from ..extensions import db
from ..models import Appointment, Client, Professional
from ..models.directory import APPOINTMENT_STATUSES
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_appointment,
    enforce_rules_professional,
    validate_payload,
)
from .clinic_service import get_clinic_scoped
from .permission_service import get_membership_for_user
from clinic.time_utils import end_of_day, start_of_day


CLIENT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone", "address", "birthdate", "notes"},
    required_on_create={"name"},
)

PROFESSIONAL_POLICY = ModelValidationPolicy(
    writable_fields={"user_id", "name", "specialization", "commission_rate", "is_active"},
    required_on_create={"name"},
)

APPOINTMENT_POLICY = ModelValidationPolicy(
    writable_fields={"client_id", "professional_id", "start_time", "end_time", "status", "notes"},
    required_on_create={"client_id", "professional_id", "start_time", "end_time"},
)


def _apply(record, patch: dict) -> None:
    for key, value in patch.items():
        setattr(record, key, value)


# -- Clients --

def create_client(clinic_id: int, payload: dict) -> Client:
    patch = validate_payload(model=Client, payload=payload, policy=CLIENT_POLICY, partial=False)
    client = Client(clinic_id=clinic_id, **patch)
    db.session.add(client)
    db.session.commit()
    return client


def update_client(clinic_id: int, client_id: int, payload: dict) -> Client:
    patch = validate_payload(model=Client, payload=payload, policy=CLIENT_POLICY, partial=True)
    client = get_clinic_scoped(Client, client_id, clinic_id)
    _apply(client, patch)
    db.session.commit()
    return client


def list_clients(clinic_id: int, search: str | None = None) -> list[Client]:
    query = db.session.query(Client).filter(Client.clinic_id == clinic_id)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(db.or_(Client.name.ilike(like), Client.email.ilike(like)))
    return query.order_by(Client.name.asc(), Client.id.asc()).all()


# -- Professionals --

def _check_professional_user(clinic_id: int, patch: dict) -> None:
    user_id = patch.get("user_id")
    if user_id is not None and get_membership_for_user(clinic_id, user_id) is None:
        raise ValidationError("user_id must reference a member of this clinic")


def create_professional(clinic_id: int, payload: dict) -> Professional:
    patch = validate_payload(model=Professional, payload=payload, policy=PROFESSIONAL_POLICY, partial=False)
    enforce_rules_professional(patch)
    _check_professional_user(clinic_id, patch)

    professional = Professional(clinic_id=clinic_id, **patch)
    db.session.add(professional)
    db.session.commit()
    return professional


def update_professional(clinic_id: int, professional_id: int, payload: dict) -> Professional:
    patch = validate_payload(model=Professional, payload=payload, policy=PROFESSIONAL_POLICY, partial=True)
    enforce_rules_professional(patch)
    _check_professional_user(clinic_id, patch)

    professional = get_clinic_scoped(Professional, professional_id, clinic_id)
    _apply(professional, patch)
    db.session.commit()
    return professional


def list_professionals(clinic_id: int, include_inactive: bool = False) -> list[Professional]:
    query = db.session.query(Professional).filter(Professional.clinic_id == clinic_id)
    if not include_inactive:
        query = query.filter(Professional.is_active.is_(True))
    return query.order_by(Professional.name.asc(), Professional.id.asc()).all()


# -- Appointments --

def _check_appointment_refs(clinic_id: int, patch: dict) -> None:
    if patch.get("client_id") is not None:
        get_clinic_scoped(Client, patch["client_id"], clinic_id)
    if patch.get("professional_id") is not None:
        get_clinic_scoped(Professional, patch["professional_id"], clinic_id)
    if "status" in patch and patch["status"] not in APPOINTMENT_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(APPOINTMENT_STATUSES)}")


def create_appointment(clinic_id: int, payload: dict) -> Appointment:
    patch = validate_payload(model=Appointment, payload=payload, policy=APPOINTMENT_POLICY, partial=False)
    enforce_rules_appointment(patch)
    _check_appointment_refs(clinic_id, patch)

    appointment = Appointment(clinic_id=clinic_id, **patch)
    db.session.add(appointment)
    db.session.commit()
    return appointment


def update_appointment(clinic_id: int, appointment_id: int, payload: dict) -> Appointment:
    patch = validate_payload(model=Appointment, payload=payload, policy=APPOINTMENT_POLICY, partial=True)
    appointment = get_clinic_scoped(Appointment, appointment_id, clinic_id)
    _check_appointment_refs(clinic_id, patch)
    enforce_rules_appointment({
        "start_time": patch.get("start_time", appointment.start_time),
        "end_time": patch.get("end_time", appointment.end_time),
    })

    _apply(appointment, patch)
    db.session.commit()
    return appointment


def list_appointments(
    clinic_id: int,
    professional_id: int | None = None,
    client_id: int | None = None,
    start: date | None = None,
    end: date | None = None,
) -> list[Appointment]:
    query = db.session.query(Appointment).filter(Appointment.clinic_id == clinic_id)
    if professional_id is not None:
        query = query.filter(Appointment.professional_id == professional_id)
    if client_id is not None:
        query = query.filter(Appointment.client_id == client_id)
    if start:
        query = query.filter(Appointment.start_time >= start_of_day(start))
    if end:
        query = query.filter(Appointment.start_time <= end_of_day(end))
    return query.order_by(Appointment.start_time.asc(), Appointment.id.asc()).all()
