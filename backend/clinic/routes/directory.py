# Overview: Flask API routes for clients, professionals and appointments; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..services import directory_service
from ..time_utils import parse_iso_date
from ..validation import NotFoundError, ValidationError
from ..decorators import require_clinic_permission


directory_bp = Blueprint("directory", __name__, url_prefix="/api/clinics/<int:clinic_id>")


def _int_arg(name: str) -> int | None:
    raw = request.args.get(name)
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")


def _date_arg(name: str):
    try:
        return parse_iso_date(request.args.get(name))
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date")


# =============================================================================
# CLIENTS
# =============================================================================

@directory_bp.get("/clients")
@require_clinic_permission("clients", "read")
def list_clients_route(clinic_id: int):
    try:
        clients = directory_service.list_clients(clinic_id, search=request.args.get("q"))
        return jsonify({"clients": [c.to_dict() for c in clients]}), 200
    except Exception:
        current_app.logger.exception("Failed to list clients")
        return jsonify({"error": "Internal server error"}), 500


@directory_bp.post("/clients")
@require_clinic_permission("clients", "create")
def create_client_route(clinic_id: int):
    try:
        client = directory_service.create_client(clinic_id, request.get_json(silent=True))
        return jsonify({"client": client.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create client")
        return jsonify({"error": "Internal server error"}), 500


@directory_bp.put("/clients/<int:client_id>")
@require_clinic_permission("clients", "update")
def update_client_route(clinic_id: int, client_id: int):
    try:
        client = directory_service.update_client(clinic_id, client_id, request.get_json(silent=True))
        return jsonify({"client": client.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update client")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# PROFESSIONALS
# =============================================================================

@directory_bp.get("/professionals")
@require_clinic_permission("users", "read")
def list_professionals_route(clinic_id: int):
    try:
        include_inactive = request.args.get("include_inactive", "false").lower() == "true"
        professionals = directory_service.list_professionals(clinic_id, include_inactive=include_inactive)
        return jsonify({"professionals": [p.to_dict() for p in professionals]}), 200
    except Exception:
        current_app.logger.exception("Failed to list professionals")
        return jsonify({"error": "Internal server error"}), 500


@directory_bp.post("/professionals")
@require_clinic_permission("users", "create")
def create_professional_route(clinic_id: int):
    try:
        professional = directory_service.create_professional(clinic_id, request.get_json(silent=True))
        return jsonify({"professional": professional.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create professional")
        return jsonify({"error": "Internal server error"}), 500


@directory_bp.put("/professionals/<int:professional_id>")
@require_clinic_permission("users", "update")
def update_professional_route(clinic_id: int, professional_id: int):
    try:
        professional = directory_service.update_professional(
            clinic_id, professional_id, request.get_json(silent=True)
        )
        return jsonify({"professional": professional.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update professional")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# APPOINTMENTS
# =============================================================================

@directory_bp.get("/appointments")
@require_clinic_permission("appointments", "read")
def list_appointments_route(clinic_id: int):
    try:
        appointments = directory_service.list_appointments(
            clinic_id,
            professional_id=_int_arg("professional_id"),
            client_id=_int_arg("client_id"),
            start=_date_arg("start"),
            end=_date_arg("end"),
        )
        return jsonify({"appointments": [a.to_dict() for a in appointments]}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list appointments")
        return jsonify({"error": "Internal server error"}), 500


@directory_bp.post("/appointments")
@require_clinic_permission("appointments", "create")
def create_appointment_route(clinic_id: int):
    try:
        appointment = directory_service.create_appointment(clinic_id, request.get_json(silent=True))
        return jsonify({"appointment": appointment.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to create appointment")
        return jsonify({"error": "Internal server error"}), 500


@directory_bp.put("/appointments/<int:appointment_id>")
@require_clinic_permission("appointments", "update")
def update_appointment_route(clinic_id: int, appointment_id: int):
    try:
        appointment = directory_service.update_appointment(
            clinic_id, appointment_id, request.get_json(silent=True)
        )
        return jsonify({"appointment": appointment.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update appointment")
        return jsonify({"error": "Internal server error"}), 500
