# Overview: Flask API routes for clinics and memberships; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..services import clinic_service
from ..validation import NotFoundError, ValidationError
from ..decorators import require_auth, require_clinic_permission, require_clinic_manager


clinics_bp = Blueprint("clinics", __name__, url_prefix="/api/clinics")


@clinics_bp.get("")
@require_auth
def list_clinics_route():
    try:
        clinics = clinic_service.list_clinics_for_user(g.current_user)
        return jsonify({"clinics": [c.to_dict() for c in clinics]}), 200
    except Exception:
        current_app.logger.exception("Failed to list clinics")
        return jsonify({"error": "Internal server error"}), 500


@clinics_bp.post("")
@require_auth
def create_clinic_route():
    """Create a clinic; the caller becomes its OWNER."""
    try:
        clinic = clinic_service.create_clinic(g.identity.user_id, request.get_json(silent=True))
        return jsonify({"clinic": clinic.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create clinic")
        return jsonify({"error": "Internal server error"}), 500


@clinics_bp.get("/<int:clinic_id>")
@require_clinic_permission("dashboard", "read")
def get_clinic_route(clinic_id: int):
    try:
        clinic = clinic_service.get_clinic(clinic_id)
        return jsonify({
            "clinic": clinic.to_dict(),
            "membership": g.membership.to_dict() if g.membership else None,
        }), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to get clinic")
        return jsonify({"error": "Internal server error"}), 500


@clinics_bp.put("/<int:clinic_id>")
@require_clinic_permission("settings", "update")
def update_clinic_route(clinic_id: int):
    try:
        clinic = clinic_service.update_clinic(clinic_id, request.get_json(silent=True))
        return jsonify({"clinic": clinic.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update clinic")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# MEMBERS
# =============================================================================

@clinics_bp.get("/<int:clinic_id>/members")
@require_clinic_permission("users", "read")
def list_members_route(clinic_id: int):
    try:
        members = clinic_service.list_members(clinic_id)
        return jsonify({"members": [m.to_dict(include_user=True) for m in members]}), 200
    except Exception:
        current_app.logger.exception("Failed to list clinic members")
        return jsonify({"error": "Internal server error"}), 500


@clinics_bp.put("/<int:clinic_id>/members/<int:membership_id>")
@require_clinic_manager
def update_member_route(clinic_id: int, membership_id: int):
    """
    Change a member's clinic role.

    Request body: {"role": "RECEPTIONIST"}
    """
    try:
        data = request.get_json(silent=True) or {}
        role = data.get("role")
        if not role:
            return jsonify({"error": "role required"}), 400

        membership = clinic_service.update_member_role(clinic_id, membership_id, role)
        return jsonify({"member": membership.to_dict(include_user=True)}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update clinic member")
        return jsonify({"error": "Internal server error"}), 500


@clinics_bp.delete("/<int:clinic_id>/members/<int:membership_id>")
@require_clinic_manager
def remove_member_route(clinic_id: int, membership_id: int):
    try:
        clinic_service.remove_member(clinic_id, membership_id, actor_user_id=g.identity.user_id)
        return jsonify({"message": "Member removed"}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to remove clinic member")
        return jsonify({"error": "Internal server error"}), 500
