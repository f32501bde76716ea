# Overview: Flask API routes for clinic invitations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..services import invitation_service
from ..services.permission_service import PermissionDeniedError
from ..validation import NotFoundError, ValidationError
from ..decorators import require_auth, require_clinic_manager


invitations_bp = Blueprint("invitations", __name__, url_prefix="/api")


@invitations_bp.post("/clinics/<int:clinic_id>/invitations")
@require_clinic_manager
def create_invitation_route(clinic_id: int):
    """
    Invite someone to the clinic.

    Request body:
    {
        "email": "ana@example.com",
        "role": "RECEPTIONIST",
        "permissions": [{"module": "clients", "action": "read"}]   (optional)
    }

    The response carries the token; delivering it is left to the caller.
    """
    try:
        invitation = invitation_service.create_invitation(
            clinic_id, g.identity.user_id, request.get_json(silent=True)
        )
        return jsonify({"invitation": invitation.to_dict(), "token": invitation.token}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create invitation")
        return jsonify({"error": "Internal server error"}), 500


@invitations_bp.get("/clinics/<int:clinic_id>/invitations")
@require_clinic_manager
def list_invitations_route(clinic_id: int):
    try:
        invitations = invitation_service.list_invitations(clinic_id)
        return jsonify({"invitations": [i.to_dict() for i in invitations]}), 200
    except Exception:
        current_app.logger.exception("Failed to list invitations")
        return jsonify({"error": "Internal server error"}), 500


@invitations_bp.get("/invitations/<token>")
def get_invitation_route(token: str):
    """Public: lets the invitee see which clinic and role they were invited to."""
    try:
        invitation = invitation_service.get_invitation(token)
        data = invitation.to_dict()
        data["clinic_name"] = invitation.clinic.name
        return jsonify({"invitation": data}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to get invitation")
        return jsonify({"error": "Internal server error"}), 500


@invitations_bp.post("/invitations/<token>/accept")
@require_auth
def accept_invitation_route(token: str):
    try:
        membership = invitation_service.accept_invitation(g.identity, token)
        return jsonify({"membership": membership}), 201
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except PermissionDeniedError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to accept invitation")
        return jsonify({"error": "Internal server error"}), 500
