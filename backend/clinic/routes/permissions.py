# Overview: Flask API routes for the clinic permission store; parses input and returns JSON responses.

"""
Permission Management API Routes

SECURITY:
- Reading and changing another member's grants requires a clinic manager
  (OWNER, MANAGER or SUPER_ADMIN)
- "My permissions" never fails: unauthenticated callers get an empty list
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..permissions import PERMISSION_DEFINITIONS
from ..services import permission_service
from ..validation import NotFoundError, ValidationError
from ..decorators import optional_auth, require_auth, require_clinic_manager


permissions_bp = Blueprint("permissions", __name__, url_prefix="/api")


@permissions_bp.get("/permissions/catalogue")
@require_auth
def catalogue_route():
    """All known (module, action) pairs with display names."""
    return jsonify({
        "permissions": [
            {"module": module, "action": action, "name": name, "description": description}
            for module, action, name, description in PERMISSION_DEFINITIONS
        ]
    }), 200


@permissions_bp.get("/clinics/<int:clinic_id>/permissions/me")
@optional_auth
def my_permissions_route(clinic_id: int):
    try:
        permissions = permission_service.list_my_permissions(g.identity, clinic_id)
        return jsonify({"permissions": permissions}), 200
    except Exception:
        current_app.logger.exception("Failed to list caller permissions")
        return jsonify({"error": "Internal server error"}), 500


@permissions_bp.get("/clinics/<int:clinic_id>/members/<int:membership_id>/permissions")
@require_clinic_manager
def list_member_permissions_route(clinic_id: int, membership_id: int):
    try:
        membership = permission_service.get_membership(clinic_id, membership_id)
        permissions = permission_service.list_permissions(membership.id)
        return jsonify({
            "membership": membership.to_dict(),
            "permissions": [p.to_dict() for p in permissions],
        }), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to list member permissions")
        return jsonify({"error": "Internal server error"}), 500


@permissions_bp.post("/clinics/<int:clinic_id>/members/<int:membership_id>/permissions")
@require_clinic_manager
def grant_member_permission_route(clinic_id: int, membership_id: int):
    """
    Grant one permission or copy a set.

    Request body, single:  {"module": "financial", "action": "read"}
    Request body, bulk:    {"permissions": [{"module": ..., "action": ...}, ...]}
    """
    try:
        data = request.get_json(silent=True) or {}
        membership = permission_service.get_membership(clinic_id, membership_id)

        if "permissions" in data:
            created = permission_service.copy_permissions(
                membership.id,
                data["permissions"],
                granted_by_user_id=g.identity.user_id,
            )
            return jsonify({"created": [p.to_dict() for p in created]}), 201

        module = data.get("module")
        action = data.get("action")
        if not all([module, action]):
            return jsonify({"error": "module and action required"}), 400

        permission = permission_service.grant_permission(
            membership.id, module, action, granted_by_user_id=g.identity.user_id
        )
        return jsonify({"permission": permission.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to grant member permission")
        return jsonify({"error": "Internal server error"}), 500


@permissions_bp.post("/clinics/<int:clinic_id>/members/<int:membership_id>/permissions/defaults")
@require_clinic_manager
def apply_default_permissions_route(clinic_id: int, membership_id: int):
    """Replace the member's grants with their role's default set."""
    try:
        membership = permission_service.get_membership(clinic_id, membership_id)
        permissions = permission_service.apply_role_defaults(membership, granted_by_user_id=g.identity.user_id)
        return jsonify({"permissions": [p.to_dict() for p in permissions]}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to apply default permissions")
        return jsonify({"error": "Internal server error"}), 500


@permissions_bp.delete("/clinics/<int:clinic_id>/members/<int:membership_id>/permissions/<int:permission_id>")
@require_clinic_manager
def revoke_member_permission_route(clinic_id: int, membership_id: int, permission_id: int):
    try:
        permission_service.revoke_permission(clinic_id, membership_id, permission_id)
        return jsonify({"message": "Permission revoked"}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to revoke member permission")
        return jsonify({"error": "Internal server error"}), 500
