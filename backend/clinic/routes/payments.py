# Overview: Flask API routes for payments operations; parses input and returns JSON responses.

"""
Client Payment API Routes

DESIGN:
- Payments are created PENDING, then confirmed or refunded
- Confirming creates the professional's commission in the same commit
- Confirm is idempotent

SECURITY:
- financial:create to record a payment
- financial:update to confirm or refund
- financial:read for listings
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import payment_service
from ..services.payment_service import PaymentError
from ..validation import NotFoundError, ValidationError
from ..decorators import require_clinic_permission


payments_bp = Blueprint("payments", __name__, url_prefix="/api/clinics/<int:clinic_id>")


def _int_arg(name: str) -> int | None:
    raw = request.args.get(name)
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")


# =============================================================================
# PAYMENTS
# =============================================================================

@payments_bp.post("/payments")
@require_clinic_permission("financial", "create")
def create_payment_route(clinic_id: int):
    """
    Record a client payment.

    Request body:
    {
        "client_id": 12,
        "appointment_id": 40,        (optional)
        "amount_cents": 8000,
        "payment_method": "pix",     (optional, default "cash")
        "description": "..."         (optional)
    }
    """
    try:
        user_id = g.identity.user_id if g.identity else None
        payment = payment_service.create_payment(clinic_id, user_id, request.get_json(silent=True))
        return jsonify({"payment": payment.to_dict()}), 201
    except (ValidationError, PaymentError) as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to create payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.get("/payments")
@require_clinic_permission("financial", "read")
def list_payments_route(clinic_id: int):
    """Query params: client_id, appointment_id, status"""
    try:
        payments = payment_service.list_payments(
            clinic_id,
            client_id=_int_arg("client_id"),
            appointment_id=_int_arg("appointment_id"),
            status=request.args.get("status"),
        )
        return jsonify({"payments": [p.to_dict() for p in payments]}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list payments")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.get("/payments/<int:payment_id>")
@require_clinic_permission("financial", "read")
def get_payment_route(clinic_id: int, payment_id: int):
    try:
        payment = payment_service.get_payment(clinic_id, payment_id)
        data = payment.to_dict()
        data["commission"] = payment.commission.to_dict() if payment.commission else None
        return jsonify({"payment": data}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to get payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.post("/payments/<int:payment_id>/confirm")
@require_clinic_permission("financial", "update")
def confirm_payment_route(clinic_id: int, payment_id: int):
    try:
        payment = payment_service.confirm_payment(clinic_id, payment_id)
        data = payment.to_dict()
        data["commission"] = payment.commission.to_dict() if payment.commission else None
        return jsonify({"payment": data}), 200
    except PaymentError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to confirm payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.post("/payments/<int:payment_id>/refund")
@require_clinic_permission("financial", "update")
def refund_payment_route(clinic_id: int, payment_id: int):
    """
    Refund a PAID payment.

    Request body: {"amount_cents": 3000, "reason": "..."}  (amount omitted = full refund)
    """
    try:
        data = request.get_json(silent=True) or {}
        payment = payment_service.refund_payment(
            clinic_id,
            payment_id,
            amount_cents=data.get("amount_cents"),
            reason=data.get("reason"),
        )
        return jsonify({"payment": payment.to_dict()}), 200
    except PaymentError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to refund payment")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# COMMISSIONS
# =============================================================================

@payments_bp.get("/commissions")
@require_clinic_permission("financial", "read")
def list_commissions_route(clinic_id: int):
    """Query params: professional_id, status"""
    try:
        commissions = payment_service.list_commissions(
            clinic_id,
            professional_id=_int_arg("professional_id"),
            status=request.args.get("status"),
        )
        return jsonify({"commissions": [c.to_dict() for c in commissions]}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list commissions")
        return jsonify({"error": "Internal server error"}), 500
