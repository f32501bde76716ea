# Overview: Service-layer operations for payment; encapsulates business logic and database work.

"""
Client Payment Processing Service

WHY: Record what clients pay, confirm it, refund it, and derive the
commission owed to the professional who performed the appointment.

DESIGN PRINCIPLES:
- Each transition locks the payment row and ends in a single commit
- Confirming is idempotent: a PAID payment is returned unchanged
- Exactly one commission per payment (unique payment_id)
- Refunds never exceed the original amount
"""

from decimal import Decimal, ROUND_HALF_UP

from ..extensions import db
from ..models import Appointment, Client, Commission, Payment, Professional
from ..models.payments import PAYMENT_METHODS
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    enforce_rules_payment,
    validate_payload,
)
from .clinic_service import get_clinic_scoped
from .concurrency import lock_for_update, run_with_retry
from clinic.time_utils import utcnow


class PaymentError(Exception):
    """Raised for payment operation errors."""
    pass


# =============================================================================
# PAYMENT STATUS (CONSTANTS)
# =============================================================================

PAYMENT_STATUS_PENDING = "PENDING"
PAYMENT_STATUS_PAID = "PAID"
PAYMENT_STATUS_FAILED = "FAILED"
PAYMENT_STATUS_REFUNDED = "REFUNDED"
PAYMENT_STATUS_PARTIAL = "PARTIAL"

CONFIRMABLE_STATUSES = (PAYMENT_STATUS_PENDING, PAYMENT_STATUS_FAILED)


PAYMENT_POLICY = ModelValidationPolicy(
    writable_fields={"client_id", "appointment_id", "amount_cents", "payment_method", "description"},
    required_on_create={"client_id", "amount_cents"},
)


# =============================================================================
# PAYMENT CREATION
# =============================================================================

def create_payment(clinic_id: int, user_id: int | None, payload: dict) -> Payment:
    """
    Create a PENDING payment.

    The client and optional appointment must belong to the clinic; the
    appointment must also belong to the client.
    """
    patch = validate_payload(model=Payment, payload=payload, policy=PAYMENT_POLICY, partial=False)
    enforce_rules_payment(patch)

    method = patch.get("payment_method") or "cash"
    if method not in PAYMENT_METHODS:
        raise PaymentError(f"Invalid payment method: {method}. Must be one of {list(PAYMENT_METHODS)}")
    patch["payment_method"] = method

    get_clinic_scoped(Client, patch["client_id"], clinic_id)
    if patch.get("appointment_id") is not None:
        appointment = get_clinic_scoped(Appointment, patch["appointment_id"], clinic_id)
        if appointment.client_id != patch["client_id"]:
            raise PaymentError("Appointment does not belong to this client")

    payment = Payment(
        clinic_id=clinic_id,
        status=PAYMENT_STATUS_PENDING,
        created_by_user_id=user_id,
        created_at=utcnow(),
        **patch,
    )
    db.session.add(payment)
    db.session.commit()
    return payment


def commission_amount(amount_cents: int, rate: float) -> int:
    """round-half-up(amount * rate) in whole cents."""
    exact = Decimal(amount_cents) * Decimal(str(rate))
    return int(exact.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _lock_payment(clinic_id: int, payment_id: int) -> Payment:
    payment = lock_for_update(
        db.session.query(Payment).filter_by(id=payment_id, clinic_id=clinic_id)
    ).first()
    if payment is None:
        raise NotFoundError("Payment not found")
    return payment


def confirm_payment(clinic_id: int, payment_id: int) -> Payment:
    """
    Confirm a PENDING or FAILED payment (-> PAID).

    Already PAID returns the record unchanged and creates no commission.
    When the linked appointment's professional has a commission rate, one
    Commission is created in the same commit.
    """
    def _op():
        payment = _lock_payment(clinic_id, payment_id)

        if payment.status == PAYMENT_STATUS_PAID:
            return payment
        if payment.status not in CONFIRMABLE_STATUSES:
            raise PaymentError(f"Cannot confirm a payment with status {payment.status}")

        payment.status = PAYMENT_STATUS_PAID
        payment.payment_date = utcnow()

        if payment.appointment_id is not None:
            professional = db.session.query(Professional).join(
                Appointment, Appointment.professional_id == Professional.id
            ).filter(
                Appointment.id == payment.appointment_id,
                Appointment.clinic_id == clinic_id,
            ).first()

            already = db.session.query(Commission.id).filter_by(payment_id=payment.id).first()
            if professional is not None and professional.commission_rate is not None and already is None:
                db.session.add(Commission(
                    clinic_id=clinic_id,
                    professional_id=professional.id,
                    payment_id=payment.id,
                    amount_cents=commission_amount(payment.amount_cents, professional.commission_rate),
                    rate=professional.commission_rate,
                    status="pending",
                    created_at=utcnow(),
                ))

        db.session.commit()
        return payment

    return run_with_retry(_op)


def refund_payment(
    clinic_id: int,
    payment_id: int,
    amount_cents: int | None = None,
    reason: str | None = None,
) -> Payment:
    """
    Refund a PAID payment in full (-> REFUNDED) or in part (-> PARTIAL).

    amount_cents omitted means a full refund. Invalid amounts leave the
    payment untouched.
    """
    if amount_cents is not None:
        if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
            raise PaymentError("Refund amount must be an integer number of cents")
        if amount_cents <= 0:
            raise PaymentError("Refund amount must be positive")
    if reason is not None and len(str(reason)) > 255:
        raise PaymentError("Refund reason exceeds max length 255")

    def _op():
        payment = _lock_payment(clinic_id, payment_id)

        if payment.status != PAYMENT_STATUS_PAID:
            raise PaymentError(f"Cannot refund a payment with status {payment.status}")

        refund = payment.amount_cents if amount_cents is None else amount_cents
        if refund > payment.amount_cents:
            raise PaymentError("Refund amount exceeds the original payment amount")

        payment.status = PAYMENT_STATUS_REFUNDED if refund == payment.amount_cents else PAYMENT_STATUS_PARTIAL
        payment.refund_amount_cents = refund
        payment.refund_reason = reason
        payment.refunded_at = utcnow()

        db.session.commit()
        return payment

    return run_with_retry(_op)


# =============================================================================
# QUERIES
# =============================================================================

def get_payment(clinic_id: int, payment_id: int) -> Payment:
    return get_clinic_scoped(Payment, payment_id, clinic_id)


def list_payments(
    clinic_id: int,
    client_id: int | None = None,
    appointment_id: int | None = None,
    status: str | None = None,
) -> list[Payment]:
    query = db.session.query(Payment).filter(Payment.clinic_id == clinic_id)
    if client_id is not None:
        query = query.filter(Payment.client_id == client_id)
    if appointment_id is not None:
        query = query.filter(Payment.appointment_id == appointment_id)
    if status:
        query = query.filter(Payment.status == status)
    return query.order_by(Payment.created_at.desc(), Payment.id.desc()).all()


def list_commissions(
    clinic_id: int,
    professional_id: int | None = None,
    status: str | None = None,
) -> list[Commission]:
    query = db.session.query(Commission).filter(Commission.clinic_id == clinic_id)
    if professional_id is not None:
        query = query.filter(Commission.professional_id == professional_id)
    if status:
        query = query.filter(Commission.status == status)
    return query.order_by(Commission.created_at.desc(), Commission.id.desc()).all()
