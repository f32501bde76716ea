from __future__ import annotations

from ..extensions import db
from clinic.time_utils import to_utc_z


PAYMENT_METHODS = ("credit_card", "debit_card", "cash", "pix", "bank_transfer", "boleto")
PAYMENT_STATUSES = ("PENDING", "PAID", "FAILED", "REFUNDED", "PARTIAL")
COMMISSION_STATUSES = ("pending", "paid", "cancelled")


class Payment(db.Model):
    """
    Payment received from a client.

    LIFECYCLE:
    - PENDING / FAILED --confirm--> PAID
    - PAID --refund(full)--> REFUNDED
    - PAID --refund(partial)--> PARTIAL
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.Index("ix_payments_clinic_status", "clinic_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    clinic_id = db.Column(db.Integer, db.ForeignKey("clinics.id"), nullable=False, index=True)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=False, index=True)
    appointment_id = db.Column(db.Integer, db.ForeignKey("appointments.id"), nullable=True, index=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(32), nullable=False, default="cash")
    status = db.Column(db.String(16), nullable=False, default="PENDING", index=True)
    description = db.Column(db.String(255), nullable=True)

    payment_date = db.Column(db.DateTime(timezone=True), nullable=True)

    refund_amount_cents = db.Column(db.Integer, nullable=True)
    refund_reason = db.Column(db.String(255), nullable=True)
    refunded_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    version_id = db.Column(db.Integer, nullable=False, default=1)

    client = db.relationship("Client", backref=db.backref("payments", lazy=True))
    appointment = db.relationship("Appointment", backref=db.backref("payments", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "clinic_id": self.clinic_id,
            "client_id": self.client_id,
            "appointment_id": self.appointment_id,
            "amount_cents": self.amount_cents,
            "payment_method": self.payment_method,
            "status": self.status,
            "description": self.description,
            "payment_date": to_utc_z(self.payment_date) if self.payment_date else None,
            "refund_amount_cents": self.refund_amount_cents,
            "refund_reason": self.refund_reason,
            "refunded_at": to_utc_z(self.refunded_at) if self.refunded_at else None,
            "created_at": to_utc_z(self.created_at),
        }


class Commission(db.Model):
    """
    Amount owed to a professional for a confirmed payment.

    One commission per payment at most (unique payment_id).
    """
    __tablename__ = "commissions"
    __table_args__ = (
        db.UniqueConstraint("payment_id", name="uq_commissions_payment"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    clinic_id = db.Column(db.Integer, db.ForeignKey("clinics.id"), nullable=False, index=True)
    professional_id = db.Column(db.Integer, db.ForeignKey("professionals.id"), nullable=False, index=True)
    payment_id = db.Column(db.Integer, db.ForeignKey("payments.id"), nullable=False)

    amount_cents = db.Column(db.Integer, nullable=False)
    rate = db.Column(db.Float, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    payment = db.relationship("Payment", backref=db.backref("commission", uselist=False, lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "clinic_id": self.clinic_id,
            "professional_id": self.professional_id,
            "payment_id": self.payment_id,
            "amount_cents": self.amount_cents,
            "rate": self.rate,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
