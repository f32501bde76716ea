from __future__ import annotations

from ..extensions import db
from clinic.time_utils import to_utc_z


EXPENSE_STATUSES = ("PENDING", "PAID", "SCHEDULED", "RECURRING", "CANCELLED")
# Statuses a client may set directly; PAID and CANCELLED are reached through pay/cancel.
EXPENSE_CREATE_STATUSES = ("PENDING", "SCHEDULED", "RECURRING")
EXPENSE_OPEN_STATUSES = EXPENSE_CREATE_STATUSES

ACCOUNT_TYPES = ("checking", "savings", "cash", "credit_card", "investment", "other")
TRANSACTION_TYPES = ("income", "expense", "transfer")


class Expense(db.Model):
    """
    Clinic expense (bill to pay).

    LIFECYCLE:
    - PENDING / SCHEDULED / RECURRING: open, editable
    - PAID: terminal, set by pay(); may have produced a FinancialTransaction
    - CANCELLED: terminal, set by cancel(); excluded from category breakdowns
    """
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_clinic_status_due", "clinic_id", "status", "due_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    clinic_id = db.Column(db.Integer, db.ForeignKey("clinics.id"), nullable=False, index=True)

    description = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(64), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="PENDING", index=True)

    due_date = db.Column(db.DateTime(timezone=True), nullable=False)
    payment_date = db.Column(db.DateTime(timezone=True), nullable=True)
    payment_method = db.Column(db.String(32), nullable=True)

    supplier = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now()
    )

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "clinic_id": self.clinic_id,
            "description": self.description,
            "category": self.category,
            "amount_cents": self.amount_cents,
            "status": self.status,
            "due_date": to_utc_z(self.due_date),
            "payment_date": to_utc_z(self.payment_date) if self.payment_date else None,
            "payment_method": self.payment_method,
            "supplier": self.supplier,
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Account(db.Model):
    """
    Clinic bank/cash account.

    At most one account per clinic has is_default = true; the partial unique
    index below enforces it at the storage layer.
    """
    __tablename__ = "accounts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    clinic_id = db.Column(db.Integer, db.ForeignKey("clinics.id"), nullable=False, index=True)

    name = db.Column(db.String(120), nullable=False)
    account_type = db.Column(db.String(32), nullable=False, default="checking")
    bank_name = db.Column(db.String(120), nullable=True)
    balance_cents = db.Column(db.Integer, nullable=False, default=0)
    is_default = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now()
    )

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "clinic_id": self.clinic_id,
            "name": self.name,
            "account_type": self.account_type,
            "bank_name": self.bank_name,
            "balance_cents": self.balance_cents,
            "is_default": self.is_default,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


db.Index(
    "uq_accounts_clinic_default",
    Account.clinic_id,
    unique=True,
    sqlite_where=Account.is_default == True,  # noqa: E712
    postgresql_where=Account.is_default == True,  # noqa: E712
)


class FinancialTransaction(db.Model):
    """
    Append-only money movement log.

    amount_cents is signed: positive for income, negative for outflow.
    Rows are never updated after insert.
    """
    __tablename__ = "financial_transactions"
    __table_args__ = (
        db.Index("ix_financial_transactions_clinic_date", "clinic_id", "transaction_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    clinic_id = db.Column(db.Integer, db.ForeignKey("clinics.id"), nullable=False, index=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=True, index=True)

    type = db.Column(db.String(16), nullable=False)
    category = db.Column(db.String(64), nullable=True)
    description = db.Column(db.String(255), nullable=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    transaction_date = db.Column(db.DateTime(timezone=True), nullable=False)

    expense_id = db.Column(db.Integer, db.ForeignKey("expenses.id"), nullable=True, index=True)
    payment_id = db.Column(db.Integer, db.ForeignKey("payments.id"), nullable=True, index=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    account = db.relationship("Account", backref=db.backref("transactions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "clinic_id": self.clinic_id,
            "account_id": self.account_id,
            "type": self.type,
            "category": self.category,
            "description": self.description,
            "amount_cents": self.amount_cents,
            "transaction_date": to_utc_z(self.transaction_date),
            "expense_id": self.expense_id,
            "payment_id": self.payment_id,
            "created_at": to_utc_z(self.created_at),
        }


class Budget(db.Model):
    __tablename__ = "budgets"
    __table_args__ = (
        db.UniqueConstraint("clinic_id", "year", "month", name="uq_budgets_clinic_year_month"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    clinic_id = db.Column(db.Integer, db.ForeignKey("clinics.id"), nullable=False, index=True)
    year = db.Column(db.Integer, nullable=False)
    month = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now()
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "clinic_id": self.clinic_id,
            "year": self.year,
            "month": self.month,
            "total_cents": self.total_cents,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class FinancialGoal(db.Model):
    __tablename__ = "financial_goals"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    clinic_id = db.Column(db.Integer, db.ForeignKey("clinics.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    target_cents = db.Column(db.Integer, nullable=False)
    current_cents = db.Column(db.Integer, nullable=False, default=0)
    start_date = db.Column(db.DateTime(timezone=True), nullable=False)
    end_date = db.Column(db.DateTime(timezone=True), nullable=False)
    is_achieved = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "clinic_id": self.clinic_id,
            "name": self.name,
            "description": self.description,
            "target_cents": self.target_cents,
            "current_cents": self.current_cents,
            "start_date": to_utc_z(self.start_date),
            "end_date": to_utc_z(self.end_date),
            "is_achieved": self.is_achieved,
            "created_at": to_utc_z(self.created_at),
        }
