# Overview: Service-layer operations for clinic financial records; encapsulates business logic and database work.

"""
Financial Records Service

WHY: Expenses, accounts, transactions, budgets and goals of a clinic.
Every read and write is scoped by clinic_id.

DESIGN PRINCIPLES:
- Explicit allowlists: each operation declares which fields a client may set
- Append-only transactions: FinancialTransaction rows are never updated
- Atomic lifecycle: paying an expense updates the expense, appends the
  transaction and adjusts the account balance in one commit
- Default account: at most one per clinic, backed by a partial unique index
"""

from datetime import date

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Account, Budget, Expense, FinancialGoal, FinancialTransaction
from ..models.financial import EXPENSE_OPEN_STATUSES
from ..models.payments import PAYMENT_METHODS
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_account,
    enforce_rules_budget,
    enforce_rules_expense,
    enforce_rules_goal,
    enforce_rules_transaction,
    validate_payload,
)
from .clinic_service import get_clinic_scoped
from .concurrency import lock_for_update, run_with_retry
from clinic.time_utils import end_of_day, start_of_day, utcnow


class FinancialError(Exception):
    """Raised for financial operation errors (invalid state transitions, conflicts)."""
    pass


# =============================================================================
# POLICIES
# =============================================================================

EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"description", "category", "amount_cents", "status", "due_date", "supplier", "notes"},
    required_on_create={"description", "category", "amount_cents", "due_date"},
)

ACCOUNT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "account_type", "bank_name", "balance_cents", "is_default"},
    required_on_create={"name"},
)

# Balance only moves through transactions once the account exists
ACCOUNT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "account_type", "bank_name", "is_default"},
)

TRANSACTION_POLICY = ModelValidationPolicy(
    writable_fields={"account_id", "type", "category", "description", "amount_cents", "transaction_date"},
    required_on_create={"type", "amount_cents", "transaction_date"},
)

BUDGET_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"year", "month", "total_cents", "notes"},
    required_on_create={"year", "month", "total_cents"},
)

BUDGET_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"total_cents", "notes"},
)

GOAL_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "target_cents", "current_cents", "start_date", "end_date", "is_achieved"},
    required_on_create={"name", "target_cents", "start_date", "end_date"},
)


def _apply(record, patch: dict) -> None:
    for key, value in patch.items():
        setattr(record, key, value)


# =============================================================================
# EXPENSES
# =============================================================================

def create_expense(clinic_id: int, user_id: int | None, payload: dict) -> Expense:
    patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=False)
    enforce_rules_expense(patch)

    expense = Expense(clinic_id=clinic_id, created_by_user_id=user_id, **patch)
    if not expense.status:
        expense.status = "PENDING"
    db.session.add(expense)
    db.session.commit()
    return expense


def update_expense(clinic_id: int, expense_id: int, payload: dict) -> Expense:
    """
    Patch an expense.

    Amount and status are frozen once the expense is PAID or CANCELLED.
    """
    patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=True)
    enforce_rules_expense(patch)

    def _op():
        expense = lock_for_update(
            db.session.query(Expense).filter_by(id=expense_id, clinic_id=clinic_id)
        ).first()
        if expense is None:
            raise NotFoundError("Expense not found")

        if expense.status not in EXPENSE_OPEN_STATUSES:
            frozen = sorted({"amount_cents", "status"} & set(patch))
            if frozen:
                raise FinancialError(
                    f"Cannot change {', '.join(frozen)} of a {expense.status} expense"
                )

        _apply(expense, patch)
        db.session.commit()
        return expense

    return run_with_retry(_op)


def get_expense(clinic_id: int, expense_id: int) -> Expense:
    return get_clinic_scoped(Expense, expense_id, clinic_id)


def list_expenses(
    clinic_id: int,
    status: str | None = None,
    category: str | None = None,
    start: date | None = None,
    end: date | None = None,
) -> list[Expense]:
    query = db.session.query(Expense).filter(Expense.clinic_id == clinic_id)
    if status:
        query = query.filter(Expense.status == status)
    if category:
        query = query.filter(Expense.category == category)
    if start:
        query = query.filter(Expense.due_date >= start_of_day(start))
    if end:
        query = query.filter(Expense.due_date <= end_of_day(end))
    return query.order_by(Expense.due_date.asc(), Expense.id.asc()).all()


def _pick_payout_account(clinic_id: int) -> Account | None:
    """Default account, else the first account by name."""
    return lock_for_update(
        db.session.query(Account)
        .filter(Account.clinic_id == clinic_id)
        .order_by(Account.is_default.desc(), Account.name.asc(), Account.id.asc())
    ).first()


def pay_expense(clinic_id: int, expense_id: int, payment_method: str, user_id: int | None = None) -> Expense:
    """
    Mark an open expense as PAID.

    When the clinic has at least one account, a negative "expense"
    transaction is appended and the account balance is reduced by the same
    amount. All writes share one commit; concurrent payers are serialized
    by the row lock (or rejected by version_id and retried).
    """
    if not payment_method:
        raise ValidationError("payment_method is required")
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of {', '.join(PAYMENT_METHODS)}")

    def _op():
        expense = lock_for_update(
            db.session.query(Expense).filter_by(id=expense_id, clinic_id=clinic_id)
        ).first()
        if expense is None:
            raise NotFoundError("Expense not found")

        if expense.status not in EXPENSE_OPEN_STATUSES:
            raise FinancialError(f"Cannot pay an expense with status {expense.status}")

        now = utcnow()
        expense.status = "PAID"
        expense.payment_date = now
        expense.payment_method = payment_method

        account = _pick_payout_account(clinic_id)
        if account is not None:
            db.session.add(FinancialTransaction(
                clinic_id=clinic_id,
                account_id=account.id,
                type="expense",
                category=expense.category,
                description=f"Expense payment: {expense.description}",
                amount_cents=-expense.amount_cents,
                transaction_date=now,
                expense_id=expense.id,
                created_by_user_id=user_id,
                created_at=now,
            ))
            account.balance_cents = account.balance_cents - expense.amount_cents

        db.session.commit()
        return expense

    return run_with_retry(_op)


def cancel_expense(clinic_id: int, expense_id: int) -> Expense:
    """Mark an open expense as CANCELLED. No financial side effects."""
    def _op():
        expense = lock_for_update(
            db.session.query(Expense).filter_by(id=expense_id, clinic_id=clinic_id)
        ).first()
        if expense is None:
            raise NotFoundError("Expense not found")

        if expense.status not in EXPENSE_OPEN_STATUSES:
            raise FinancialError(f"Cannot cancel an expense with status {expense.status}")

        expense.status = "CANCELLED"
        db.session.commit()
        return expense

    return run_with_retry(_op)


# =============================================================================
# ACCOUNTS
# =============================================================================

def _make_default(account: Account) -> None:
    """
    Make account the clinic's only default.

    Other defaults are cleared with one conditional UPDATE before this row
    is flagged, inside the caller's transaction. A concurrent writer doing
    the same trips uq_accounts_clinic_default instead of producing two
    defaults.
    """
    db.session.query(Account).filter(
        Account.clinic_id == account.clinic_id,
        Account.id != account.id,
        Account.is_default.is_(True),
    ).update({Account.is_default: False}, synchronize_session="fetch")
    account.is_default = True


def _commit_account_change() -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise FinancialError("Another account was made default at the same time; retry")


def create_account(clinic_id: int, payload: dict) -> Account:
    patch = validate_payload(model=Account, payload=payload, policy=ACCOUNT_CREATE_POLICY, partial=False)
    enforce_rules_account(patch)

    make_default = bool(patch.pop("is_default", False))

    def _op():
        account = Account(clinic_id=clinic_id, is_default=False, **patch)
        db.session.add(account)
        db.session.flush()
        if make_default:
            _make_default(account)
        _commit_account_change()
        return account

    return run_with_retry(_op)


def update_account(clinic_id: int, account_id: int, payload: dict) -> Account:
    patch = validate_payload(model=Account, payload=payload, policy=ACCOUNT_UPDATE_POLICY, partial=True)
    enforce_rules_account(patch)

    is_default = patch.pop("is_default", None)

    def _op():
        account = lock_for_update(
            db.session.query(Account).filter_by(id=account_id, clinic_id=clinic_id)
        ).first()
        if account is None:
            raise NotFoundError("Account not found")

        _apply(account, patch)
        if is_default is True:
            _make_default(account)
        elif is_default is False:
            account.is_default = False
        _commit_account_change()
        return account

    return run_with_retry(_op)


def get_account(clinic_id: int, account_id: int) -> Account:
    return get_clinic_scoped(Account, account_id, clinic_id)


def list_accounts(clinic_id: int) -> list[Account]:
    return db.session.query(Account).filter(
        Account.clinic_id == clinic_id
    ).order_by(Account.is_default.desc(), Account.name.asc(), Account.id.asc()).all()


# =============================================================================
# TRANSACTIONS
# =============================================================================

def create_transaction(clinic_id: int, user_id: int | None, payload: dict) -> FinancialTransaction:
    """
    Append a transaction; a linked account's balance moves in the same commit.
    """
    patch = validate_payload(model=FinancialTransaction, payload=payload, policy=TRANSACTION_POLICY, partial=False)
    enforce_rules_transaction(patch)

    def _op():
        account = None
        if patch.get("account_id") is not None:
            account = lock_for_update(
                db.session.query(Account).filter_by(id=patch["account_id"], clinic_id=clinic_id)
            ).first()
            if account is None:
                raise NotFoundError("Account not found")

        txn = FinancialTransaction(
            clinic_id=clinic_id,
            created_by_user_id=user_id,
            created_at=utcnow(),
            **patch,
        )
        db.session.add(txn)
        if account is not None:
            account.balance_cents = account.balance_cents + txn.amount_cents

        db.session.commit()
        return txn

    return run_with_retry(_op)


def get_transaction(clinic_id: int, transaction_id: int) -> FinancialTransaction:
    return get_clinic_scoped(FinancialTransaction, transaction_id, clinic_id)


def list_transactions(
    clinic_id: int,
    account_id: int | None = None,
    type: str | None = None,
    start: date | None = None,
    end: date | None = None,
) -> list[FinancialTransaction]:
    query = db.session.query(FinancialTransaction).filter(FinancialTransaction.clinic_id == clinic_id)
    if account_id is not None:
        query = query.filter(FinancialTransaction.account_id == account_id)
    if type:
        query = query.filter(FinancialTransaction.type == type)
    if start:
        query = query.filter(FinancialTransaction.transaction_date >= start_of_day(start))
    if end:
        query = query.filter(FinancialTransaction.transaction_date <= end_of_day(end))
    return query.order_by(
        FinancialTransaction.transaction_date.desc(), FinancialTransaction.id.desc()
    ).all()


# =============================================================================
# BUDGETS
# =============================================================================

def create_budget(clinic_id: int, payload: dict) -> Budget:
    patch = validate_payload(model=Budget, payload=payload, policy=BUDGET_CREATE_POLICY, partial=False)
    enforce_rules_budget(patch)

    existing = db.session.query(Budget).filter_by(
        clinic_id=clinic_id, year=patch["year"], month=patch["month"]
    ).first()
    if existing:
        raise ValidationError("Budget already exists for this month")

    budget = Budget(clinic_id=clinic_id, **patch)
    db.session.add(budget)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationError("Budget already exists for this month")
    return budget


def update_budget(clinic_id: int, budget_id: int, payload: dict) -> Budget:
    patch = validate_payload(model=Budget, payload=payload, policy=BUDGET_UPDATE_POLICY, partial=True)
    enforce_rules_budget(patch)

    budget = get_clinic_scoped(Budget, budget_id, clinic_id)
    _apply(budget, patch)
    db.session.commit()
    return budget


def get_budget(clinic_id: int, budget_id: int) -> Budget:
    return get_clinic_scoped(Budget, budget_id, clinic_id)


def get_budget_for_month(clinic_id: int, year: int, month: int) -> Budget:
    enforce_rules_budget({"year": year, "month": month})
    budget = db.session.query(Budget).filter_by(clinic_id=clinic_id, year=year, month=month).first()
    if budget is None:
        raise NotFoundError("Budget not found")
    return budget


def list_budgets(clinic_id: int, year: int | None = None) -> list[Budget]:
    query = db.session.query(Budget).filter(Budget.clinic_id == clinic_id)
    if year is not None:
        query = query.filter(Budget.year == year)
    return query.order_by(Budget.year.asc(), Budget.month.asc()).all()


# =============================================================================
# GOALS
# =============================================================================

def create_goal(clinic_id: int, payload: dict) -> FinancialGoal:
    patch = validate_payload(model=FinancialGoal, payload=payload, policy=GOAL_POLICY, partial=False)
    enforce_rules_goal(patch)

    goal = FinancialGoal(clinic_id=clinic_id, **patch)
    db.session.add(goal)
    db.session.commit()
    return goal


def update_goal(clinic_id: int, goal_id: int, payload: dict) -> FinancialGoal:
    patch = validate_payload(model=FinancialGoal, payload=payload, policy=GOAL_POLICY, partial=True)
    goal = get_clinic_scoped(FinancialGoal, goal_id, clinic_id)

    # Date ordering has to hold against the stored values too
    enforce_rules_goal({
        "start_date": patch.get("start_date", goal.start_date),
        "end_date": patch.get("end_date", goal.end_date),
        **{k: v for k, v in patch.items() if k in ("target_cents", "current_cents")},
    })

    _apply(goal, patch)
    db.session.commit()
    return goal


def get_goal(clinic_id: int, goal_id: int) -> FinancialGoal:
    return get_clinic_scoped(FinancialGoal, goal_id, clinic_id)


def list_goals(clinic_id: int) -> list[FinancialGoal]:
    return db.session.query(FinancialGoal).filter(
        FinancialGoal.clinic_id == clinic_id
    ).order_by(FinancialGoal.end_date.asc(), FinancialGoal.id.asc()).all()
