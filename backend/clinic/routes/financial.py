# Overview: Flask API routes for financial records operations; parses input and returns JSON responses.

# backend/clinic/routes/financial.py
"""
Financial Records API Routes

DESIGN:
- Expenses with pay/cancel lifecycle
- Accounts with a single default per clinic
- Append-only transactions
- Monthly budgets and financial goals

SECURITY:
- financial:read for every GET
- financial:create for POST of new records
- financial:update for PUT and lifecycle transitions
- Ids belonging to another clinic answer 404
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import financial_service
from ..services.financial_service import FinancialError
from ..time_utils import parse_iso_date
from ..validation import NotFoundError, ValidationError
from ..decorators import require_clinic_permission


financial_bp = Blueprint("financial", __name__, url_prefix="/api/clinics/<int:clinic_id>/financial")


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


def _user_id() -> int | None:
    return g.identity.user_id if g.identity else None


# =============================================================================
# EXPENSES
# =============================================================================

@financial_bp.get("/expenses")
@require_clinic_permission("financial", "read")
def list_expenses_route(clinic_id: int):
    """
    List expenses.

    Query params: status, category, start, end (due-date range, YYYY-MM-DD)
    """
    try:
        expenses = financial_service.list_expenses(
            clinic_id,
            status=request.args.get("status"),
            category=request.args.get("category"),
            start=_date_arg("start"),
            end=_date_arg("end"),
        )
        return jsonify({"expenses": [e.to_dict() for e in expenses]}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list expenses")
        return jsonify({"error": "Internal server error"}), 500


@financial_bp.post("/expenses")
@require_clinic_permission("financial", "create")
def create_expense_route(clinic_id: int):
    """
    Create an expense.

    Request body:
    {
        "description": "Rent",
        "category": "rent",
        "amount_cents": 250000,
        "due_date": "2026-05-10",
        "status": "PENDING",        (optional: PENDING, SCHEDULED, RECURRING)
        "supplier": "...",          (optional)
        "notes": "..."              (optional)
    }
    """
    try:
        expense = financial_service.create_expense(clinic_id, _user_id(), request.get_json(silent=True))
        return jsonify({"expense": expense.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create expense")
        return jsonify({"error": "Internal server error"}), 500


@financial_bp.get("/expenses/<int:expense_id>")
@require_clinic_permission("financial", "read")
def get_expense_route(clinic_id: int, expense_id: int):
    try:
        expense = financial_service.get_expense(clinic_id, expense_id)
        return jsonify({"expense": expense.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to get expense")
        return jsonify({"error": "Internal server error"}), 500


@financial_bp.put("/expenses/<int:expense_id>")
@require_clinic_permission("financial", "update")
def update_expense_route(clinic_id: int, expense_id: int):
    try:
        expense = financial_service.update_expense(clinic_id, expense_id, request.get_json(silent=True))
        return jsonify({"expense": expense.to_dict()}), 200
    except (ValidationError, FinancialError) as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update expense")
        return jsonify({"error": "Internal server error"}), 500


@financial_bp.post("/expenses/<int:expense_id>/pay")
@require_clinic_permission("financial", "update")
def pay_expense_route(clinic_id: int, expense_id: int):
    """
    Pay an expense.

    Request body: {"payment_method": "pix"}

    When the clinic has accounts, the default (or first) account is debited
    and an "expense" transaction is recorded in the same commit.
    """
    try:
        data = request.get_json(silent=True) or {}
        method = data.get("payment_method") or data.get("method")
        expense = financial_service.pay_expense(clinic_id, expense_id, method, user_id=_user_id())
        return jsonify({"expense": expense.to_dict()}), 200
    except (ValidationError, FinancialError) as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to pay expense")
        return jsonify({"error": "Internal server error"}), 500


@financial_bp.post("/expenses/<int:expense_id>/cancel")
@require_clinic_permission("financial", "update")
def cancel_expense_route(clinic_id: int, expense_id: int):
    try:
        expense = financial_service.cancel_expense(clinic_id, expense_id)
        return jsonify({"expense": expense.to_dict()}), 200
    except FinancialError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to cancel expense")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# ACCOUNTS
# =============================================================================

@financial_bp.get("/accounts")
@require_clinic_permission("financial", "read")
def list_accounts_route(clinic_id: int):
    try:
        accounts = financial_service.list_accounts(clinic_id)
        return jsonify({"accounts": [a.to_dict() for a in accounts]}), 200
    except Exception:
        current_app.logger.exception("Failed to list accounts")
        return jsonify({"error": "Internal server error"}), 500


@financial_bp.post("/accounts")
@require_clinic_permission("financial", "create")
def create_account_route(clinic_id: int):
    try:
        account = financial_service.create_account(clinic_id, request.get_json(silent=True))
        return jsonify({"account": account.to_dict()}), 201
    except (ValidationError, FinancialError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create account")
        return jsonify({"error": "Internal server error"}), 500


@financial_bp.get("/accounts/<int:account_id>")
@require_clinic_permission("financial", "read")
def get_account_route(clinic_id: int, account_id: int):
    try:
        account = financial_service.get_account(clinic_id, account_id)
        return jsonify({"account": account.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to get account")
        return jsonify({"error": "Internal server error"}), 500


@financial_bp.put("/accounts/<int:account_id>")
@require_clinic_permission("financial", "update")
def update_account_route(clinic_id: int, account_id: int):
    try:
        account = financial_service.update_account(clinic_id, account_id, request.get_json(silent=True))
        return jsonify({"account": account.to_dict()}), 200
    except (ValidationError, FinancialError) as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update account")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# TRANSACTIONS
# =============================================================================

@financial_bp.get("/transactions")
@require_clinic_permission("financial", "read")
def list_transactions_route(clinic_id: int):
    """Query params: account_id, type, start, end"""
    try:
        transactions = financial_service.list_transactions(
            clinic_id,
            account_id=_int_arg("account_id"),
            type=request.args.get("type"),
            start=_date_arg("start"),
            end=_date_arg("end"),
        )
        return jsonify({"transactions": [t.to_dict() for t in transactions]}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list transactions")
        return jsonify({"error": "Internal server error"}), 500


@financial_bp.post("/transactions")
@require_clinic_permission("financial", "create")
def create_transaction_route(clinic_id: int):
    try:
        txn = financial_service.create_transaction(clinic_id, _user_id(), request.get_json(silent=True))
        return jsonify({"transaction": txn.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to create transaction")
        return jsonify({"error": "Internal server error"}), 500


@financial_bp.get("/transactions/<int:transaction_id>")
@require_clinic_permission("financial", "read")
def get_transaction_route(clinic_id: int, transaction_id: int):
    try:
        txn = financial_service.get_transaction(clinic_id, transaction_id)
        return jsonify({"transaction": txn.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to get transaction")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# BUDGETS
# =============================================================================

@financial_bp.get("/budgets")
@require_clinic_permission("financial", "read")
def list_budgets_route(clinic_id: int):
    """
    List budgets, or fetch one month.

    Query params: year, month (both given -> single budget or 404)
    """
    try:
        year = _int_arg("year")
        month = _int_arg("month")
        if year is not None and month is not None:
            budget = financial_service.get_budget_for_month(clinic_id, year, month)
            return jsonify({"budget": budget.to_dict()}), 200

        budgets = financial_service.list_budgets(clinic_id, year=year)
        return jsonify({"budgets": [b.to_dict() for b in budgets]}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to list budgets")
        return jsonify({"error": "Internal server error"}), 500


@financial_bp.post("/budgets")
@require_clinic_permission("financial", "create")
def create_budget_route(clinic_id: int):
    try:
        budget = financial_service.create_budget(clinic_id, request.get_json(silent=True))
        return jsonify({"budget": budget.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create budget")
        return jsonify({"error": "Internal server error"}), 500


@financial_bp.get("/budgets/<int:budget_id>")
@require_clinic_permission("financial", "read")
def get_budget_route(clinic_id: int, budget_id: int):
    try:
        budget = financial_service.get_budget(clinic_id, budget_id)
        return jsonify({"budget": budget.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to get budget")
        return jsonify({"error": "Internal server error"}), 500


@financial_bp.put("/budgets/<int:budget_id>")
@require_clinic_permission("financial", "update")
def update_budget_route(clinic_id: int, budget_id: int):
    try:
        budget = financial_service.update_budget(clinic_id, budget_id, request.get_json(silent=True))
        return jsonify({"budget": budget.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update budget")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# GOALS
# =============================================================================

@financial_bp.get("/goals")
@require_clinic_permission("financial", "read")
def list_goals_route(clinic_id: int):
    try:
        goals = financial_service.list_goals(clinic_id)
        return jsonify({"goals": [goal.to_dict() for goal in goals]}), 200
    except Exception:
        current_app.logger.exception("Failed to list goals")
        return jsonify({"error": "Internal server error"}), 500


@financial_bp.post("/goals")
@require_clinic_permission("financial", "create")
def create_goal_route(clinic_id: int):
    try:
        goal = financial_service.create_goal(clinic_id, request.get_json(silent=True))
        return jsonify({"goal": goal.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create goal")
        return jsonify({"error": "Internal server error"}), 500


@financial_bp.get("/goals/<int:goal_id>")
@require_clinic_permission("financial", "read")
def get_goal_route(clinic_id: int, goal_id: int):
    try:
        goal = financial_service.get_goal(clinic_id, goal_id)
        return jsonify({"goal": goal.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to get goal")
        return jsonify({"error": "Internal server error"}), 500


@financial_bp.put("/goals/<int:goal_id>")
@require_clinic_permission("financial", "update")
def update_goal_route(clinic_id: int, goal_id: int):
    try:
        goal = financial_service.update_goal(clinic_id, goal_id, request.get_json(silent=True))
        return jsonify({"goal": goal.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update goal")
        return jsonify({"error": "Internal server error"}), 500
