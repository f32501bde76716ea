# Overview: Pytest coverage for expenses, accounts, transactions, budgets and goals.

from datetime import date

import pytest

from clinic.extensions import db
from clinic.models import Account, Expense, FinancialTransaction
from clinic.services import financial_service
from clinic.services.financial_service import FinancialError
from clinic.validation import NotFoundError, ValidationError


def _expense(clinic_id, amount_cents=2500, **extra):
    payload = {
        "description": "Cleaning supplies",
        "category": "supplies",
        "amount_cents": amount_cents,
        "due_date": "2026-05-10",
    }
    payload.update(extra)
    return financial_service.create_expense(clinic_id, None, payload)


# =============================================================================
# EXPENSE LIFECYCLE
# =============================================================================


class TestPayExpense:

    def test_pay_debits_single_account(self, db_session, clinic_a):
        account = financial_service.create_account(clinic_a.id, {"name": "Main", "balance_cents": 10000})
        expense = _expense(clinic_a.id, 2500)

        paid = financial_service.pay_expense(clinic_a.id, expense.id, "pix")

        assert paid.status == "PAID"
        assert paid.payment_method == "pix"
        assert paid.payment_date is not None
        assert db_session.get(Account, account.id).balance_cents == 7500

        transactions = db_session.query(FinancialTransaction).filter_by(clinic_id=clinic_a.id).all()
        assert len(transactions) == 1
        assert transactions[0].amount_cents == -2500
        assert transactions[0].type == "expense"
        assert transactions[0].expense_id == expense.id
        assert transactions[0].account_id == account.id

    def test_pay_without_accounts_has_no_side_effects(self, db_session, clinic_a):
        expense = _expense(clinic_a.id, 2500)

        paid = financial_service.pay_expense(clinic_a.id, expense.id, "cash")

        assert paid.status == "PAID"
        assert db_session.query(FinancialTransaction).count() == 0
        assert db_session.query(Account).count() == 0

    def test_pay_prefers_default_account(self, db_session, clinic_a):
        first = financial_service.create_account(clinic_a.id, {"name": "A first", "balance_cents": 1000})
        default = financial_service.create_account(
            clinic_a.id, {"name": "Z default", "balance_cents": 1000, "is_default": True}
        )
        expense = _expense(clinic_a.id, 400)

        financial_service.pay_expense(clinic_a.id, expense.id, "pix")

        assert db_session.get(Account, default.id).balance_cents == 600
        assert db_session.get(Account, first.id).balance_cents == 1000

    def test_pay_falls_back_to_first_account_by_name(self, db_session, clinic_a):
        later = financial_service.create_account(clinic_a.id, {"name": "Savings", "balance_cents": 1000})
        first = financial_service.create_account(clinic_a.id, {"name": "Cash box", "balance_cents": 1000})
        expense = _expense(clinic_a.id, 300)

        financial_service.pay_expense(clinic_a.id, expense.id, "cash")

        assert db_session.get(Account, first.id).balance_cents == 700
        assert db_session.get(Account, later.id).balance_cents == 1000

    @pytest.mark.parametrize("status", ["SCHEDULED", "RECURRING"])
    def test_open_statuses_can_be_paid(self, clinic_a, status):
        expense = _expense(clinic_a.id, status=status)
        assert financial_service.pay_expense(clinic_a.id, expense.id, "boleto").status == "PAID"

    def test_paying_twice_is_rejected(self, db_session, clinic_a):
        account = financial_service.create_account(clinic_a.id, {"name": "Main", "balance_cents": 10000})
        expense = _expense(clinic_a.id, 2500)
        financial_service.pay_expense(clinic_a.id, expense.id, "pix")

        with pytest.raises(FinancialError):
            financial_service.pay_expense(clinic_a.id, expense.id, "pix")

        assert db_session.get(Account, account.id).balance_cents == 7500
        assert db_session.query(FinancialTransaction).count() == 1

    def test_paying_cancelled_is_rejected(self, clinic_a):
        expense = _expense(clinic_a.id)
        financial_service.cancel_expense(clinic_a.id, expense.id)
        with pytest.raises(FinancialError):
            financial_service.pay_expense(clinic_a.id, expense.id, "pix")

    @pytest.mark.parametrize("method", [None, "", "cheque"])
    def test_method_is_required_and_known(self, db_session, clinic_a, method):
        expense = _expense(clinic_a.id)
        with pytest.raises(ValidationError):
            financial_service.pay_expense(clinic_a.id, expense.id, method)
        assert db_session.get(Expense, expense.id).status == "PENDING"

    def test_unknown_expense_is_not_found(self, clinic_a):
        with pytest.raises(NotFoundError):
            financial_service.pay_expense(clinic_a.id, 999999, "pix")


class TestCancelExpense:

    def test_cancel_has_no_financial_side_effects(self, db_session, clinic_a):
        account = financial_service.create_account(clinic_a.id, {"name": "Main", "balance_cents": 10000})
        expense = _expense(clinic_a.id)

        cancelled = financial_service.cancel_expense(clinic_a.id, expense.id)

        assert cancelled.status == "CANCELLED"
        assert db_session.get(Account, account.id).balance_cents == 10000
        assert db_session.query(FinancialTransaction).count() == 0

    def test_cancel_paid_is_rejected(self, clinic_a):
        expense = _expense(clinic_a.id)
        financial_service.pay_expense(clinic_a.id, expense.id, "pix")
        with pytest.raises(FinancialError):
            financial_service.cancel_expense(clinic_a.id, expense.id)


class TestExpenseValidation:

    def test_unknown_field_rejected(self, clinic_a):
        with pytest.raises(ValidationError, match="Field not allowed"):
            _expense(clinic_a.id, paid_by="front desk")

    def test_clinic_id_is_not_writable(self, clinic_a, clinic_b):
        with pytest.raises(ValidationError, match="Field not allowed: clinic_id"):
            financial_service.create_expense(clinic_a.id, None, {
                "description": "Rent",
                "category": "rent",
                "amount_cents": 1000,
                "due_date": "2026-05-10",
                "clinic_id": clinic_b.id,
            })

    def test_cannot_create_as_paid(self, clinic_a):
        with pytest.raises(ValidationError):
            _expense(clinic_a.id, status="PAID")

    @pytest.mark.parametrize("amount", [0, -100, 12.5, "1e3"])
    def test_amount_must_be_positive_integer(self, clinic_a, amount):
        with pytest.raises(ValidationError):
            _expense(clinic_a.id, amount)

    def test_paid_expense_amount_is_frozen(self, clinic_a):
        expense = _expense(clinic_a.id)
        financial_service.pay_expense(clinic_a.id, expense.id, "pix")
        with pytest.raises(FinancialError):
            financial_service.update_expense(clinic_a.id, expense.id, {"amount_cents": 1})

    def test_paid_expense_notes_are_editable(self, clinic_a):
        expense = _expense(clinic_a.id)
        financial_service.pay_expense(clinic_a.id, expense.id, "pix")
        updated = financial_service.update_expense(clinic_a.id, expense.id, {"notes": "receipt filed"})
        assert updated.notes == "receipt filed"

    def test_list_filters(self, clinic_a):
        _expense(clinic_a.id, category="rent", due_date="2026-04-01")
        _expense(clinic_a.id, category="rent", due_date="2026-05-01")
        _expense(clinic_a.id, category="supplies", due_date="2026-05-02")

        rent = financial_service.list_expenses(clinic_a.id, category="rent")
        may = financial_service.list_expenses(clinic_a.id, start=date(2026, 5, 1), end=date(2026, 5, 31))

        assert len(rent) == 2
        assert [e.category for e in may] == ["rent", "supplies"]


# =============================================================================
# ACCOUNTS
# =============================================================================


class TestDefaultAccount:

    def _defaults(self, clinic_id):
        return db.session.query(Account).filter_by(clinic_id=clinic_id, is_default=True).all()

    def test_new_default_replaces_old(self, clinic_a):
        first = financial_service.create_account(clinic_a.id, {"name": "First", "is_default": True})
        second = financial_service.create_account(clinic_a.id, {"name": "Second", "is_default": True})

        defaults = self._defaults(clinic_a.id)
        assert [a.id for a in defaults] == [second.id]
        assert db.session.get(Account, first.id).is_default is False

    def test_update_moves_default(self, clinic_a):
        first = financial_service.create_account(clinic_a.id, {"name": "First", "is_default": True})
        second = financial_service.create_account(clinic_a.id, {"name": "Second"})

        financial_service.update_account(clinic_a.id, second.id, {"is_default": True})

        assert [a.id for a in self._defaults(clinic_a.id)] == [second.id]
        financial_service.update_account(clinic_a.id, first.id, {"is_default": True})
        assert [a.id for a in self._defaults(clinic_a.id)] == [first.id]

    def test_defaults_are_per_clinic(self, clinic_a, clinic_b):
        financial_service.create_account(clinic_a.id, {"name": "A", "is_default": True})
        financial_service.create_account(clinic_b.id, {"name": "B", "is_default": True})
        assert len(self._defaults(clinic_a.id)) == 1
        assert len(self._defaults(clinic_b.id)) == 1

    def test_list_puts_default_first(self, clinic_a):
        financial_service.create_account(clinic_a.id, {"name": "Alpha"})
        financial_service.create_account(clinic_a.id, {"name": "Zeta", "is_default": True})
        assert [a.name for a in financial_service.list_accounts(clinic_a.id)] == ["Zeta", "Alpha"]

    def test_balance_not_writable_after_creation(self, clinic_a):
        account = financial_service.create_account(clinic_a.id, {"name": "Main", "balance_cents": 100})
        with pytest.raises(ValidationError, match="Field not allowed"):
            financial_service.update_account(clinic_a.id, account.id, {"balance_cents": 999})

    def test_unknown_account_type_rejected(self, clinic_a):
        with pytest.raises(ValidationError):
            financial_service.create_account(clinic_a.id, {"name": "Main", "account_type": "crypto"})


# =============================================================================
# TRANSACTIONS
# =============================================================================


class TestTransactions:

    def test_income_credits_account(self, db_session, clinic_a):
        account = financial_service.create_account(clinic_a.id, {"name": "Main", "balance_cents": 1000})
        txn = financial_service.create_transaction(clinic_a.id, None, {
            "account_id": account.id,
            "type": "income",
            "amount_cents": 500,
            "transaction_date": "2026-05-10T12:00:00Z",
        })
        assert txn.id is not None
        assert db_session.get(Account, account.id).balance_cents == 1500

    def test_transaction_without_account(self, db_session, clinic_a):
        txn = financial_service.create_transaction(clinic_a.id, None, {
            "type": "expense",
            "amount_cents": -300,
            "transaction_date": "2026-05-10",
        })
        assert txn.account_id is None

    @pytest.mark.parametrize("txn_type,amount", [("income", -100), ("expense", 100)])
    def test_sign_must_match_type(self, clinic_a, txn_type, amount):
        with pytest.raises(ValidationError):
            financial_service.create_transaction(clinic_a.id, None, {
                "type": txn_type,
                "amount_cents": amount,
                "transaction_date": "2026-05-10",
            })

    def test_unknown_type_rejected(self, clinic_a):
        with pytest.raises(ValidationError):
            financial_service.create_transaction(clinic_a.id, None, {
                "type": "gift",
                "amount_cents": 100,
                "transaction_date": "2026-05-10",
            })

    def test_list_filters_by_type(self, clinic_a):
        for txn_type, amount in [("income", 100), ("expense", -50), ("income", 20)]:
            financial_service.create_transaction(clinic_a.id, None, {
                "type": txn_type,
                "amount_cents": amount,
                "transaction_date": "2026-05-10",
            })
        assert len(financial_service.list_transactions(clinic_a.id, type="income")) == 2


# =============================================================================
# BUDGETS AND GOALS
# =============================================================================


class TestBudgets:

    def test_one_budget_per_month(self, clinic_a):
        financial_service.create_budget(clinic_a.id, {"year": 2026, "month": 5, "total_cents": 100000})
        with pytest.raises(ValidationError, match="already exists for this month"):
            financial_service.create_budget(clinic_a.id, {"year": 2026, "month": 5, "total_cents": 1})

    def test_same_month_in_other_clinic_is_fine(self, clinic_a, clinic_b):
        financial_service.create_budget(clinic_a.id, {"year": 2026, "month": 5, "total_cents": 100})
        assert financial_service.create_budget(clinic_b.id, {"year": 2026, "month": 5, "total_cents": 100}).id

    @pytest.mark.parametrize("month", [0, 13])
    def test_month_range(self, clinic_a, month):
        with pytest.raises(ValidationError):
            financial_service.create_budget(clinic_a.id, {"year": 2026, "month": month, "total_cents": 1})

    def test_get_by_month(self, clinic_a):
        created = financial_service.create_budget(clinic_a.id, {"year": 2026, "month": 6, "total_cents": 7})
        assert financial_service.get_budget_for_month(clinic_a.id, 2026, 6).id == created.id
        with pytest.raises(NotFoundError):
            financial_service.get_budget_for_month(clinic_a.id, 2026, 7)


class TestGoals:

    def test_goals_ordered_by_end_date(self, clinic_a):
        financial_service.create_goal(clinic_a.id, {
            "name": "Late", "target_cents": 100, "start_date": "2026-01-01", "end_date": "2026-12-31",
        })
        financial_service.create_goal(clinic_a.id, {
            "name": "Early", "target_cents": 100, "start_date": "2026-01-01", "end_date": "2026-03-31",
        })
        assert [g.name for g in financial_service.list_goals(clinic_a.id)] == ["Early", "Late"]

    def test_end_before_start_rejected_on_update(self, clinic_a):
        goal = financial_service.create_goal(clinic_a.id, {
            "name": "Q1", "target_cents": 100, "start_date": "2026-01-01", "end_date": "2026-03-31",
        })
        with pytest.raises(ValidationError):
            financial_service.update_goal(clinic_a.id, goal.id, {"end_date": "2025-12-31"})
