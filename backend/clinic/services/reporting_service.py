# Overview: Service-layer operations for financial reporting; read-only aggregation over clinic records.

from __future__ import annotations

from collections import OrderedDict
from datetime import date, datetime, timedelta

from dateutil.relativedelta import relativedelta
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from clinic.extensions import db
from clinic.models import Expense, FinancialTransaction
from clinic.time_utils import end_of_day, parse_iso_date, start_of_day, utcnow


class ReportError(Exception):
    """Raised when report parameters are invalid."""
    pass


class ReportGenerationError(Exception):
    """Raised when the underlying data could not be read."""
    pass


# Calendar-aware look-back windows ending at "now"
PERIOD_OFFSETS = {
    "week": relativedelta(days=7),
    "month": relativedelta(months=1),
    "quarter": relativedelta(months=3),
    "year": relativedelta(years=1),
}

PERIOD_INTERVALS = {
    "week": 7,
    "month": 4,
    "quarter": 3,
    "year": 12,
}


def parse_report_range(start: str | None, end: str | None) -> tuple[date, date]:
    """Parse a required start/end query pair (YYYY-MM-DD or ISO datetime)."""
    if not start or not end:
        raise ReportError("start and end are required")
    try:
        start_day = parse_iso_date(start)
        end_day = parse_iso_date(end)
    except ValueError:
        raise ReportError("start and end must be ISO-8601 dates")
    return _check_range(start_day, end_day)


def _check_range(start: date | datetime, end: date | datetime) -> tuple[date, date]:
    if isinstance(start, datetime):
        start = start.date()
    if isinstance(end, datetime):
        end = end.date()
    if end < start:
        raise ReportError("end must be on or after start")
    return start, end


def period_window(period: str, now: datetime | None = None) -> tuple[datetime, datetime]:
    """Map a period token to [now - offset, now]."""
    if period not in PERIOD_OFFSETS:
        raise ReportError(f"period must be one of {', '.join(PERIOD_OFFSETS)}")
    end = now or utcnow()
    return end - PERIOD_OFFSETS[period], end


def _load(operation: str, query):
    try:
        return query.all()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to generate %s report", operation)
        raise ReportGenerationError("Failed to generate report") from exc


def _transactions_between(operation: str, clinic_id: int, start: datetime, end: datetime):
    return _load(
        operation,
        db.session.query(FinancialTransaction).filter(
            FinancialTransaction.clinic_id == clinic_id,
            FinancialTransaction.transaction_date >= start,
            FinancialTransaction.transaction_date <= end,
        ).order_by(FinancialTransaction.transaction_date.asc(), FinancialTransaction.id.asc()),
    )


def _expenses_due_between(operation: str, clinic_id: int, start: datetime, end: datetime):
    return _load(
        operation,
        db.session.query(Expense).filter(
            Expense.clinic_id == clinic_id,
            Expense.due_date >= start,
            Expense.due_date <= end,
        ).order_by(Expense.due_date.asc(), Expense.id.asc()),
    )


def _naive(dt: datetime) -> datetime:
    # SQLite hands back naive values; Postgres hands back aware ones
    if dt.tzinfo is not None:
        return dt.replace(tzinfo=None) - (dt.utcoffset() or timedelta(0))
    return dt


def cash_flow_by_period(clinic_id: int, start: date | datetime, end: date | datetime) -> dict:
    """
    Daily income, expenses and balance for every day in [start, end].

    Days without transactions are zero-filled, so each series holds exactly
    (end - start).days + 1 points.
    """
    start_day, end_day = _check_range(start, end)
    transactions = _transactions_between("cash flow", clinic_id, start_of_day(start_day), end_of_day(end_day))

    days = (end_day - start_day).days + 1
    labels = [(start_day + timedelta(days=i)).isoformat() for i in range(days)]
    income = [0] * days
    expenses = [0] * days

    for txn in transactions:
        index = (_naive(txn.transaction_date).date() - start_day).days
        if not 0 <= index < days:
            continue
        if txn.amount_cents > 0:
            income[index] += txn.amount_cents
        else:
            expenses[index] += abs(txn.amount_cents)

    return {
        "labels": labels,
        "datasets": [
            {"label": "Income", "data": income},
            {"label": "Expenses", "data": expenses},
            {"label": "Balance", "data": [i - e for i, e in zip(income, expenses)]},
        ],
    }


def financial_summary_by_period(clinic_id: int, start: date | datetime, end: date | datetime) -> dict:
    start_day, end_day = _check_range(start, end)
    range_start, range_end = start_of_day(start_day), end_of_day(end_day)

    transactions = _transactions_between("financial summary", clinic_id, range_start, range_end)
    expenses = _expenses_due_between("financial summary", clinic_id, range_start, range_end)

    revenue = sum(t.amount_cents for t in transactions if t.amount_cents > 0)
    spent = sum(abs(t.amount_cents) for t in transactions if t.amount_cents <= 0)
    net = revenue - spent

    return {
        "start": start_day.isoformat(),
        "end": end_day.isoformat(),
        "total_revenue_cents": revenue,
        "total_expenses_cents": spent,
        "net_profit_cents": net,
        "profit_margin": net / revenue * 100 if revenue > 0 else 0,
        "pending_expenses_cents": sum(e.amount_cents for e in expenses if e.status == "PENDING"),
        "transaction_count": len(transactions),
    }


def expense_breakdown_by_category(clinic_id: int, period: str, now: datetime | None = None) -> dict:
    """Non-cancelled expenses due in the period window, summed per category."""
    window_start, window_end = period_window(period, now)
    expenses = _expenses_due_between("expense breakdown", clinic_id, window_start, window_end)

    totals: OrderedDict[str, int] = OrderedDict()
    for expense in expenses:
        if expense.status == "CANCELLED":
            continue
        totals[expense.category] = totals.get(expense.category, 0) + expense.amount_cents

    return {
        "period": period,
        "labels": list(totals.keys()),
        "datasets": [{"label": "Expenses", "data": list(totals.values())}],
    }


def revenue_vs_expense_by_period(clinic_id: int, period: str, now: datetime | None = None) -> dict:
    """
    Revenue and expenses split into equal-width intervals of the period window.

    Each label is the ISO date on which its interval starts. A transaction
    stamped exactly at the window end lands in the last interval.
    """
    window_start, window_end = period_window(period, now)
    count = PERIOD_INTERVALS[period]
    width = (window_end - window_start) / count

    transactions = _transactions_between("revenue vs expense", clinic_id, window_start, window_end)

    labels = [(window_start + width * i).date().isoformat() for i in range(count)]
    revenue = [0] * count
    expenses = [0] * count

    for txn in transactions:
        offset = _naive(txn.transaction_date) - window_start
        index = min(int(offset / width), count - 1)
        if index < 0:
            continue
        if txn.amount_cents > 0:
            revenue[index] += txn.amount_cents
        else:
            expenses[index] += abs(txn.amount_cents)

    return {
        "period": period,
        "labels": labels,
        "datasets": [
            {"label": "Revenue", "data": revenue},
            {"label": "Expenses", "data": expenses},
        ],
    }
