# Overview: Flask API routes for financial reports; parses input and returns JSON responses.

"""
Financial Reports API Routes

All reports are recomputed on every request; nothing is cached.

- cash-flow, summary: ?start=YYYY-MM-DD&end=YYYY-MM-DD
- expenses-by-category, revenue-vs-expense: ?period=week|month|quarter|year
"""

from flask import Blueprint, request, jsonify

from ..services import reporting_service
from ..services.reporting_service import ReportError, ReportGenerationError
from ..decorators import require_clinic_permission


reports_bp = Blueprint("reports", __name__, url_prefix="/api/clinics/<int:clinic_id>/financial/reports")


def _run(build):
    try:
        return jsonify(build()), 200
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    except ReportGenerationError as e:
        # Already logged with the operation name
        return jsonify({"error": str(e)}), 500


@reports_bp.get("/cash-flow")
@require_clinic_permission("financial", "read")
def cash_flow_route(clinic_id: int):
    def build():
        start, end = reporting_service.parse_report_range(request.args.get("start"), request.args.get("end"))
        return reporting_service.cash_flow_by_period(clinic_id, start, end)
    return _run(build)


@reports_bp.get("/summary")
@require_clinic_permission("financial", "read")
def summary_route(clinic_id: int):
    def build():
        start, end = reporting_service.parse_report_range(request.args.get("start"), request.args.get("end"))
        return reporting_service.financial_summary_by_period(clinic_id, start, end)
    return _run(build)


@reports_bp.get("/expenses-by-category")
@require_clinic_permission("financial", "read")
def expenses_by_category_route(clinic_id: int):
    return _run(lambda: reporting_service.expense_breakdown_by_category(
        clinic_id, request.args.get("period", "month")
    ))


@reports_bp.get("/revenue-vs-expense")
@require_clinic_permission("financial", "read")
def revenue_vs_expense_route(clinic_id: int):
    return _run(lambda: reporting_service.revenue_vs_expense_by_period(
        clinic_id, request.args.get("period", "month")
    ))
