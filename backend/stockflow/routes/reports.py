# backend/stockflow/routes/reports.py
"""
Reporting routes (read-only).

Time semantics:
- start/end accept ISO-8601 datetimes or plain dates; both are inclusive.
"""
from flask import Blueprint, current_app, jsonify, request

from ..errors import StockflowError
from ..services import catalog_service, expense_service, reporting_service
from ..validation import parse_optional_datetime


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/summary")
def summary_route():
    try:
        return jsonify(reporting_service.summary(request.args.get("start"), request.args.get("end"))), 200
    except StockflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to build summary report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/expenses")
def list_expenses_route():
    try:
        code = request.args.get("location")
        location = catalog_service.resolve_location(code, require_active=False) if code else None
        expenses = expense_service.list_expenses(
            location_id=location.id if location is not None else None,
            start=parse_optional_datetime(request.args.get("start"), "start"),
            end=parse_optional_datetime(request.args.get("end"), "end", end_of_day=True),
        )
        return jsonify({
            "items": [expense.to_dict() for expense in expenses],
            "count": len(expenses),
            "total_cents": sum(expense.amount_cents for expense in expenses),
        }), 200
    except StockflowError as e:
        return jsonify(e.to_dict()), e.status_code
