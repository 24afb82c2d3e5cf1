# Overview: Read-only routes over the stock transaction ledger.

from flask import Blueprint, jsonify, request

from ..errors import StockflowError
from ..services import ledger_service
from ..validation import coerce_int, parse_optional_datetime


ledger_bp = Blueprint("ledger", __name__, url_prefix="/api/transactions")


@ledger_bp.get("")
def list_transactions_route():
    """
    Ledger rows, newest first.

    Query params: product_id, location (matches either endpoint),
    kind (Baja | Entrega), start, end (inclusive), limit.
    """
    try:
        product_id = request.args.get("product_id")
        limit = request.args.get("limit")
        rows = ledger_service.list_transactions(
            product_id=coerce_int(product_id, "product_id") if product_id else None,
            location=request.args.get("location"),
            kind=request.args.get("kind") or None,
            start=parse_optional_datetime(request.args.get("start"), "start"),
            end=parse_optional_datetime(request.args.get("end"), "end", end_of_day=True),
            limit=coerce_int(limit, "limit") if limit else None,
        )
        return jsonify({"items": [tx.to_dict() for tx in rows], "count": len(rows)}), 200
    except StockflowError as e:
        return jsonify(e.to_dict()), e.status_code


@ledger_bp.get("/operations/<operation_id>")
def get_operation_route(operation_id: str):
    rows = ledger_service.list_operation(operation_id)
    if not rows:
        return jsonify({"error": f"Operation {operation_id} not found", "details": {}}), 404
    return jsonify({"operation_id": operation_id, "items": [tx.to_dict() for tx in rows]}), 200
