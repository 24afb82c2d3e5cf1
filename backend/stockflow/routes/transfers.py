# backend/stockflow/routes/transfers.py
"""
Transfer API routes.

POST /api/transfers moves stock between any two locations; the named
directions (almacen-cocina, cocina-almacen, ...) are shortcuts with fixed
endpoints. Kitchen -> warehouse returns also book an expense.
"""
from flask import Blueprint, current_app, jsonify, request

from ..errors import StockflowError
from ..services import transfer_service
from ..validation import coerce_int, require_fields


transfers_bp = Blueprint("transfers", __name__, url_prefix="/api/transfers")


@transfers_bp.post("")
def create_transfer_route():
    """
    Move stock between two locations.

    Request body:
    {
        "product_id": int,
        "source": str,
        "destination": str,
        "quantity": int (flat products; optional cross-check for variants),
        "variants": [{"name": str, "quantity": int}] (variant products),
        "note": str (optional)
    }

    Returns:
        201: Transfer committed (ledger legs + both balances)
        400: Invalid request or insufficient stock
        404: Product or location not found
    """
    data = request.get_json(silent=True)
    try:
        require_fields(data, "product_id", "source", "destination")
        result = transfer_service.transfer(
            coerce_int(data["product_id"], "product_id"),
            data.get("quantity"),
            data["source"],
            data["destination"],
            data.get("variants"),
            note=data.get("note"),
        )
        return jsonify(result.to_dict()), 201
    except StockflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create transfer")
        return jsonify({"error": "Internal server error"}), 500


@transfers_bp.get("/directions")
def list_directions_route():
    return jsonify({"directions": sorted(transfer_service.DIRECTIONS)}), 200


@transfers_bp.post("/<direction>")
def transfer_by_direction_route(direction: str):
    """Same body as POST /api/transfers without source/destination."""
    data = request.get_json(silent=True)
    try:
        require_fields(data, "product_id")
        result = transfer_service.transfer_by_direction(
            direction,
            coerce_int(data["product_id"], "product_id"),
            data.get("quantity"),
            data.get("variants"),
        )
        return jsonify(result.to_dict()), 201
    except StockflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to transfer %s", direction)
        return jsonify({"error": "Internal server error"}), 500
