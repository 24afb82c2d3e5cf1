# Overview: Flask API routes for sales; parses input and returns JSON responses.

# backend/stockflow/routes/sales.py
"""Sales API routes: record, edit, reverse and list sales at seller locations."""

from flask import Blueprint, current_app, jsonify, request

from ..errors import StockflowError
from ..services import sales_service
from ..validation import coerce_int, parse_optional_datetime, require_fields


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")

# Request keys accepted by PUT/PATCH, mapped to update_sale arguments
SALE_UPDATE_FIELDS = {
    "quantity": "quantity",
    "location": "seller_location",
    "unit_price_cents": "unit_price_cents",
    "variants": "variant_lines",
    "sold_at": "sold_at",
}


@sales_bp.post("")
def create_sale_route():
    """
    Record a sale.

    Request body:
    {
        "product_id": int,
        "location": str (seller location code, e.g. CAFETERIA),
        "quantity": int (flat products),
        "variants": [{"name": str, "quantity": int}] (variant products),
        "unit_price_cents": int (optional, defaults to the product price),
        "sold_at": ISO-8601 (optional)
    }
    """
    data = request.get_json(silent=True)
    try:
        require_fields(data, "product_id", "location")
        sale = sales_service.record_sale(
            coerce_int(data["product_id"], "product_id"),
            data.get("quantity"),
            data["location"],
            unit_price_cents=data.get("unit_price_cents"),
            variant_lines=data.get("variants"),
            sold_at=data.get("sold_at"),
        )
        return jsonify({"sale": sale.to_dict()}), 201
    except StockflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
def list_sales_route():
    try:
        product_id = request.args.get("product_id")
        sales = sales_service.list_sales(
            location=request.args.get("location"),
            product_id=coerce_int(product_id, "product_id") if product_id else None,
            start=parse_optional_datetime(request.args.get("start"), "start"),
            end=parse_optional_datetime(request.args.get("end"), "end", end_of_day=True),
        )
        return jsonify({"items": [s.to_dict() for s in sales], "count": len(sales)}), 200
    except StockflowError as e:
        return jsonify(e.to_dict()), e.status_code


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    try:
        return jsonify({"sale": sales_service.get_sale(sale_id).to_dict()}), 200
    except StockflowError as e:
        return jsonify(e.to_dict()), e.status_code


@sales_bp.route("/<int:sale_id>", methods=["PUT", "PATCH"])
def update_sale_route(sale_id: int):
    """Edit a sale; omitted fields keep their recorded values."""
    data = request.get_json(silent=True) or {}
    changes = {arg: data[key] for key, arg in SALE_UPDATE_FIELDS.items() if key in data}
    try:
        sale = sales_service.update_sale(sale_id, **changes)
        return jsonify({"sale": sale.to_dict()}), 200
    except StockflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.delete("/<int:sale_id>")
def delete_sale_route(sale_id: int):
    """Reverse a sale: stock goes back to the seller location."""
    try:
        return jsonify({"deleted": sales_service.reverse_sale(sale_id)}), 200
    except StockflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to reverse sale")
        return jsonify({"error": "Internal server error"}), 500
