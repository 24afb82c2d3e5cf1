# backend/stockflow/routes/inventory.py
"""
Per-product balances, kitchen consumption and the aggregate consistency check.
"""
from flask import Blueprint, current_app, jsonify, request

from ..errors import StockflowError
from ..services import catalog_service, stock_service
from ..validation import coerce_int, require_fields


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/<int:product_id>")
def product_balances_route(product_id: int):
    """Balances of one product; ?location=CODE narrows to a single location."""
    try:
        product = catalog_service.get_product(product_id)
        code = request.args.get("location")
        if code:
            location = catalog_service.resolve_location(code, require_active=False)
            return jsonify(stock_service.get_balance(product, location)), 200
        return jsonify({
            "product_id": product.id,
            "has_variants": product.has_variants,
            "balances": stock_service.get_product_balances(product),
        }), 200
    except StockflowError as e:
        return jsonify(e.to_dict()), e.status_code


@inventory_bp.post("/kitchen/consume")
def consume_kitchen_route():
    """
    Use up kitchen stock and book its cost as an expense.

    Request body:
    {
        "product_id": int,
        "quantity": int (flat products),
        "variants": [{"name": str, "quantity": int}] (variant products)
    }
    """
    data = request.get_json(silent=True)
    try:
        require_fields(data, "product_id")
        result = stock_service.consume_kitchen_stock(
            coerce_int(data["product_id"], "product_id"),
            data.get("quantity"),
            data.get("variants"),
        )
        return jsonify(result), 201
    except StockflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to consume kitchen stock")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/consistency")
def consistency_route():
    problems = stock_service.verify_consistency()
    return jsonify({"ok": not problems, "problems": problems}), 200
