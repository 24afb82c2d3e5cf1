# Overview: Flask API routes for the product catalog; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..errors import StockflowError
from ..models.catalog import WAREHOUSE
from ..services import catalog_service, products_service, stock_service


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes"}


@products_bp.get("")
def list_products_route():
    try:
        products = catalog_service.list_products(include_inactive=_truthy(request.args.get("include_inactive")))
        return jsonify({"items": [p.to_dict() for p in products], "count": len(products)}), 200
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("")
def create_product_route():
    """
    Create a product.

    Request body:
    {
        "name": str,
        "price_cents": int,
        "cost_cents": int,
        "has_variants": bool (optional),
        "section": str (optional),
        "initial_quantity": int (optional, flat products),
        "initial_variants": [{"name": str, "quantity": int}] (optional)
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        product = products_service.create_product(
            data,
            initial_quantity=data.get("initial_quantity"),
            initial_variants=data.get("initial_variants"),
        )
        return jsonify({
            "product": product.to_dict(),
            "balances": stock_service.get_product_balances(product),
        }), 201
    except StockflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    try:
        product = catalog_service.get_product(product_id)
        return jsonify({
            "product": product.to_dict(),
            "balances": stock_service.get_product_balances(product),
        }), 200
    except StockflowError as e:
        return jsonify(e.to_dict()), e.status_code


@products_bp.route("/<int:product_id>", methods=["PUT", "PATCH"])
def update_product_route(product_id: int):
    data = request.get_json(silent=True) or {}
    try:
        product = products_service.update_product(product_id, data)
        return jsonify({"product": product.to_dict()}), 200
    except StockflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
def delete_product_route(product_id: int):
    """Hard delete; removes stock, ledger rows, sales, losses, add-ons and product expenses."""
    try:
        return jsonify(products_service.delete_product(product_id)), 200
    except StockflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/<int:product_id>/receive")
def receive_stock_route(product_id: int):
    """
    Receive purchased stock.

    Request body:
    {
        "quantity": int (flat products),
        "variants": [{"name": str, "quantity": int}] (variant products),
        "location": str (optional, default ALMACEN),
        "note": str (optional)
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        result = stock_service.receive_stock(
            product_id,
            data.get("quantity"),
            data.get("variants"),
            location=data.get("location") or WAREHOUSE,
            note=data.get("note"),
        )
        return jsonify(result), 201
    except StockflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to receive stock")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>/addons")
def list_addons_route(product_id: int):
    try:
        addons = products_service.list_addons(product_id)
        return jsonify({"items": [a.to_dict() for a in addons], "count": len(addons)}), 200
    except StockflowError as e:
        return jsonify(e.to_dict()), e.status_code


@products_bp.put("/<int:product_id>/addons")
def replace_addons_route(product_id: int):
    """
    Replace the add-on list.

    Request body:
    {
        "addons": [{"name": str, "price_cents": int}]
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        addons = products_service.replace_addons(product_id, data.get("addons"))
        return jsonify({"items": [a.to_dict() for a in addons], "count": len(addons)}), 200
    except StockflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to replace add-ons")
        return jsonify({"error": "Internal server error"}), 500
