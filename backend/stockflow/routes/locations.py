# backend/stockflow/routes/locations.py
"""Location routes: list, register seller locations, stock on hand per location."""

from flask import Blueprint, current_app, jsonify, request

from ..errors import StockflowError
from ..models.catalog import LOCATION_KIND_SELLER
from ..services import catalog_service, stock_service


locations_bp = Blueprint("locations", __name__, url_prefix="/api/locations")


@locations_bp.get("")
def list_locations_route():
    include_inactive = request.args.get("include_inactive", "").lower() in {"1", "true", "yes"}
    locations = catalog_service.list_locations(include_inactive=include_inactive)
    return jsonify({"items": [loc.to_dict() for loc in locations], "count": len(locations)}), 200


@locations_bp.post("")
def create_location_route():
    data = request.get_json(silent=True) or {}
    try:
        location = catalog_service.create_location(
            data.get("code"),
            data.get("name"),
            data.get("kind") or LOCATION_KIND_SELLER,
        )
        return jsonify({"location": location.to_dict()}), 201
    except StockflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create location")
        return jsonify({"error": "Internal server error"}), 500


@locations_bp.get("/<code>/stock")
def location_stock_route(code: str):
    include_empty = request.args.get("include_empty", "").lower() in {"1", "true", "yes"}
    try:
        rows = stock_service.list_location_stock(code, include_empty=include_empty)
        return jsonify({
            "location": code.upper(),
            "items": [row.to_dict() for row in rows],
            "count": len(rows),
        }), 200
    except StockflowError as e:
        return jsonify(e.to_dict()), e.status_code
