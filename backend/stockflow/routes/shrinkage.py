# backend/stockflow/routes/shrinkage.py
"""
Shrinkage ("merma") routes.

A loss with no "location" is charged to the configured fallback owner.
Deleting a loss puts its stock back.
"""
from flask import Blueprint, current_app, jsonify, request

from ..errors import StockflowError
from ..services import shrinkage_service
from ..validation import coerce_int, parse_optional_datetime, require_fields


shrinkage_bp = Blueprint("shrinkage", __name__, url_prefix="/api/shrinkage")


@shrinkage_bp.post("")
def record_loss_route():
    """
    Request body:
    {
        "product_id": int,
        "quantity": int (flat products),
        "variants": [{"name": str, "quantity": int}] (variant products),
        "location": str (optional owner),
        "occurred_at": ISO-8601 (optional)
    }
    """
    data = request.get_json(silent=True)
    try:
        require_fields(data, "product_id")
        loss = shrinkage_service.record_loss(
            coerce_int(data["product_id"], "product_id"),
            data.get("quantity"),
            attributed_to=data.get("location"),
            variant_lines=data.get("variants"),
            occurred_at=data.get("occurred_at"),
        )
        return jsonify({"loss": loss.to_dict()}), 201
    except StockflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record loss")
        return jsonify({"error": "Internal server error"}), 500


@shrinkage_bp.get("")
def list_losses_route():
    try:
        product_id = request.args.get("product_id")
        losses = shrinkage_service.list_losses(
            location=request.args.get("location"),
            product_id=coerce_int(product_id, "product_id") if product_id else None,
            start=parse_optional_datetime(request.args.get("start"), "start"),
            end=parse_optional_datetime(request.args.get("end"), "end", end_of_day=True),
        )
        return jsonify({"items": [loss.to_dict() for loss in losses], "count": len(losses)}), 200
    except StockflowError as e:
        return jsonify(e.to_dict()), e.status_code


@shrinkage_bp.delete("/<int:loss_id>")
def reverse_loss_route(loss_id: int):
    try:
        return jsonify({"deleted": shrinkage_service.reverse_loss(loss_id)}), 200
    except StockflowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to reverse loss")
        return jsonify({"error": "Internal server error"}), 500
