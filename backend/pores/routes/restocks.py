# Overview: Flask API routes for stock receipts.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_store_context
from ..services import products_service
from ..services.db_errors import unexpected_error_response
from ..time_utils import parse_date_range
from ..validation import NotFoundError, ValidationError

restocks_bp = Blueprint("restocks", __name__, url_prefix="/api/restocks")


@restocks_bp.post("")
@require_store_context
def create_restock_route():
    """
    Request body: {"product_id", "quantity", "cost_price", "notes"?}
    """
    data = request.get_json(silent=True) or {}
    try:
        restock = products_service.create_restock(
            g.store_id,
            product_id=data.get("product_id"),
            quantity=data.get("quantity"),
            cost_price=data.get("cost_price"),
            notes=data.get("notes"),
        )
        return jsonify(restock.to_dict(include_product=True)), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        return unexpected_error_response("Recording restock", e)


@restocks_bp.get("")
@require_store_context
def list_restocks_route():
    try:
        start, end = parse_date_range(request.args.get("start_date"), request.args.get("end_date"))
    except ValueError:
        return jsonify({"error": "Invalid date range"}), 400

    try:
        restocks = products_service.list_restocks(g.store_id, start, end)
        return jsonify([r.to_dict(include_product=True) for r in restocks])
    except Exception as e:
        return unexpected_error_response("Fetching restocks", e)
