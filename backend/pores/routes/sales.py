# Overview: Flask API routes for sales; parses input and returns JSON responses.

"""
Sales Routes

POST settles a checkout (sale rows, stock decrement and any credit) in a
single transaction. Sales are immutable afterwards; there is no update
or delete.
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import require_store_context
from ..services import sales_service
from ..services.auth_service import AuthError
from ..services.db_errors import unexpected_error_response
from ..services.sales_service import SaleError
from ..time_utils import parse_date_range
from ..validation import NotFoundError

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_store_context
def create_sale_route():
    """
    Request body:
    {
        "worker_id": 3 | "keeper",
        "items": [{"product_id", "quantity", "unit_price", "cost_price", "sell_by_bulk"?}],
        "amount_paid": 1000,          // optional, defaults to the total
        "is_partial": false,
        "payment_method": "cash",
        "customer_name": "...",       // opens a credit for any shortfall
        "customer_phone": "..."
    }

    Returns:
        201 {"sale": Sale (with items and credit)}
    """
    data = request.get_json(silent=True) or {}
    try:
        sale = sales_service.settle_sale(
            g.store_id,
            worker_id=data.get("worker_id"),
            items=data.get("items"),
            amount_paid=data.get("amount_paid"),
            is_partial=data.get("is_partial", False),
            payment_method=data.get("payment_method"),
            customer_name=data.get("customer_name"),
            customer_phone=data.get("customer_phone"),
        )
        return jsonify({"sale": sales_service.sale_to_dict(sale)}), 201
    except SaleError as e:
        return jsonify({"error": str(e)}), 400
    except AuthError as e:
        return jsonify({"error": str(e)}), 401
    except Exception as e:
        return unexpected_error_response("Creating sale", e)


@sales_bp.get("")
@require_store_context
def list_sales_route():
    try:
        start, end = parse_date_range(request.args.get("start_date"), request.args.get("end_date"))
    except ValueError:
        return jsonify({"error": "Invalid date range"}), 400

    try:
        sales = sales_service.list_sales(g.store_id, start, end)
        return jsonify([s.to_dict(include_items=True) for s in sales])
    except Exception as e:
        return unexpected_error_response("Fetching sales", e)


@sales_bp.get("/<int:sale_id>")
@require_store_context
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(g.store_id, sale_id)
        data = sales_service.sale_to_dict(sale)
        data["credits"] = [c.to_dict(include_payments=True) for c in sale.credits]
        return jsonify(data)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        return unexpected_error_response("Fetching sale", e)
