# Overview: Flask API routes for customer credit and repayments.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_store_context
from ..services import credit_service
from ..services.auth_service import AuthError
from ..services.credit_service import CreditError
from ..services.db_errors import unexpected_error_response
from ..validation import NotFoundError, ValidationError

credits_bp = Blueprint("credits", __name__, url_prefix="/api/credits")


@credits_bp.post("")
@require_store_context
def create_credit_route():
    """
    Request body: {"customer_name", "total_owed", "phone_number"?, "sale_id"?}
    """
    data = request.get_json(silent=True) or {}
    try:
        credit = credit_service.create_credit(
            g.store_id,
            customer_name=data.get("customer_name"),
            total_owed=data.get("total_owed"),
            phone_number=data.get("phone_number"),
            sale_id=data.get("sale_id"),
        )
        return jsonify(credit.to_dict(include_payments=True)), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        return unexpected_error_response("Creating credit", e)


@credits_bp.get("")
@require_store_context
def list_credits_route():
    status = request.args.get("status")
    try:
        credits = credit_service.list_credits(g.store_id, status=status)
        return jsonify([c.to_dict(include_payments=True) for c in credits])
    except Exception as e:
        return unexpected_error_response("Fetching credits", e)


@credits_bp.post("/<int:credit_id>/payment")
@require_store_context
def credit_payment_route(credit_id: int):
    """
    Record a repayment.

    Request body: {"amount": 700, "worker_id": 3 | "keeper"}

    Returns:
        201 {payment, credit, store_credit, applied, overpaid}
        store_credit is null unless the amount exceeded the balance.
    """
    data = request.get_json(silent=True) or {}
    try:
        result = credit_service.apply_payment(
            g.store_id,
            credit_id,
            amount=data.get("amount"),
            worker_id=data.get("worker_id"),
        )
        return jsonify(result), 201
    except (ValidationError, CreditError) as e:
        return jsonify({"error": str(e)}), 400
    except AuthError as e:
        return jsonify({"error": str(e)}), 401
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        return unexpected_error_response("Processing payment", e)
