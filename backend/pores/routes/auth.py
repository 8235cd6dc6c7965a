# Overview: Flask API routes for store auth; parses input and returns JSON responses.

"""
Store Authentication API routes

- signup / login issue a 24h store token
- store-keeper issues a 1h keeper token
- verify-pin identifies the worker at the till
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import require_store_context, require_store_token
from ..services import auth_service
from ..services.auth_service import AuthError
from ..services.db_errors import unexpected_error_response
from ..validation import ConflictError, NotFoundError, ValidationError

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _auth_error(e: AuthError):
    body = {"error": str(e)}
    if e.code:
        body["code"] = e.code
    return jsonify(body), 401


@auth_bp.post("/signup")
def signup_route():
    data = request.get_json(silent=True) or {}
    try:
        store, token = auth_service.signup(
            email=data.get("email"),
            password=data.get("password"),
            business_name=data.get("business_name"),
            currency=data.get("currency"),
        )
        return jsonify({"success": True, "token": token, "store": store.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception as e:
        return unexpected_error_response("Signup", e)


@auth_bp.post("/login")
def login_route():
    data = request.get_json(silent=True) or {}
    try:
        store, token = auth_service.login(data.get("email"), data.get("password"))
        return jsonify({"success": True, "token": token, "store": store.to_dict()})
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except AuthError as e:
        return _auth_error(e)
    except Exception as e:
        return unexpected_error_response("Login", e)


@auth_bp.get("/me")
@require_store_token
def me_route():
    try:
        store = auth_service.get_store(g.store_id)
        return jsonify({"store": store.to_dict()})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        return unexpected_error_response("Profile lookup", e)


@auth_bp.post("/store-keeper")
@require_store_token
def store_keeper_route():
    """
    Keeper approval.

    Request body: {"password": "...", "action": "verify" | "setup"}
    Returns: {"success": true, "token": "<keeper token>"}
    """
    data = request.get_json(silent=True) or {}
    try:
        token = auth_service.store_keeper(g.store_id, data.get("password"), data.get("action") or "verify")
        return jsonify({"success": True, "token": token})
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except AuthError as e:
        return _auth_error(e)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        return unexpected_error_response("Keeper verification", e)


@auth_bp.post("/verify-pin")
@require_store_context
def verify_pin_route():
    """
    Worker PIN verification.

    Returns {success, worker_id, worker_name, type} where type is
    "worker" or "keeper". A store with no keeper password and no matching
    worker gets 401 with code NO_PIN_SETUP.
    """
    data = request.get_json(silent=True) or {}
    try:
        return jsonify(auth_service.verify_pin(g.store_id, data.get("pin")))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except AuthError as e:
        return _auth_error(e)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        return unexpected_error_response("PIN verification", e)
