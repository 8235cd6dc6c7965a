# Overview: Request decorators for API routes; establish store context and gate admin access.

import hmac
from functools import wraps

from flask import current_app, g, jsonify, request

from .services import token_service


def require_store_token(f):
    """
    Require a signed store token.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.store_id: The authenticated store
    - g.store_email: Email embedded in the token

    SECURITY: Returns 401 if:
    - No Authorization header
    - Bad signature or expired token
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = token_service.bearer_token(request.headers.get("Authorization"))
        if not token:
            return jsonify({"error": "Unauthorized"}), 401

        payload = token_service.verify_store_token(token)
        if payload is None:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.store_id = payload.store_id
        g.store_email = payload.email
        return f(*args, **kwargs)

    return decorated_function


def require_store_context(f):
    """
    Establish store context from a store token or the x-store-id header.

    The header path carries no proof of identity. It exists for the
    merchant PWA and the offline sync client, which replay requests with
    only the store id they cached at login.

    A Bearer header that fails verification is rejected rather than
    falling back to x-store-id.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = token_service.bearer_token(request.headers.get("Authorization"))
        if token:
            payload = token_service.verify_store_token(token)
            if payload is None:
                return jsonify({"error": "Invalid or expired token"}), 401
            g.store_id = payload.store_id
            g.store_email = payload.email
            return f(*args, **kwargs)

        raw_store_id = (request.headers.get("x-store-id") or "").strip()
        if not raw_store_id:
            return jsonify({"error": "Store ID is required"}), 401
        if not raw_store_id.isdigit():
            return jsonify({"error": "Invalid store ID"}), 401

        g.store_id = int(raw_store_id)
        g.store_email = None
        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """Require X-Admin-Key to match ADMIN_API_KEY. Disabled (403) when unset."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected = current_app.config.get("ADMIN_API_KEY")
        if not expected:
            return jsonify({"error": "Admin access is not configured"}), 403

        provided = request.headers.get("X-Admin-Key") or ""
        if not hmac.compare_digest(provided.encode("utf-8"), str(expected).encode("utf-8")):
            return jsonify({"error": "Admin access required"}), 403

        return f(*args, **kwargs)

    return decorated_function
