# Overview: Flask API routes for store workers.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_store_context
from ..services import worker_service
from ..services.db_errors import unexpected_error_response
from ..validation import ConflictError, ValidationError

workers_bp = Blueprint("workers", __name__, url_prefix="/api/workers")


@workers_bp.get("")
@require_store_context
def list_workers_route():
    try:
        workers = worker_service.list_workers(g.store_id)
        return jsonify([w.to_dict() for w in workers])
    except Exception as e:
        return unexpected_error_response("Fetching workers", e)


@workers_bp.post("")
@require_store_context
def create_worker_route():
    data = request.get_json(silent=True) or {}
    try:
        worker = worker_service.create_worker(g.store_id, data.get("name"), data.get("pin"))
        return jsonify(worker.to_dict()), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception as e:
        return unexpected_error_response("Creating worker", e)
