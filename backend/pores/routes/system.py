# backend/pores/routes/system.py
"""
System health endpoint.

Used by the merchant PWA to decide whether to work online or from its
offline cache.
"""

import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text

from ..extensions import db
from ..services.db_errors import database_unavailable_response

system_bp = Blueprint("system", __name__)


@system_bp.get("/api/health")
def health():
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Database health check failed")
        return database_unavailable_response()

    elapsed_ms = (time.time() - start_time) * 1000
    return jsonify({
        "status": "healthy",
        "database": {"status": "healthy", "latency_ms": round(elapsed_ms, 2)},
    })
