# Overview: Flask API routes for store reports; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_store_context
from ..services import reporting_service
from ..services.db_errors import unexpected_error_response
from ..services.reporting_service import ReportError

reports_bp = Blueprint("reports", __name__, url_prefix="/api")


@reports_bp.get("/reports")
@require_store_context
def store_report_route():
    """
    Query parameters:
    - period: daily | weekly | monthly (default: daily)
    - date: any ISO date inside the wanted window (default: today, UTC)
    """
    try:
        report = reporting_service.store_report(
            store_id=g.store_id,
            period=request.args.get("period"),
            date=request.args.get("date"),
            low_stock_threshold=int(current_app.config["LOW_STOCK_THRESHOLD"]),
        )
        return jsonify(report)
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        return unexpected_error_response("Generating report", e)


@reports_bp.get("/accounting")
@require_store_context
def accounting_report_route():
    try:
        report = reporting_service.accounting_report(
            store_id=g.store_id,
            period=request.args.get("period"),
            date=request.args.get("date"),
        )
        return jsonify(report)
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        return unexpected_error_response("Fetching accounting data", e)
