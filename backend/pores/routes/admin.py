# Overview: Flask API routes for the platform admin panel.

"""
Admin Routes

SECURITY: Every route requires the X-Admin-Key header to match
ADMIN_API_KEY. These routes read across all stores.

Paginated lists answer:
    {"<items>": [...], "pagination": {"total", "page", "limit", "pages"}}
"""

import math

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_admin
from ..services import (
    catalog_service,
    credit_service,
    products_service,
    reporting_service,
    sales_service,
    store_service,
    worker_service,
)
from ..services.catalog_service import CatalogError
from ..services.db_errors import unexpected_error_response
from ..services.reporting_service import ReportError
from ..validation import NotFoundError, ValidationError

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def _page_args() -> tuple[int, int]:
    page = request.args.get("page", 1, type=int)
    limit = request.args.get("limit", DEFAULT_PAGE_SIZE, type=int)
    if page < 1:
        page = 1
    if limit < 1:
        limit = 1
    if limit > MAX_PAGE_SIZE:
        limit = MAX_PAGE_SIZE
    return page, limit


def _paginated(key: str, items: list, total: int, page: int, limit: int):
    return jsonify({
        key: items,
        "pagination": {
            "total": total,
            "page": page,
            "limit": limit,
            "pages": math.ceil(total / limit) if limit else 0,
        },
    })


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------

@admin_bp.get("/stores")
@require_admin
def list_stores_route():
    page, limit = _page_args()
    try:
        items, total = store_service.admin_list_stores(page, limit, search=request.args.get("search"))
        return _paginated("stores", items, total, page, limit)
    except Exception as e:
        return unexpected_error_response("Fetching stores", e)


@admin_bp.get("/stores/<int:store_id>")
@require_admin
def get_store_route(store_id: int):
    try:
        return jsonify(store_service.admin_store_detail(store_id))
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        return unexpected_error_response("Fetching store", e)


# ---------------------------------------------------------------------------
# Cross-store listings
# ---------------------------------------------------------------------------

@admin_bp.get("/sales")
@require_admin
def list_sales_route():
    page, limit = _page_args()
    try:
        items, total = sales_service.admin_list_sales(page, limit, request.args.get("payment_status"))
        return _paginated("sales", items, total, page, limit)
    except Exception as e:
        return unexpected_error_response("Fetching sales", e)


@admin_bp.get("/workers")
@require_admin
def list_workers_route():
    page, limit = _page_args()
    try:
        items, total = worker_service.admin_list_workers(page, limit)
        return _paginated("workers", items, total, page, limit)
    except Exception as e:
        return unexpected_error_response("Fetching workers", e)


@admin_bp.get("/credits")
@require_admin
def list_credits_route():
    page, limit = _page_args()
    try:
        items, total = credit_service.admin_list_credits(page, limit, request.args.get("payment_status"))
        return _paginated("credits", items, total, page, limit)
    except Exception as e:
        return unexpected_error_response("Fetching credits", e)


@admin_bp.get("/products")
@require_admin
def list_products_route():
    page, limit = _page_args()
    low_stock_only = request.args.get("low_stock_only", "false").lower() == "true"
    try:
        items, total = products_service.admin_list_products(
            page,
            limit,
            search=request.args.get("search"),
            category=request.args.get("category"),
            low_stock_only=low_stock_only,
            low_stock_threshold=int(current_app.config["ADMIN_LOW_STOCK_THRESHOLD"]),
        )
        return _paginated("products", items, total, page, limit)
    except Exception as e:
        return unexpected_error_response("Fetching products", e)


@admin_bp.get("/analytics")
@require_admin
def analytics_route():
    days = request.args.get("days", 30, type=int)
    try:
        return jsonify(reporting_service.platform_analytics(days=days))
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        return unexpected_error_response("Fetching analytics", e)


# ---------------------------------------------------------------------------
# Store types and catalog
# ---------------------------------------------------------------------------

@admin_bp.get("/store-types")
@require_admin
def list_store_types_route():
    try:
        return jsonify({"store_types": [st.to_dict() for st in catalog_service.list_store_types()]})
    except Exception as e:
        return unexpected_error_response("Fetching store types", e)


@admin_bp.post("/store-types")
@require_admin
def create_store_type_route():
    data = request.get_json(silent=True) or {}
    try:
        store_type = catalog_service.create_store_type(data.get("key"), data.get("label"), data.get("icon"))
        return jsonify(store_type.to_dict()), 201
    except CatalogError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        return unexpected_error_response("Creating store type", e)


@admin_bp.get("/catalog")
@require_admin
def list_catalog_route():
    try:
        store_type_id = catalog_service.store_type_id_arg(request.args.get("store_type_id"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        items = catalog_service.list_catalog_items(store_type_id)
        return jsonify({"catalog_items": [i.to_dict(include_store_type=True) for i in items]})
    except Exception as e:
        return unexpected_error_response("Fetching catalog items", e)


@admin_bp.post("/catalog")
@require_admin
def create_catalog_item_route():
    data = request.get_json(silent=True) or {}
    try:
        item = catalog_service.create_catalog_item(data)
        return jsonify({"success": True, "catalog_item": item.to_dict(include_store_type=True)}), 201
    except (ValidationError, CatalogError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        return unexpected_error_response("Creating catalog item", e)


@admin_bp.put("/catalog/<int:item_id>")
@require_admin
def update_catalog_item_route(item_id: int):
    data = request.get_json(silent=True) or {}
    try:
        item = catalog_service.update_catalog_item(item_id, data)
        return jsonify({"success": True, "catalog_item": item.to_dict(include_store_type=True)})
    except (ValidationError, CatalogError) as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        return unexpected_error_response("Updating catalog item", e)


@admin_bp.delete("/catalog/<int:item_id>")
@require_admin
def delete_catalog_item_route(item_id: int):
    try:
        catalog_service.delete_catalog_item(item_id)
        return jsonify({"success": True})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        return unexpected_error_response("Deleting catalog item", e)
