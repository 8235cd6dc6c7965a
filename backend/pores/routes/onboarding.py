# Overview: Flask API routes for onboarding and catalog lookup.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_store_token
from ..services import catalog_service
from ..services.catalog_service import CatalogError
from ..services.db_errors import unexpected_error_response
from ..validation import NotFoundError, ValidationError

onboarding_bp = Blueprint("onboarding", __name__, url_prefix="/api/onboarding")
catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/catalog")


@onboarding_bp.get("/store-types")
def store_types_route():
    try:
        store_types = catalog_service.list_store_types()
        return jsonify({
            "store_types": [{"id": st.key, "label": st.label, "icon": st.icon} for st in store_types],
        })
    except Exception as e:
        return unexpected_error_response("Fetching store types", e)


@onboarding_bp.get("/items")
def onboarding_items_route():
    """
    Query parameters:
    - type: store type key (required)
    - q: matches name, brand, category or keyword
    """
    try:
        key, items = catalog_service.onboarding_items(request.args.get("type"), request.args.get("q"))
        return jsonify({"store_type": key, "products": [i.to_dict() for i in items]})
    except CatalogError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        return unexpected_error_response("Fetching items", e)


@onboarding_bp.post("/setup")
@require_store_token
def setup_route():
    """
    Request body: {"store_type": "supermarket", "selected_items"?: [0, "12", "supermarket-3"]}

    Returns: {success, store, products_created}
    """
    data = request.get_json(silent=True) or {}
    try:
        store, created = catalog_service.setup_store(
            g.store_id,
            data.get("store_type"),
            data.get("selected_items"),
        )
        return jsonify({"success": True, "store": store.to_dict(), "products_created": created})
    except (CatalogError, ValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        return unexpected_error_response("Setup", e)


@catalog_bp.get("/search")
def catalog_search_route():
    try:
        matches = catalog_service.search_catalog(request.args.get("name"), request.args.get("brand"))
        return jsonify({"matches": [m.to_dict() for m in matches], "success": True})
    except Exception as e:
        return unexpected_error_response("Catalog search", e)
