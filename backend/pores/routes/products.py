# backend/pores/routes/products.py
"""
Product routes.

SECURITY: All routes require a store token. Products are scoped to the
token's store; another store's product id answers 404.
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import require_store_token
from ..services import products_service
from ..services.db_errors import unexpected_error_response
from ..validation import NotFoundError, ValidationError

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_store_token
def list_products_route():
    """
    Query parameters:
    - search: matches name, brand or category (case-insensitive)
    - category: exact category
    - include_zero_stock: include products with quantity <= 0 (default: false)
    - limit: maximum results (default: 500)
    """
    search = request.args.get("search")
    category = request.args.get("category")
    include_zero_stock = request.args.get("include_zero_stock", "false").lower() == "true"
    limit = request.args.get("limit", products_service.DEFAULT_LIST_LIMIT, type=int)
    if limit < 1:
        limit = 1

    try:
        products = products_service.list_products(
            g.store_id,
            search=search,
            category=category,
            include_zero_stock=include_zero_stock,
            limit=limit,
        )
        return jsonify([p.to_dict() for p in products])
    except Exception as e:
        return unexpected_error_response("Fetching products", e)


@products_bp.post("")
@require_store_token
def create_product_route():
    """
    Create a product, or add stock to an identical one.

    Returns 201 for a new product, 200 when merged into an existing one
    (is_duplicate: true).
    """
    data = request.get_json(silent=True) or {}
    try:
        product, meta = products_service.create_or_merge_product(g.store_id, data)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        return unexpected_error_response("Saving product", e)

    body = product.to_dict()
    body.update(meta)
    if meta["is_duplicate"]:
        body["message"] = "Product inventory updated"
        return jsonify(body), 200
    body["message"] = "Product created"
    return jsonify(body), 201


@products_bp.get("/<int:product_id>")
@require_store_token
def get_product_route(product_id: int):
    try:
        return jsonify(products_service.get_product(g.store_id, product_id).to_dict())
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        return unexpected_error_response("Fetching product", e)


@products_bp.put("/<int:product_id>")
@require_store_token
def update_product_route(product_id: int):
    data = request.get_json(silent=True) or {}
    try:
        product = products_service.update_product(g.store_id, product_id, data)
        return jsonify(product.to_dict())
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        return unexpected_error_response("Updating product", e)


@products_bp.delete("/<int:product_id>")
@require_store_token
def delete_product_route(product_id: int):
    try:
        products_service.delete_product(g.store_id, product_id)
        return jsonify({"success": True})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        return unexpected_error_response("Deleting product", e)
