# Overview: Pytest coverage for onboarding, catalog search and the admin API.

import pytest

from pores.catalog_defaults import PRODUCTS_BY_STORE_TYPE, STORE_TYPES
from pores.models import CatalogItem, Product, StoreTypeDef
from pores.services import catalog_service, credit_service, sales_service
from pores.services.catalog_service import CatalogError

from conftest import admin_headers, auth_headers


@pytest.fixture
def seeded(db_session):
    return catalog_service.seed_defaults()


class TestSeed:

    def test_seed_is_idempotent(self, db_session):
        types_created, items_created = catalog_service.seed_defaults()
        assert types_created == len(STORE_TYPES)
        assert items_created == sum(len(v) for v in PRODUCTS_BY_STORE_TYPE.values())

        assert catalog_service.seed_defaults() == (0, 0)
        assert db_session.query(StoreTypeDef).count() == len(STORE_TYPES)


class TestOnboarding:

    def test_store_types(self, client, seeded):
        resp = client.get("/api/onboarding/store-types")
        assert resp.status_code == 200
        keys = [st["id"] for st in resp.get_json()["store_types"]]
        assert keys == sorted(st["key"] for st in STORE_TYPES)

    def test_items_for_type(self, client, seeded):
        resp = client.get("/api/onboarding/items?type=pharmacy")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["store_type"] == "pharmacy"
        assert [p["name"] for p in body["products"]] == [p["name"] for p in PRODUCTS_BY_STORE_TYPE["pharmacy"]]

    @pytest.mark.parametrize("q,expected", [
        ("emzor", {"Paracetamol 500mg", "Vitamin C 100mg"}),
        ("first aid", {"Dettol Antiseptic 250ml", "Plaster Strips"}),
        ("fever", {"Paracetamol 500mg"}),
        # Keywords match whole words only
        ("feve", set()),
    ])
    def test_items_query(self, seeded, q, expected):
        _, items = catalog_service.onboarding_items("pharmacy", q)
        assert {i.name for i in items} == expected

    @pytest.mark.parametrize("query", ["", "?type=spaceship"])
    def test_items_bad_type(self, client, seeded, query):
        resp = client.get(f"/api/onboarding/items{query}")
        assert resp.status_code == 400

    def test_setup_all_items(self, client, db_session, seeded, store_a, token_a):
        resp = client.post("/api/onboarding/setup", json={"store_type": "boutique"}, headers=auth_headers(token_a))
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["store"]["store_type"] == "boutique"
        assert body["store"]["setup_completed"] is True
        assert body["products_created"] == len(PRODUCTS_BY_STORE_TYPE["boutique"])

        products = db_session.query(Product).filter_by(store_id=store_a.id).all()
        assert all(p.quantity == 0 for p in products)

    def test_setup_selected_items(self, db_session, seeded, store_a):
        catalog_ids = [
            i.id for i in db_session.query(CatalogItem)
            .join(StoreTypeDef)
            .filter(StoreTypeDef.key == "supermarket")
            .order_by(CatalogItem.id)
        ]
        # index 0, a catalog id as a string, and "<type>-<index>"
        store, created = catalog_service.setup_store(
            store_a.id, "supermarket", [0, str(catalog_ids[2]), "supermarket-4"],
        )
        assert created == 3
        names = {p.name for p in db_session.query(Product).filter_by(store_id=store.id)}
        supermarket = PRODUCTS_BY_STORE_TYPE["supermarket"]
        assert names == {supermarket[0]["name"], supermarket[2]["name"], supermarket[4]["name"]}

    def test_setup_falls_back_to_builtin_defaults(self, db_session, store_a):
        _, created = catalog_service.setup_store(store_a.id, "provision", [1])
        assert created == 1
        product = db_session.query(Product).filter_by(store_id=store_a.id).one()
        assert product.name == PRODUCTS_BY_STORE_TYPE["provision"][1]["name"]

    def test_setup_requires_token(self, client, seeded):
        resp = client.post("/api/onboarding/setup", json={"store_type": "boutique"})
        assert resp.status_code == 401

    def test_setup_requires_store_type(self, db_session, store_a):
        with pytest.raises(CatalogError):
            catalog_service.setup_store(store_a.id, "", [])


class TestCatalogSearch:

    def test_name_and_brand(self, client, seeded):
        resp = client.get("/api/catalog/search?name=milo&brand=nestle")
        body = resp.get_json()
        assert body["success"] is True
        assert [m["name"] for m in body["matches"]] == ["Milo 500g"]

    def test_brand_only(self, seeded):
        matches = catalog_service.search_catalog(None, "emzor")
        assert {m.name for m in matches} == {"Paracetamol 500mg", "Vitamin C 100mg"}

    def test_nothing_to_search(self, seeded):
        assert catalog_service.search_catalog("", "") == []


class TestAdminAccess:

    def test_missing_key(self, client, db_session):
        resp = client.get("/api/admin/stores")
        assert resp.status_code == 403

    def test_wrong_key(self, client, db_session):
        resp = client.get("/api/admin/stores", headers=admin_headers("wrong"))
        assert resp.status_code == 403

    def test_disabled_when_unset(self, app, client, db_session):
        app.config["ADMIN_API_KEY"] = None
        try:
            resp = client.get("/api/admin/stores", headers=admin_headers())
        finally:
            app.config["ADMIN_API_KEY"] = "test-admin-key"
        assert resp.status_code == 403

    def test_store_token_is_not_admin(self, client, db_session, token_a):
        resp = client.get("/api/admin/stores", headers=auth_headers(token_a))
        assert resp.status_code == 403


class TestAdminListings:

    @pytest.fixture
    def activity(self, store_a, store_b, worker_a, product_a, product_b):
        sales_service.settle_sale(
            store_a.id,
            worker_id=worker_a.id,
            items=[{"product_id": product_a.id, "quantity": 2, "unit_price": 250, "cost_price": 200}],
            amount_paid=300,
            customer_name="Chidi",
        )
        credit_service.create_credit(store_b.id, "Bayo", 900)

    def test_stores_paginated(self, client, activity, store_a, store_b):
        resp = client.get("/api/admin/stores?page=1&limit=1", headers=admin_headers())
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["pagination"] == {"total": 2, "page": 1, "limit": 1, "pages": 2}
        assert len(body["stores"]) == 1

    def test_store_search_and_counts(self, client, activity, store_a):
        resp = client.get("/api/admin/stores?search=supermarket", headers=admin_headers())
        stores = resp.get_json()["stores"]
        assert [s["id"] for s in stores] == [store_a.id]
        assert stores[0]["counts"] == {"products": 1, "workers": 1, "sales": 1}

    def test_store_detail(self, client, activity, store_a):
        resp = client.get(f"/api/admin/stores/{store_a.id}", headers=admin_headers())
        assert resp.status_code == 200
        body = resp.get_json()
        assert len(body["products"]) == 1
        assert len(body["sales"]) == 1
        assert len(body["credits"]) == 1

    def test_store_detail_missing(self, client, db_session):
        resp = client.get("/api/admin/stores/999999", headers=admin_headers())
        assert resp.status_code == 404

    def test_limit_is_capped(self, client, activity):
        resp = client.get("/api/admin/sales?limit=5000", headers=admin_headers())
        assert resp.get_json()["pagination"]["limit"] == 100

    def test_sales_filter(self, client, activity, store_a):
        resp = client.get("/api/admin/sales?payment_status=pending", headers=admin_headers())
        sales = resp.get_json()["sales"]
        assert len(sales) == 1
        assert sales[0]["store_name"] == "Store A Supermarket"

        resp = client.get("/api/admin/sales?payment_status=completed", headers=admin_headers())
        assert resp.get_json()["sales"] == []

    def test_workers(self, client, activity, worker_a):
        resp = client.get("/api/admin/workers", headers=admin_headers())
        workers = resp.get_json()["workers"]
        assert workers[0]["id"] == worker_a.id
        assert workers[0]["sales_count"] == 1
        assert workers[0]["total_sales_amount"] == 500

    def test_credits(self, client, activity):
        resp = client.get("/api/admin/credits", headers=admin_headers())
        body = resp.get_json()
        assert body["pagination"]["total"] == 2
        assert {c["store_name"] for c in body["credits"]} == {"Store A Supermarket", "Store B Pharmacy"}

    def test_products_low_stock(self, client, activity):
        # Milk in store A has 8 left, paracetamol in store B has 10
        resp = client.get("/api/admin/products?low_stock_only=true", headers=admin_headers())
        names = {p["name"] for p in resp.get_json()["products"]}
        assert names == {"Peak Milk", "Paracetamol"}

    def test_analytics(self, client, activity):
        resp = client.get("/api/admin/analytics", headers=admin_headers())
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["summary"]["total_stores"] == 2
        assert body["summary"]["total_sales"] == 1
        assert body["summary"]["total_revenue"] == 500
        assert body["summary"]["profit"] == 100
        assert body["summary"]["pending_credits"] == 200 + 900
        assert body["top_workers"][0]["name"] == "Ada"
        assert body["recent_sales"][0]["store_name"] == "Store A Supermarket"


class TestAdminCatalog:

    def test_store_type_crud(self, client, db_session):
        resp = client.post(
            "/api/admin/store-types",
            json={"key": "bakery", "label": "Bakery", "icon": "bread"},
            headers=admin_headers(),
        )
        assert resp.status_code == 201

        resp = client.post("/api/admin/store-types", json={"key": "bakery", "label": "Again"}, headers=admin_headers())
        assert resp.status_code == 400

        resp = client.get("/api/admin/store-types", headers=admin_headers())
        assert [st["key"] for st in resp.get_json()["store_types"]] == ["bakery"]

    def test_catalog_item_crud(self, client, db_session, seeded):
        store_type = db_session.query(StoreTypeDef).filter_by(key="boutique").one()
        resp = client.post("/api/admin/catalog", json={
            "store_type_id": store_type.id,
            "name": "Sandals",
            "brand": "Generic",
            "category": "Footwear",
            "cost_price": 3000,
            "selling_price": 4500,
            "unit_name": "Pair",
            "keywords": "shoe, sandal",
        }, headers=admin_headers())
        assert resp.status_code == 201
        item = resp.get_json()["catalog_item"]
        assert item["keywords"] == ["shoe", "sandal"]
        assert item["store_type"]["key"] == "boutique"

        resp = client.put(f"/api/admin/catalog/{item['id']}", json={"selling_price": 5000}, headers=admin_headers())
        assert resp.status_code == 200
        assert resp.get_json()["catalog_item"]["selling_price"] == 5000

        resp = client.get(f"/api/admin/catalog?store_type_id={store_type.id}", headers=admin_headers())
        assert item["id"] in [i["id"] for i in resp.get_json()["catalog_items"]]

        resp = client.delete(f"/api/admin/catalog/{item['id']}", headers=admin_headers())
        assert resp.status_code == 200
        resp = client.delete(f"/api/admin/catalog/{item['id']}", headers=admin_headers())
        assert resp.status_code == 404

    def test_catalog_item_unknown_store_type(self, client, db_session):
        resp = client.post("/api/admin/catalog", json={
            "store_type_id": 424242,
            "name": "Ghost",
            "brand": "None",
            "category": "Nothing",
            "cost_price": 1,
            "selling_price": 2,
            "unit_name": "Piece",
        }, headers=admin_headers())
        assert resp.status_code == 400

    def test_catalog_bad_store_type_filter(self, client, db_session):
        resp = client.get("/api/admin/catalog?store_type_id=abc", headers=admin_headers())
        assert resp.status_code == 400
