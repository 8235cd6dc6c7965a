# Overview: Pytest coverage for tenant isolation behavior.

"""
Multi-Tenant Isolation Tests

SECURITY TESTS: Prove that one store cannot read or write another
store's data.

A foreign resource id answers 404 (not 403) so its existence is not
revealed.
"""

import pytest

from pores.services import credit_service, products_service, sales_service
from pores.services.auth_service import AuthError
from pores.validation import NotFoundError

from conftest import auth_headers, store_headers


class TestProductIsolation:

    def test_list_only_own_products(self, client, db_session, token_a, token_b, product_a, product_b):
        resp = client.get("/api/products", headers=auth_headers(token_a))
        assert [p["id"] for p in resp.get_json()] == [product_a.id]

        resp = client.get("/api/products", headers=auth_headers(token_b))
        assert [p["id"] for p in resp.get_json()] == [product_b.id]

    @pytest.mark.parametrize("method", ["get", "put", "delete"])
    def test_foreign_product_is_not_found(self, client, db_session, token_a, product_b, method):
        kwargs = {"headers": auth_headers(token_a)}
        if method == "put":
            kwargs["json"] = {"selling_price": 1}
        resp = getattr(client, method)(f"/api/products/{product_b.id}", **kwargs)
        assert resp.status_code == 404

    def test_foreign_product_untouched(self, client, db_session, token_a, product_b):
        client.put(f"/api/products/{product_b.id}", json={"selling_price": 1}, headers=auth_headers(token_a))
        assert products_service.get_product(product_b.store_id, product_b.id).selling_price == 250

    def test_restock_foreign_product(self, client, db_session, store_a, product_b):
        resp = client.post("/api/restocks", json={
            "product_id": product_b.id, "quantity": 5, "cost_price": 100,
        }, headers=store_headers(store_a.id))
        assert resp.status_code == 404


class TestSaleIsolation:

    def test_cannot_sell_foreign_product(self, client, db_session, store_a, worker_a, product_b):
        resp = client.post("/api/sales", json={
            "worker_id": worker_a.id,
            "items": [{"product_id": product_b.id, "quantity": 1, "unit_price": 250, "cost_price": 200}],
        }, headers=store_headers(store_a.id))
        assert resp.status_code == 400
        assert products_service.get_product(product_b.store_id, product_b.id).quantity == 10

    def test_cannot_read_foreign_sale(self, client, db_session, store_a, store_b, worker_b, product_b):
        sale = sales_service.settle_sale(
            store_b.id,
            worker_id=worker_b.id,
            items=[{"product_id": product_b.id, "quantity": 1, "unit_price": 250, "cost_price": 200}],
        )
        resp = client.get(f"/api/sales/{sale.id}", headers=store_headers(store_a.id))
        assert resp.status_code == 404

        resp = client.get("/api/sales", headers=store_headers(store_a.id))
        assert resp.get_json() == []


class TestCreditIsolation:

    def test_credit_lists_are_scoped(self, client, db_session, store_a, store_b):
        credit_service.create_credit(store_b.id, "Bayo", 900)
        resp = client.get("/api/credits", headers=store_headers(store_a.id))
        assert resp.get_json() == []

    def test_cannot_pay_foreign_credit_as_keeper(self, db_session, store_a, store_b):
        credit = credit_service.create_credit(store_b.id, "Bayo", 900)
        with pytest.raises(NotFoundError):
            credit_service.apply_payment(store_a.id, credit.id, 100, "keeper")


class TestWorkerIsolation:

    def test_worker_lists_are_scoped(self, client, db_session, store_a, worker_a, worker_b):
        resp = client.get("/api/workers", headers=store_headers(store_a.id))
        assert [w["id"] for w in resp.get_json()] == [worker_a.id]

    def test_foreign_worker_cannot_sell(self, db_session, store_a, worker_b, product_a):
        with pytest.raises(AuthError):
            sales_service.settle_sale(
                store_a.id,
                worker_id=worker_b.id,
                items=[{"product_id": product_a.id, "quantity": 1, "unit_price": 250, "cost_price": 200}],
            )


class TestReportIsolation:

    def test_accounting_only_counts_own_inventory(self, client, db_session, store_a, product_a, product_b):
        resp = client.get("/api/accounting", headers=store_headers(store_a.id))
        inventory = resp.get_json()["inventory"]
        assert [p["id"] for p in inventory["products"]] == [product_a.id]
