# Overview: Pytest coverage for sale settlement, credits and credit payments.

"""
Settlement & Credit Tests

Money is integer (smallest currency unit) throughout.
"""

import logging
import re

import pytest
from sqlalchemy import text

from pores.models import Credit, CreditPayment, Product, Sale
from pores.services import credit_service, sales_service
from pores.services.auth_service import AuthError
from pores.services.credit_service import CreditError
from pores.services.sales_service import SaleError
from pores.validation import NotFoundError, ValidationError

from conftest import store_headers


def _cart(product_a, product_a2):
    return [
        {"product_id": product_a.id, "quantity": 2, "unit_price": 250, "cost_price": 200},
        {"product_id": product_a2.id, "quantity": 1, "unit_price": 600, "cost_price": 450},
    ]


class TestTransactionId:

    def test_format(self):
        assert re.fullmatch(r"TXN-\d{13}-[0-9a-z]{9}", sales_service.generate_transaction_id())

    def test_unique(self):
        ids = {sales_service.generate_transaction_id() for _ in range(200)}
        assert len(ids) == 200


class TestPaymentStatus:

    @pytest.mark.parametrize("total,paid,is_partial,expected", [
        (1000, 1000, False, "completed"),
        (1000, 1500, False, "completed"),
        (1000, 400, True, "partial"),
        (1000, 400, False, "pending"),
        (1000, 0, False, "pending"),
    ])
    def test_status(self, total, paid, is_partial, expected):
        assert sales_service.payment_status_for(total, paid, is_partial) == expected


class TestSettleSale:

    def test_full_payment(self, client, db_session, store_a, worker_a, product_a, product_a2):
        resp = client.post("/api/sales", json={
            "worker_id": worker_a.id,
            "items": _cart(product_a, product_a2),
            "payment_method": "transfer",
        }, headers=store_headers(store_a.id))
        assert resp.status_code == 201
        sale = resp.get_json()["sale"]

        assert sale["total_price"] == 1100
        assert sale["total_cost"] == 850
        assert sale["amount_paid"] == 1100
        assert sale["remaining_balance"] == 0
        assert sale["payment_status"] == "completed"
        assert sale["payment_method"] == "transfer"
        assert sale["worker_name"] == "Ada"
        assert sale["credit"] is None
        assert len(sale["items"]) == 2

        db_session.expire_all()
        assert db_session.get(Product, product_a.id).quantity == 8
        assert db_session.get(Product, product_a2.id).quantity == 19

    def test_shortfall_opens_credit(self, client, db_session, store_a, worker_a, product_a, product_a2):
        resp = client.post("/api/sales", json={
            "worker_id": worker_a.id,
            "items": _cart(product_a, product_a2),
            "amount_paid": 1000,
            "customer_name": "Mrs. Okafor",
            "customer_phone": "08030000000",
        }, headers=store_headers(store_a.id))
        assert resp.status_code == 201
        sale = resp.get_json()["sale"]

        assert sale["total_price"] == 1100
        assert sale["remaining_balance"] == 100
        assert sale["payment_status"] == "pending"
        assert sale["credit"]["customer_name"] == "Mrs. Okafor"
        assert sale["credit"]["total_owed"] == 100
        assert sale["credit"]["remaining_balance"] == 100
        assert sale["credit"]["payment_status"] == "pending"
        assert sale["credit"]["sale_id"] == sale["id"]

    def test_shortfall_without_customer_has_no_credit(self, db_session, store_a, worker_a, product_a, product_a2):
        sale = sales_service.settle_sale(
            store_a.id,
            worker_id=worker_a.id,
            items=_cart(product_a, product_a2),
            amount_paid=1000,
            is_partial=True,
        )
        assert sale.payment_status == "partial"
        assert sale.remaining_balance == 100
        assert db_session.query(Credit).count() == 0

    @pytest.mark.parametrize("flag,expected", [
        ("false", "pending"),
        ("0", "pending"),
        ("true", "partial"),
        (True, "partial"),
    ])
    def test_is_partial_string_flag(self, client, db_session, store_a, worker_a, product_a, product_a2, flag, expected):
        resp = client.post("/api/sales", json={
            "worker_id": worker_a.id,
            "items": _cart(product_a, product_a2),
            "amount_paid": 1000,
            "is_partial": flag,
        }, headers=store_headers(store_a.id))
        assert resp.status_code == 201
        assert resp.get_json()["sale"]["payment_status"] == expected

    def test_keeper_sale(self, db_session, store_a, product_a):
        sale = sales_service.settle_sale(
            store_a.id,
            worker_id="keeper",
            items=[{"product_id": product_a.id, "quantity": 1, "unit_price": 250, "cost_price": 200}],
        )
        assert sale.worker_id is None
        assert sale.to_dict()["worker_name"] == "Store Keeper"

    def test_bulk_sale_decrements_units(self, db_session, store_a, worker_a):
        from conftest import make_product
        carton = make_product(
            store_a.id,
            name="Malt",
            brand="Maltina",
            category="Drinks",
            quantity=48,
            units_per_bulk=24,
            bulk_selling_price=5400,
            bulk_unit_name="Carton",
        )
        sales_service.settle_sale(
            store_a.id,
            worker_id=worker_a.id,
            items=[{
                "product_id": carton.id,
                "quantity": 1,
                "unit_price": 5400,
                "cost_price": 4800,
                "sell_by_bulk": True,
            }],
        )
        db_session.expire_all()
        assert db_session.get(Product, carton.id).quantity == 24

    def test_stock_may_go_negative(self, db_session, store_a, worker_a, product_a):
        sales_service.settle_sale(
            store_a.id,
            worker_id=worker_a.id,
            items=[{"product_id": product_a.id, "quantity": 15, "unit_price": 250, "cost_price": 200}],
        )
        db_session.expire_all()
        assert db_session.get(Product, product_a.id).quantity == -5

    def test_prices_are_snapshots(self, db_session, store_a, worker_a, product_a):
        sale = sales_service.settle_sale(
            store_a.id,
            worker_id=worker_a.id,
            items=[{"product_id": product_a.id, "quantity": 1, "unit_price": 199, "cost_price": 150}],
        )
        assert sale.total_price == 199
        assert sale.items[0].unit_price == 199

    def test_missing_worker(self, client, db_session, store_a, product_a):
        resp = client.post("/api/sales", json={
            "items": [{"product_id": product_a.id, "quantity": 1, "unit_price": 250, "cost_price": 200}],
        }, headers=store_headers(store_a.id))
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Invalid sale data"

    def test_invalid_worker(self, client, db_session, store_a, worker_b, product_a):
        resp = client.post("/api/sales", json={
            "worker_id": worker_b.id,
            "items": [{"product_id": product_a.id, "quantity": 1, "unit_price": 250, "cost_price": 200}],
        }, headers=store_headers(store_a.id))
        assert resp.status_code == 401

    @pytest.mark.parametrize("items", [
        [],
        None,
        [{"product_id": 1, "quantity": 0, "unit_price": 250, "cost_price": 200}],
        [{"product_id": 1, "quantity": 1, "unit_price": -1, "cost_price": 200}],
        ["not-a-dict"],
    ])
    def test_bad_items(self, db_session, store_a, worker_a, items):
        with pytest.raises(SaleError):
            sales_service.settle_sale(store_a.id, worker_id=worker_a.id, items=items)

    def test_failed_sale_leaves_nothing_behind(self, db_session, store_a, worker_a, product_a, product_b):
        with pytest.raises(SaleError):
            sales_service.settle_sale(
                store_a.id,
                worker_id=worker_a.id,
                items=[
                    {"product_id": product_a.id, "quantity": 1, "unit_price": 250, "cost_price": 200},
                    {"product_id": product_b.id, "quantity": 1, "unit_price": 250, "cost_price": 200},
                ],
            )
        db_session.expire_all()
        assert db_session.query(Sale).count() == 0
        assert db_session.get(Product, product_a.id).quantity == 10


class TestSaleQueries:

    def test_list_and_get(self, client, db_session, store_a, worker_a, product_a, product_a2):
        sale = sales_service.settle_sale(
            store_a.id,
            worker_id=worker_a.id,
            items=_cart(product_a, product_a2),
            amount_paid=1000,
            customer_name="Mrs. Okafor",
        )

        resp = client.get("/api/sales", headers=store_headers(store_a.id))
        assert resp.status_code == 200
        assert [s["id"] for s in resp.get_json()] == [sale.id]

        resp = client.get(f"/api/sales/{sale.id}", headers=store_headers(store_a.id))
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["transaction_id"] == sale.transaction_id
        assert len(body["credits"]) == 1

    def test_date_filter_excludes_future_window(self, client, db_session, store_a, worker_a, product_a):
        sales_service.settle_sale(
            store_a.id,
            worker_id=worker_a.id,
            items=[{"product_id": product_a.id, "quantity": 1, "unit_price": 250, "cost_price": 200}],
        )
        resp = client.get("/api/sales?start_date=2999-01-01", headers=store_headers(store_a.id))
        assert resp.status_code == 200
        assert resp.get_json() == []

    def test_get_other_store_sale(self, db_session, store_a, store_b, worker_a, product_a):
        sale = sales_service.settle_sale(
            store_a.id,
            worker_id=worker_a.id,
            items=[{"product_id": product_a.id, "quantity": 1, "unit_price": 250, "cost_price": 200}],
        )
        with pytest.raises(NotFoundError):
            sales_service.get_sale(store_b.id, sale.id)


class TestCredits:

    def test_create_and_list(self, client, db_session, store_a):
        resp = client.post("/api/credits", json={
            "customer_name": "Chidi",
            "total_owed": 500,
            "phone_number": "0802",
        }, headers=store_headers(store_a.id))
        assert resp.status_code == 201
        credit = resp.get_json()
        assert credit["remaining_balance"] == 500
        assert credit["payment_status"] == "pending"
        assert credit["payments"] == []

        resp = client.get("/api/credits?status=pending", headers=store_headers(store_a.id))
        assert [c["id"] for c in resp.get_json()] == [credit["id"]]

        resp = client.get("/api/credits?status=paid", headers=store_headers(store_a.id))
        assert resp.get_json() == []

    @pytest.mark.parametrize("payload", [
        {"total_owed": 500},
        {"customer_name": "Chidi"},
        {"customer_name": "Chidi", "total_owed": 0},
    ])
    def test_create_validation(self, client, db_session, store_a, payload):
        resp = client.post("/api/credits", json=payload, headers=store_headers(store_a.id))
        assert resp.status_code == 400

    def test_sale_from_other_store(self, db_session, store_a, store_b, worker_a, product_a):
        sale = sales_service.settle_sale(
            store_a.id,
            worker_id=worker_a.id,
            items=[{"product_id": product_a.id, "quantity": 1, "unit_price": 250, "cost_price": 200}],
        )
        with pytest.raises(NotFoundError):
            credit_service.create_credit(store_b.id, "Chidi", 100, sale_id=sale.id)


class TestCreditPayments:

    @pytest.fixture
    def credit(self, store_a):
        return credit_service.create_credit(store_a.id, "Chidi", 500)

    def test_partial_then_paid(self, db_session, store_a, worker_a, credit):
        first = credit_service.apply_payment(store_a.id, credit.id, 200, worker_a.id)
        assert first["applied"] == 200
        assert first["overpaid"] == 0
        assert first["credit"]["payment_status"] == "partial"
        assert first["credit"]["remaining_balance"] == 300
        assert first["store_credit"] is None
        assert first["payment"]["recorded_by"] == "worker"
        assert first["payment"]["worker_id"] == worker_a.id

        second = credit_service.apply_payment(store_a.id, credit.id, 300, "keeper")
        assert second["credit"]["payment_status"] == "paid"
        assert second["credit"]["remaining_balance"] == 0
        assert second["payment"]["recorded_by"] == "keeper"
        assert second["payment"]["worker_id"] is None

    def test_overpayment_becomes_store_credit(self, client, db_session, store_a, worker_a, credit):
        resp = client.post(
            f"/api/credits/{credit.id}/payment",
            json={"amount": 700, "worker_id": worker_a.id},
            headers=store_headers(store_a.id),
        )
        assert resp.status_code == 201
        body = resp.get_json()

        assert body["applied"] == 500
        assert body["overpaid"] == 200
        assert body["payment"]["amount"] == 500
        assert body["credit"]["total_paid"] == 500
        assert body["credit"]["remaining_balance"] == 0
        assert body["credit"]["payment_status"] == "paid"

        store_credit = body["store_credit"]
        assert store_credit["customer_name"] == "Chidi (Store credit)"
        assert store_credit["is_store_credit"] is True
        assert store_credit["total_paid"] == 200
        assert store_credit["total_owed"] == 0
        assert store_credit["payment_status"] == "paid"

    def test_payments_sum_to_total_paid(self, db_session, store_a, worker_a, credit):
        for amount in (100, 150, 400):
            credit_service.apply_payment(store_a.id, credit.id, amount, worker_a.id)

        db_session.expire_all()
        refreshed = db_session.get(Credit, credit.id)
        payments = db_session.query(CreditPayment).filter_by(credit_id=credit.id).all()
        assert sum(p.amount for p in payments) == refreshed.total_paid == 500
        assert refreshed.version_id == 4

    def test_payment_on_paid_credit_goes_to_store_credit(self, db_session, store_a, worker_a, credit):
        credit_service.apply_payment(store_a.id, credit.id, 500, worker_a.id)
        result = credit_service.apply_payment(store_a.id, credit.id, 50, worker_a.id)
        assert result["applied"] == 0
        assert result["overpaid"] == 50
        assert result["credit"]["payment_status"] == "paid"

    def test_store_credit_rejects_payments(self, db_session, store_a, worker_a, credit):
        result = credit_service.apply_payment(store_a.id, credit.id, 600, worker_a.id)
        with pytest.raises(CreditError):
            credit_service.apply_payment(store_a.id, result["store_credit"]["id"], 10, worker_a.id)

    @pytest.mark.parametrize("amount", [None, 0, -10, "abc", 1.5])
    def test_invalid_amount(self, client, db_session, store_a, worker_a, credit, amount):
        resp = client.post(
            f"/api/credits/{credit.id}/payment",
            json={"amount": amount, "worker_id": worker_a.id},
            headers=store_headers(store_a.id),
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Invalid amount"

    def test_worker_required(self, client, db_session, store_a, credit):
        resp = client.post(
            f"/api/credits/{credit.id}/payment",
            json={"amount": 100},
            headers=store_headers(store_a.id),
        )
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Worker verification required"

    def test_other_store_credit(self, client, db_session, store_a, store_b, worker_b, credit):
        resp = client.post(
            f"/api/credits/{credit.id}/payment",
            json={"amount": 100, "worker_id": worker_b.id},
            headers=store_headers(store_b.id),
        )
        assert resp.status_code == 404

    def test_service_raises_typed_errors(self, db_session, store_a, worker_a, credit):
        with pytest.raises(ValidationError):
            credit_service.apply_payment(store_a.id, credit.id, 0, worker_a.id)
        with pytest.raises(AuthError):
            credit_service.apply_payment(store_a.id, credit.id, 10, "nobody")
        with pytest.raises(NotFoundError):
            credit_service.apply_payment(store_a.id, 999999, 10, worker_a.id)

    def test_stale_credit_is_retried_against_fresh_balance(self, db_session, store_a, worker_a, credit, caplog):
        caplog.set_level(logging.INFO, logger="pores.services.concurrency")
        assert credit.remaining_balance == 500

        # Another terminal records 300 and commits while this session still
        # holds the version 1 row.
        session = db_session()
        session.expire_on_commit = False
        try:
            db_session.execute(
                text(
                    "UPDATE credits SET total_paid = 300, remaining_balance = 200, "
                    "payment_status = 'partial', version_id = version_id + 1 WHERE id = :id"
                ),
                {"id": credit.id},
            )
            db_session.commit()
        finally:
            session.expire_on_commit = True
        assert credit.remaining_balance == 500

        result = credit_service.apply_payment(store_a.id, credit.id, 300, worker_a.id)

        assert "Retrying after concurrency conflict" in caplog.text
        assert result["applied"] == 200
        assert result["overpaid"] == 100
        assert result["credit"]["total_paid"] == 500
        assert result["credit"]["version_id"] == 3
        assert db_session.query(CreditPayment).filter_by(credit_id=credit.id).count() == 1
