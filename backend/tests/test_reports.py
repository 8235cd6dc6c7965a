# Overview: Pytest coverage for store reports, accounting and report windows.

from datetime import datetime

import pytest
from sqlalchemy import text

from pores.services import reporting_service, sales_service
from pores.services.reporting_service import ReportError
from pores.time_utils import parse_date_range, period_window

from conftest import store_headers


@pytest.fixture
def two_sales(store_a, worker_a, product_a, product_a2):
    """Ada sells 2 milk + 1 rice; the keeper sells 1 milk."""
    sales_service.settle_sale(
        store_a.id,
        worker_id=worker_a.id,
        items=[
            {"product_id": product_a.id, "quantity": 2, "unit_price": 250, "cost_price": 200},
            {"product_id": product_a2.id, "quantity": 1, "unit_price": 600, "cost_price": 450},
        ],
    )
    sales_service.settle_sale(
        store_a.id,
        worker_id="keeper",
        items=[{"product_id": product_a.id, "quantity": 1, "unit_price": 250, "cost_price": 200}],
    )


class TestPeriodWindow:

    def test_daily(self):
        start, end = period_window("daily", datetime(2024, 3, 14, 15, 30))
        assert start == datetime(2024, 3, 14, 0, 0, 0)
        assert end == datetime(2024, 3, 14, 23, 59, 59, 999999)

    def test_weekly_starts_sunday(self):
        # 2024-03-14 is a Thursday
        start, end = period_window("weekly", datetime(2024, 3, 14, 9, 0))
        assert start == datetime(2024, 3, 10)
        assert end.date() == datetime(2024, 3, 16).date()

    def test_weekly_on_sunday(self):
        start, _ = period_window("weekly", datetime(2024, 3, 10, 9, 0))
        assert start == datetime(2024, 3, 10)

    @pytest.mark.parametrize("anchor,last_day", [
        (datetime(2024, 2, 10), 29),
        (datetime(2023, 2, 10), 28),
        (datetime(2024, 12, 31), 31),
    ])
    def test_monthly(self, anchor, last_day):
        start, end = period_window("monthly", anchor)
        assert start.day == 1
        assert end.day == last_day

    def test_unknown_period(self):
        with pytest.raises(ValueError):
            period_window("yearly", datetime(2024, 1, 1))

    def test_date_only_end_covers_day(self):
        start, end = parse_date_range("2024-03-01", "2024-03-31")
        assert start == datetime(2024, 3, 1)
        assert end == datetime(2024, 3, 31, 23, 59, 59, 999999)


class TestStoreReport:

    def test_daily_summary(self, client, db_session, store_a, two_sales):
        resp = client.get("/api/reports?period=daily", headers=store_headers(store_a.id))
        assert resp.status_code == 200
        report = resp.get_json()

        assert report["period"] == "daily"
        summary = report["summary"]
        assert summary["total_revenue"] == 1350
        assert summary["total_cost"] == 1050
        assert summary["total_profit"] == 300
        assert summary["total_transactions"] == 2
        assert summary["average_transaction"] == 675
        assert len(report["sales_data"]) == 2

    def test_worker_performance_by_name(self, db_session, store_a, two_sales):
        report = reporting_service.store_report(store_id=store_a.id, period="daily", date=None)
        rows = {r["worker"]: r for r in report["worker_performance"]}
        assert rows["Ada"] == {"worker": "Ada", "sales": 1, "revenue": 1100}
        assert rows["Store Keeper"] == {"worker": "Store Keeper", "sales": 1, "revenue": 250}

    def test_low_stock(self, db_session, store_a, two_sales):
        # Milk: 10 - 3 = 7, rice: 20 - 1 = 19
        report = reporting_service.store_report(
            store_id=store_a.id, period="daily", date=None, low_stock_threshold=7,
        )
        assert [p["name"] for p in report["low_stock_products"]] == ["Peak Milk"]

    def test_empty_window(self, db_session, store_a, two_sales):
        report = reporting_service.store_report(store_id=store_a.id, period="monthly", date="2001-01-15")
        assert report["summary"]["total_transactions"] == 0
        assert report["summary"]["average_transaction"] == 0
        assert report["start_date"] == "2001-01-01T00:00:00Z"
        assert report["end_date"] == "2001-01-31T23:59:59Z"

    @pytest.mark.parametrize("query,error", [
        ("period=yearly", "Invalid period"),
        ("period=daily&date=not-a-date", "Invalid date"),
    ])
    def test_bad_params(self, client, db_session, store_a, query, error):
        resp = client.get(f"/api/reports?{query}", headers=store_headers(store_a.id))
        assert resp.status_code == 400
        assert resp.get_json()["error"] == error

    def test_midnight_sale_lands_in_its_own_day(self, db_session, store_a, worker_a, product_a):
        sale = sales_service.settle_sale(
            store_a.id,
            worker_id=worker_a.id,
            items=[{"product_id": product_a.id, "quantity": 1, "unit_price": 250, "cost_price": 200}],
        )
        # Stored with the same precision as the window bounds
        raw = db_session.execute(
            text("SELECT created_at FROM sales WHERE id = :id"), {"id": sale.id}
        ).scalar()
        assert len(str(raw)) == len("2026-03-10 00:00:00.000000")

        sale.created_at = datetime(2026, 3, 10, 0, 0, 0)
        db_session.commit()

        day = reporting_service.store_report(store_id=store_a.id, period="daily", date="2026-03-10")
        before = reporting_service.store_report(store_id=store_a.id, period="daily", date="2026-03-09")
        assert day["summary"]["total_transactions"] == 1
        assert before["summary"]["total_transactions"] == 0

    def test_other_store_sees_nothing(self, db_session, store_a, store_b, two_sales):
        report = reporting_service.store_report(store_id=store_b.id, period="daily", date=None)
        assert report["summary"]["total_transactions"] == 0
        assert report["worker_performance"] == []


class TestAccountingReport:

    def test_summary_and_products(self, client, db_session, store_a, product_a, product_a2, two_sales):
        resp = client.get("/api/accounting?period=weekly", headers=store_headers(store_a.id))
        assert resp.status_code == 200
        report = resp.get_json()

        assert report["summary"]["total_revenue"] == 1350
        assert report["summary"]["total_profit"] == 300
        assert report["summary"]["profit_margin"] == 22.22

        analysis = report["product_analysis"]
        assert analysis["most_sold"][0] == {
            "id": product_a.id, "name": "Peak Milk", "quantity_sold": 3, "revenue": 750,
        }
        margins = {p["id"]: (p["profit"], p["margin_percent"]) for p in analysis["highest_profit"]}
        assert margins == {product_a.id: (150, 20.0), product_a2.id: (150, 25.0)}
        assert analysis["lowest_sold"][0]["id"] == product_a2.id

    def test_inventory_capital(self, db_session, store_a, product_a, product_a2, two_sales):
        report = reporting_service.accounting_report(store_id=store_a.id, period="daily", date=None)
        inventory = report["inventory"]
        assert inventory["total_products"] == 2
        # 7 milk at 200 + 19 rice at 450
        assert inventory["total_capital"] == 7 * 200 + 19 * 450

    def test_deleted_product_keeps_its_row(self, client, db_session, store_a, token_a, product_a, two_sales):
        from conftest import auth_headers
        client.delete(f"/api/products/{product_a.id}", headers=auth_headers(token_a))

        report = reporting_service.accounting_report(store_id=store_a.id, period="daily", date=None)
        names = {p["name"]: p for p in report["product_analysis"]["most_sold"]}
        assert names["Peak Milk"]["id"] is None
        assert names["Peak Milk"]["quantity_sold"] == 3

    def test_invalid_period(self, db_session, store_a):
        with pytest.raises(ReportError):
            reporting_service.accounting_report(store_id=store_a.id, period="hourly", date=None)
