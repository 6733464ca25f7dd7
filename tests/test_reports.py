import io
from datetime import date

import pandas as pd
import pytest

from backend.services import categories, payouts, reports
from tests import factories

MAY_START = date(2024, 5, 1)
MAY_END = date(2024, 5, 31)


@pytest.fixture
def may_sales(shop, consignor):
    org = shop["organization_id"]
    tops = categories.create_category(org, "Tops")
    bob = factories.make_consignor(org, "Bob Stone", commission_rate=50)
    first = factories.make_sale(org, consignor["id"], price=100, sale_date=date(2024, 5, 2), category_id=tops["id"])
    factories.make_sale(org, consignor["id"], price=40, sale_date=date(2024, 5, 2))
    factories.make_sale(org, bob["id"], price=200, sale_date=date(2024, 5, 10))
    payouts.create_payout(
        org,
        {
            "consignor_id": consignor["id"],
            "transaction_ids": [first["id"]],
            "payment_method": "Cash",
            "payout_date": date(2024, 5, 15),
        },
    )
    return {"organization_id": org, "bob": bob}


def test_sales_report(may_sales):
    report = reports.sales_report(may_sales["organization_id"], start_date=MAY_START, end_date=MAY_END)

    assert report["total_sales"] == 340.0
    assert report["consignor_earnings"] == 184.0
    assert report["shop_revenue"] == 156.0
    assert report["transaction_count"] == 3
    assert report["by_day"][0] == {"date": "2024-05-02", "sales": 140.0, "shop_revenue": 56.0, "transactions": 2}
    assert report["by_category"][0] == {"category": "Uncategorized", "sales": 240.0, "items_sold": 2}


def test_sales_report_window_must_be_ordered(shop):
    with pytest.raises(ValueError):
        reports.sales_report(shop["organization_id"], start_date=MAY_END, end_date=MAY_START)


def test_consignor_performance(may_sales):
    rows = reports.consignor_performance(may_sales["organization_id"], start_date=MAY_START, end_date=MAY_END)

    assert [row["consignor_name"] for row in rows] == ["Bob Stone", "Alice Martin"]
    assert rows[1]["items_sold"] == 2
    assert rows[1]["total_earnings"] == 84.0


def test_payout_summary(may_sales):
    summary = reports.payout_summary(may_sales["organization_id"], start_date=MAY_START, end_date=MAY_END)

    assert summary["total_paid"] == 60.0
    assert summary["payout_count"] == 1
    assert summary["total_pending"] == 124.0
    assert summary["chart"] == [{"date": "2024-05-15", "amount": 60.0, "payouts": 1}]
    by_name = {row["consignor_name"]: row for row in summary["consignors"]}
    assert by_name["Alice Martin"]["total_paid"] == 60.0
    assert by_name["Alice Martin"]["pending_amount"] == 24.0
    assert by_name["Bob Stone"]["pending_amount"] == 100.0


def test_dashboard_counts_current_month(shop, consignor):
    org = shop["organization_id"]
    factories.make_item(org, consignor["id"], price=35)
    factories.make_sale(org, consignor["id"], price=100)
    factories.make_user("pending@shop.test", "consignor", org, approval_status="Pending")

    dashboard = reports.build_dashboard(org)

    assert dashboard["sales_this_month"] == 100.0
    assert dashboard["shop_revenue_this_month"] == 40.0
    assert dashboard["transactions_this_month"] == 1
    assert dashboard["pending_payouts_total"] == 60.0
    assert dashboard["pending_payouts_count"] == 1
    assert dashboard["active_consignors"] == 1
    assert dashboard["pending_approvals"] == 1
    assert dashboard["inventory"]["available_value"] == 35.0


def test_export_sales_csv(may_sales):
    filename, content = reports.export_dataset(
        "sales", organization_id=may_sales["organization_id"], start_date=MAY_START, end_date=MAY_END
    )

    lines = content.decode("utf-8").splitlines()
    assert filename == "sales.csv"
    assert lines[0] == "sale_date,consignor_number,consignor_name,category,sale_price,consignor_amount,shop_amount"
    assert len(lines) == 4


def test_export_unknown_report(shop):
    with pytest.raises(ValueError, match="Unknown report"):
        reports.export_dataset("trends", organization_id=shop["organization_id"])


AS_OF = date(2024, 6, 30)


@pytest.fixture
def floor(shop, consignor):
    """Three unsold items listed 10, 90 and 121 days before AS_OF, plus one sold item."""

    org = shop["organization_id"]
    factories.make_item(org, consignor["id"], title="Silk scarf", price=80, received_date=date(2024, 6, 20))
    factories.make_item(org, consignor["id"], title="Leather bag", price=120, received_date=date(2024, 3, 1))
    factories.make_item(org, consignor["id"], title="Lamp", price=60, received_date=date(2024, 4, 1))
    factories.make_sale(org, consignor["id"], price=500, received_date=date(2023, 1, 1))
    return org


@pytest.mark.parametrize(
    ("days", "price", "action"),
    [(10, 500, "Monitor"), (90, 500, "Monitor"), (100, 60, "Price Reduce"), (100, 40, "Return to Consignor"),
     (121, 500, "Return to Consignor"), (200, 10, "Donate")],
)
def test_suggested_action(days, price, action):
    assert reports.suggested_action(days, price) == action


def test_inventory_aging(floor):
    report = reports.inventory_aging(floor, as_of=AS_OF)

    assert report["total_available"] == 3
    assert (report["over_30_days"], report["over_60_days"], report["over_90_days"]) == (2, 2, 2)
    assert report["average_age"] == 73.7
    assert report["buckets"] == [
        {"bucket": "0-30", "count": 1, "value": 80.0},
        {"bucket": "31-60", "count": 0, "value": 0.0},
        {"bucket": "61-90", "count": 1, "value": 60.0},
        {"bucket": "90+", "count": 1, "value": 120.0},
    ]
    assert [item["title"] for item in report["items"]] == ["Leather bag", "Lamp", "Silk scarf"]
    assert report["items"][0]["days_listed"] == 121
    assert report["items"][0]["suggested_action"] == "Return to Consignor"


def test_inventory_aging_threshold_and_price_filter(floor):
    aged = reports.inventory_aging(floor, age_threshold=30, as_of=AS_OF)
    cheap = reports.inventory_aging(floor, max_price=70, as_of=AS_OF)

    assert aged["total_available"] == 3
    assert [item["title"] for item in aged["items"]] == ["Leather bag", "Lamp"]
    assert cheap["total_available"] == 1
    assert cheap["items"][0]["title"] == "Lamp"


def test_inventory_aging_empty_shop(shop):
    report = reports.inventory_aging(shop["organization_id"])

    assert report["total_available"] == 0
    assert report["average_age"] == 0.0
    assert [bucket["count"] for bucket in report["buckets"]] == [0, 0, 0, 0]
    assert report["items"] == []


@pytest.fixture
def till(shop, consignor):
    org = shop["organization_id"]
    factories.make_sale(org, consignor["id"], price=100, sale_date=date(2024, 5, 2), payment_method="Cash")
    factories.make_sale(org, consignor["id"], price=40, sale_date=date(2024, 5, 2), payment_method="Card")
    factories.make_sale(org, consignor["id"], price=25, sale_date=date(2024, 5, 2), payment_method="Transfer")
    factories.make_sale(org, consignor["id"], price=70, sale_date=date(2024, 5, 3), payment_method="Cash")
    return org


def test_daily_reconciliation_with_counted_cash(till):
    result = reports.daily_reconciliation(till, date(2024, 5, 2), opening_balance=50, actual_cash=145, notes="short")

    assert result["cash_sales"] == 100.0
    assert result["card_sales"] == 40.0
    assert result["check_sales"] == 0.0
    assert result["other_sales"] == 25.0
    assert result["total_sales"] == 165.0
    assert result["expected_cash"] == 150.0
    assert result["variance"] == -5.0
    assert result["notes"] == "short"
    assert [line["payment_method"] for line in result["transactions"]] == ["Cash", "Card", "Transfer"]


def test_daily_reconciliation_without_count(till):
    result = reports.daily_reconciliation(till, date(2024, 5, 3))

    assert result["expected_cash"] == 70.0
    assert result["actual_cash"] is None
    assert result["variance"] is None


def test_export_reconciliation_per_day(till):
    filename, content = reports.export_dataset(
        "reconciliation", organization_id=till, start_date=date(2024, 5, 1), end_date=date(2024, 5, 31)
    )

    frame = pd.read_csv(io.BytesIO(content))
    assert filename == "daily_reconciliation.csv"
    assert list(frame.columns) == ["date", "cash", "card", "check", "other", "total", "transactions"]
    assert frame["date"].tolist() == ["2024-05-02", "2024-05-03"]
    assert frame.loc[0, ["cash", "card", "check", "other", "total"]].tolist() == [100.0, 40.0, 0.0, 25.0, 165.0]
    assert frame["transactions"].tolist() == [3, 1]


def test_export_inventory_aging(floor):
    filename, content = reports.export_dataset(
        "inventory-aging", organization_id=floor, start_date=date(2024, 6, 1), end_date=AS_OF
    )

    frame = pd.read_csv(io.BytesIO(content))
    assert filename == "inventory_aging.csv"
    assert frame["title"].tolist() == ["Leather bag", "Lamp", "Silk scarf"]
    assert frame["days_listed"].tolist() == [121, 90, 10]
