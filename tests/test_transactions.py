from datetime import date

import pytest

from backend.services import items, transactions
from backend.services.errors import InvalidStateError, ValidationError
from tests import factories


def test_sale_uses_consignor_rate_by_default(shop, consignor):
    org = shop["organization_id"]
    sale = factories.make_sale(org, consignor["id"], price=80)

    assert sale["split_percentage"] == 60.0
    assert sale["consignor_amount"] == 48.0
    assert sale["shop_amount"] == 32.0
    assert sale["status"] == "Completed"
    assert sale["payout_status"] == "Pending"
    assert items.get_item(org, sale["item_id"])["status"] == "Sold"


def test_item_override_wins_over_consignor_rate(shop, consignor):
    org = shop["organization_id"]
    sale = factories.make_sale(org, consignor["id"], price=10.05, split_percentage=50)

    assert sale["split_percentage"] == 50.0
    assert sale["consignor_amount"] == 5.03
    assert sale["shop_amount"] == 5.02


def test_sale_price_can_differ_from_tag(shop, consignor):
    org = shop["organization_id"]
    item = factories.make_item(org, consignor["id"], price=100)

    sale = transactions.record_sale(org, {"item_id": item["id"], "sale_price": 75, "payment_method": "Card"})

    assert sale["sale_price"] == 75.0
    assert sale["consignor_amount"] + sale["shop_amount"] == 75.0


def test_selling_twice_is_refused(shop, consignor):
    org = shop["organization_id"]
    sale = factories.make_sale(org, consignor["id"])

    with pytest.raises(InvalidStateError, match="Current status: Sold"):
        transactions.record_sale(org, {"item_id": sale["item_id"], "payment_method": "Cash"})


def test_payment_method_is_required(shop, consignor):
    org = shop["organization_id"]
    item = factories.make_item(org, consignor["id"])

    with pytest.raises(ValidationError, match="Payment method is required"):
        transactions.record_sale(org, {"item_id": item["id"], "payment_method": " "})
    assert items.get_item(org, item["id"])["status"] == "Available"


def test_void_restores_item(shop, consignor):
    org = shop["organization_id"]
    sale = factories.make_sale(org, consignor["id"])

    transactions.void_transaction(org, sale["id"])

    restored = items.get_item(org, sale["item_id"])
    assert restored["status"] == "Available"
    assert restored["sold_date"] is None
    assert transactions.list_transactions(org)["total_count"] == 0


def test_update_only_touches_payment_method_and_notes(shop, consignor):
    org = shop["organization_id"]
    sale = factories.make_sale(org, consignor["id"])

    updated = transactions.update_transaction(
        org, sale["id"], {"payment_method": "Card", "notes": "Gift wrap", "sale_price": 1}
    )

    assert updated["payment_method"] == "Card"
    assert updated["notes"] == "Gift wrap"
    assert updated["sale_price"] == sale["sale_price"]


def test_list_transactions_by_date(shop, consignor):
    org = shop["organization_id"]
    factories.make_sale(org, consignor["id"], sale_date=date(2024, 3, 5))
    factories.make_sale(org, consignor["id"], sale_date=date(2024, 4, 9))

    march = transactions.list_transactions(org, start_date=date(2024, 3, 1), end_date=date(2024, 3, 31))

    assert march["total_count"] == 1
    assert march["items"][0]["sale_date"] == "2024-03-05"


def test_sales_metrics(shop, consignor):
    org = shop["organization_id"]
    factories.make_sale(org, consignor["id"], price=100, payment_method="Cash")
    factories.make_sale(org, consignor["id"], price=50, payment_method="Card")
    factories.make_sale(org, consignor["id"], price=30, payment_method="Cash")

    metrics = transactions.sales_metrics(org)

    assert metrics["total_sales"] == 180.0
    assert metrics["total_consignor_earnings"] == 108.0
    assert metrics["total_shop_revenue"] == 72.0
    assert metrics["transaction_count"] == 3
    assert metrics["average_sale"] == 60.0
    assert metrics["by_payment_method"] == [
        {"payment_method": "Cash", "count": 2, "total": 130.0},
        {"payment_method": "Card", "count": 1, "total": 50.0},
    ]


def test_sales_metrics_empty(shop):
    metrics = transactions.sales_metrics(shop["organization_id"])

    assert metrics["transaction_count"] == 0
    assert metrics["by_payment_method"] == []
