"""Selling, paying out and exporting through the HTTP surface."""

from tests import factories


def test_payout_lifecycle(client, shop, consignor, owner_headers):
    org = shop["organization_id"]
    first = factories.make_sale(org, consignor["id"], price=100)
    second = factories.make_sale(org, consignor["id"], price=20)

    pending = client.get("/payouts/pending", headers=owner_headers).json()["data"]
    assert pending[0]["pending_amount"] == 72.0

    created = client.post(
        "/payouts",
        json={
            "consignor_id": consignor["id"],
            "transaction_ids": [first["id"], second["id"]],
            "payment_method": "Check",
            "payout_date": "2024-06-30",
        },
        headers=owner_headers,
    )
    assert created.status_code == 201
    payout = created.json()["data"]
    assert created.json()["message"] == "Payout PO20240630001 created"
    assert payout["amount"] == 72.0

    export = client.get(f"/payouts/{payout['id']}/export", headers=owner_headers)
    assert export.status_code == 200
    assert export.headers["content-type"].startswith("text/csv")
    assert 'filename="PO20240630001.csv"' in export.headers["content-disposition"]
    assert "Total Payout,72.00" in export.text

    again = client.post(
        "/payouts",
        json={"consignor_id": consignor["id"], "transaction_ids": [first["id"]], "payment_method": "Check"},
        headers=owner_headers,
    )
    assert again.status_code == 400
    assert again.json()["errors"] == ["Some transactions are invalid or already paid out"]

    deleted = client.delete(f"/payouts/{payout['id']}", headers=owner_headers)
    assert deleted.json()["data"] == {"id": payout["id"], "released_transactions": 2}
    assert client.get(f"/payouts/{payout['id']}", headers=owner_headers).status_code == 404


def test_paid_sale_cannot_be_deleted(client, shop, consignor, owner_headers):
    sale = factories.make_sale(shop["organization_id"], consignor["id"])
    client.post(
        "/payouts",
        json={"consignor_id": consignor["id"], "transaction_ids": [sale["id"]], "payment_method": "Cash"},
        headers=owner_headers,
    )

    response = client.delete(f"/transactions/{sale['id']}", headers=owner_headers)

    assert response.status_code == 400
    assert response.json()["errors"] == ["Cannot delete a transaction that has been paid out"]


def test_statement_generation_and_export(client, shop, consignor, owner_headers):
    factories.make_sale(shop["organization_id"], consignor["id"], price=50, sale_date="2024-05-20")

    created = client.post(
        "/statements/generate",
        json={"consignor_id": consignor["id"], "period_start": "2024-05-01", "period_end": "2024-05-31"},
        headers=owner_headers,
    )
    assert created.status_code == 201
    statement = created.json()["data"]
    assert statement["closing_balance"] == 30.0

    export = client.get(f"/statements/{statement['id']}/export", headers=owner_headers)
    assert export.headers["content-type"].startswith("text/csv")
    assert "STMT-2024-05-PRV-00001" in export.text


def test_report_export_unknown_type_is_404(client, owner_headers):
    response = client.get("/reports/export/trends", headers=owner_headers)

    assert response.status_code == 404


def test_dashboard(client, shop, consignor, owner_headers):
    factories.make_sale(shop["organization_id"], consignor["id"], price=100)

    data = client.get("/dashboard", headers=owner_headers).json()["data"]

    assert data["sales_this_month"] == 100.0
    assert data["pending_payouts_count"] == 1


def test_reconciliation_endpoints(client, shop, consignor, clerk_headers):
    factories.make_sale(shop["organization_id"], consignor["id"], price=30, sale_date="2024-05-20")

    report = client.get("/reports/reconciliation", params={"date": "2024-05-20"}, headers=clerk_headers)
    assert report.status_code == 200
    assert report.json()["data"]["cash_sales"] == 30.0

    counted = client.post(
        "/reports/reconciliation",
        json={"date": "2024-05-20", "opening_balance": 20, "actual_cash": 45},
        headers=clerk_headers,
    )
    assert counted.status_code == 200
    data = counted.json()["data"]
    assert data["expected_cash"] == 50.0
    assert data["variance"] == -5.0


def test_inventory_aging_endpoint(client, shop, consignor, owner_headers):
    factories.make_item(shop["organization_id"], consignor["id"], price=35)

    data = client.get("/reports/inventory-aging", headers=owner_headers).json()["data"]

    assert data["total_available"] == 1
    assert data["items"][0]["suggested_action"] == "Monitor"

    export = client.get("/reports/export/inventory-aging", headers=owner_headers)
    assert export.status_code == 200
    assert export.headers["content-type"].startswith("text/csv")
