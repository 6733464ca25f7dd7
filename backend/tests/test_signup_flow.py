"""Public sign-up through to the consignor portal."""

import pytest

from tests import factories


def _login(client, email: str) -> dict[str, str]:
    response = client.post("/auth/token", data={"username": email, "password": "Password123"})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def test_validate_store_code_is_public(client, shop):
    assert client.get("/registration/validate-store-code/1234").json()["data"] == {
        "is_valid": True,
        "shop_name": "Second Chance Boutique",
        "error_message": None,
    }
    assert client.get("/registration/validate-store-code/0000").json()["data"]["is_valid"] is False


def test_owner_signup_and_admin_approval(client, admin_headers):
    created = client.post(
        "/registration/owner",
        json={
            "full_name": "Nora Owner",
            "email": "nora@vintage.test",
            "password": "Password123",
            "shop_name": "Nora Vintage",
            "subdomain": "nora-vintage",
        },
    )
    assert created.status_code == 201
    user_id = created.json()["data"]["user_id"]
    assert client.post("/auth/token", data={"username": "nora@vintage.test", "password": "Password123"}).status_code == 401

    pending = client.get("/admin/owners/pending", headers=admin_headers).json()["data"]
    assert [row["email"] for row in pending] == ["nora@vintage.test"]

    approved = client.post(f"/admin/owners/{user_id}/approve", headers=admin_headers)
    assert approved.status_code == 200
    assert len(approved.json()["data"]["store_code"]) == 6

    headers = _login(client, "nora@vintage.test")
    organization = client.get("/organization", headers=headers).json()["data"]
    assert organization["status"] == "active"


def test_owner_rejection_records_reason(client, admin_headers):
    created = client.post(
        "/registration/owner",
        json={
            "full_name": "Sam Spam",
            "email": "sam@spam.test",
            "password": "Password123",
            "shop_name": "Spam Shop",
            "subdomain": "spam-shop",
        },
    ).json()["data"]

    rejected = client.post(
        f"/admin/owners/{created['user_id']}/reject", json={"reason": "Duplicate shop"}, headers=admin_headers
    )

    assert rejected.json()["data"]["approval_status"] == "Rejected"
    assert rejected.json()["data"]["rejected_reason"] == "Duplicate shop"


def test_consignor_signup_with_bad_code(client, shop):
    response = client.post(
        "/registration/consignor",
        json={"store_code": "0000", "full_name": "Ann", "email": "ann@mail.test", "password": "Password123"},
    )

    assert response.status_code == 400
    assert response.json()["errors"] == ["Invalid or disabled store code"]


@pytest.fixture
def approved_consignor(client, shop, owner_headers):
    created = client.post(
        "/registration/consignor",
        json={"store_code": "1234", "full_name": "Alice Martin", "email": "alice@mail.test", "password": "Password123"},
    )
    assert created.status_code == 201
    user_id = created.json()["data"]["user_id"]
    assert client.get("/consignors/approvals/count", headers=owner_headers).json()["data"] == 1

    approved = client.post(f"/consignors/approvals/{user_id}/approve", headers=owner_headers)
    assert approved.status_code == 200

    headers = _login(client, "alice@mail.test")
    profile = client.get("/portal/profile", headers=headers).json()["data"]
    return {"headers": headers, "profile": profile}


def test_portal_shows_own_activity(client, shop, owner_headers, approved_consignor):
    consignor_id = approved_consignor["profile"]["id"]
    assert approved_consignor["profile"]["consignor_number"] == "PRV-00001"
    item = client.post(
        "/items", json={"consignor_id": consignor_id, "title": "Silk scarf", "price": 30}, headers=owner_headers
    ).json()["data"]
    client.post("/transactions", json={"item_id": item["id"], "payment_method": "Card"}, headers=owner_headers)
    headers = approved_consignor["headers"]

    items = client.get("/portal/items", headers=headers).json()["data"]
    sales = client.get("/portal/sales", headers=headers).json()["data"]
    notifications = client.get("/portal/notifications", headers=headers).json()["data"]

    assert items["total_count"] == 1
    assert sales["items"][0]["consignor_amount"] == 18.0
    assert [note["title"] for note in notifications] == ["Item sold", "Account approved"]

    marked = client.post(f"/portal/notifications/{notifications[0]['id']}/read", headers=headers)
    assert marked.status_code == 200
    unread = client.get("/portal/notifications?unread_only=true", headers=headers).json()["data"]
    assert [note["title"] for note in unread] == ["Account approved"]


def test_portal_hides_other_consignors_payouts(client, shop, owner_headers, approved_consignor):
    other = factories.make_consignor(shop["organization_id"], "Bob Stone")
    sale = factories.make_sale(shop["organization_id"], other["id"])
    payout = client.post(
        "/payouts",
        json={"consignor_id": other["id"], "transaction_ids": [sale["id"]], "payment_method": "Cash"},
        headers=owner_headers,
    ).json()["data"]

    response = client.get(f"/portal/payouts/{payout['id']}", headers=approved_consignor["headers"])

    assert response.status_code == 404
    assert client.get("/portal/payouts", headers=approved_consignor["headers"]).json()["data"]["total_count"] == 0
