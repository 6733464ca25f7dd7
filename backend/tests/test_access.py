"""Role rules across the shop, portal and admin surfaces."""

from tests import factories


def test_consignor_account_is_kept_out_of_shop_routes(client, shop, consignor, headers_for):
    user = factories.make_user("alice@mail.test", "consignor", shop["organization_id"])
    headers = headers_for(user, consignor_id=consignor["id"])

    response = client.get("/items", headers=headers)

    assert response.status_code == 403
    assert response.json()["errors"] == ["Consignor accounts can only use the consignor portal"]


def test_staff_cannot_use_portal(client, owner_headers):
    assert client.get("/portal/profile", headers=owner_headers).status_code == 403


def test_clerk_can_sell_but_not_pay_out(client, clerk_headers, shop, consignor):
    item = client.post(
        "/items", json={"consignor_id": consignor["id"], "title": "Coat", "price": 90}, headers=clerk_headers
    ).json()["data"]
    sale = client.post(
        "/transactions", json={"item_id": item["id"], "payment_method": "Cash"}, headers=clerk_headers
    )
    assert sale.status_code == 201

    response = client.post(
        "/payouts",
        json={"consignor_id": consignor["id"], "transaction_ids": [sale.json()["data"]["id"]], "payment_method": "Cash"},
        headers=clerk_headers,
    )
    assert response.status_code == 403


def test_clerk_cannot_change_settings(client, clerk_headers):
    response = client.put("/organization/settings", json={"name": "Renamed"}, headers=clerk_headers)

    assert response.status_code == 403


def test_admin_routes_need_admin(client, owner_headers, admin_headers):
    assert client.get("/admin/owners/pending", headers=owner_headers).status_code == 403
    assert client.get("/admin/owners/pending", headers=admin_headers).status_code == 200


def test_api_key_is_enforced_when_configured(client, owner_headers, monkeypatch):
    monkeypatch.setenv("ADMIN_API_KEY", "k-123")

    assert client.get("/categories", headers=owner_headers).status_code == 401
    assert client.get("/categories", headers={**owner_headers, "X-API-KEY": "k-123"}).status_code == 200


def test_shop_data_is_isolated(client, shop, consignor, headers_for):
    other = factories.make_organization(name="Other", slug="other-shop", store_code="9876")
    other_owner = factories.make_user("owner@other.test", "owner", other)

    response = client.get(f"/consignors/{consignor['id']}", headers=headers_for(other_owner))

    assert response.status_code == 404
