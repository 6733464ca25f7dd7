import pytest

from backend.services import consignors, items
from backend.services.errors import InvalidStateError, NotFoundError, ValidationError
from tests import factories


def test_create_item_generates_sku(shop, consignor):
    org = shop["organization_id"]
    first = factories.make_item(org, consignor["id"])
    second = factories.make_item(org, consignor["id"], title="Denim jacket")

    assert first["sku"] == "ITM-00001"
    assert second["sku"] == "ITM-00002"
    assert first["status"] == "Available"
    assert first["consignor_number"] == consignor["consignor_number"]


def test_duplicate_sku_is_rejected(shop, consignor):
    org = shop["organization_id"]
    factories.make_item(org, consignor["id"], sku="abc-1")

    with pytest.raises(ValidationError, match="SKU already exists"):
        factories.make_item(org, consignor["id"], sku="ABC-1")


def test_item_for_inactive_consignor_is_refused(shop, consignor):
    org = shop["organization_id"]
    consignors.set_status(org, consignor["id"], consignors.STATUS_DEACTIVATED)

    with pytest.raises(InvalidStateError, match="Consignor is not active"):
        factories.make_item(org, consignor["id"])


def test_item_for_consignor_of_another_shop_is_not_found(shop):
    other = factories.make_organization(name="Other", slug="other-shop", store_code="9876")
    foreign = factories.make_consignor(other, "Bob Other")

    with pytest.raises(NotFoundError):
        factories.make_item(shop["organization_id"], foreign["id"])


def test_sold_item_price_is_locked(shop, consignor):
    org = shop["organization_id"]
    sale = factories.make_sale(org, consignor["id"])

    with pytest.raises(InvalidStateError):
        items.update_item(org, sale["item_id"], {"price": 10})
    updated = items.update_item(org, sale["item_id"], {"notes": "Shipped to buyer"})
    assert updated["notes"] == "Shipped to buyer"
    assert updated["price"] == 100.0


def test_status_changes(shop, consignor):
    org = shop["organization_id"]
    item = factories.make_item(org, consignor["id"])

    assert items.change_status(org, item["id"], "Removed")["status"] == "Removed"
    assert items.change_status(org, item["id"], "Available")["status"] == "Available"
    with pytest.raises(ValidationError):
        items.change_status(org, item["id"], "Sold")


def test_sold_item_cannot_be_deleted(shop, consignor):
    org = shop["organization_id"]
    sale = factories.make_sale(org, consignor["id"])

    with pytest.raises(InvalidStateError, match="Cannot delete a sold item"):
        items.delete_item(org, sale["item_id"])


def test_list_items_filters_and_pages(shop, consignor):
    org = shop["organization_id"]
    for index in range(5):
        factories.make_item(org, consignor["id"], title=f"Scarf {index}", price=10 + index)
    factories.make_item(org, consignor["id"], title="Boots", price=80)

    result = items.list_items(org, search="scarf", sort_by="price", sort_direction="asc", page=2, page_size=2)

    assert result["total_count"] == 5
    assert result["total_pages"] == 3
    assert [row["price"] for row in result["items"]] == [12.0, 13.0]
    assert items.list_items(org, min_price=50)["total_count"] == 1


def test_inventory_metrics(shop, consignor):
    org = shop["organization_id"]
    factories.make_item(org, consignor["id"], price=40)
    removed = factories.make_item(org, consignor["id"], price=15)
    items.change_status(org, removed["id"], "Removed")
    factories.make_sale(org, consignor["id"], price=25)

    metrics = items.inventory_metrics(org)

    assert metrics == {
        "total_items": 3,
        "available_items": 1,
        "sold_items": 1,
        "removed_items": 1,
        "available_value": 40.0,
    }


def test_deleted_item_id_is_not_reused(shop, consignor):
    org = shop["organization_id"]
    removed = factories.make_item(org, consignor["id"])
    items.delete_item(org, removed["id"])

    replacement = factories.make_item(org, consignor["id"], title="Denim jacket")

    assert replacement["id"] > removed["id"]
