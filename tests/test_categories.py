import pytest

from backend.services import categories
from backend.services.errors import InvalidStateError, NotFoundError, ValidationError
from tests import factories


def test_create_category_appends_display_order(shop):
    org = shop["organization_id"]
    first = categories.create_category(org, "Dresses")
    second = categories.create_category(org, "Shoes")

    assert (first["display_order"], second["display_order"]) == (1, 2)
    assert [row["name"] for row in categories.list_categories(org)] == ["Dresses", "Shoes"]


def test_duplicate_name_is_case_insensitive(shop):
    org = shop["organization_id"]
    categories.create_category(org, "Dresses")

    with pytest.raises(ValidationError, match="A category with this name already exists"):
        categories.create_category(org, "  dresses ")


def test_rename_onto_existing_name_fails(shop):
    org = shop["organization_id"]
    categories.create_category(org, "Dresses")
    shoes = categories.create_category(org, "Shoes")

    with pytest.raises(ValidationError, match="already exists"):
        categories.update_category(org, shoes["id"], name="DRESSES")
    assert categories.update_category(org, shoes["id"], name="Shoes")["name"] == "Shoes"


def test_delete_category_in_use_is_refused(shop, consignor):
    org = shop["organization_id"]
    bags = categories.create_category(org, "Bags")
    factories.make_item(org, consignor["id"], title="Leather tote", category_id=bags["id"])

    with pytest.raises(InvalidStateError, match="Cannot delete category that is assigned to items"):
        categories.delete_category(org, bags["id"])
    assert categories.get_category(org, bags["id"])["is_active"] is True


def test_delete_unused_category_is_soft(shop):
    org = shop["organization_id"]
    hats = categories.create_category(org, "Hats")

    categories.delete_category(org, hats["id"])

    assert categories.list_categories(org) == []
    with pytest.raises(NotFoundError):
        categories.get_category(org, hats["id"])
    # the name is free again once the old row is inactive
    assert categories.create_category(org, "Hats")["is_active"] is True


def test_reorder_categories(shop):
    org = shop["organization_id"]
    a = categories.create_category(org, "A")
    b = categories.create_category(org, "B")
    c = categories.create_category(org, "C")

    reordered = categories.reorder_categories(org, [c["id"], a["id"], b["id"]])

    assert [row["name"] for row in reordered] == ["C", "A", "B"]
    assert [row["display_order"] for row in reordered] == [1, 2, 3]


def test_reorder_with_foreign_category_fails(shop):
    org = shop["organization_id"]
    other = factories.make_organization(name="Other", slug="other-shop", store_code="9876")
    mine = categories.create_category(org, "Mine")
    theirs = categories.create_category(other, "Theirs")

    with pytest.raises(ValidationError, match="Some categories not found"):
        categories.reorder_categories(org, [mine["id"], theirs["id"]])


def test_category_usage_counts(shop, consignor):
    org = shop["organization_id"]
    tops = categories.create_category(org, "Tops")
    factories.make_item(org, consignor["id"], title="Silk blouse", category_id=tops["id"])
    factories.make_sale(org, consignor["id"], category_id=tops["id"])

    usage = categories.category_usage(org)

    assert usage == [{"id": tops["id"], "name": "Tops", "item_count": 2, "available_count": 1, "sold_count": 1}]
