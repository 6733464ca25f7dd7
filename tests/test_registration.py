import pytest

from backend.services import consignors as consignors_service
from backend.services import organizations as organizations_service
from backend.services import registration
from backend.services.errors import InvalidStateError, NotFoundError, ValidationError
from core.user_service import authenticate_user, get_user_by_id
from tests import factories


def _owner_request(**overrides):
    payload = {
        "full_name": "Olivia Owner",
        "email": "olivia@vintage.test",
        "password": "Password123",
        "shop_name": "Vintage Corner",
        "subdomain": "vintage-corner",
    }
    payload.update(overrides)
    return payload


def _consignor_request(store_code="1234", **overrides):
    payload = {
        "store_code": store_code,
        "full_name": "Carl Consignor",
        "email": "carl@mail.test",
        "password": "Password123",
    }
    payload.update(overrides)
    return payload


def test_register_owner_creates_pending_shop_and_account():
    result = registration.register_owner(_owner_request())

    org = organizations_service.get_organization(result["organization_id"])
    user = get_user_by_id(result["user_id"])
    assert org["status"] == "pending"
    assert org["store_code"] is None
    assert user["approval_status"] == "Pending"
    assert authenticate_user("olivia@vintage.test", "Password123") is None


def test_register_owner_rejects_duplicate_email_and_slug(shop):
    with pytest.raises(ValidationError, match="An account with this email already exists."):
        registration.register_owner(_owner_request(email="owner@shop.test"))
    with pytest.raises(ValidationError, match="subdomain is already taken"):
        registration.register_owner(_owner_request(subdomain="second-chance"))


def test_approve_owner_activates_shop_with_store_code():
    admin = factories.make_user("admin@platform.test", "admin", None)
    result = registration.register_owner(_owner_request())

    approved = registration.approve_owner(result["user_id"], admin["id"])

    assert approved["approval_status"] == "Approved"
    assert approved["approved_by"] == admin["id"]
    assert approved["approved_at"] is not None
    assert len(approved["store_code"]) == 6
    assert approved["store_code"].isalnum() and approved["store_code"].upper() == approved["store_code"]
    org = organizations_service.get_organization(result["organization_id"])
    assert org["status"] == "active"
    assert org["store_code"] == approved["store_code"]
    assert authenticate_user("olivia@vintage.test", "Password123") is not None


def test_approve_owner_refuses_non_owner_without_changes(shop):
    clerk = factories.make_user("clerk@shop.test", "clerk", shop["organization_id"], approval_status="Pending")

    with pytest.raises(InvalidStateError, match="User is not an owner"):
        registration.approve_owner(clerk["id"], 1)

    assert get_user_by_id(clerk["id"])["approval_status"] == "Pending"


def test_reject_owner_refuses_non_owner(shop):
    clerk = factories.make_user("clerk@shop.test", "clerk", shop["organization_id"], approval_status="Pending")

    with pytest.raises(InvalidStateError, match="User is not an owner"):
        registration.reject_owner(clerk["id"], 1, "no")

    user = get_user_by_id(clerk["id"])
    assert user["approval_status"] == "Pending"
    assert user["rejected_reason"] is None


def test_approve_owner_twice_fails():
    result = registration.register_owner(_owner_request())
    registration.approve_owner(result["user_id"], 1)

    with pytest.raises(InvalidStateError, match="User is not pending approval"):
        registration.approve_owner(result["user_id"], 1)


def test_approve_unknown_owner_is_not_found():
    with pytest.raises(NotFoundError):
        registration.approve_owner(999, 1)


def test_reject_owner_records_reason():
    result = registration.register_owner(_owner_request())

    rejected = registration.reject_owner(result["user_id"], 1, "Incomplete details")

    assert rejected["approval_status"] == "Rejected"
    assert rejected["rejected_reason"] == "Incomplete details"
    assert registration.get_pending_owners() == []


def test_register_consignor_with_invalid_store_code(shop):
    with pytest.raises(ValidationError, match="Invalid or disabled store code"):
        registration.register_consignor(_consignor_request(store_code="9999"))


def test_register_consignor_with_disabled_store_code(shop):
    organizations_service.toggle_store_code(shop["organization_id"], False)

    with pytest.raises(ValidationError, match="Invalid or disabled store code"):
        registration.register_consignor(_consignor_request())
    assert organizations_service.validate_store_code("1234")["is_valid"] is False


def test_register_consignor_waits_for_approval(shop):
    result = registration.register_consignor(_consignor_request())

    assert result["approval_status"] == "Pending"
    assert result["consignor_id"] is None
    pending = registration.get_pending_consignors(shop["organization_id"])
    assert [row["email"] for row in pending] == ["carl@mail.test"]
    assert registration.get_pending_approval_count(shop["organization_id"]) == 1


def test_approve_consignor_creates_consignor_record(shop):
    result = registration.register_consignor(_consignor_request())

    registration.approve_user(shop["organization_id"], result["user_id"], shop["owner"]["id"])

    consignor = consignors_service.get_consignor_for_user(shop["organization_id"], result["user_id"])
    assert consignor["consignor_number"] == "PRV-00001"
    assert consignor["commission_rate"] == 60.0
    assert registration.get_pending_approval_count(shop["organization_id"]) == 0


def test_auto_approve_shop_creates_consignor_immediately():
    factories.make_organization(name="Quick Shop", slug="quick-shop", store_code="4321", auto_approve=True)

    result = registration.register_consignor(_consignor_request(store_code="4321"))

    assert result["approval_status"] == "Approved"
    assert result["consignor_id"] is not None
    assert authenticate_user("carl@mail.test", "Password123") is not None


def test_register_consignor_rejects_duplicate_email(shop):
    with pytest.raises(ValidationError, match="An account with this email already exists."):
        registration.register_consignor(_consignor_request(email="owner@shop.test"))


def test_reject_consignor_from_another_shop_is_not_found(shop):
    other = factories.make_organization(name="Other", slug="other-shop", store_code="5555")
    result = registration.register_consignor(_consignor_request(store_code="5555"))

    with pytest.raises(NotFoundError):
        registration.reject_user(shop["organization_id"], result["user_id"], shop["owner"]["id"])
    assert registration.get_pending_approval_count(other) == 1
