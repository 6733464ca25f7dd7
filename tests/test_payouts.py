from datetime import date

import pytest

from backend.services import payouts, transactions
from backend.services.errors import InvalidStateError, NotFoundError, ValidationError
from tests import factories


def _pay(org, consignor_id, transaction_ids, **extra):
    payload = {
        "consignor_id": consignor_id,
        "transaction_ids": transaction_ids,
        "payment_method": "Check",
        "payout_date": date(2024, 5, 31),
        **extra,
    }
    return payouts.create_payout(org, payload)


def test_create_payout_links_sales(shop, consignor):
    org = shop["organization_id"]
    first = factories.make_sale(org, consignor["id"], price=100, sale_date=date(2024, 5, 3))
    second = factories.make_sale(org, consignor["id"], price=45.5, sale_date=date(2024, 5, 20))

    payout = _pay(org, consignor["id"], [first["id"], second["id"]], payment_reference="CHK-881")

    assert payout["payout_number"] == "PO20240531001"
    assert payout["amount"] == 87.3
    assert payout["status"] == "Paid"
    assert payout["transaction_count"] == 2
    assert (payout["period_start"], payout["period_end"]) == ("2024-05-03", "2024-05-20")
    assert [line["id"] for line in payout["transactions"]] == [first["id"], second["id"]]
    paid = transactions.get_transaction(org, first["id"])
    assert paid["payout_status"] == "Paid"
    assert paid["payout_id"] == payout["id"]
    assert paid["consignor_paid_out"] is True


def test_payout_numbers_are_sequential_per_day(shop, consignor):
    org = shop["organization_id"]
    first = factories.make_sale(org, consignor["id"])
    second = factories.make_sale(org, consignor["id"])

    assert _pay(org, consignor["id"], [first["id"]])["payout_number"] == "PO20240531001"
    assert _pay(org, consignor["id"], [second["id"]])["payout_number"] == "PO20240531002"


def test_already_paid_sale_cannot_be_paid_again(shop, consignor):
    org = shop["organization_id"]
    paid = factories.make_sale(org, consignor["id"])
    fresh = factories.make_sale(org, consignor["id"])
    _pay(org, consignor["id"], [paid["id"]])

    with pytest.raises(ValidationError, match=payouts.INVALID_TRANSACTIONS_MESSAGE):
        _pay(org, consignor["id"], [fresh["id"], paid["id"]])

    assert transactions.get_transaction(org, fresh["id"])["payout_status"] == "Pending"
    assert payouts.list_payouts(org)["total_count"] == 1


def test_sale_of_another_consignor_is_invalid(shop, consignor):
    org = shop["organization_id"]
    other = factories.make_consignor(org, "Bob Stone")
    sale = factories.make_sale(org, other["id"])

    with pytest.raises(ValidationError, match=payouts.INVALID_TRANSACTIONS_MESSAGE):
        _pay(org, consignor["id"], [sale["id"]])


def test_unknown_consignor_is_a_validation_error(shop):
    with pytest.raises(ValidationError, match="Consignor not found"):
        _pay(shop["organization_id"], 999, [1])


def test_empty_selection_is_rejected(shop, consignor):
    with pytest.raises(ValidationError, match="At least one transaction is required"):
        _pay(shop["organization_id"], consignor["id"], [])


def test_paid_sale_cannot_be_voided(shop, consignor):
    org = shop["organization_id"]
    sale = factories.make_sale(org, consignor["id"])
    _pay(org, consignor["id"], [sale["id"]])

    with pytest.raises(InvalidStateError, match="Cannot delete a transaction that has been paid out"):
        transactions.void_transaction(org, sale["id"])


def test_delete_payout_releases_sales(shop, consignor):
    org = shop["organization_id"]
    first = factories.make_sale(org, consignor["id"])
    second = factories.make_sale(org, consignor["id"])
    payout = _pay(org, consignor["id"], [first["id"], second["id"]])

    assert payouts.delete_payout(org, payout["id"]) == 2

    released = transactions.get_transaction(org, first["id"])
    assert released["payout_status"] == "Pending"
    assert released["payout_id"] is None
    assert released["paid_out_date"] is None
    with pytest.raises(NotFoundError):
        payouts.get_payout(org, payout["id"])
    # the released sales can be paid again
    assert _pay(org, consignor["id"], [first["id"], second["id"]])["amount"] == 120.0


def test_pending_payouts_grouped_by_consignor(shop, consignor):
    org = shop["organization_id"]
    bob = factories.make_consignor(org, "Bob Stone", commission_rate=50)
    factories.make_sale(org, consignor["id"], price=100, sale_date=date(2024, 5, 1))
    factories.make_sale(org, consignor["id"], price=50, sale_date=date(2024, 5, 9))
    factories.make_sale(org, bob["id"], price=200, sale_date=date(2024, 5, 4))

    pending = payouts.get_pending_payouts(org)

    assert [group["consignor_name"] for group in pending] == ["Bob Stone", "Alice Martin"]
    alice = pending[1]
    assert alice["pending_amount"] == 90.0
    assert alice["transaction_count"] == 2
    assert (alice["earliest_sale"], alice["latest_sale"]) == ("2024-05-01", "2024-05-09")
    assert payouts.get_pending_payouts(org, minimum_amount=95) == pending[:1]


def test_update_payout_reference(shop, consignor):
    org = shop["organization_id"]
    sale = factories.make_sale(org, consignor["id"])
    payout = _pay(org, consignor["id"], [sale["id"]])

    updated = payouts.update_payout(org, payout["id"], {"payment_reference": "TRF-1", "notes": "Sent"})

    assert updated["payment_reference"] == "TRF-1"
    with pytest.raises(ValidationError):
        payouts.update_payout(org, payout["id"], {"status": "Lost"})


def test_payout_scoped_to_consignor(shop, consignor):
    org = shop["organization_id"]
    other = factories.make_consignor(org, "Bob Stone")
    sale = factories.make_sale(org, consignor["id"])
    payout = _pay(org, consignor["id"], [sale["id"]])

    with pytest.raises(NotFoundError):
        payouts.get_payout(org, payout["id"], consignor_id=other["id"])


def test_export_payout_csv(shop, consignor):
    org = shop["organization_id"]
    sale = factories.make_sale(org, consignor["id"], price=80, title="Linen shirt", sale_date=date(2024, 5, 2))
    payout = _pay(org, consignor["id"], [sale["id"]])

    filename, content = payouts.export_payout_csv(org, payout["id"])

    text = content.decode("utf-8")
    assert filename == "PO20240531001.csv"
    assert text.startswith("Payout Statement\n")
    assert "Sale Date,Item,SKU,Sale Price,Split %,Consignor Amount" in text
    assert "2024-05-02,Linen shirt,ITM-00001,80.00,60.00,48.00" in text
    assert "Total Payout,48.00" in text
