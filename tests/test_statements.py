from datetime import date

import pytest

from backend.services import consignors, payouts, statements
from backend.services.errors import NotFoundError, ValidationError
from tests import factories

MAY_START = date(2024, 5, 1)
MAY_END = date(2024, 5, 31)


@pytest.fixture
def history(shop, consignor):
    """April sale of 100 paid out mid-May, plus an unpaid May sale of 50."""

    org = shop["organization_id"]
    april = factories.make_sale(org, consignor["id"], price=100, sale_date=date(2024, 4, 12))
    factories.make_sale(org, consignor["id"], price=50, sale_date=date(2024, 5, 20))
    payouts.create_payout(
        org,
        {
            "consignor_id": consignor["id"],
            "transaction_ids": [april["id"]],
            "payment_method": "Cash",
            "payout_date": date(2024, 5, 15),
        },
    )
    return org


def test_generate_statement_figures(history, consignor):
    statement = statements.generate_statement(history, consignor["id"], MAY_START, MAY_END)

    assert statement["statement_number"] == "STMT-2024-05-PRV-00001"
    assert statement["period_label"] == "May 2024"
    assert statement["opening_balance"] == 60.0
    assert statement["total_sales"] == 50.0
    assert statement["total_earnings"] == 30.0
    assert statement["total_payouts"] == 60.0
    assert statement["closing_balance"] == 30.0
    assert statement["items_sold"] == 1
    assert statement["payout_count"] == 1
    assert statement["status"] == "Generated"


def test_generate_is_idempotent_per_period(history, consignor):
    first = statements.generate_statement(history, consignor["id"], MAY_START, MAY_END)
    second = statements.generate_statement(history, consignor["id"], "2024-05-01", "2024-05-31")

    assert second["id"] == first["id"]
    assert len(statements.list_statements(history, consignor["id"])) == 1


def test_period_must_be_ordered(shop, consignor):
    with pytest.raises(ValidationError, match="Period end must not be before period start"):
        statements.generate_statement(shop["organization_id"], consignor["id"], MAY_END, MAY_START)


def test_statement_detail_lists_period_activity(history, consignor):
    created = statements.generate_statement(history, consignor["id"], MAY_START, MAY_END)

    detail = statements.get_statement(history, created["id"])

    assert [line["sale_date"] for line in detail["sales"]] == ["2024-05-20"]
    assert [line["amount"] for line in detail["payouts"]] == [60.0]
    assert statements.get_statement_by_period(history, consignor["id"], MAY_START)["id"] == created["id"]


def test_regenerate_replaces_statement(history, consignor):
    created = statements.generate_statement(history, consignor["id"], MAY_START, MAY_END)
    factories.make_sale(history, consignor["id"], price=20, sale_date=date(2024, 5, 28))

    regenerated = statements.regenerate_statement(history, created["id"])

    assert regenerated["id"] != created["id"]
    assert regenerated["items_sold"] == 2
    assert regenerated["closing_balance"] == 42.0
    with pytest.raises(NotFoundError):
        statements.get_statement(history, created["id"])


def test_regenerate_keeps_statement_when_recompute_fails(history, consignor, monkeypatch):
    created = statements.generate_statement(history, consignor["id"], MAY_START, MAY_END)

    def broken(*args, **kwargs):
        raise RuntimeError("database went away")

    monkeypatch.setattr(statements, "compute_figures", broken)
    with pytest.raises(RuntimeError):
        statements.regenerate_statement(history, created["id"])

    assert statements.get_statement(history, created["id"])["closing_balance"] == created["closing_balance"]


def test_same_start_with_other_end_is_rejected(history, consignor):
    statements.generate_statement(history, consignor["id"], MAY_START, MAY_END)

    with pytest.raises(ValidationError, match="already exists"):
        statements.generate_statement(history, consignor["id"], MAY_START, date(2024, 5, 15))


def test_mark_viewed_keeps_first_timestamp(history, consignor):
    created = statements.generate_statement(history, consignor["id"], MAY_START, MAY_END)

    first = statements.mark_viewed(history, created["id"], consignor_id=consignor["id"])
    again = statements.mark_viewed(history, created["id"], consignor_id=consignor["id"])

    assert first["status"] == "Viewed"
    assert first["viewed_at"] is not None
    assert again["viewed_at"] == first["viewed_at"]


def test_statement_hidden_from_other_consignor(history, consignor):
    other = factories.make_consignor(history, "Bob Stone")
    created = statements.generate_statement(history, consignor["id"], MAY_START, MAY_END)

    with pytest.raises(NotFoundError):
        statements.get_statement(history, created["id"], consignor_id=other["id"])


def test_monthly_batch_covers_active_consignors(shop, consignor):
    org = shop["organization_id"]
    factories.make_consignor(org, "Bob Stone")
    retired = factories.make_consignor(org, "Carla Gone")
    consignors.set_status(org, retired["id"], consignors.STATUS_DEACTIVATED)
    other_shop = factories.make_organization(name="Other", slug="other-shop", store_code="9876")
    factories.make_consignor(other_shop, "Dina Else")

    scoped = statements.generate_statements_for_month(2024, 5, organization_id=org)
    everyone = statements.generate_statements_for_month(2024, 5)

    assert scoped == {"period_start": "2024-05-01", "period_end": "2024-05-31", "generated": 2, "failed": 0}
    assert everyone["generated"] == 3
    assert statements.list_statements(org, retired["id"]) == []
    assert len(statements.list_statements(org, consignor["id"])) == 1


def test_export_statement_csv(history, consignor):
    created = statements.generate_statement(history, consignor["id"], MAY_START, MAY_END)

    filename, content = statements.export_statement_csv(history, created["id"])

    text = content.decode("utf-8")
    assert filename == "STMT-2024-05-PRV-00001.csv"
    assert "Closing Balance,30.00" in text
    assert "Sale Date,Item,SKU,Sale Price,Your Share,Payout Status" in text
