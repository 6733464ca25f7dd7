"""Seed helpers used by service and API tests."""

from __future__ import annotations

from datetime import date

from sqlalchemy import text

from core.data_repository import exec_sql_return_id
from core.periods import iso, utcnow
from core.user_service import APPROVAL_APPROVED, create_user
from backend.services import consignors, items, transactions

DEFAULT_PASSWORD = "Password123"


def make_organization(
    name: str = "Second Chance Boutique",
    *,
    slug: str = "second-chance",
    store_code: str | None = "1234",
    status: str = "active",
    auto_approve: bool = False,
    split: float = 60,
) -> int:
    return int(
        exec_sql_return_id(
            text(
                """
                INSERT INTO organizations (
                    name, slug, status, store_code, store_code_enabled, auto_approve_consignors,
                    default_split_percentage, tax_rate, currency, created_at
                ) VALUES (
                    :name, :slug, :status, :store_code, :enabled, :auto_approve,
                    :split, 0, 'USD', :now
                )
                RETURNING id
                """
            ),
            {
                "name": name,
                "slug": slug,
                "status": status,
                "store_code": store_code,
                "enabled": True,
                "auto_approve": auto_approve,
                "split": split,
                "now": iso(utcnow()),
            },
        )
    )


def make_user(
    email: str,
    role: str,
    organization_id: int | None,
    *,
    approval_status: str = APPROVAL_APPROVED,
    full_name: str = "Test User",
) -> dict:
    return create_user(
        email,
        DEFAULT_PASSWORD,
        full_name,
        role,
        organization_id=organization_id,
        approval_status=approval_status,
    )


def make_consignor(organization_id: int, full_name: str = "Alice Martin", *, commission_rate: float = 60, **extra) -> dict:
    payload = {"full_name": full_name, "commission_rate": commission_rate, **extra}
    return consignors.create_consignor(organization_id, payload)


def make_item(organization_id: int, consignor_id: int, *, title: str = "Wool coat", price: float = 100, **extra) -> dict:
    payload = {"consignor_id": consignor_id, "title": title, "price": price, **extra}
    return items.create_item(organization_id, payload)


def make_sale(
    organization_id: int,
    consignor_id: int,
    *,
    price: float = 100,
    sale_date: date | None = None,
    payment_method: str = "Cash",
    **item_extra,
) -> dict:
    """Create an item for the consignor and sell it at its price."""

    item = make_item(organization_id, consignor_id, price=price, **item_extra)
    return transactions.record_sale(
        organization_id,
        {"item_id": item["id"], "payment_method": payment_method, "sale_date": sale_date},
    )
