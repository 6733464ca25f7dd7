"""Consignors (providers) belonging to a shop."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import text

from core.data_repository import first_record, get_engine, query_df, records
from core.money import to_float
from core.periods import iso, utcnow
from core.repositories import PagedResult, page_window
from backend.services.errors import NotFoundError, ValidationError
from backend.services.organizations import get_organization

logger = logging.getLogger(__name__)

STATUS_ACTIVE = "Active"
STATUS_DEACTIVATED = "Deactivated"
STATUSES = (STATUS_ACTIVE, STATUS_DEACTIVATED)

_EDITABLE = {"full_name", "email", "phone", "address", "commission_rate", "notes"}

_SELECT = """
    SELECT id, organization_id, user_id, consignor_number, full_name, email, phone,
           address, commission_rate, status, notes, created_at, updated_at
    FROM consignors
"""


def _serialize(row: dict[str, Any]) -> dict[str, Any]:
    row["commission_rate"] = to_float(row["commission_rate"])
    row["created_at"] = iso(row["created_at"])
    row["updated_at"] = iso(row["updated_at"])
    return row


def _check_rate(rate) -> float:
    value = float(rate)
    if not 0 <= value <= 100:
        raise ValidationError("Commission rate must be between 0 and 100")
    return value


def next_consignor_number(conn, organization_id: int) -> str:
    """``PRV-00001`` style number, sequential within the shop."""

    total = conn.execute(
        text("SELECT COUNT(*) FROM consignors WHERE organization_id = :org"), {"org": int(organization_id)}
    ).scalar()
    sequence = int(total or 0) + 1
    while True:
        number = f"PRV-{sequence:05d}"
        taken = conn.execute(
            text("SELECT 1 FROM consignors WHERE organization_id = :org AND consignor_number = :number"),
            {"org": int(organization_id), "number": number},
        ).fetchone()
        if taken is None:
            return number
        sequence += 1


def insert_consignor(
    conn,
    organization_id: int,
    *,
    full_name: str,
    commission_rate,
    email: str | None = None,
    phone: str | None = None,
    address: str | None = None,
    notes: str | None = None,
    user_id: int | None = None,
) -> int:
    """Insert a consignor inside the caller's transaction and return its id."""

    if not (full_name or "").strip():
        raise ValidationError("Consignor name is required")
    number = next_consignor_number(conn, organization_id)
    row = conn.execute(
        text(
            """
            INSERT INTO consignors (
                organization_id, user_id, consignor_number, full_name, email, phone,
                address, commission_rate, status, notes, created_at
            ) VALUES (
                :org, :user_id, :number, :full_name, :email, :phone,
                :address, :commission_rate, :status, :notes, :created_at
            )
            RETURNING id
            """
        ),
        {
            "org": int(organization_id),
            "user_id": user_id,
            "number": number,
            "full_name": full_name.strip(),
            "email": (email or "").strip().lower() or None,
            "phone": phone,
            "address": address,
            "commission_rate": _check_rate(commission_rate),
            "status": STATUS_ACTIVE,
            "notes": notes,
            "created_at": iso(utcnow()),
        },
    ).fetchone()
    logger.info("Consignor %s created in organization %s", number, organization_id)
    return int(row[0])


def get_consignor(organization_id: int, consignor_id: int, *, conn=None) -> dict[str, Any]:
    row = first_record(
        query_df(
            text(_SELECT + " WHERE organization_id = :org AND id = :id"),
            {"org": int(organization_id), "id": int(consignor_id)},
            conn=conn,
        )
    )
    if row is None:
        raise NotFoundError("Consignor not found")
    return _serialize(row)


def get_consignor_for_user(organization_id: int, user_id: int) -> dict[str, Any]:
    row = first_record(
        query_df(
            text(_SELECT + " WHERE organization_id = :org AND user_id = :user_id"),
            {"org": int(organization_id), "user_id": int(user_id)},
        )
    )
    if row is None:
        raise NotFoundError("Consignor not found")
    return _serialize(row)


def list_consignors(
    organization_id: int,
    *,
    search: str | None = None,
    status: str | None = None,
    page: int = 1,
    page_size: int = 25,
) -> dict[str, Any]:
    limit, offset = page_window(page, page_size)
    where = ["organization_id = :org"]
    params: dict[str, Any] = {"org": int(organization_id)}
    if search:
        where.append(
            "(LOWER(full_name) LIKE :search OR LOWER(COALESCE(email, '')) LIKE :search"
            " OR LOWER(consignor_number) LIKE :search)"
        )
        params["search"] = f"%{search.strip().lower()}%"
    if status:
        where.append("status = :status")
        params["status"] = status
    clause = " AND ".join(where)

    total = int(query_df(text(f"SELECT COUNT(*) AS total FROM consignors WHERE {clause}"), params).iloc[0]["total"])
    df = query_df(
        text(_SELECT + f" WHERE {clause} ORDER BY full_name, id LIMIT :limit OFFSET :offset"),
        {**params, "limit": limit, "offset": offset},
    )
    items = [_serialize(row) for row in records(df)]
    return PagedResult(items=items, total=total, page=page, per_page=page_size).to_dict()


def create_consignor(organization_id: int, payload: dict[str, Any]) -> dict[str, Any]:
    """Create a consignor; the commission rate falls back to the shop default split."""

    org = get_organization(organization_id)
    rate = payload.get("commission_rate")
    if rate is None:
        rate = org["default_split_percentage"]
    with get_engine().begin() as conn:
        consignor_id = insert_consignor(
            conn,
            organization_id,
            full_name=payload.get("full_name") or "",
            commission_rate=rate,
            email=payload.get("email"),
            phone=payload.get("phone"),
            address=payload.get("address"),
            notes=payload.get("notes"),
        )
    return get_consignor(organization_id, consignor_id)


def update_consignor(organization_id: int, consignor_id: int, changes: dict[str, Any]) -> dict[str, Any]:
    get_consignor(organization_id, consignor_id)
    updates = {key: value for key, value in changes.items() if key in _EDITABLE and value is not None}
    if "commission_rate" in updates:
        updates["commission_rate"] = _check_rate(updates["commission_rate"])
    if "full_name" in updates and not str(updates["full_name"]).strip():
        raise ValidationError("Consignor name is required")
    if updates:
        assignments = ", ".join(f"{column} = :{column}" for column in sorted(updates))
        with get_engine().begin() as conn:
            conn.execute(
                text(
                    f"UPDATE consignors SET {assignments}, updated_at = :updated_at"
                    " WHERE organization_id = :org AND id = :id"
                ),
                {**updates, "updated_at": iso(utcnow()), "org": int(organization_id), "id": int(consignor_id)},
            )
    return get_consignor(organization_id, consignor_id)


def set_status(organization_id: int, consignor_id: int, status: str) -> dict[str, Any]:
    """Activate or deactivate; deactivated consignors cannot receive new sales."""

    if status not in STATUSES:
        raise ValidationError(f"Invalid consignor status: {status}")
    get_consignor(organization_id, consignor_id)
    with get_engine().begin() as conn:
        conn.execute(
            text("UPDATE consignors SET status = :status, updated_at = :now WHERE organization_id = :org AND id = :id"),
            {"status": status, "now": iso(utcnow()), "org": int(organization_id), "id": int(consignor_id)},
        )
    logger.info("Consignor %s in organization %s set to %s", consignor_id, organization_id, status)
    return get_consignor(organization_id, consignor_id)


def consignor_summary(organization_id: int, consignor_id: int) -> dict[str, Any]:
    """Stock and money totals for one consignor."""

    consignor = get_consignor(organization_id, consignor_id)
    params = {"org": int(organization_id), "consignor_id": int(consignor_id)}
    items = query_df(
        text(
            """
            SELECT status, COUNT(*) AS total
            FROM items
            WHERE organization_id = :org AND consignor_id = :consignor_id
            GROUP BY status
            """
        ),
        params,
    )
    counts = dict(zip(items["status"], items["total"])) if not items.empty else {}
    sales = query_df(
        text(
            """
            SELECT
                COALESCE(SUM(sale_price), 0) AS total_sales,
                COALESCE(SUM(consignor_amount), 0) AS total_earnings,
                COALESCE(SUM(CASE WHEN payout_id IS NULL AND payout_status = 'Pending'
                                  THEN consignor_amount ELSE 0 END), 0) AS pending_balance
            FROM transactions
            WHERE organization_id = :org AND consignor_id = :consignor_id AND status = 'Completed'
            """
        ),
        params,
    ).iloc[0]
    paid = query_df(
        text(
            """
            SELECT COALESCE(SUM(amount), 0) AS total_paid
            FROM payouts
            WHERE organization_id = :org AND consignor_id = :consignor_id AND status = 'Paid'
            """
        ),
        params,
    ).iloc[0]
    return {
        "consignor": consignor,
        "items_available": int(counts.get("Available", 0)),
        "items_sold": int(counts.get("Sold", 0)),
        "items_removed": int(counts.get("Removed", 0)),
        "total_sales": to_float(sales["total_sales"]),
        "total_earnings": to_float(sales["total_earnings"]),
        "pending_balance": to_float(sales["pending_balance"]),
        "total_paid": to_float(paid["total_paid"]),
    }
