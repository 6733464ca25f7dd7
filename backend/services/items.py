"""Consigned inventory: items placed in the shop by consignors."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from sqlalchemy import text

from core.data_repository import first_record, get_engine, query_df, records
from core.money import to_float, to_money
from core.periods import iso, utcnow
from core.repositories import PagedResult, page_window
from backend.services.categories import get_category
from backend.services.consignors import STATUS_ACTIVE as CONSIGNOR_ACTIVE, get_consignor
from backend.services.errors import InvalidStateError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

STATUS_AVAILABLE = "Available"
STATUS_SOLD = "Sold"
STATUS_REMOVED = "Removed"
STATUSES = (STATUS_AVAILABLE, STATUS_SOLD, STATUS_REMOVED)

_SORT_COLUMNS = {
    "title": "i.title",
    "price": "i.price",
    "received": "i.received_date",
    "sku": "i.sku",
    "status": "i.status",
}
_EDITABLE = {
    "title", "description", "brand", "size", "condition", "price", "original_price",
    "split_percentage", "category_id", "consignor_id", "received_date", "notes", "sku",
}
_LOCKED_WHEN_SOLD = {"price", "consignor_id", "split_percentage"}

_SELECT = """
    SELECT i.id, i.organization_id, i.consignor_id, c.full_name AS consignor_name,
           c.consignor_number, i.category_id, cat.name AS category_name, i.sku, i.title,
           i.description, i.brand, i.size, i.condition, i.price, i.original_price,
           i.split_percentage, i.status, i.received_date, i.sold_date, i.notes,
           i.created_at, i.updated_at
    FROM items i
    JOIN consignors c ON c.id = i.consignor_id
    LEFT JOIN categories cat ON cat.id = i.category_id
"""


def _serialize(row: dict[str, Any]) -> dict[str, Any]:
    row["price"] = to_float(row["price"])
    row["original_price"] = to_float(row["original_price"]) if row["original_price"] is not None else None
    row["split_percentage"] = to_float(row["split_percentage"]) if row["split_percentage"] is not None else None
    for key in ("received_date", "sold_date", "created_at", "updated_at"):
        row[key] = iso(row[key])
    return row


def _check_price(value, label: str = "Price"):
    amount = to_money(value)
    if amount < 0:
        raise ValidationError(f"{label} cannot be negative")
    return float(amount)


def _check_split(value):
    if value is None:
        return None
    pct = float(value)
    if not 0 <= pct <= 100:
        raise ValidationError("Split percentage must be between 0 and 100")
    return pct


def next_sku(conn, organization_id: int) -> str:
    total = conn.execute(
        text("SELECT COUNT(*) FROM items WHERE organization_id = :org"), {"org": int(organization_id)}
    ).scalar()
    sequence = int(total or 0) + 1
    while True:
        sku = f"ITM-{sequence:05d}"
        if not _sku_taken(conn, organization_id, sku):
            return sku
        sequence += 1


def _sku_taken(conn, organization_id: int, sku: str, exclude_id: int | None = None) -> bool:
    row = conn.execute(
        text(
            """
            SELECT id FROM items
            WHERE organization_id = :org AND UPPER(sku) = :sku AND (:exclude_id IS NULL OR id <> :exclude_id)
            """
        ),
        {"org": int(organization_id), "sku": sku.upper(), "exclude_id": exclude_id},
    ).fetchone()
    return row is not None


def get_item(organization_id: int, item_id: int, *, conn=None) -> dict[str, Any]:
    row = first_record(
        query_df(
            text(_SELECT + " WHERE i.organization_id = :org AND i.id = :id"),
            {"org": int(organization_id), "id": int(item_id)},
            conn=conn,
        )
    )
    if row is None:
        raise NotFoundError("Item not found")
    return _serialize(row)


def list_items(
    organization_id: int,
    *,
    status: str | None = None,
    consignor_id: int | None = None,
    category_id: int | None = None,
    search: str | None = None,
    min_price: float | None = None,
    max_price: float | None = None,
    sort_by: str = "received",
    sort_direction: str = "desc",
    page: int = 1,
    page_size: int = 25,
) -> dict[str, Any]:
    limit, offset = page_window(page, page_size)
    where = ["i.organization_id = :org"]
    params: dict[str, Any] = {"org": int(organization_id)}
    if status:
        where.append("i.status = :status")
        params["status"] = status
    if consignor_id is not None:
        where.append("i.consignor_id = :consignor_id")
        params["consignor_id"] = int(consignor_id)
    if category_id is not None:
        where.append("i.category_id = :category_id")
        params["category_id"] = int(category_id)
    if search:
        where.append("(LOWER(i.title) LIKE :search OR LOWER(i.sku) LIKE :search OR LOWER(COALESCE(i.brand, '')) LIKE :search)")
        params["search"] = f"%{search.strip().lower()}%"
    if min_price is not None:
        where.append("i.price >= :min_price")
        params["min_price"] = float(min_price)
    if max_price is not None:
        where.append("i.price <= :max_price")
        params["max_price"] = float(max_price)
    clause = " AND ".join(where)

    column = _SORT_COLUMNS.get((sort_by or "").lower(), "i.received_date")
    direction = "ASC" if (sort_direction or "").lower() == "asc" else "DESC"

    total = int(
        query_df(text(f"SELECT COUNT(*) AS total FROM items i WHERE {clause}"), params).iloc[0]["total"]
    )
    df = query_df(
        text(_SELECT + f" WHERE {clause} ORDER BY {column} {direction}, i.id {direction} LIMIT :limit OFFSET :offset"),
        {**params, "limit": limit, "offset": offset},
    )
    items = [_serialize(row) for row in records(df)]
    return PagedResult(items=items, total=total, page=page, per_page=page_size).to_dict()


def _check_consignor(conn, organization_id: int, consignor_id: int) -> dict[str, Any]:
    consignor = get_consignor(organization_id, consignor_id, conn=conn)
    if consignor["status"] != CONSIGNOR_ACTIVE:
        raise InvalidStateError("Consignor is not active")
    return consignor


def create_item(organization_id: int, payload: dict[str, Any]) -> dict[str, Any]:
    title = (payload.get("title") or "").strip()
    if not title:
        raise ValidationError("Item title is required")
    if payload.get("consignor_id") is None:
        raise ValidationError("Consignor is required")

    with get_engine().begin() as conn:
        _check_consignor(conn, organization_id, int(payload["consignor_id"]))
        if payload.get("category_id") is not None:
            get_category(organization_id, int(payload["category_id"]), conn=conn)
        sku = (payload.get("sku") or "").strip().upper()
        if sku:
            if _sku_taken(conn, organization_id, sku):
                raise ValidationError("An item with this SKU already exists")
        else:
            sku = next_sku(conn, organization_id)
        received = payload.get("received_date") or date.today()
        row = conn.execute(
            text(
                """
                INSERT INTO items (
                    organization_id, consignor_id, category_id, sku, title, description, brand, size,
                    condition, price, original_price, split_percentage, status, received_date, notes, created_at
                ) VALUES (
                    :org, :consignor_id, :category_id, :sku, :title, :description, :brand, :size,
                    :condition, :price, :original_price, :split_percentage, :status, :received_date, :notes, :now
                )
                RETURNING id
                """
            ),
            {
                "org": int(organization_id),
                "consignor_id": int(payload["consignor_id"]),
                "category_id": payload.get("category_id"),
                "sku": sku,
                "title": title,
                "description": payload.get("description"),
                "brand": payload.get("brand"),
                "size": payload.get("size"),
                "condition": payload.get("condition"),
                "price": _check_price(payload.get("price")),
                "original_price": (
                    _check_price(payload["original_price"], "Original price")
                    if payload.get("original_price") is not None
                    else None
                ),
                "split_percentage": _check_split(payload.get("split_percentage")),
                "status": STATUS_AVAILABLE,
                "received_date": iso(received),
                "notes": payload.get("notes"),
                "now": iso(utcnow()),
            },
        ).fetchone()
    logger.info("Item %s added to organization %s", sku, organization_id)
    return get_item(organization_id, int(row[0]))


def update_item(organization_id: int, item_id: int, changes: dict[str, Any]) -> dict[str, Any]:
    updates = {key: value for key, value in changes.items() if key in _EDITABLE and value is not None}
    with get_engine().begin() as conn:
        current = get_item(organization_id, item_id, conn=conn)
        if current["status"] == STATUS_SOLD and _LOCKED_WHEN_SOLD & set(updates):
            raise InvalidStateError("Cannot change price, split or consignor of a sold item")
        if "title" in updates and not str(updates["title"]).strip():
            raise ValidationError("Item title is required")
        if "price" in updates:
            updates["price"] = _check_price(updates["price"])
        if "original_price" in updates:
            updates["original_price"] = _check_price(updates["original_price"], "Original price")
        if "split_percentage" in updates:
            updates["split_percentage"] = _check_split(updates["split_percentage"])
        if "consignor_id" in updates:
            _check_consignor(conn, organization_id, int(updates["consignor_id"]))
        if "category_id" in updates:
            get_category(organization_id, int(updates["category_id"]), conn=conn)
        if "sku" in updates:
            updates["sku"] = str(updates["sku"]).strip().upper()
            if _sku_taken(conn, organization_id, updates["sku"], exclude_id=int(item_id)):
                raise ValidationError("An item with this SKU already exists")
        if "received_date" in updates:
            updates["received_date"] = iso(updates["received_date"])
        if updates:
            assignments = ", ".join(f"{column} = :{column}" for column in sorted(updates))
            conn.execute(
                text(f"UPDATE items SET {assignments}, updated_at = :now WHERE organization_id = :org AND id = :id"),
                {**updates, "now": iso(utcnow()), "org": int(organization_id), "id": int(item_id)},
            )
    return get_item(organization_id, item_id)


def change_status(organization_id: int, item_id: int, status: str) -> dict[str, Any]:
    """Move an item between Available and Removed; Sold is reached only through a sale."""

    if status not in STATUSES:
        raise ValidationError(f"Invalid item status: {status}")
    if status == STATUS_SOLD:
        raise ValidationError("Items are marked sold by recording a sale")
    with get_engine().begin() as conn:
        current = get_item(organization_id, item_id, conn=conn)
        if current["status"] == STATUS_SOLD:
            raise InvalidStateError("Sold items cannot change status")
        conn.execute(
            text("UPDATE items SET status = :status, updated_at = :now WHERE organization_id = :org AND id = :id"),
            {"status": status, "now": iso(utcnow()), "org": int(organization_id), "id": int(item_id)},
        )
    return get_item(organization_id, item_id)


def delete_item(organization_id: int, item_id: int) -> None:
    with get_engine().begin() as conn:
        current = get_item(organization_id, item_id, conn=conn)
        if current["status"] == STATUS_SOLD:
            raise InvalidStateError("Cannot delete a sold item")
        conn.execute(
            text("DELETE FROM items WHERE organization_id = :org AND id = :id"),
            {"org": int(organization_id), "id": int(item_id)},
        )
    logger.info("Item %s deleted from organization %s", item_id, organization_id)


def inventory_metrics(organization_id: int) -> dict[str, Any]:
    df = query_df(
        text(
            """
            SELECT status, COUNT(*) AS total, COALESCE(SUM(price), 0) AS value
            FROM items
            WHERE organization_id = :org
            GROUP BY status
            """
        ),
        {"org": int(organization_id)},
    )
    by_status = {row["status"]: row for row in records(df)}
    available = by_status.get(STATUS_AVAILABLE, {})
    return {
        "total_items": int(sum(int(row["total"]) for row in by_status.values())),
        "available_items": int(available.get("total", 0)),
        "sold_items": int(by_status.get(STATUS_SOLD, {}).get("total", 0)),
        "removed_items": int(by_status.get(STATUS_REMOVED, {}).get("total", 0)),
        "available_value": to_float(available.get("value", 0)),
    }
