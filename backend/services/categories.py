"""Item categories of a shop (soft-deleted, manually ordered)."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from sqlalchemy import bindparam, text

from core.data_repository import first_record, get_engine, query_df, records
from core.periods import iso, utcnow
from backend.services.errors import InvalidStateError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

DUPLICATE_NAME_MESSAGE = "A category with this name already exists"
IN_USE_MESSAGE = "Cannot delete category that is assigned to items"

_SELECT = """
    SELECT id, organization_id, name, description, display_order, is_active, created_at, updated_at
    FROM categories
"""


def _serialize(row: dict[str, Any]) -> dict[str, Any]:
    row["is_active"] = bool(row["is_active"])
    row["created_at"] = iso(row["created_at"])
    row["updated_at"] = iso(row["updated_at"])
    return row


def _clean_name(name: str | None) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Category name is required")
    if len(cleaned) > 100:
        raise ValidationError("Category name must be at most 100 characters")
    return cleaned


def _name_taken(conn, organization_id: int, name: str, exclude_id: int | None = None) -> bool:
    row = conn.execute(
        text(
            """
            SELECT id FROM categories
            WHERE organization_id = :org AND is_active = :active AND LOWER(name) = :name
              AND (:exclude_id IS NULL OR id <> :exclude_id)
            """
        ),
        {"org": int(organization_id), "active": True, "name": name.lower(), "exclude_id": exclude_id},
    ).fetchone()
    return row is not None


def list_categories(organization_id: int) -> list[dict[str, Any]]:
    """Active categories ordered for display."""

    df = query_df(
        text(_SELECT + " WHERE organization_id = :org AND is_active = :active ORDER BY display_order, name"),
        {"org": int(organization_id), "active": True},
    )
    return [_serialize(row) for row in records(df)]


def get_category(organization_id: int, category_id: int, *, conn=None) -> dict[str, Any]:
    row = first_record(
        query_df(
            text(_SELECT + " WHERE organization_id = :org AND id = :id AND is_active = :active"),
            {"org": int(organization_id), "id": int(category_id), "active": True},
            conn=conn,
        )
    )
    if row is None:
        raise NotFoundError("Category not found")
    return _serialize(row)


def create_category(organization_id: int, name: str, description: str | None = None,
                    display_order: int | None = None) -> dict[str, Any]:
    cleaned = _clean_name(name)
    with get_engine().begin() as conn:
        if _name_taken(conn, organization_id, cleaned):
            raise ValidationError(DUPLICATE_NAME_MESSAGE)
        if display_order is None:
            current_max = conn.execute(
                text("SELECT MAX(display_order) FROM categories WHERE organization_id = :org AND is_active = :active"),
                {"org": int(organization_id), "active": True},
            ).scalar()
            display_order = int(current_max or 0) + 1
        row = conn.execute(
            text(
                """
                INSERT INTO categories (organization_id, name, description, display_order, is_active, created_at)
                VALUES (:org, :name, :description, :display_order, :active, :now)
                RETURNING id
                """
            ),
            {
                "org": int(organization_id),
                "name": cleaned,
                "description": description,
                "display_order": int(display_order),
                "active": True,
                "now": iso(utcnow()),
            },
        ).fetchone()
    return get_category(organization_id, int(row[0]))


def update_category(organization_id: int, category_id: int, name: str | None = None,
                    description: str | None = None, display_order: int | None = None) -> dict[str, Any]:
    current = get_category(organization_id, category_id)
    new_name = _clean_name(name) if name is not None else current["name"]
    with get_engine().begin() as conn:
        if _name_taken(conn, organization_id, new_name, exclude_id=int(category_id)):
            raise ValidationError(DUPLICATE_NAME_MESSAGE)
        conn.execute(
            text(
                """
                UPDATE categories
                SET name = :name, description = :description, display_order = :display_order, updated_at = :now
                WHERE organization_id = :org AND id = :id
                """
            ),
            {
                "name": new_name,
                "description": description if description is not None else current["description"],
                "display_order": int(display_order if display_order is not None else current["display_order"]),
                "now": iso(utcnow()),
                "org": int(organization_id),
                "id": int(category_id),
            },
        )
    return get_category(organization_id, category_id)


def delete_category(organization_id: int, category_id: int) -> None:
    """Soft-delete; refused while any item still references the category."""

    with get_engine().begin() as conn:
        get_category(organization_id, category_id, conn=conn)
        in_use = conn.execute(
            text("SELECT COUNT(*) FROM items WHERE organization_id = :org AND category_id = :id"),
            {"org": int(organization_id), "id": int(category_id)},
        ).scalar()
        if int(in_use or 0) > 0:
            raise InvalidStateError(IN_USE_MESSAGE)
        conn.execute(
            text("UPDATE categories SET is_active = :active, updated_at = :now WHERE organization_id = :org AND id = :id"),
            {"active": False, "now": iso(utcnow()), "org": int(organization_id), "id": int(category_id)},
        )
    logger.info("Category %s of organization %s deactivated", category_id, organization_id)


def reorder_categories(organization_id: int, category_ids: Sequence[int]) -> list[dict[str, Any]]:
    """Set ``display_order`` following the given id sequence (1-based)."""

    ids = [int(value) for value in category_ids]
    if not ids:
        raise ValidationError("At least one category id is required")
    if len(set(ids)) != len(ids):
        raise ValidationError("Category ids must be unique")

    with get_engine().begin() as conn:
        found = conn.execute(
            text(
                "SELECT COUNT(*) FROM categories WHERE organization_id = :org AND is_active = :active AND id IN :ids"
            ).bindparams(bindparam("ids", expanding=True)),
            {"org": int(organization_id), "active": True, "ids": ids},
        ).scalar()
        if int(found or 0) != len(ids):
            raise ValidationError("Some categories not found")
        now = iso(utcnow())
        conn.execute(
            text("UPDATE categories SET display_order = :position, updated_at = :now WHERE organization_id = :org AND id = :id"),
            [
                {"position": position, "now": now, "org": int(organization_id), "id": category_id}
                for position, category_id in enumerate(ids, start=1)
            ],
        )
    return list_categories(organization_id)


def category_usage(organization_id: int) -> list[dict[str, Any]]:
    """Per active category: total, available and sold item counts."""

    df = query_df(
        text(
            """
            SELECT c.id, c.name,
                   COUNT(i.id) AS item_count,
                   COALESCE(SUM(CASE WHEN i.status = 'Available' THEN 1 ELSE 0 END), 0) AS available_count,
                   COALESCE(SUM(CASE WHEN i.status = 'Sold' THEN 1 ELSE 0 END), 0) AS sold_count
            FROM categories c
            LEFT JOIN items i ON i.category_id = c.id AND i.organization_id = c.organization_id
            WHERE c.organization_id = :org AND c.is_active = :active
            GROUP BY c.id, c.name, c.display_order
            ORDER BY c.display_order, c.name
            """
        ),
        {"org": int(organization_id), "active": True},
    )
    rows = records(df)
    for row in rows:
        for key in ("item_count", "available_count", "sold_count"):
            row[key] = int(row[key])
    return rows
