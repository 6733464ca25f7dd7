"""Sales transactions: recording a sale and splitting it between consignor and shop."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from sqlalchemy import text

from core.data_repository import first_record, get_engine, query_df, records
from core.money import calculate_split, to_float, to_money
from core.periods import iso, utcnow
from core.repositories import PagedResult, page_window
from backend.services import notifications
from backend.services.consignors import STATUS_ACTIVE as CONSIGNOR_ACTIVE, get_consignor
from backend.services.errors import InvalidStateError, NotFoundError, ValidationError
from backend.services.items import STATUS_AVAILABLE, STATUS_SOLD, get_item

logger = logging.getLogger(__name__)

STATUS_COMPLETED = "Completed"
PAYOUT_PENDING = "Pending"
PAYOUT_PAID = "Paid"

PAYMENT_METHODS = ("Cash", "Card", "Check", "Transfer", "Other")

_SORT_COLUMNS = {
    "saledate": "t.sale_date",
    "saleprice": "t.sale_price",
    "consignor": "c.full_name",
    "item": "i.title",
}

_SELECT = """
    SELECT t.id, t.organization_id, t.item_id, i.title AS item_title, i.sku AS item_sku,
           t.consignor_id, c.full_name AS consignor_name, c.consignor_number,
           t.sale_date, t.sale_price, t.split_percentage, t.consignor_amount, t.shop_amount,
           t.sales_tax_amount, t.payment_method, t.notes, t.status, t.payout_status,
           t.payout_id, t.consignor_paid_out, t.paid_out_date, t.payout_method,
           t.created_at, t.updated_at
    FROM transactions t
    JOIN items i ON i.id = t.item_id
    JOIN consignors c ON c.id = t.consignor_id
"""


def _serialize(row: dict[str, Any]) -> dict[str, Any]:
    for key in ("sale_price", "split_percentage", "consignor_amount", "shop_amount", "sales_tax_amount"):
        row[key] = to_float(row[key])
    row["consignor_paid_out"] = bool(row["consignor_paid_out"])
    for key in ("sale_date", "paid_out_date", "created_at", "updated_at"):
        row[key] = iso(row[key])
    return row


def _clean_payment_method(value: str | None) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError("Payment method is required")
    return cleaned


def get_transaction(organization_id: int, transaction_id: int, *, conn=None) -> dict[str, Any]:
    row = first_record(
        query_df(
            text(_SELECT + " WHERE t.organization_id = :org AND t.id = :id"),
            {"org": int(organization_id), "id": int(transaction_id)},
            conn=conn,
        )
    )
    if row is None:
        raise NotFoundError("Transaction not found")
    return _serialize(row)


def record_sale(organization_id: int, payload: dict[str, Any]) -> dict[str, Any]:
    """Sell an available item.

    The split percentage is the item override when present, otherwise the
    consignor's commission rate. The item flips to Sold in the same database
    transaction as the sale insert.
    """

    item_id = payload.get("item_id")
    if item_id is None:
        raise ValidationError("Item is required")
    payment_method = _clean_payment_method(payload.get("payment_method"))
    sale_date = payload.get("sale_date") or date.today()

    with get_engine().begin() as conn:
        item = get_item(organization_id, int(item_id), conn=conn)
        if item["status"] != STATUS_AVAILABLE:
            raise InvalidStateError(f"Item is not available for sale. Current status: {item['status']}")
        consignor = get_consignor(organization_id, item["consignor_id"], conn=conn)
        if consignor["status"] != CONSIGNOR_ACTIVE:
            raise InvalidStateError("Consignor is not active")

        sale_price = payload.get("sale_price")
        sale_price = item["price"] if sale_price is None else sale_price
        split_pct = item["split_percentage"] if item["split_percentage"] is not None else consignor["commission_rate"]
        split = calculate_split(sale_price, split_pct)
        tax = to_money(payload.get("sales_tax_amount") or 0)
        if tax < 0:
            raise ValidationError("Sales tax cannot be negative")

        now = iso(utcnow())
        row = conn.execute(
            text(
                """
                INSERT INTO transactions (
                    organization_id, item_id, consignor_id, sale_date, sale_price, split_percentage,
                    consignor_amount, shop_amount, sales_tax_amount, payment_method, notes, status,
                    payout_status, consignor_paid_out, created_at
                ) VALUES (
                    :org, :item_id, :consignor_id, :sale_date, :sale_price, :split_percentage,
                    :consignor_amount, :shop_amount, :tax, :payment_method, :notes, :status,
                    :payout_status, :paid_out, :now
                )
                RETURNING id
                """
            ),
            {
                "org": int(organization_id),
                "item_id": int(item_id),
                "consignor_id": consignor["id"],
                "sale_date": iso(sale_date),
                "sale_price": float(to_money(sale_price)),
                "split_percentage": float(split.split_percentage),
                "consignor_amount": float(split.consignor_amount),
                "shop_amount": float(split.shop_amount),
                "tax": float(tax),
                "payment_method": payment_method,
                "notes": payload.get("notes"),
                "status": STATUS_COMPLETED,
                "payout_status": PAYOUT_PENDING,
                "paid_out": False,
                "now": now,
            },
        ).fetchone()
        updated = conn.execute(
            text(
                """
                UPDATE items SET status = :sold, sold_date = :sale_date, updated_at = :now
                WHERE organization_id = :org AND id = :item_id AND status = :available
                """
            ),
            {
                "sold": STATUS_SOLD,
                "sale_date": iso(sale_date),
                "now": now,
                "org": int(organization_id),
                "item_id": int(item_id),
                "available": STATUS_AVAILABLE,
            },
        )
        if updated.rowcount != 1:
            raise InvalidStateError("Item is not available for sale. Current status: Sold")
        transaction_id = int(row[0])

    logger.info(
        "Sale %s recorded in organization %s: item %s for %s (consignor %s)",
        transaction_id, organization_id, item_id, split.consignor_amount + split.shop_amount, consignor["id"],
    )
    notifications.notify(
        organization_id,
        consignor["user_id"],
        notifications.TYPE_ITEM_SOLD,
        "Item sold",
        f"{item['title']} sold for {to_money(sale_price)}. Your share: {split.consignor_amount}.",
    )
    return get_transaction(organization_id, transaction_id)


def list_transactions(
    organization_id: int,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
    consignor_id: int | None = None,
    payment_method: str | None = None,
    payout_status: str | None = None,
    sort_by: str = "saledate",
    sort_direction: str = "desc",
    page: int = 1,
    page_size: int = 25,
) -> dict[str, Any]:
    limit, offset = page_window(page, page_size)
    where = ["t.organization_id = :org"]
    params: dict[str, Any] = {"org": int(organization_id)}
    if start_date is not None:
        where.append("t.sale_date >= :start_date")
        params["start_date"] = iso(start_date)
    if end_date is not None:
        where.append("t.sale_date <= :end_date")
        params["end_date"] = iso(end_date)
    if consignor_id is not None:
        where.append("t.consignor_id = :consignor_id")
        params["consignor_id"] = int(consignor_id)
    if payment_method:
        where.append("t.payment_method = :payment_method")
        params["payment_method"] = payment_method
    if payout_status:
        where.append("t.payout_status = :payout_status")
        params["payout_status"] = payout_status
    clause = " AND ".join(where)

    column = _SORT_COLUMNS.get((sort_by or "").lower(), "t.sale_date")
    direction = "ASC" if (sort_direction or "").lower() == "asc" else "DESC"

    total = int(
        query_df(
            text(
                "SELECT COUNT(*) AS total FROM transactions t"
                " JOIN items i ON i.id = t.item_id JOIN consignors c ON c.id = t.consignor_id"
                f" WHERE {clause}"
            ),
            params,
        ).iloc[0]["total"]
    )
    df = query_df(
        text(_SELECT + f" WHERE {clause} ORDER BY {column} {direction}, t.id {direction} LIMIT :limit OFFSET :offset"),
        {**params, "limit": limit, "offset": offset},
    )
    items = [_serialize(row) for row in records(df)]
    return PagedResult(items=items, total=total, page=page, per_page=page_size).to_dict()


def update_transaction(organization_id: int, transaction_id: int, changes: dict[str, Any]) -> dict[str, Any]:
    """Only the payment method and notes of a sale can be edited."""

    updates: dict[str, Any] = {}
    if changes.get("payment_method") is not None:
        updates["payment_method"] = _clean_payment_method(changes["payment_method"])
    if changes.get("notes") is not None:
        updates["notes"] = changes["notes"]
    get_transaction(organization_id, transaction_id)
    if updates:
        assignments = ", ".join(f"{column} = :{column}" for column in sorted(updates))
        with get_engine().begin() as conn:
            conn.execute(
                text(f"UPDATE transactions SET {assignments}, updated_at = :now WHERE organization_id = :org AND id = :id"),
                {**updates, "now": iso(utcnow()), "org": int(organization_id), "id": int(transaction_id)},
            )
    return get_transaction(organization_id, transaction_id)


def void_transaction(organization_id: int, transaction_id: int) -> None:
    """Delete an unpaid sale and put its item back on the floor."""

    with get_engine().begin() as conn:
        current = get_transaction(organization_id, transaction_id, conn=conn)
        if current["payout_id"] is not None or current["payout_status"] == PAYOUT_PAID:
            raise InvalidStateError("Cannot delete a transaction that has been paid out")
        conn.execute(
            text("DELETE FROM transactions WHERE organization_id = :org AND id = :id"),
            {"org": int(organization_id), "id": int(transaction_id)},
        )
        conn.execute(
            text(
                """
                UPDATE items SET status = :available, sold_date = NULL, updated_at = :now
                WHERE organization_id = :org AND id = :item_id
                """
            ),
            {"available": STATUS_AVAILABLE, "now": iso(utcnow()), "org": int(organization_id), "item_id": current["item_id"]},
        )
    logger.info("Sale %s voided in organization %s, item %s available again", transaction_id, organization_id, current["item_id"])


def sales_metrics(organization_id: int, *, start_date: date | None = None, end_date: date | None = None,
                  consignor_id: int | None = None) -> dict[str, Any]:
    """Totals over a date range, with a per payment method breakdown."""

    where = ["organization_id = :org", "status = :completed"]
    params: dict[str, Any] = {"org": int(organization_id), "completed": STATUS_COMPLETED}
    if start_date is not None:
        where.append("sale_date >= :start_date")
        params["start_date"] = iso(start_date)
    if end_date is not None:
        where.append("sale_date <= :end_date")
        params["end_date"] = iso(end_date)
    if consignor_id is not None:
        where.append("consignor_id = :consignor_id")
        params["consignor_id"] = int(consignor_id)
    df = query_df(
        text(
            f"""
            SELECT payment_method, sale_price, consignor_amount, shop_amount, sales_tax_amount
            FROM transactions
            WHERE {' AND '.join(where)}
            """
        ),
        params,
    )
    if df.empty:
        return {
            "total_sales": 0.0,
            "total_shop_revenue": 0.0,
            "total_consignor_earnings": 0.0,
            "total_tax": 0.0,
            "transaction_count": 0,
            "average_sale": 0.0,
            "by_payment_method": [],
        }

    money_columns = ["sale_price", "consignor_amount", "shop_amount", "sales_tax_amount"]
    df[money_columns] = df[money_columns].astype(float)
    grouped = (
        df.groupby("payment_method")
        .agg(sales_count=("sale_price", "size"), total=("sale_price", "sum"))
        .reset_index()
        .sort_values("total", ascending=False)
    )
    return {
        "total_sales": round(float(df["sale_price"].sum()), 2),
        "total_shop_revenue": round(float(df["shop_amount"].sum()), 2),
        "total_consignor_earnings": round(float(df["consignor_amount"].sum()), 2),
        "total_tax": round(float(df["sales_tax_amount"].sum()), 2),
        "transaction_count": int(len(df)),
        "average_sale": round(float(df["sale_price"].mean()), 2),
        "by_payment_method": [
            {"payment_method": row.payment_method, "count": int(row.sales_count), "total": round(float(row.total), 2)}
            for row in grouped.itertuples(index=False)
        ],
    }
