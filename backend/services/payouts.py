"""Consignor payouts: batching unpaid sales into a recorded payment.

A sale belongs to at most one payout. Creating a payout links every selected
sale and flips it to Paid inside one database transaction; the link update is
conditional on ``payout_id IS NULL`` so two payouts can never claim the same
sale, the loser is rolled back.
"""

from __future__ import annotations

import io
import logging
from datetime import date
from typing import Any, Iterable, Tuple

import pandas as pd
from sqlalchemy import bindparam, text
from sqlalchemy.exc import IntegrityError

from core.data_repository import first_record, get_engine, query_df, records
from core.money import to_float, to_money
from core.periods import as_date, iso, utcnow
from core.repositories import PagedResult, SqlUnitOfWork, page_window
from backend.services import notifications
from backend.services.consignors import get_consignor
from backend.services.errors import InvalidStateError, NotFoundError, ValidationError
from backend.services.transactions import PAYOUT_PAID, PAYOUT_PENDING, STATUS_COMPLETED

logger = logging.getLogger(__name__)

STATUS_PENDING = "Pending"
STATUS_PAID = "Paid"
STATUSES = (STATUS_PENDING, STATUS_PAID)

INVALID_TRANSACTIONS_MESSAGE = "Some transactions are invalid or already paid out"

_SORT_COLUMNS = {
    "payoutdate": "p.payout_date",
    "amount": "p.amount",
    "consignor": "c.full_name",
    "provider": "c.full_name",
    "status": "p.status",
}

_SELECT = """
    SELECT p.id, p.organization_id, p.consignor_id, c.full_name AS consignor_name,
           c.consignor_number, p.payout_number, p.payout_date, p.amount, p.status,
           p.payment_method, p.payment_reference, p.period_start, p.period_end,
           p.transaction_count, p.notes, p.created_at, p.updated_at
    FROM payouts p
    JOIN consignors c ON c.id = p.consignor_id
"""

_LINES_SQL = """
    SELECT t.id, t.item_id, i.title AS item_title, i.sku AS item_sku, t.sale_date,
           t.sale_price, t.split_percentage, t.consignor_amount, t.shop_amount, t.payment_method
    FROM transactions t
    JOIN items i ON i.id = t.item_id
    WHERE t.organization_id = :org AND t.payout_id = :payout_id
    ORDER BY t.sale_date, t.id
"""


def _serialize(row: dict[str, Any]) -> dict[str, Any]:
    row["amount"] = to_float(row["amount"])
    row["transaction_count"] = int(row["transaction_count"])
    for key in ("payout_date", "period_start", "period_end", "created_at", "updated_at"):
        row[key] = iso(row[key])
    return row


def _serialize_line(row: dict[str, Any]) -> dict[str, Any]:
    for key in ("sale_price", "split_percentage", "consignor_amount", "shop_amount"):
        row[key] = to_float(row[key])
    row["sale_date"] = iso(row["sale_date"])
    return row


def _unique_ids(values: Iterable[int]) -> list[int]:
    seen: list[int] = []
    for value in values or []:
        number = int(value)
        if number not in seen:
            seen.append(number)
    return seen


def next_payout_number(conn, organization_id: int, payout_date: date) -> str:
    """``PO{yyyyMMdd}{seq:03}``, sequential per shop and day."""

    prefix = f"PO{payout_date:%Y%m%d}"
    total = conn.execute(
        text("SELECT COUNT(*) FROM payouts WHERE organization_id = :org AND payout_number LIKE :prefix"),
        {"org": int(organization_id), "prefix": f"{prefix}%"},
    ).scalar()
    sequence = int(total or 0) + 1
    while True:
        number = f"{prefix}{sequence:03d}"
        taken = conn.execute(
            text("SELECT 1 FROM payouts WHERE organization_id = :org AND payout_number = :number"),
            {"org": int(organization_id), "number": number},
        ).fetchone()
        if taken is None:
            return number
        sequence += 1


def create_payout(organization_id: int, payload: dict[str, Any]) -> dict[str, Any]:
    """Pay a consignor for a set of unpaid sales.

    Every id must be a Completed sale of this shop and consignor that is still
    Pending and unlinked; otherwise nothing is written.
    """

    consignor_id = payload.get("consignor_id")
    if consignor_id is None:
        raise ValidationError("Consignor is required")
    transaction_ids = _unique_ids(payload.get("transaction_ids") or [])
    if not transaction_ids:
        raise ValidationError("At least one transaction is required")
    payment_method = (payload.get("payment_method") or "").strip()
    if not payment_method:
        raise ValidationError("Payment method is required")
    payout_date = as_date(payload.get("payout_date")) or date.today()

    try:
        with SqlUnitOfWork(get_engine()) as uow:
            conn = uow.connection
            try:
                consignor = get_consignor(organization_id, int(consignor_id), conn=conn)
            except NotFoundError as exc:
                raise ValidationError("Consignor not found") from exc

            selected = query_df(
                text(
                    """
                    SELECT id, sale_date, consignor_amount
                    FROM transactions
                    WHERE organization_id = :org AND consignor_id = :consignor_id AND id IN :ids
                      AND status = :completed AND payout_status = :pending AND payout_id IS NULL
                    """
                ).bindparams(bindparam("ids", expanding=True)),
                {
                    "org": int(organization_id),
                    "consignor_id": consignor["id"],
                    "ids": transaction_ids,
                    "completed": STATUS_COMPLETED,
                    "pending": PAYOUT_PENDING,
                },
                conn=conn,
            )
            if len(selected) != len(transaction_ids):
                raise ValidationError(INVALID_TRANSACTIONS_MESSAGE)

            amount = sum((to_money(value) for value in selected["consignor_amount"]), to_money(0))
            sale_dates = [as_date(value) for value in selected["sale_date"]]
            period_start = as_date(payload.get("period_start")) or min(sale_dates)
            period_end = as_date(payload.get("period_end")) or max(sale_dates)
            if period_end < period_start:
                raise ValidationError("Period end must not be before period start")

            number = next_payout_number(conn, organization_id, payout_date)
            now = iso(utcnow())
            payout_id = int(
                conn.execute(
                    text(
                        """
                        INSERT INTO payouts (
                            organization_id, consignor_id, payout_number, payout_date, amount, status,
                            payment_method, payment_reference, period_start, period_end,
                            transaction_count, notes, created_at
                        ) VALUES (
                            :org, :consignor_id, :number, :payout_date, :amount, :status,
                            :payment_method, :payment_reference, :period_start, :period_end,
                            :transaction_count, :notes, :now
                        )
                        RETURNING id
                        """
                    ),
                    {
                        "org": int(organization_id),
                        "consignor_id": consignor["id"],
                        "number": number,
                        "payout_date": iso(payout_date),
                        "amount": float(amount),
                        "status": STATUS_PAID,
                        "payment_method": payment_method,
                        "payment_reference": payload.get("payment_reference"),
                        "period_start": iso(period_start),
                        "period_end": iso(period_end),
                        "transaction_count": len(transaction_ids),
                        "notes": payload.get("notes"),
                        "now": now,
                    },
                ).scalar()
            )

            linked = conn.execute(
                text(
                    """
                    UPDATE transactions
                    SET payout_id = :payout_id, payout_status = :paid, consignor_paid_out = :paid_out,
                        paid_out_date = :payout_date, payout_method = :payment_method, updated_at = :now
                    WHERE organization_id = :org AND id IN :ids
                      AND payout_id IS NULL AND payout_status = :pending
                    """
                ).bindparams(bindparam("ids", expanding=True)),
                {
                    "payout_id": payout_id,
                    "paid": PAYOUT_PAID,
                    "paid_out": True,
                    "payout_date": iso(payout_date),
                    "payment_method": payment_method,
                    "now": now,
                    "org": int(organization_id),
                    "ids": transaction_ids,
                    "pending": PAYOUT_PENDING,
                },
            )
            if linked.rowcount != len(transaction_ids):
                raise ValidationError(INVALID_TRANSACTIONS_MESSAGE)
            uow.commit()
    except IntegrityError as exc:
        logger.warning("Payout creation conflict in organization %s: %s", organization_id, exc)
        raise InvalidStateError("Payout could not be recorded because of a concurrent change, retry") from exc

    logger.info(
        "Payout %s created in organization %s: %s sales, amount %s, consignor %s",
        number, organization_id, len(transaction_ids), amount, consignor["id"],
    )
    notifications.notify(
        organization_id,
        consignor["user_id"],
        notifications.TYPE_PAYOUT,
        "Payout processed",
        f"Payout {number} of {amount} was sent by {payment_method}.",
    )
    return get_payout(organization_id, payout_id)


def get_payout(organization_id: int, payout_id: int, *, consignor_id: int | None = None) -> dict[str, Any]:
    """Payout with its sale lines; ``consignor_id`` restricts to one consignor's payouts."""

    sql = _SELECT + " WHERE p.organization_id = :org AND p.id = :id"
    params: dict[str, Any] = {"org": int(organization_id), "id": int(payout_id)}
    if consignor_id is not None:
        sql += " AND p.consignor_id = :consignor_id"
        params["consignor_id"] = int(consignor_id)
    row = first_record(query_df(text(sql), params))
    if row is None:
        raise NotFoundError("Payout not found")
    payout = _serialize(row)
    lines = records(query_df(text(_LINES_SQL), {"org": int(organization_id), "payout_id": int(payout_id)}))
    payout["transactions"] = [_serialize_line(line) for line in lines]
    return payout


def list_payouts(
    organization_id: int,
    *,
    consignor_id: int | None = None,
    status: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    period_start: date | None = None,
    period_end: date | None = None,
    sort_by: str = "payoutdate",
    sort_direction: str = "desc",
    page: int = 1,
    page_size: int = 25,
) -> dict[str, Any]:
    limit, offset = page_window(page, page_size)
    where = ["p.organization_id = :org"]
    params: dict[str, Any] = {"org": int(organization_id)}
    if consignor_id is not None:
        where.append("p.consignor_id = :consignor_id")
        params["consignor_id"] = int(consignor_id)
    if status:
        where.append("p.status = :status")
        params["status"] = status
    if start_date is not None:
        where.append("p.payout_date >= :start_date")
        params["start_date"] = iso(start_date)
    if end_date is not None:
        where.append("p.payout_date <= :end_date")
        params["end_date"] = iso(end_date)
    if period_start is not None:
        where.append("p.period_start >= :period_start")
        params["period_start"] = iso(period_start)
    if period_end is not None:
        where.append("p.period_end <= :period_end")
        params["period_end"] = iso(period_end)
    clause = " AND ".join(where)

    column = _SORT_COLUMNS.get((sort_by or "").lower(), "p.payout_date")
    direction = "ASC" if (sort_direction or "").lower() == "asc" else "DESC"

    total = int(
        query_df(
            text(f"SELECT COUNT(*) AS total FROM payouts p JOIN consignors c ON c.id = p.consignor_id WHERE {clause}"),
            params,
        ).iloc[0]["total"]
    )
    df = query_df(
        text(_SELECT + f" WHERE {clause} ORDER BY {column} {direction}, p.id {direction} LIMIT :limit OFFSET :offset"),
        {**params, "limit": limit, "offset": offset},
    )
    items = [_serialize(row) for row in records(df)]
    return PagedResult(items=items, total=total, page=page, per_page=page_size).to_dict()


def get_pending_payouts(
    organization_id: int,
    *,
    consignor_id: int | None = None,
    period_end_before: date | None = None,
    minimum_amount: float | None = None,
) -> list[dict[str, Any]]:
    """Unpaid sales grouped per consignor, largest balance first."""

    where = [
        "t.organization_id = :org",
        "t.status = :completed",
        "t.payout_status = :pending",
        "t.payout_id IS NULL",
    ]
    params: dict[str, Any] = {"org": int(organization_id), "completed": STATUS_COMPLETED, "pending": PAYOUT_PENDING}
    if consignor_id is not None:
        where.append("t.consignor_id = :consignor_id")
        params["consignor_id"] = int(consignor_id)
    if period_end_before is not None:
        where.append("t.sale_date <= :period_end")
        params["period_end"] = iso(period_end_before)
    df = query_df(
        text(
            f"""
            SELECT t.id, t.consignor_id, c.full_name AS consignor_name, c.consignor_number,
                   c.email AS consignor_email, t.item_id, i.title AS item_title, i.sku AS item_sku,
                   t.sale_date, t.sale_price, t.split_percentage, t.consignor_amount,
                   t.shop_amount, t.payment_method
            FROM transactions t
            JOIN consignors c ON c.id = t.consignor_id
            JOIN items i ON i.id = t.item_id
            WHERE {' AND '.join(where)}
            ORDER BY t.sale_date, t.id
            """
        ),
        params,
    )
    if df.empty:
        return []

    df["consignor_amount_value"] = df["consignor_amount"].map(to_money)
    groups: list[dict[str, Any]] = []
    for (cid, name, number, email), frame in df.groupby(
        ["consignor_id", "consignor_name", "consignor_number", "consignor_email"], dropna=False, sort=False
    ):
        pending_amount = sum(frame["consignor_amount_value"], to_money(0))
        if minimum_amount is not None and pending_amount < to_money(minimum_amount):
            continue
        dates = [as_date(value) for value in frame["sale_date"]]
        lines = records(frame.drop(columns=["consignor_amount_value", "consignor_name", "consignor_number", "consignor_email"]))
        groups.append(
            {
                "consignor_id": int(cid),
                "consignor_name": name,
                "consignor_number": number,
                "consignor_email": None if pd.isna(email) else email,
                "pending_amount": float(pending_amount),
                "transaction_count": int(len(frame)),
                "earliest_sale": iso(min(dates)),
                "latest_sale": iso(max(dates)),
                "transactions": [_serialize_line(line) for line in lines],
            }
        )
    groups.sort(key=lambda group: group["pending_amount"], reverse=True)
    return groups


def update_payout(organization_id: int, payout_id: int, changes: dict[str, Any]) -> dict[str, Any]:
    updates: dict[str, Any] = {}
    if changes.get("payout_date") is not None:
        updates["payout_date"] = iso(as_date(changes["payout_date"]))
    if changes.get("status") is not None:
        if changes["status"] not in STATUSES:
            raise ValidationError(f"Invalid payout status: {changes['status']}")
        updates["status"] = changes["status"]
    if changes.get("payment_method") is not None:
        method = str(changes["payment_method"]).strip()
        if not method:
            raise ValidationError("Payment method is required")
        updates["payment_method"] = method
    for key in ("payment_reference", "notes"):
        if changes.get(key) is not None:
            updates[key] = changes[key]

    get_payout(organization_id, payout_id)
    if updates:
        assignments = ", ".join(f"{column} = :{column}" for column in sorted(updates))
        with get_engine().begin() as conn:
            conn.execute(
                text(f"UPDATE payouts SET {assignments}, updated_at = :now WHERE organization_id = :org AND id = :id"),
                {**updates, "now": iso(utcnow()), "org": int(organization_id), "id": int(payout_id)},
            )
    return get_payout(organization_id, payout_id)


def delete_payout(organization_id: int, payout_id: int) -> int:
    """Delete a payout and return its sales to the unpaid pool. Returns the number of sales released."""

    with SqlUnitOfWork(get_engine()) as uow:
        conn = uow.connection
        exists = conn.execute(
            text("SELECT id FROM payouts WHERE organization_id = :org AND id = :id"),
            {"org": int(organization_id), "id": int(payout_id)},
        ).fetchone()
        if exists is None:
            raise NotFoundError("Payout not found")
        released = conn.execute(
            text(
                """
                UPDATE transactions
                SET payout_id = NULL, payout_status = :pending, consignor_paid_out = :paid_out,
                    paid_out_date = NULL, payout_method = NULL, updated_at = :now
                WHERE organization_id = :org AND payout_id = :payout_id
                """
            ),
            {"pending": PAYOUT_PENDING, "paid_out": False, "now": iso(utcnow()), "org": int(organization_id), "payout_id": int(payout_id)},
        ).rowcount
        conn.execute(
            text("DELETE FROM payouts WHERE organization_id = :org AND id = :id"),
            {"org": int(organization_id), "id": int(payout_id)},
        )
        uow.commit()
    logger.info("Payout %s deleted in organization %s, %s sales released", payout_id, organization_id, released)
    return int(released)


def export_payout_csv(organization_id: int, payout_id: int, *, consignor_id: int | None = None) -> Tuple[str, bytes]:
    """Return (filename, csv_bytes): header block, sale lines, then totals."""

    payout = get_payout(organization_id, payout_id, consignor_id=consignor_id)
    header = pd.DataFrame(
        [
            ("Payout Number", payout["payout_number"]),
            ("Consignor", f"{payout['consignor_name']} ({payout['consignor_number']})"),
            ("Payout Date", payout["payout_date"]),
            ("Period", f"{payout['period_start']} to {payout['period_end']}"),
            ("Payment Method", payout["payment_method"]),
            ("Reference", payout["payment_reference"] or ""),
            ("Status", payout["status"]),
        ]
    )
    lines = pd.DataFrame(
        [
            {
                "Sale Date": line["sale_date"],
                "Item": line["item_title"],
                "SKU": line["item_sku"],
                "Sale Price": f"{line['sale_price']:.2f}",
                "Split %": f"{line['split_percentage']:.2f}",
                "Consignor Amount": f"{line['consignor_amount']:.2f}",
            }
            for line in payout["transactions"]
        ],
        columns=["Sale Date", "Item", "SKU", "Sale Price", "Split %", "Consignor Amount"],
    )
    total_sales = sum((to_money(line["sale_price"]) for line in payout["transactions"]), to_money(0))
    totals = pd.DataFrame(
        [
            ("Total Sales", f"{total_sales:.2f}"),
            ("Total Payout", f"{to_money(payout['amount']):.2f}"),
            ("Transaction Count", payout["transaction_count"]),
        ]
    )

    buffer = io.StringIO()
    buffer.write("Payout Statement\n")
    header.to_csv(buffer, index=False, header=False)
    buffer.write("\nTransactions\n")
    lines.to_csv(buffer, index=False)
    buffer.write("\n")
    totals.to_csv(buffer, index=False, header=False)
    return f"{payout['payout_number']}.csv", buffer.getvalue().encode("utf-8")
