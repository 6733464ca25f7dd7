"""Monthly (or arbitrary period) statements summarising a consignor's account.

One statement exists per shop, consignor and period start. Generating an
existing period returns the stored statement; regenerating replaces it with a
freshly computed row (last generated wins).
"""

from __future__ import annotations

import io
import logging
from datetime import date
from typing import Any, Tuple

import pandas as pd
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from core.data_repository import first_record, get_engine, query_df, records
from core.money import to_float, to_money
from core.periods import as_date, iso, month_bounds, period_label, utcnow
from backend.services import notifications
from backend.services.consignors import STATUS_ACTIVE as CONSIGNOR_ACTIVE, get_consignor
from backend.services.errors import NotFoundError, ValidationError
from backend.services.payouts import STATUS_PAID
from backend.services.transactions import STATUS_COMPLETED

logger = logging.getLogger(__name__)

STATUS_GENERATED = "Generated"
STATUS_VIEWED = "Viewed"

_MONEY_FIELDS = ("opening_balance", "total_sales", "total_earnings", "total_payouts", "closing_balance")

_SELECT = """
    SELECT s.id, s.organization_id, s.consignor_id, c.full_name AS consignor_name,
           c.consignor_number, s.statement_number, s.period_start, s.period_end,
           s.opening_balance, s.total_sales, s.total_earnings, s.total_payouts,
           s.closing_balance, s.items_sold, s.payout_count, s.status, s.generated_at, s.viewed_at
    FROM statements s
    JOIN consignors c ON c.id = s.consignor_id
"""


def _serialize(row: dict[str, Any]) -> dict[str, Any]:
    for key in _MONEY_FIELDS:
        row[key] = to_float(row[key])
    row["items_sold"] = int(row["items_sold"])
    row["payout_count"] = int(row["payout_count"])
    row["period_label"] = period_label(row["period_start"])
    for key in ("period_start", "period_end", "generated_at", "viewed_at"):
        row[key] = iso(row[key])
    return row


def statement_number(period_start: date, consignor_number: str) -> str:
    return f"STMT-{period_start:%Y}-{period_start:%m}-{consignor_number}"


def _scalar(conn, sql: str, params: dict[str, Any]):
    return conn.execute(text(sql), params).scalar()


def compute_figures(conn, organization_id: int, consignor_id: int, period_start: date, period_end: date) -> dict[str, Any]:
    """Balances for a period (both bounds inclusive).

    opening = completed earnings before the period - paid payouts before the period
    closing = opening + earnings in period - payouts in period
    """

    base = {"org": int(organization_id), "consignor_id": int(consignor_id), "start": iso(period_start),
            "end": iso(period_end), "completed": STATUS_COMPLETED, "paid": STATUS_PAID}
    earnings_before = to_money(_scalar(
        conn,
        """
        SELECT COALESCE(SUM(consignor_amount), 0) FROM transactions
        WHERE organization_id = :org AND consignor_id = :consignor_id AND status = :completed
          AND sale_date < :start
        """,
        base,
    ))
    payouts_before = to_money(_scalar(
        conn,
        """
        SELECT COALESCE(SUM(amount), 0) FROM payouts
        WHERE organization_id = :org AND consignor_id = :consignor_id AND status = :paid
          AND payout_date < :start
        """,
        base,
    ))
    sales = conn.execute(
        text(
            """
            SELECT COALESCE(SUM(sale_price), 0), COALESCE(SUM(consignor_amount), 0), COUNT(*)
            FROM transactions
            WHERE organization_id = :org AND consignor_id = :consignor_id AND status = :completed
              AND sale_date >= :start AND sale_date <= :end
            """
        ),
        base,
    ).fetchone()
    paid = conn.execute(
        text(
            """
            SELECT COALESCE(SUM(amount), 0), COUNT(*)
            FROM payouts
            WHERE organization_id = :org AND consignor_id = :consignor_id AND status = :paid
              AND payout_date >= :start AND payout_date <= :end
            """
        ),
        base,
    ).fetchone()

    opening = earnings_before - payouts_before
    total_sales = to_money(sales[0])
    total_earnings = to_money(sales[1])
    total_payouts = to_money(paid[0])
    return {
        "opening_balance": opening,
        "total_sales": total_sales,
        "total_earnings": total_earnings,
        "total_payouts": total_payouts,
        "closing_balance": opening + total_earnings - total_payouts,
        "items_sold": int(sales[2] or 0),
        "payout_count": int(paid[1] or 0),
    }


def _find(conn, organization_id: int, consignor_id: int, period_start: date) -> dict[str, Any] | None:
    row = first_record(
        query_df(
            text(_SELECT + " WHERE s.organization_id = :org AND s.consignor_id = :consignor_id AND s.period_start = :start"),
            {"org": int(organization_id), "consignor_id": int(consignor_id), "start": iso(period_start)},
            conn=conn,
        )
    )
    return _serialize(row) if row else None


def _store(conn, organization_id: int, consignor: dict[str, Any], start: date, end: date) -> dict[str, Any]:
    figures = compute_figures(conn, organization_id, consignor["id"], start, end)
    conn.execute(
        text(
            """
            INSERT INTO statements (
                organization_id, consignor_id, statement_number, period_start, period_end,
                opening_balance, total_sales, total_earnings, total_payouts, closing_balance,
                items_sold, payout_count, status, generated_at
            ) VALUES (
                :org, :consignor_id, :number, :start, :end,
                :opening_balance, :total_sales, :total_earnings, :total_payouts, :closing_balance,
                :items_sold, :payout_count, :status, :now
            )
            """
        ),
        {
            "org": int(organization_id),
            "consignor_id": int(consignor["id"]),
            "number": statement_number(start, consignor["consignor_number"]),
            "start": iso(start),
            "end": iso(end),
            **{key: float(figures[key]) for key in _MONEY_FIELDS},
            "items_sold": figures["items_sold"],
            "payout_count": figures["payout_count"],
            "status": STATUS_GENERATED,
            "now": iso(utcnow()),
        },
    )
    return _find(conn, organization_id, consignor["id"], start)


def _announce(organization_id: int, consignor: dict[str, Any], statement: dict[str, Any]) -> None:
    logger.info(
        "Statement %s generated for consignor %s (organization %s)",
        statement["statement_number"], consignor["id"], organization_id,
    )
    notifications.notify(
        organization_id,
        consignor["user_id"],
        notifications.TYPE_STATEMENT,
        "Statement ready",
        f"Your statement for {statement['period_label']} is available.",
    )


def _same_period(existing: dict[str, Any], end: date) -> dict[str, Any]:
    if as_date(existing["period_end"]) != end:
        raise ValidationError(
            f"A statement starting {existing['period_start']} already exists and ends {existing['period_end']}"
        )
    return existing


def generate_statement(organization_id: int, consignor_id: int, period_start, period_end) -> dict[str, Any]:
    """Create the statement for a period, or return the one already stored.

    A stored statement with the same start but a different end is a conflict.
    """

    start = as_date(period_start)
    end = as_date(period_end)
    if start is None or end is None:
        raise ValidationError("Period start and end are required")
    if end < start:
        raise ValidationError("Period end must not be before period start")

    try:
        with get_engine().begin() as conn:
            consignor = get_consignor(organization_id, consignor_id, conn=conn)
            existing = _find(conn, organization_id, consignor_id, start)
            if existing is not None:
                return _same_period(existing, end)
            created = _store(conn, organization_id, consignor, start, end)
    except IntegrityError:
        # a concurrent request stored the same period first
        with get_engine().begin() as conn:
            created = _find(conn, organization_id, consignor_id, start)
        if created is None:
            raise
        return _same_period(created, end)

    _announce(organization_id, consignor, created)
    return created


def generate_statements_for_month(year: int, month: int, *, organization_id: int | None = None) -> dict[str, Any]:
    """Generate the month's statement for every active consignor.

    A failure for one consignor is logged and does not stop the batch.
    """

    start, end = month_bounds(year, month)
    sql = "SELECT id, organization_id FROM consignors WHERE status = :active"
    params: dict[str, Any] = {"active": CONSIGNOR_ACTIVE}
    if organization_id is not None:
        sql += " AND organization_id = :org"
        params["org"] = int(organization_id)
    targets = records(query_df(text(sql + " ORDER BY organization_id, id"), params))

    generated = 0
    failed = 0
    for target in targets:
        try:
            generate_statement(int(target["organization_id"]), int(target["id"]), start, end)
            generated += 1
        except Exception:
            failed += 1
            logger.exception(
                "Statement generation failed for consignor %s (organization %s)",
                target["id"], target["organization_id"],
            )
    logger.info("Statements for %04d-%02d: %s generated, %s failed", year, month, generated, failed)
    return {"period_start": iso(start), "period_end": iso(end), "generated": generated, "failed": failed}


def list_statements(organization_id: int, consignor_id: int) -> list[dict[str, Any]]:
    df = query_df(
        text(_SELECT + " WHERE s.organization_id = :org AND s.consignor_id = :consignor_id ORDER BY s.period_start DESC"),
        {"org": int(organization_id), "consignor_id": int(consignor_id)},
    )
    return [_serialize(row) for row in records(df)]


def get_statement(organization_id: int, statement_id: int, *, consignor_id: int | None = None) -> dict[str, Any]:
    """Statement with the sales and payouts of its period."""

    sql = _SELECT + " WHERE s.organization_id = :org AND s.id = :id"
    params: dict[str, Any] = {"org": int(organization_id), "id": int(statement_id)}
    if consignor_id is not None:
        sql += " AND s.consignor_id = :consignor_id"
        params["consignor_id"] = int(consignor_id)
    row = first_record(query_df(text(sql), params))
    if row is None:
        raise NotFoundError("Statement not found")
    statement = _serialize(row)

    window = {
        "org": int(organization_id),
        "consignor_id": statement["consignor_id"],
        "start": statement["period_start"],
        "end": statement["period_end"],
    }
    sales = records(
        query_df(
            text(
                """
                SELECT t.id, t.sale_date, i.title AS item_title, i.sku AS item_sku, t.sale_price,
                       t.split_percentage, t.consignor_amount, t.payout_status
                FROM transactions t
                JOIN items i ON i.id = t.item_id
                WHERE t.organization_id = :org AND t.consignor_id = :consignor_id AND t.status = :completed
                  AND t.sale_date >= :start AND t.sale_date <= :end
                ORDER BY t.sale_date, t.id
                """
            ),
            {**window, "completed": STATUS_COMPLETED},
        )
    )
    payouts = records(
        query_df(
            text(
                """
                SELECT id, payout_number, payout_date, amount, payment_method, transaction_count
                FROM payouts
                WHERE organization_id = :org AND consignor_id = :consignor_id AND status = :paid
                  AND payout_date >= :start AND payout_date <= :end
                ORDER BY payout_date, id
                """
            ),
            {**window, "paid": STATUS_PAID},
        )
    )
    for line in sales:
        for key in ("sale_price", "split_percentage", "consignor_amount"):
            line[key] = to_float(line[key])
        line["sale_date"] = iso(line["sale_date"])
    for line in payouts:
        line["amount"] = to_float(line["amount"])
        line["payout_date"] = iso(line["payout_date"])
        line["transaction_count"] = int(line["transaction_count"])
    statement["sales"] = sales
    statement["payouts"] = payouts
    return statement


def get_statement_by_period(organization_id: int, consignor_id: int, period_start) -> dict[str, Any]:
    start = as_date(period_start)
    with get_engine().begin() as conn:
        found = _find(conn, organization_id, consignor_id, start)
    if found is None:
        raise NotFoundError("Statement not found")
    return get_statement(organization_id, found["id"])


def mark_viewed(organization_id: int, statement_id: int, *, consignor_id: int | None = None) -> dict[str, Any]:
    """Stamp the first view; later calls leave ``viewed_at`` untouched."""

    statement = get_statement(organization_id, statement_id, consignor_id=consignor_id)
    if statement["viewed_at"] is None:
        with get_engine().begin() as conn:
            conn.execute(
                text(
                    """
                    UPDATE statements SET status = :viewed, viewed_at = :now
                    WHERE organization_id = :org AND id = :id AND viewed_at IS NULL
                    """
                ),
                {"viewed": STATUS_VIEWED, "now": iso(utcnow()), "org": int(organization_id), "id": int(statement_id)},
            )
    return get_statement(organization_id, statement_id, consignor_id=consignor_id)


def regenerate_statement(organization_id: int, statement_id: int) -> dict[str, Any]:
    """Replace the stored statement with a freshly computed one under a new id.

    The delete and the insert share one transaction: a failed recomputation
    keeps the old statement.
    """

    current = get_statement(organization_id, statement_id)
    with get_engine().begin() as conn:
        consignor = get_consignor(organization_id, current["consignor_id"], conn=conn)
        conn.execute(
            text("DELETE FROM statements WHERE organization_id = :org AND id = :id"),
            {"org": int(organization_id), "id": int(statement_id)},
        )
        created = _store(
            conn, organization_id, consignor, as_date(current["period_start"]), as_date(current["period_end"])
        )
    logger.info("Statement %s replaced by statement %s", statement_id, created["id"])
    _announce(organization_id, consignor, created)
    return created


def export_statement_csv(organization_id: int, statement_id: int, *, consignor_id: int | None = None) -> Tuple[str, bytes]:
    statement = get_statement(organization_id, statement_id, consignor_id=consignor_id)
    summary = pd.DataFrame(
        [
            ("Statement Number", statement["statement_number"]),
            ("Consignor", f"{statement['consignor_name']} ({statement['consignor_number']})"),
            ("Period", statement["period_label"]),
            ("Opening Balance", f"{statement['opening_balance']:.2f}"),
            ("Total Sales", f"{statement['total_sales']:.2f}"),
            ("Total Earnings", f"{statement['total_earnings']:.2f}"),
            ("Total Payouts", f"{statement['total_payouts']:.2f}"),
            ("Closing Balance", f"{statement['closing_balance']:.2f}"),
            ("Items Sold", statement["items_sold"]),
        ]
    )
    sales = pd.DataFrame(
        [
            (line["sale_date"], line["item_title"], line["item_sku"], f"{line['sale_price']:.2f}",
             f"{line['consignor_amount']:.2f}", line["payout_status"])
            for line in statement["sales"]
        ],
        columns=["Sale Date", "Item", "SKU", "Sale Price", "Your Share", "Payout Status"],
    )
    payouts = pd.DataFrame(
        [(line["payout_date"], line["payout_number"], f"{line['amount']:.2f}", line["payment_method"])
         for line in statement["payouts"]],
        columns=["Payout Date", "Payout Number", "Amount", "Payment Method"],
    )
    buffer = io.StringIO()
    summary.to_csv(buffer, index=False, header=False)
    buffer.write("\nSales\n")
    sales.to_csv(buffer, index=False)
    buffer.write("\nPayouts\n")
    payouts.to_csv(buffer, index=False)
    return f"{statement['statement_number']}.csv", buffer.getvalue().encode("utf-8")
