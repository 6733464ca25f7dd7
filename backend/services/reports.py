"""Shop reporting: dashboard, sales, consignor performance, payouts, inventory aging and till reconciliation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Tuple

import numpy as np
import pandas as pd
from sqlalchemy import text

from core.data_repository import query_df
from core.periods import iso, month_bounds
from backend.services.items import STATUS_AVAILABLE, inventory_metrics
from backend.services.registration import get_pending_approval_count
from backend.services.transactions import PAYOUT_PENDING, STATUS_COMPLETED

logger = logging.getLogger(__name__)


def _window(start_date: date | None, end_date: date | None) -> tuple[date, date]:
    today = date.today()
    end = end_date or today
    start = start_date or end.replace(day=1)
    if end < start:
        raise ValueError("End date must not be before start date")
    return start, end


def _completed_sales(organization_id: int, start: date, end: date) -> pd.DataFrame:
    df = query_df(
        text(
            """
            SELECT t.id, t.sale_date, t.sale_price, t.consignor_amount, t.shop_amount,
                   t.payment_method, i.title AS item_title,
                   t.consignor_id, c.full_name AS consignor_name, c.consignor_number,
                   COALESCE(cat.name, 'Uncategorized') AS category, i.received_date
            FROM transactions t
            JOIN items i ON i.id = t.item_id
            JOIN consignors c ON c.id = t.consignor_id
            LEFT JOIN categories cat ON cat.id = i.category_id
            WHERE t.organization_id = :org AND t.status = :completed
              AND t.sale_date >= :start AND t.sale_date <= :end
            """
        ),
        {"org": int(organization_id), "completed": STATUS_COMPLETED, "start": iso(start), "end": iso(end)},
    )
    if df.empty:
        return df
    for column in ("sale_price", "consignor_amount", "shop_amount"):
        df[column] = df[column].astype(float)
    df["sale_date"] = pd.to_datetime(df["sale_date"].map(iso))
    df["received_date"] = pd.to_datetime(df["received_date"].map(iso))
    return df


def build_dashboard(organization_id: int) -> dict[str, Any]:
    """Headline numbers for the owner dashboard."""

    today = date.today()
    month_start, month_end = month_bounds(today.year, today.month)
    sales = _completed_sales(organization_id, month_start, month_end)
    pending = query_df(
        text(
            """
            SELECT COALESCE(SUM(consignor_amount), 0) AS pending_total, COUNT(*) AS pending_count
            FROM transactions
            WHERE organization_id = :org AND status = :completed AND payout_status = :pending AND payout_id IS NULL
            """
        ),
        {"org": int(organization_id), "completed": STATUS_COMPLETED, "pending": PAYOUT_PENDING},
    ).iloc[0]
    consignors = query_df(
        text("SELECT COUNT(*) AS total FROM consignors WHERE organization_id = :org AND status = 'Active'"),
        {"org": int(organization_id)},
    ).iloc[0]
    return {
        "inventory": inventory_metrics(organization_id),
        "sales_this_month": round(float(sales["sale_price"].sum()), 2) if not sales.empty else 0.0,
        "shop_revenue_this_month": round(float(sales["shop_amount"].sum()), 2) if not sales.empty else 0.0,
        "transactions_this_month": int(len(sales)),
        "pending_payouts_total": round(float(pending["pending_total"] or 0), 2),
        "pending_payouts_count": int(pending["pending_count"] or 0),
        "active_consignors": int(consignors["total"]),
        "pending_approvals": get_pending_approval_count(organization_id),
    }


def sales_report(organization_id: int, *, start_date: date | None = None, end_date: date | None = None) -> dict[str, Any]:
    """Per-day and per-category sales totals over a window (defaults to month to date)."""

    start, end = _window(start_date, end_date)
    df = _completed_sales(organization_id, start, end)
    if df.empty:
        return {
            "start_date": iso(start),
            "end_date": iso(end),
            "total_sales": 0.0,
            "shop_revenue": 0.0,
            "consignor_earnings": 0.0,
            "transaction_count": 0,
            "by_day": [],
            "by_category": [],
        }

    by_day = (
        df.groupby(df["sale_date"].dt.date)
        .agg(sales=("sale_price", "sum"), shop=("shop_amount", "sum"), transactions=("id", "size"))
        .reset_index()
        .rename(columns={"sale_date": "date"})
        .sort_values("date")
    )
    by_category = (
        df.groupby("category")
        .agg(sales=("sale_price", "sum"), items_sold=("id", "size"))
        .reset_index()
        .sort_values("sales", ascending=False)
    )
    return {
        "start_date": iso(start),
        "end_date": iso(end),
        "total_sales": round(float(df["sale_price"].sum()), 2),
        "shop_revenue": round(float(df["shop_amount"].sum()), 2),
        "consignor_earnings": round(float(df["consignor_amount"].sum()), 2),
        "transaction_count": int(len(df)),
        "by_day": [
            {"date": iso(row.date), "sales": round(float(row.sales), 2), "shop_revenue": round(float(row.shop), 2),
             "transactions": int(row.transactions)}
            for row in by_day.itertuples(index=False)
        ],
        "by_category": [
            {"category": row.category, "sales": round(float(row.sales), 2), "items_sold": int(row.items_sold)}
            for row in by_category.itertuples(index=False)
        ],
    }


def consignor_performance(organization_id: int, *, start_date: date | None = None,
                          end_date: date | None = None) -> list[dict[str, Any]]:
    """Items sold, sales, earnings and average days on the floor per consignor."""

    start, end = _window(start_date, end_date)
    df = _completed_sales(organization_id, start, end)
    if df.empty:
        return []
    df["days_to_sell"] = (df["sale_date"] - df["received_date"]).dt.days.clip(lower=0)
    grouped = (
        df.groupby(["consignor_id", "consignor_name", "consignor_number"])
        .agg(
            items_sold=("id", "size"),
            total_sales=("sale_price", "sum"),
            total_earnings=("consignor_amount", "sum"),
            average_days_to_sell=("days_to_sell", "mean"),
        )
        .reset_index()
        .sort_values("total_sales", ascending=False)
    )
    return [
        {
            "consignor_id": int(row.consignor_id),
            "consignor_name": row.consignor_name,
            "consignor_number": row.consignor_number,
            "items_sold": int(row.items_sold),
            "total_sales": round(float(row.total_sales), 2),
            "total_earnings": round(float(row.total_earnings), 2),
            "average_days_to_sell": round(float(row.average_days_to_sell), 1),
        }
        for row in grouped.itertuples(index=False)
    ]


def payout_summary(organization_id: int, *, start_date: date | None = None, end_date: date | None = None,
                   consignor_id: int | None = None) -> dict[str, Any]:
    """Paid versus pending amounts, a per-day chart and a per-consignor breakdown."""

    start, end = _window(start_date, end_date)
    params: dict[str, Any] = {"org": int(organization_id), "start": iso(start), "end": iso(end)}
    paid_filter = pending_filter = ""
    if consignor_id is not None:
        paid_filter = " AND p.consignor_id = :consignor_id"
        pending_filter = " AND t.consignor_id = :consignor_id"
        params["consignor_id"] = int(consignor_id)
    paid = query_df(
        text(
            f"""
            SELECT p.id, p.consignor_id, c.full_name AS consignor_name, p.payout_date, p.amount,
                   p.transaction_count
            FROM payouts p
            JOIN consignors c ON c.id = p.consignor_id
            WHERE p.organization_id = :org AND p.status = 'Paid'
              AND p.payout_date >= :start AND p.payout_date <= :end{paid_filter}
            """
        ),
        params,
    )
    pending = query_df(
        text(
            f"""
            SELECT t.consignor_id AS consignor_id, c.full_name AS consignor_name, t.consignor_amount
            FROM transactions t
            JOIN consignors c ON c.id = t.consignor_id
            WHERE t.organization_id = :org AND t.status = :completed AND t.payout_status = :pending
              AND t.payout_id IS NULL{pending_filter}
            """
        ),
        {**params, "completed": STATUS_COMPLETED, "pending": PAYOUT_PENDING},
    )

    paid["amount"] = paid["amount"].astype(float) if not paid.empty else pd.Series(dtype=float)
    pending["consignor_amount"] = (
        pending["consignor_amount"].astype(float) if not pending.empty else pd.Series(dtype=float)
    )

    chart: list[dict[str, Any]] = []
    if not paid.empty:
        paid["payout_date"] = pd.to_datetime(paid["payout_date"].map(iso)).dt.date
        daily = paid.groupby("payout_date").agg(amount=("amount", "sum"), payouts=("id", "size")).reset_index()
        chart = [
            {"date": iso(row.payout_date), "amount": round(float(row.amount), 2), "payouts": int(row.payouts)}
            for row in daily.itertuples(index=False)
        ]

    paid_by = (
        paid.groupby(["consignor_id", "consignor_name"])["amount"].agg(["sum", "size"])
        if not paid.empty
        else pd.DataFrame(columns=["sum", "size"])
    )
    pending_by = (
        pending.groupby(["consignor_id", "consignor_name"])["consignor_amount"].sum()
        if not pending.empty
        else pd.Series(dtype=float)
    )
    keys = sorted(set(paid_by.index.tolist()) | set(pending_by.index.tolist()), key=lambda key: str(key[1]))
    consignors = []
    for key in keys:
        total_paid = float(paid_by.loc[key, "sum"]) if key in paid_by.index else 0.0
        payout_count = int(paid_by.loc[key, "size"]) if key in paid_by.index else 0
        pending_amount = float(pending_by.loc[key]) if key in pending_by.index else 0.0
        consignors.append(
            {
                "consignor_id": int(key[0]),
                "consignor_name": key[1],
                "total_paid": round(total_paid, 2),
                "payout_count": payout_count,
                "pending_amount": round(pending_amount, 2),
            }
        )

    amounts = paid["amount"].to_numpy(dtype=float) if not paid.empty else np.array([], dtype=float)
    return {
        "start_date": iso(start),
        "end_date": iso(end),
        "total_paid": round(float(amounts.sum()), 2),
        "total_pending": round(float(pending["consignor_amount"].sum()) if not pending.empty else 0.0, 2),
        "payout_count": int(amounts.size),
        "average_payout": round(float(amounts.mean()), 2) if amounts.size else 0.0,
        "chart": chart,
        "consignors": consignors,
    }


AGING_BUCKETS = (("0-30", 0, 30), ("31-60", 31, 60), ("61-90", 61, 90), ("90+", 91, None))
RECONCILED_METHODS = ("Cash", "Card", "Check")


def suggested_action(days_listed: int, price: float) -> str:
    """What to do with an item that has been on the floor for a while."""

    if days_listed > 180:
        return "Donate"
    if days_listed > 120:
        return "Return to Consignor"
    if days_listed > 90:
        return "Price Reduce" if price > 50 else "Return to Consignor"
    return "Monitor"


def _available_items(organization_id: int, *, category_id: int | None = None, consignor_id: int | None = None,
                     min_price: float | None = None, max_price: float | None = None) -> pd.DataFrame:
    sql = """
        SELECT i.id, i.title, i.sku, i.price, i.received_date,
               COALESCE(cat.name, 'Uncategorized') AS category, c.full_name AS consignor_name
        FROM items i
        JOIN consignors c ON c.id = i.consignor_id
        LEFT JOIN categories cat ON cat.id = i.category_id
        WHERE i.organization_id = :org AND i.status = :available
    """
    params: dict[str, Any] = {"org": int(organization_id), "available": STATUS_AVAILABLE}
    if category_id is not None:
        sql += " AND i.category_id = :category_id"
        params["category_id"] = int(category_id)
    if consignor_id is not None:
        sql += " AND i.consignor_id = :consignor_id"
        params["consignor_id"] = int(consignor_id)
    if min_price is not None:
        sql += " AND i.price >= :min_price"
        params["min_price"] = float(min_price)
    if max_price is not None:
        sql += " AND i.price <= :max_price"
        params["max_price"] = float(max_price)
    return query_df(text(sql), params)


def inventory_aging(organization_id: int, *, age_threshold: int = 0, category_id: int | None = None,
                    consignor_id: int | None = None, min_price: float | None = None,
                    max_price: float | None = None, as_of: date | None = None) -> dict[str, Any]:
    """Available items by days on the floor, oldest first, with a suggested action each.

    ``age_threshold`` drops items listed for fewer days; ``total_available``
    still counts every available item matching the other filters.
    """

    if age_threshold < 0:
        raise ValueError("Age threshold must not be negative")
    today = as_of or date.today()
    df = _available_items(
        organization_id, category_id=category_id, consignor_id=consignor_id, min_price=min_price, max_price=max_price
    )
    total_available = int(len(df))
    aged = df.iloc[0:0]
    if not df.empty:
        df["price"] = df["price"].astype(float)
        df["received_date"] = pd.to_datetime(df["received_date"].map(iso))
        df["days_listed"] = (pd.Timestamp(today) - df["received_date"]).dt.days.clip(lower=0)
        aged = df[df["days_listed"] >= age_threshold].sort_values(["days_listed", "id"], ascending=[False, True])

    buckets = []
    for label, low, high in AGING_BUCKETS:
        if aged.empty:
            selected = aged
        else:
            days = aged["days_listed"]
            selected = aged[days >= low] if high is None else aged[days.between(low, high)]
        buckets.append(
            {
                "bucket": label,
                "count": int(len(selected)),
                "value": round(float(selected["price"].sum()), 2) if not selected.empty else 0.0,
            }
        )

    days = aged["days_listed"].to_numpy(dtype=int) if not aged.empty else np.array([], dtype=int)
    return {
        "as_of": iso(today),
        "total_available": total_available,
        "over_30_days": int((days >= 30).sum()),
        "over_60_days": int((days >= 60).sum()),
        "over_90_days": int((days >= 90).sum()),
        "average_age": round(float(days.mean()), 1) if days.size else 0.0,
        "buckets": buckets,
        "items": [
            {
                "item_id": int(row.id),
                "title": row.title,
                "sku": row.sku,
                "category": row.category,
                "consignor_name": row.consignor_name,
                "price": round(float(row.price), 2),
                "received_date": iso(row.received_date.date()),
                "days_listed": int(row.days_listed),
                "suggested_action": suggested_action(int(row.days_listed), float(row.price)),
            }
            for row in aged.itertuples(index=False)
        ],
    }


def daily_reconciliation(organization_id: int, day: date | None = None, *, opening_balance: float = 0.0,
                         actual_cash: float | None = None, notes: str | None = None) -> dict[str, Any]:
    """End-of-day till check: sales per payment method against the cash counted.

    expected cash = opening balance + cash sales; variance = counted - expected.
    Nothing is stored: posting the counted figures only computes the variance.
    """

    day = day or date.today()
    df = _completed_sales(organization_id, day, day)
    by_method: dict[str, float] = {}
    lines: list[dict[str, Any]] = []
    if not df.empty:
        by_method = {str(key): float(value) for key, value in df.groupby("payment_method")["sale_price"].sum().items()}
        lines = [
            {
                "transaction_id": int(row.id),
                "item_title": row.item_title,
                "payment_method": row.payment_method,
                "amount": round(float(row.sale_price), 2),
            }
            for row in df.sort_values("id").itertuples(index=False)
        ]

    total = round(float(df["sale_price"].sum()), 2) if not df.empty else 0.0
    cash, card, check = (round(by_method.get(method, 0.0), 2) for method in RECONCILED_METHODS)
    expected_cash = round(float(opening_balance) + cash, 2)
    return {
        "date": iso(day),
        "opening_balance": round(float(opening_balance), 2),
        "cash_sales": cash,
        "card_sales": card,
        "check_sales": check,
        "other_sales": round(total - cash - card - check, 2),
        "total_sales": total,
        "expected_cash": expected_cash,
        "actual_cash": round(float(actual_cash), 2) if actual_cash is not None else None,
        "variance": round(float(actual_cash) - expected_cash, 2) if actual_cash is not None else None,
        "notes": notes or "",
        "transactions": lines,
    }


@dataclass(frozen=True)
class ExportDefinition:
    filename: str
    build: Callable[..., pd.DataFrame]


def _sales_frame(organization_id: int, start: date, end: date) -> pd.DataFrame:
    df = _completed_sales(organization_id, start, end)
    if df.empty:
        return pd.DataFrame(columns=["sale_date", "consignor_number", "consignor_name", "category", "sale_price",
                                     "consignor_amount", "shop_amount"])
    df["sale_date"] = df["sale_date"].dt.date
    return df[["sale_date", "consignor_number", "consignor_name", "category", "sale_price",
               "consignor_amount", "shop_amount"]].sort_values("sale_date")


def _performance_frame(organization_id: int, start: date, end: date) -> pd.DataFrame:
    return pd.DataFrame(consignor_performance(organization_id, start_date=start, end_date=end))


def _payouts_frame(organization_id: int, start: date, end: date) -> pd.DataFrame:
    return pd.DataFrame(payout_summary(organization_id, start_date=start, end_date=end)["consignors"])


def _aging_frame(organization_id: int, start: date, end: date) -> pd.DataFrame:
    columns = ["sku", "title", "category", "consignor_name", "price", "received_date", "days_listed",
               "suggested_action"]
    rows = inventory_aging(organization_id, as_of=end)["items"]
    return pd.DataFrame(rows, columns=columns)


def _reconciliation_frame(organization_id: int, start: date, end: date) -> pd.DataFrame:
    """One row per day with the takings of each payment method."""

    columns = ["date", "cash", "card", "check", "other", "total", "transactions"]
    df = _completed_sales(organization_id, start, end)
    if df.empty:
        return pd.DataFrame(columns=columns)
    df["date"] = df["sale_date"].dt.date
    df["method"] = df["payment_method"].where(df["payment_method"].isin(RECONCILED_METHODS), "Other")
    daily = (
        df.pivot_table(index="date", columns="method", values="sale_price", aggfunc="sum", fill_value=0.0)
        .reindex(columns=[*RECONCILED_METHODS, "Other"], fill_value=0.0)
    )
    daily.columns = [str(column).lower() for column in daily.columns]
    daily["total"] = daily.sum(axis=1)
    daily = daily.round(2)
    daily["transactions"] = df.groupby("date").size()
    return daily.reset_index()[columns]


EXPORT_DEFINITIONS: dict[str, ExportDefinition] = {
    "sales": ExportDefinition(filename="sales.csv", build=_sales_frame),
    "consignor-performance": ExportDefinition(filename="consignor_performance.csv", build=_performance_frame),
    "payouts": ExportDefinition(filename="payout_summary.csv", build=_payouts_frame),
    "inventory-aging": ExportDefinition(filename="inventory_aging.csv", build=_aging_frame),
    "reconciliation": ExportDefinition(filename="daily_reconciliation.csv", build=_reconciliation_frame),
}


def export_dataset(report_type: str, *, organization_id: int, start_date: date | None = None,
                   end_date: date | None = None) -> Tuple[str, bytes]:
    """Return (filename, csv_bytes) for the selected report."""

    definition = EXPORT_DEFINITIONS.get(report_type)
    if definition is None:
        raise ValueError(f"Unknown report: {report_type}")
    start, end = _window(start_date, end_date)
    df = definition.build(organization_id, start, end)
    return definition.filename, df.to_csv(index=False).encode("utf-8")


__all__ = [
    "build_dashboard",
    "consignor_performance",
    "daily_reconciliation",
    "export_dataset",
    "inventory_aging",
    "payout_summary",
    "sales_report",
    "suggested_action",
]
