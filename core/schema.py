"""Relational schema of the consignment platform (SQLAlchemy Core).

The alembic revision in ``migrations/versions`` declares the same tables for
PostgreSQL; this module lets development and test databases be created
directly from the metadata.
"""

from __future__ import annotations

import logging

import sqlalchemy as sa

from .data_repository import get_engine
from .settings import AppSettings

logger = logging.getLogger(__name__)

metadata = sa.MetaData()

MONEY = sa.Numeric(12, 2)
PERCENT = sa.Numeric(5, 2)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


organizations = sa.Table(
    "organizations",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True),
    sa.Column("name", sa.String(200), nullable=False),
    sa.Column("slug", sa.String(100), nullable=False, unique=True),
    sa.Column("email", sa.String(255)),
    sa.Column("phone", sa.String(50)),
    sa.Column("address", sa.Text),
    sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
    sa.Column("store_code", sa.String(10), unique=True),
    sa.Column("store_code_enabled", sa.Boolean, nullable=False, server_default=sa.true()),
    sa.Column("auto_approve_consignors", sa.Boolean, nullable=False, server_default=sa.false()),
    sa.Column("default_split_percentage", PERCENT, nullable=False, server_default="60"),
    sa.Column("tax_rate", sa.Numeric(6, 4), nullable=False, server_default="0"),
    sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
    *_timestamps(),
    sqlite_autoincrement=True,
)

app_users = sa.Table(
    "app_users",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True),
    sa.Column("organization_id", sa.Integer, sa.ForeignKey("organizations.id", ondelete="CASCADE")),
    sa.Column("email", sa.String(255), nullable=False, unique=True),
    sa.Column("password_hash", sa.Text, nullable=False),
    sa.Column("full_name", sa.String(200), nullable=False),
    sa.Column("phone", sa.String(50)),
    sa.Column("role", sa.String(20), nullable=False),
    sa.Column("approval_status", sa.String(20), nullable=False, server_default="Pending"),
    sa.Column("approved_by", sa.Integer),
    sa.Column("approved_at", sa.DateTime(timezone=True)),
    sa.Column("rejected_reason", sa.Text),
    sa.Column("store_code_used", sa.String(10)),
    sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
    sa.Column("last_login_at", sa.DateTime(timezone=True)),
    *_timestamps(),
    sqlite_autoincrement=True,
)

consignors = sa.Table(
    "consignors",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True),
    sa.Column("organization_id", sa.Integer, sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
    sa.Column("user_id", sa.Integer, sa.ForeignKey("app_users.id", ondelete="SET NULL")),
    sa.Column("consignor_number", sa.String(20), nullable=False),
    sa.Column("full_name", sa.String(200), nullable=False),
    sa.Column("email", sa.String(255)),
    sa.Column("phone", sa.String(50)),
    sa.Column("address", sa.Text),
    sa.Column("commission_rate", PERCENT, nullable=False),
    sa.Column("status", sa.String(20), nullable=False, server_default="Active"),
    sa.Column("notes", sa.Text),
    *_timestamps(),
    sa.UniqueConstraint("organization_id", "consignor_number", name="uq_consignors_org_number"),
    sqlite_autoincrement=True,
)

categories = sa.Table(
    "categories",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True),
    sa.Column("organization_id", sa.Integer, sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
    sa.Column("name", sa.String(100), nullable=False),
    sa.Column("description", sa.Text),
    sa.Column("display_order", sa.Integer, nullable=False, server_default="0"),
    sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
    *_timestamps(),
    sqlite_autoincrement=True,
)

items = sa.Table(
    "items",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True),
    sa.Column("organization_id", sa.Integer, sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
    sa.Column("consignor_id", sa.Integer, sa.ForeignKey("consignors.id"), nullable=False),
    sa.Column("category_id", sa.Integer, sa.ForeignKey("categories.id")),
    sa.Column("sku", sa.String(50), nullable=False),
    sa.Column("title", sa.String(200), nullable=False),
    sa.Column("description", sa.Text),
    sa.Column("brand", sa.String(100)),
    sa.Column("size", sa.String(50)),
    sa.Column("condition", sa.String(30)),
    sa.Column("price", MONEY, nullable=False),
    sa.Column("original_price", MONEY),
    sa.Column("split_percentage", PERCENT),
    sa.Column("status", sa.String(20), nullable=False, server_default="Available"),
    sa.Column("received_date", sa.Date, nullable=False),
    sa.Column("sold_date", sa.Date),
    sa.Column("notes", sa.Text),
    *_timestamps(),
    sa.UniqueConstraint("organization_id", "sku", name="uq_items_org_sku"),
    sa.Index("idx_items_org_status", "organization_id", "status"),
    sqlite_autoincrement=True,
)

payouts = sa.Table(
    "payouts",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True),
    sa.Column("organization_id", sa.Integer, sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
    sa.Column("consignor_id", sa.Integer, sa.ForeignKey("consignors.id"), nullable=False),
    sa.Column("payout_number", sa.String(30), nullable=False),
    sa.Column("payout_date", sa.Date, nullable=False),
    sa.Column("amount", MONEY, nullable=False),
    sa.Column("status", sa.String(20), nullable=False, server_default="Paid"),
    sa.Column("payment_method", sa.String(50), nullable=False),
    sa.Column("payment_reference", sa.String(100)),
    sa.Column("period_start", sa.Date, nullable=False),
    sa.Column("period_end", sa.Date, nullable=False),
    sa.Column("transaction_count", sa.Integer, nullable=False, server_default="0"),
    sa.Column("notes", sa.Text),
    *_timestamps(),
    sa.UniqueConstraint("organization_id", "payout_number", name="uq_payouts_org_number"),
    sqlite_autoincrement=True,
)

transactions = sa.Table(
    "transactions",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True),
    sa.Column("organization_id", sa.Integer, sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
    sa.Column("item_id", sa.Integer, sa.ForeignKey("items.id"), nullable=False, unique=True),
    sa.Column("consignor_id", sa.Integer, sa.ForeignKey("consignors.id"), nullable=False),
    sa.Column("sale_date", sa.Date, nullable=False),
    sa.Column("sale_price", MONEY, nullable=False),
    sa.Column("split_percentage", PERCENT, nullable=False),
    sa.Column("consignor_amount", MONEY, nullable=False),
    sa.Column("shop_amount", MONEY, nullable=False),
    sa.Column("sales_tax_amount", MONEY, nullable=False, server_default="0"),
    sa.Column("payment_method", sa.String(50), nullable=False),
    sa.Column("notes", sa.Text),
    sa.Column("status", sa.String(20), nullable=False, server_default="Completed"),
    sa.Column("payout_status", sa.String(20), nullable=False, server_default="Pending"),
    sa.Column("payout_id", sa.Integer, sa.ForeignKey("payouts.id", ondelete="SET NULL")),
    sa.Column("consignor_paid_out", sa.Boolean, nullable=False, server_default=sa.false()),
    sa.Column("paid_out_date", sa.Date),
    sa.Column("payout_method", sa.String(50)),
    *_timestamps(),
    sa.Index("idx_transactions_org_payout", "organization_id", "consignor_id", "payout_status"),
    sa.Index("idx_transactions_org_sale_date", "organization_id", "sale_date"),
    sqlite_autoincrement=True,
)

statements = sa.Table(
    "statements",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True),
    sa.Column("organization_id", sa.Integer, sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
    sa.Column("consignor_id", sa.Integer, sa.ForeignKey("consignors.id"), nullable=False),
    sa.Column("statement_number", sa.String(40), nullable=False),
    sa.Column("period_start", sa.Date, nullable=False),
    sa.Column("period_end", sa.Date, nullable=False),
    sa.Column("opening_balance", MONEY, nullable=False),
    sa.Column("total_sales", MONEY, nullable=False),
    sa.Column("total_earnings", MONEY, nullable=False),
    sa.Column("total_payouts", MONEY, nullable=False),
    sa.Column("closing_balance", MONEY, nullable=False),
    sa.Column("items_sold", sa.Integer, nullable=False),
    sa.Column("payout_count", sa.Integer, nullable=False),
    sa.Column("status", sa.String(20), nullable=False, server_default="Generated"),
    sa.Column("generated_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("viewed_at", sa.DateTime(timezone=True)),
    sa.UniqueConstraint("organization_id", "consignor_id", "period_start", name="uq_statements_org_consignor_period"),
    sqlite_autoincrement=True,
)

notifications = sa.Table(
    "notifications",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True),
    sa.Column("organization_id", sa.Integer, sa.ForeignKey("organizations.id", ondelete="CASCADE")),
    sa.Column("user_id", sa.Integer, sa.ForeignKey("app_users.id", ondelete="CASCADE"), nullable=False),
    sa.Column("type", sa.String(40), nullable=False),
    sa.Column("title", sa.String(200), nullable=False),
    sa.Column("message", sa.Text, nullable=False),
    sa.Column("is_read", sa.Boolean, nullable=False, server_default=sa.false()),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    sqlite_autoincrement=True,
)


def create_schema(engine=None) -> None:
    metadata.create_all(engine or get_engine())


def drop_schema(engine=None) -> None:
    metadata.drop_all(engine or get_engine())


def ensure_schema_if_enabled() -> None:
    """Create missing tables at startup when AUTO_CREATE_SCHEMA allows it."""

    settings = AppSettings.load()
    if settings.app_env == "test" or not settings.auto_create_schema:
        return
    try:
        create_schema()
    except Exception as exc:  # pragma: no cover - a missing database must not block the import
        logger.warning("Schema bootstrap skipped (database error): %s", exc)


__all__ = [
    "app_users",
    "categories",
    "consignors",
    "create_schema",
    "drop_schema",
    "ensure_schema_if_enabled",
    "items",
    "metadata",
    "notifications",
    "organizations",
    "payouts",
    "statements",
    "transactions",
]
