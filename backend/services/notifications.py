"""Outgoing e-mail (console transport) and in-app notifications."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import text

from core.data_repository import exec_sql, get_engine, query_df, records
from core.periods import iso, utcnow
from core.settings import AppSettings

logger = logging.getLogger(__name__)

TYPE_ITEM_SOLD = "item_sold"
TYPE_PAYOUT = "payout_processed"
TYPE_STATEMENT = "statement_ready"
TYPE_APPROVAL = "approval"


def send_email(to: str, subject: str, body: str) -> bool:
    """Deliver an e-mail through the console transport (the application log).

    Returns False when delivery is disabled.
    """

    settings = AppSettings.load()
    if not settings.email_enabled:
        logger.debug("Email disabled, dropping message to %s: %s", to, subject)
        return False
    logger.info("EMAIL from=%s to=%s subject=%s\n%s", settings.email_sender, to, subject, body)
    return True


def notify(organization_id: int | None, user_id: int | None, type_: str, title: str, message: str) -> int | None:
    """Store an in-app notification; problems are logged and never propagate."""

    if not user_id:
        return None
    try:
        with get_engine().begin() as conn:
            row = conn.execute(
                text(
                    """
                    INSERT INTO notifications (organization_id, user_id, type, title, message, is_read, created_at)
                    VALUES (:organization_id, :user_id, :type, :title, :message, :is_read, :created_at)
                    RETURNING id
                    """
                ),
                {
                    "organization_id": organization_id,
                    "user_id": int(user_id),
                    "type": type_,
                    "title": title,
                    "message": message,
                    "is_read": False,
                    "created_at": iso(utcnow()),
                },
            ).fetchone()
            return int(row[0])
    except Exception:
        logger.exception("Could not store notification %s for user %s", type_, user_id)
        return None


def list_notifications(user_id: int, *, unread_only: bool = False, limit: int = 50) -> list[dict[str, Any]]:
    sql = """
        SELECT id, type, title, message, is_read, created_at
        FROM notifications
        WHERE user_id = :user_id
    """
    if unread_only:
        sql += " AND is_read = :unread"
    sql += " ORDER BY created_at DESC, id DESC LIMIT :limit"
    rows = records(query_df(text(sql), {"user_id": int(user_id), "unread": False, "limit": int(limit)}))
    for row in rows:
        row["is_read"] = bool(row["is_read"])
        row["created_at"] = iso(row["created_at"])
    return rows


def mark_read(user_id: int, notification_id: int) -> bool:
    updated = exec_sql(
        text("UPDATE notifications SET is_read = :read WHERE id = :id AND user_id = :user_id"),
        {"read": True, "id": int(notification_id), "user_id": int(user_id)},
    )
    return updated > 0


def owner_emails(organization_id: int) -> list[str]:
    df = query_df(
        text(
            """
            SELECT email FROM app_users
            WHERE organization_id = :org AND role = 'owner' AND is_active = :active
            """
        ),
        {"org": int(organization_id), "active": True},
    )
    return [str(email) for email in df["email"].tolist()] if not df.empty else []
