"""Self-service sign-up for shop owners and consignors, plus the approval workflow."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import text

from core.data_repository import get_engine, query_df, records
from core.periods import iso, utcnow
from core.settings import AppSettings
from core.user_service import (
    APPROVAL_APPROVED,
    APPROVAL_PENDING,
    APPROVAL_REJECTED,
    DUPLICATE_EMAIL_MESSAGE,
    ROLE_CONSIGNOR,
    ROLE_OWNER,
    email_exists,
    get_user_by_id,
    insert_user,
)
from backend.services import notifications
from backend.services.consignors import insert_consignor
from backend.services.errors import InvalidStateError, NotFoundError, ValidationError
from backend.services.organizations import (
    STATUS_ACTIVE,
    STATUS_PENDING,
    find_by_store_code,
    generate_alphanumeric_store_code,
    get_organization,
    normalize_slug,
)

logger = logging.getLogger(__name__)

INVALID_STORE_CODE_MESSAGE = "Invalid or disabled store code"

_PENDING_USER_COLUMNS = """
    id, organization_id, email, full_name, phone, role, approval_status,
    store_code_used, created_at
"""


def _user_rows(df) -> list[dict[str, Any]]:
    rows = records(df)
    for row in rows:
        row["created_at"] = iso(row["created_at"])
    return rows


def register_owner(payload: dict[str, Any]) -> dict[str, Any]:
    """Create a pending shop and its pending owner account.

    A platform admin activates both through :func:`approve_owner`.
    """

    email = (payload.get("email") or "").strip().lower()
    slug = normalize_slug(payload.get("subdomain") or payload.get("shop_name") or "")
    shop_name = (payload.get("shop_name") or "").strip()
    if not shop_name:
        raise ValidationError("Shop name is required")

    settings = AppSettings.load()
    with get_engine().begin() as conn:
        if email_exists(email, conn=conn):
            raise ValidationError(DUPLICATE_EMAIL_MESSAGE)
        taken = conn.execute(text("SELECT 1 FROM organizations WHERE slug = :slug"), {"slug": slug}).fetchone()
        if taken is not None:
            raise ValidationError("This subdomain is already taken")

        org_row = conn.execute(
            text(
                """
                INSERT INTO organizations (
                    name, slug, email, phone, address, status, store_code_enabled,
                    auto_approve_consignors, default_split_percentage, tax_rate, currency, created_at
                ) VALUES (
                    :name, :slug, :email, :phone, :address, :status, :store_code_enabled,
                    :auto_approve, :split, :tax_rate, :currency, :created_at
                )
                RETURNING id
                """
            ),
            {
                "name": shop_name,
                "slug": slug,
                "email": email,
                "phone": payload.get("phone"),
                "address": payload.get("address"),
                "status": STATUS_PENDING,
                "store_code_enabled": True,
                "auto_approve": False,
                "split": settings.default_split_percentage,
                "tax_rate": 0,
                "currency": "USD",
                "created_at": iso(utcnow()),
            },
        ).fetchone()
        organization_id = int(org_row[0])
        user_id = insert_user(
            conn,
            email=email,
            password=payload.get("password") or "",
            full_name=payload.get("full_name") or "",
            role=ROLE_OWNER,
            organization_id=organization_id,
            approval_status=APPROVAL_PENDING,
            phone=payload.get("phone"),
        )

    logger.info("Owner %s registered shop %s (organization %s)", email, slug, organization_id)
    notifications.send_email(
        email,
        f"Welcome to {shop_name}",
        "Thanks for registering. Your shop will be available once an administrator approves it.",
    )
    return {
        "user_id": user_id,
        "organization_id": organization_id,
        "approval_status": APPROVAL_PENDING,
        "message": "Registration successful. Your account is pending approval.",
    }


def register_consignor(payload: dict[str, Any]) -> dict[str, Any]:
    """Sign a consignor up through a shop's store code.

    Shops with ``auto_approve_consignors`` get an approved account and consignor
    record immediately; otherwise the request waits for an owner.
    """

    store_code = payload.get("store_code") or ""
    email = (payload.get("email") or "").strip().lower()
    full_name = payload.get("full_name") or ""

    with get_engine().begin() as conn:
        org = find_by_store_code(store_code, conn=conn)
        if org is None or not org["store_code_enabled"] or org["status"] != STATUS_ACTIVE:
            raise ValidationError(INVALID_STORE_CODE_MESSAGE)
        if email_exists(email, conn=conn):
            raise ValidationError(DUPLICATE_EMAIL_MESSAGE)

        auto_approve = org["auto_approve_consignors"]
        user_id = insert_user(
            conn,
            email=email,
            password=payload.get("password") or "",
            full_name=full_name,
            role=ROLE_CONSIGNOR,
            organization_id=org["id"],
            approval_status=APPROVAL_APPROVED if auto_approve else APPROVAL_PENDING,
            phone=payload.get("phone"),
            store_code_used=org["store_code"],
        )
        consignor_id = None
        if auto_approve:
            conn.execute(
                text("UPDATE app_users SET approved_at = :now WHERE id = :id"),
                {"now": iso(utcnow()), "id": user_id},
            )
            consignor_id = insert_consignor(
                conn,
                org["id"],
                full_name=full_name,
                commission_rate=org["default_split_percentage"],
                email=email,
                phone=payload.get("phone"),
                address=payload.get("address"),
                user_id=user_id,
            )

    if auto_approve:
        logger.info("Consignor %s auto-approved in organization %s", email, org["id"])
        notifications.send_email(
            email,
            f"Welcome to {org['name']}",
            "Your consignor account is active. You can log in right away.",
        )
        message = "Registration successful. You can now log in."
    else:
        logger.info("Consignor %s awaiting approval in organization %s", email, org["id"])
        for owner_email in notifications.owner_emails(org["id"]):
            notifications.send_email(
                owner_email,
                "New consignor awaiting approval",
                f"{full_name} ({email}) registered with your store code and is waiting for approval.",
            )
        message = "Registration successful. Your account is pending approval by the shop."

    return {
        "user_id": user_id,
        "organization_id": org["id"],
        "consignor_id": consignor_id,
        "approval_status": APPROVAL_APPROVED if auto_approve else APPROVAL_PENDING,
        "message": message,
    }


def get_pending_consignors(organization_id: int) -> list[dict[str, Any]]:
    df = query_df(
        text(
            f"""
            SELECT {_PENDING_USER_COLUMNS}
            FROM app_users
            WHERE organization_id = :org AND role = :role AND approval_status = :status
            ORDER BY created_at, id
            """
        ),
        {"org": int(organization_id), "role": ROLE_CONSIGNOR, "status": APPROVAL_PENDING},
    )
    return _user_rows(df)


def get_pending_approval_count(organization_id: int) -> int:
    df = query_df(
        text(
            """
            SELECT COUNT(*) AS total FROM app_users
            WHERE organization_id = :org AND role = :role AND approval_status = :status
            """
        ),
        {"org": int(organization_id), "role": ROLE_CONSIGNOR, "status": APPROVAL_PENDING},
    )
    return int(df.iloc[0]["total"])


def _load_user(conn, user_id: int, organization_id: int | None) -> dict[str, Any]:
    user = get_user_by_id(user_id, conn=conn)
    if user is None or (organization_id is not None and user["organization_id"] != organization_id):
        raise NotFoundError("User not found")
    return user


def _mark_approved(conn, user_id: int, approved_by: int) -> None:
    conn.execute(
        text(
            """
            UPDATE app_users
            SET approval_status = :status, approved_by = :approved_by, approved_at = :now,
                rejected_reason = NULL, updated_at = :now
            WHERE id = :id
            """
        ),
        {"status": APPROVAL_APPROVED, "approved_by": int(approved_by), "now": iso(utcnow()), "id": int(user_id)},
    )


def _mark_rejected(conn, user_id: int, rejected_by: int, reason: str | None) -> None:
    conn.execute(
        text(
            """
            UPDATE app_users
            SET approval_status = :status, approved_by = :rejected_by, rejected_reason = :reason,
                updated_at = :now
            WHERE id = :id
            """
        ),
        {
            "status": APPROVAL_REJECTED,
            "rejected_by": int(rejected_by),
            "reason": (reason or "").strip() or None,
            "now": iso(utcnow()),
            "id": int(user_id),
        },
    )


def approve_user(organization_id: int, user_id: int, approved_by: int) -> dict[str, Any]:
    """Approve a pending consignor sign-up and create the consignor record."""

    with get_engine().begin() as conn:
        user = _load_user(conn, user_id, organization_id)
        if user["approval_status"] != APPROVAL_PENDING:
            raise InvalidStateError("User is not pending approval")
        _mark_approved(conn, user_id, approved_by)
        if user["role"] == ROLE_CONSIGNOR:
            existing = conn.execute(
                text("SELECT id FROM consignors WHERE organization_id = :org AND user_id = :user_id"),
                {"org": int(organization_id), "user_id": int(user_id)},
            ).fetchone()
            if existing is None:
                org = get_organization(organization_id, conn=conn)
                insert_consignor(
                    conn,
                    organization_id,
                    full_name=user["full_name"],
                    commission_rate=org["default_split_percentage"],
                    email=user["email"],
                    phone=user["phone"],
                    user_id=int(user_id),
                )

    logger.info("User %s approved by %s in organization %s", user_id, approved_by, organization_id)
    notifications.send_email(user["email"], "Your account has been approved", "You can now log in.")
    notifications.notify(organization_id, user_id, notifications.TYPE_APPROVAL, "Account approved", "Welcome aboard!")
    return get_user_by_id(user_id)


def reject_user(organization_id: int | None, user_id: int, rejected_by: int, reason: str | None = None) -> dict[str, Any]:
    with get_engine().begin() as conn:
        user = _load_user(conn, user_id, organization_id)
        if user["approval_status"] != APPROVAL_PENDING:
            raise InvalidStateError("User is not pending approval")
        _mark_rejected(conn, user_id, rejected_by, reason)

    logger.info("User %s rejected by %s", user_id, rejected_by)
    body = "Your registration was not approved."
    if reason:
        body += f" Reason: {reason}"
    notifications.send_email(user["email"], "Registration update", body)
    return get_user_by_id(user_id)


def get_pending_owners() -> list[dict[str, Any]]:
    df = query_df(
        text(
            """
            SELECT u.id, u.organization_id, u.email, u.full_name, u.phone, u.role,
                   u.approval_status, u.created_at, o.name AS shop_name, o.slug AS subdomain
            FROM app_users u
            LEFT JOIN organizations o ON o.id = u.organization_id
            WHERE u.role = :role AND u.approval_status = :status
            ORDER BY u.created_at, u.id
            """
        ),
        {"role": ROLE_OWNER, "status": APPROVAL_PENDING},
    )
    return _user_rows(df)


def _load_pending_owner(conn, user_id: int) -> dict[str, Any]:
    user = _load_user(conn, user_id, None)
    if user["role"] != ROLE_OWNER:
        raise InvalidStateError("User is not an owner")
    if user["approval_status"] != APPROVAL_PENDING:
        raise InvalidStateError("User is not pending approval")
    return user


def approve_owner(user_id: int, approved_by: int) -> dict[str, Any]:
    """Approve a shop owner, activate the shop and give it a store code if it has none."""

    with get_engine().begin() as conn:
        user = _load_pending_owner(conn, user_id)
        _mark_approved(conn, user_id, approved_by)
        org = get_organization(user["organization_id"], conn=conn)
        store_code = org["store_code"] or generate_alphanumeric_store_code(conn)
        conn.execute(
            text("UPDATE organizations SET status = :status, store_code = :code, updated_at = :now WHERE id = :id"),
            {"status": STATUS_ACTIVE, "code": store_code, "now": iso(utcnow()), "id": org["id"]},
        )

    logger.info("Owner %s approved by %s, organization %s active", user_id, approved_by, org["id"])
    notifications.send_email(
        user["email"],
        "Your shop has been approved",
        f"{org['name']} is now active. Share store code {store_code} with your consignors.",
    )
    approved = get_user_by_id(user_id)
    approved["store_code"] = store_code
    return approved


def reject_owner(user_id: int, rejected_by: int, reason: str | None = None) -> dict[str, Any]:
    with get_engine().begin() as conn:
        user = _load_pending_owner(conn, user_id)
        _mark_rejected(conn, user_id, rejected_by, reason)

    logger.info("Owner %s rejected by %s", user_id, rejected_by)
    body = "Your shop registration was not approved."
    if reason:
        body += f" Reason: {reason}"
    notifications.send_email(user["email"], "Registration update", body)
    return get_user_by_id(user_id)
