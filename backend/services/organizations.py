"""Organization (shop) settings and store codes used by consignors to sign up."""

from __future__ import annotations

import logging
import re
import secrets
import string
from typing import Any

from sqlalchemy import text

from core.data_repository import first_record, get_engine, query_df, records
from core.money import to_float
from core.periods import iso, utcnow
from backend.services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_ACTIVE = "active"
STATUS_SUSPENDED = "suspended"

_MAX_NUMERIC_ATTEMPTS = 100
_SLUG_RE = re.compile(r"^[a-z0-9][a-z0-9-]{1,98}[a-z0-9]$")
_SETTING_COLUMNS = {
    "name",
    "email",
    "phone",
    "address",
    "default_split_percentage",
    "auto_approve_consignors",
    "store_code_enabled",
    "tax_rate",
    "currency",
}

_SELECT = """
    SELECT id, name, slug, email, phone, address, status, store_code,
           store_code_enabled, auto_approve_consignors, default_split_percentage,
           tax_rate, currency, created_at, updated_at
    FROM organizations
"""


def _serialize(row: dict[str, Any]) -> dict[str, Any]:
    row["store_code_enabled"] = bool(row["store_code_enabled"])
    row["auto_approve_consignors"] = bool(row["auto_approve_consignors"])
    row["default_split_percentage"] = to_float(row["default_split_percentage"])
    row["tax_rate"] = float(row["tax_rate"] or 0)
    row["created_at"] = iso(row["created_at"])
    row["updated_at"] = iso(row["updated_at"])
    return row


def normalize_slug(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", (value or "").strip().lower()).strip("-")
    if not _SLUG_RE.match(slug):
        raise ValidationError("Subdomain must be 3-100 characters of letters, digits or dashes")
    return slug


def get_organization(organization_id: int, *, conn=None) -> dict[str, Any]:
    row = first_record(query_df(text(_SELECT + " WHERE id = :id"), {"id": int(organization_id)}, conn=conn))
    if row is None:
        raise NotFoundError("Organization not found")
    return _serialize(row)


def list_organizations(*, status: str | None = None) -> list[dict[str, Any]]:
    sql = _SELECT
    params: dict[str, Any] = {}
    if status:
        sql += " WHERE status = :status"
        params["status"] = status
    df = query_df(text(sql + " ORDER BY name"), params)
    return [_serialize(row) for row in records(df)]


def update_settings(organization_id: int, changes: dict[str, Any]) -> dict[str, Any]:
    """Apply the provided setting changes (unknown keys are ignored)."""

    updates = {key: value for key, value in changes.items() if key in _SETTING_COLUMNS and value is not None}
    if "default_split_percentage" in updates:
        pct = float(updates["default_split_percentage"])
        if not 0 <= pct <= 100:
            raise ValidationError("Default split percentage must be between 0 and 100")
    if "tax_rate" in updates and not 0 <= float(updates["tax_rate"]) < 1:
        raise ValidationError("Tax rate must be a fraction between 0 and 1")
    if "name" in updates and not str(updates["name"]).strip():
        raise ValidationError("Shop name is required")

    get_organization(organization_id)
    if updates:
        assignments = ", ".join(f"{column} = :{column}" for column in sorted(updates))
        params = {**updates, "id": int(organization_id), "updated_at": iso(utcnow())}
        with get_engine().begin() as conn:
            conn.execute(
                text(f"UPDATE organizations SET {assignments}, updated_at = :updated_at WHERE id = :id"),
                params,
            )
        logger.info("Organization %s settings updated: %s", organization_id, ", ".join(sorted(updates)))
    return get_organization(organization_id)


def _store_code_taken(conn, code: str) -> bool:
    row = conn.execute(text("SELECT 1 FROM organizations WHERE store_code = :code"), {"code": code}).fetchone()
    return row is not None


def generate_store_code(conn) -> str:
    """Random 4-digit code unused by any shop; 5 digits once 4-digit attempts run out."""

    for _ in range(_MAX_NUMERIC_ATTEMPTS):
        code = str(1000 + secrets.randbelow(9000))
        if not _store_code_taken(conn, code):
            return code
    while True:
        code = str(10000 + secrets.randbelow(90000))
        if not _store_code_taken(conn, code):
            return code


def generate_alphanumeric_store_code(conn, length: int = 6) -> str:
    """Unique uppercase letters/digits code assigned when an owner is approved."""

    alphabet = string.ascii_uppercase + string.digits
    while True:
        code = "".join(secrets.choice(alphabet) for _ in range(length))
        if not _store_code_taken(conn, code):
            return code


def get_store_code(organization_id: int) -> dict[str, Any]:
    org = get_organization(organization_id)
    return {"store_code": org["store_code"], "is_enabled": org["store_code_enabled"]}


def regenerate_store_code(organization_id: int) -> dict[str, Any]:
    """Replace the shop's store code; the previous code stops working immediately."""

    get_organization(organization_id)
    with get_engine().begin() as conn:
        code = generate_store_code(conn)
        conn.execute(
            text("UPDATE organizations SET store_code = :code, updated_at = :now WHERE id = :id"),
            {"code": code, "now": iso(utcnow()), "id": int(organization_id)},
        )
    logger.info("Store code regenerated for organization %s", organization_id)
    return get_store_code(organization_id)


def toggle_store_code(organization_id: int, enabled: bool) -> dict[str, Any]:
    get_organization(organization_id)
    with get_engine().begin() as conn:
        conn.execute(
            text("UPDATE organizations SET store_code_enabled = :enabled, updated_at = :now WHERE id = :id"),
            {"enabled": bool(enabled), "now": iso(utcnow()), "id": int(organization_id)},
        )
    return get_store_code(organization_id)


def find_by_store_code(code: str, *, conn=None) -> dict[str, Any] | None:
    cleaned = (code or "").strip().upper()
    if not cleaned:
        return None
    row = first_record(query_df(text(_SELECT + " WHERE store_code = :code"), {"code": cleaned}, conn=conn))
    return _serialize(row) if row else None


def validate_store_code(code: str) -> dict[str, Any]:
    """Public check used by the consignor sign-up form."""

    org = find_by_store_code(code)
    if org is None or not org["store_code_enabled"] or org["status"] != STATUS_ACTIVE:
        return {"is_valid": False, "shop_name": None, "error_message": "Invalid or disabled store code"}
    return {"is_valid": True, "shop_name": org["name"], "error_message": None}
