"""Account storage, password hashing and login checks for shop users."""

import hashlib
import hmac
import logging
import os
import secrets
from typing import Optional

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from .data_repository import exec_sql, first_record, get_engine, query_df
from .periods import iso, utcnow


_PASSWORD_ITERATIONS = int(os.getenv("PASSWORD_HASH_ITERATIONS", "390000"))
_HASH_ALGO = "pbkdf2_sha256"

ROLE_ADMIN = "admin"
ROLE_OWNER = "owner"
ROLE_MANAGER = "manager"
ROLE_CLERK = "clerk"
ROLE_CONSIGNOR = "consignor"
ALLOWED_ROLES: tuple[str, ...] = (ROLE_ADMIN, ROLE_OWNER, ROLE_MANAGER, ROLE_CLERK, ROLE_CONSIGNOR)

APPROVAL_PENDING = "Pending"
APPROVAL_APPROVED = "Approved"
APPROVAL_REJECTED = "Rejected"

DUPLICATE_EMAIL_MESSAGE = "An account with this email already exists."

_PUBLIC_COLUMNS = """
    id, organization_id, email, full_name, phone, role, approval_status,
    approved_by, approved_at, rejected_reason, store_code_used, is_active,
    last_login_at, created_at
"""

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    """PBKDF2-SHA256 hash in the ``algo$iterations$salt$digest`` format."""
    salt = secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, _PASSWORD_ITERATIONS)
    return f"{_HASH_ALGO}${_PASSWORD_ITERATIONS}${salt.hex()}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    try:
        algorithm, iter_str, salt_hex, digest_hex = encoded.split("$")
    except ValueError:
        return False

    if algorithm != _HASH_ALGO:
        return False

    try:
        iterations = int(iter_str)
        salt = bytes.fromhex(salt_hex)
        expected = bytes.fromhex(digest_hex)
    except ValueError:
        return False

    computed = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return hmac.compare_digest(computed, expected)


def normalize_email(value: str | None) -> str:
    return (value or "").strip().lower()


def validate_account_fields(email: str, password: str, full_name: str, role: str) -> None:
    """Raise ValueError when the basic account fields are unusable."""

    if "@" not in email or len(email) < 5:
        raise ValueError("Invalid email address.")
    if len(password) < 8:
        raise ValueError("Password must be at least 8 characters long.")
    if len(full_name.strip()) < 2:
        raise ValueError("Full name is required.")
    if role not in ALLOWED_ROLES:
        raise ValueError(f"Invalid role. Choose one of {', '.join(ALLOWED_ROLES)}.")


def email_exists(email: str, *, conn=None) -> bool:
    df = query_df(
        text("SELECT id FROM app_users WHERE LOWER(email) = :email"),
        {"email": normalize_email(email)},
        conn=conn,
    )
    return not df.empty


def get_user_by_email(email: str) -> Optional[dict]:
    sql = text(
        f"""
        SELECT {_PUBLIC_COLUMNS}, password_hash
        FROM app_users
        WHERE LOWER(email) = :email
        """
    )
    return first_record(query_df(sql, {"email": normalize_email(email)}))


def get_user_by_id(user_id: int, *, conn=None) -> Optional[dict]:
    sql = text(f"SELECT {_PUBLIC_COLUMNS} FROM app_users WHERE id = :user_id")
    return first_record(query_df(sql, {"user_id": int(user_id)}, conn=conn))


def insert_user(
    conn,
    *,
    email: str,
    password: str,
    full_name: str,
    role: str,
    organization_id: int | None,
    approval_status: str = APPROVAL_PENDING,
    phone: str | None = None,
    store_code_used: str | None = None,
) -> int:
    """Insert an account inside the caller's transaction and return its id."""

    email = normalize_email(email)
    password = (password or "").strip()
    role = (role or "").strip().lower()
    validate_account_fields(email, password, full_name or "", role)
    if email_exists(email, conn=conn):
        raise ValueError(DUPLICATE_EMAIL_MESSAGE)

    row = conn.execute(
        text(
            """
            INSERT INTO app_users (
                organization_id, email, password_hash, full_name, phone, role,
                approval_status, store_code_used, is_active, created_at
            ) VALUES (
                :organization_id, :email, :password_hash, :full_name, :phone, :role,
                :approval_status, :store_code_used, :is_active, :created_at
            )
            RETURNING id
            """
        ),
        {
            "organization_id": organization_id,
            "email": email,
            "password_hash": hash_password(password),
            "full_name": full_name.strip(),
            "phone": phone,
            "role": role,
            "approval_status": approval_status,
            "store_code_used": store_code_used,
            "is_active": True,
            "created_at": iso(utcnow()),
        },
    ).fetchone()
    return int(row[0])


def create_user(
    email: str,
    password: str,
    full_name: str,
    role: str,
    *,
    organization_id: int | None = None,
    approval_status: str = APPROVAL_APPROVED,
) -> dict:
    """Create an account in its own transaction and return it without the hash."""

    try:
        with get_engine().begin() as conn:
            user_id = insert_user(
                conn,
                email=email,
                password=password,
                full_name=full_name,
                role=role,
                organization_id=organization_id,
                approval_status=approval_status,
            )
    except IntegrityError as exc:
        if "email" in str(exc).lower():
            raise ValueError(DUPLICATE_EMAIL_MESSAGE) from exc
        raise

    created = get_user_by_id(user_id)
    if not created:
        raise RuntimeError("Freshly created user could not be reloaded.")
    return created


def authenticate_user(email: str, password: str) -> Optional[dict]:
    """Check credentials and return the account without its hash.

    Accounts that are inactive or not yet approved cannot log in.
    """

    if not email or not password:
        return None

    user = get_user_by_email(email)
    if not user:
        return None
    if not verify_password(password, user.pop("password_hash")):
        return None
    if not bool(user["is_active"]) or user["approval_status"] != APPROVAL_APPROVED:
        logger.info("Login refused for %s (status=%s)", user["email"], user["approval_status"])
        return None

    exec_sql(
        text("UPDATE app_users SET last_login_at = :now WHERE id = :user_id"),
        {"now": iso(utcnow()), "user_id": int(user["id"])},
    )
    return user


def bootstrap_default_admin() -> None:
    """Create the platform admin when no admin account exists yet."""

    if os.getenv("SKIP_USER_BOOTSTRAP") or os.getenv("SKIP_USER_INIT") or os.getenv("APP_ENV", "").lower() == "test":
        return

    df = query_df(text("SELECT COUNT(*) AS total FROM app_users WHERE role = :role"), {"role": ROLE_ADMIN})
    if not df.empty and int(df.iloc[0]["total"]) > 0:
        return

    create_user(
        os.getenv("DEFAULT_ADMIN_EMAIL", "admin@example.com"),
        os.getenv("DEFAULT_ADMIN_PASSWORD", "ConsignAdmin123"),
        "Platform Admin",
        ROLE_ADMIN,
    )


def bootstrap_users_if_enabled() -> None:
    """Seed the platform admin unless disabled (tests, SKIP_USER_INIT)."""

    if os.getenv("SKIP_USER_INIT") or os.getenv("APP_ENV", "").lower() == "test":
        return

    try:
        bootstrap_default_admin()
    except Exception as exc:  # pragma: no cover - logged so an unavailable DB does not block startup
        logger.warning("User bootstrap skipped (database error): %s", exc)
