"""Bearer tokens for shop staff, consignors and platform admins.

A token carries the account id, its role, its organization and, for consignor
logins, the consignor record it may read. ``JWT_SECRET_KEYS`` lists the
signing keys: the first one signs, all of them verify, so keys can be rotated
without logging everybody out.
"""

from __future__ import annotations

import logging
import os
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel
from pydantic import ValidationError as ClaimsError

from core.user_service import ALLOWED_ROLES, ROLE_CONSIGNOR
from backend.settings import Settings

logger = logging.getLogger(__name__)

ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("JWT_ACCESS_TOKEN_EXPIRE_MINUTES", "120"))
DEFAULT_SECRET = "change-me-in-prod-consignment-platform"
MIN_SECRET_LENGTH = 32

ROLE_PRIORITY = {"consignor": 0, "clerk": 1, "manager": 2, "owner": 3, "admin": 4}
WRITE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


class AuthenticatedUser(BaseModel):
    """Caller identity rebuilt from the token claims."""

    id: int
    email: str
    role: str
    organization_id: int | None = None
    consignor_id: int | None = None

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> "AuthenticatedUser":
        return cls(
            id=claims["sub"],
            email=claims["email"],
            role=str(claims["role"]).lower(),
            organization_id=claims.get("organization_id"),
            consignor_id=claims.get("consignor_id"),
        )

    def outranks(self, role: str) -> bool:
        return ROLE_PRIORITY[self.role] >= ROLE_PRIORITY[role]


@dataclass(frozen=True)
class SigningKeys:
    signing: str
    verifying: tuple[str, ...]
    algorithm: str

    @classmethod
    def from_settings(cls, settings: Settings) -> "SigningKeys":
        keys = list(settings.jwt_secret_keys or [])
        if not keys:
            sensitive = settings.app_env in {"prod", "production", "staging"}
            if sensitive and not settings.allow_insecure_jwt_default:
                raise RuntimeError("JWT_SECRET_KEY missing: refusing to start in a sensitive environment")
            logger.warning("Using default JWT secret; set JWT_SECRET_KEY/JWT_SECRET_KEYS in production")
            keys = [DEFAULT_SECRET]
        if any(len(key) < MIN_SECRET_LENGTH for key in keys):
            raise RuntimeError(f"JWT secret too short (<{MIN_SECRET_LENGTH} characters). Generate a stronger key.")
        return cls(signing=keys[0], verifying=tuple(keys), algorithm=os.getenv("JWT_ALGORITHM", "HS256"))


class RevokedTokens:
    """Token ids logged out before expiry, forgotten once they would have expired anyway."""

    def __init__(self) -> None:
        self._expiry: dict[str, float] = {}

    def add(self, jti: str, expires_at: float) -> None:
        self._expiry[jti] = float(expires_at)

    def purge(self) -> None:
        now = time.time()
        for jti in [jti for jti, expires_at in self._expiry.items() if expires_at <= now]:
            del self._expiry[jti]

    def __contains__(self, jti: object) -> bool:
        self.purge()
        return jti in self._expiry


_KEYS = SigningKeys.from_settings(Settings.load())
_revoked = RevokedTokens()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _forbidden(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def create_access_token(claims: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    lifetime = expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {**claims, "exp": datetime.now(timezone.utc) + lifetime, "jti": uuid.uuid4().hex}
    return jwt.encode(payload, _KEYS.signing, algorithm=_KEYS.algorithm)


def token_for_user(user: dict[str, Any], *, consignor_id: int | None = None) -> str:
    claims = {
        "sub": str(user["id"]),
        "email": user["email"],
        "role": user["role"],
        "organization_id": user.get("organization_id"),
    }
    if consignor_id is not None:
        claims["consignor_id"] = int(consignor_id)
    return create_access_token(claims)


def decode_token(token: str) -> dict[str, Any]:
    """Verified claims of a live token; raises 401 otherwise."""

    for key in _KEYS.verifying:
        try:
            claims = jwt.decode(token, key, algorithms=[_KEYS.algorithm])
        except jwt.InvalidSignatureError:
            continue
        except jwt.ExpiredSignatureError as exc:
            raise _unauthorized("Token expired") from exc
        except jwt.InvalidTokenError as exc:
            raise _unauthorized("Invalid token") from exc
        if claims.get("jti") in _revoked:
            raise _unauthorized("Token revoked")
        return claims
    raise _unauthorized("Invalid token")


def revoke_token(token: str) -> None:
    claims = decode_token(token)
    if claims.get("jti") and claims.get("exp"):
        _revoked.add(str(claims["jti"]), claims["exp"])


def get_current_user(token: str = Depends(oauth2_scheme)) -> AuthenticatedUser:
    claims = decode_token(token)
    try:
        user = AuthenticatedUser.from_claims(claims)
    except (KeyError, ClaimsError) as exc:
        raise _unauthorized("Token is missing required claims") from exc
    if user.role not in ALLOWED_ROLES:
        raise _unauthorized("Unknown role in token")
    return user


def require_roles(*roles: str) -> Callable[[AuthenticatedUser], AuthenticatedUser]:
    allowed = {role.lower() for role in roles} or set(ALLOWED_ROLES)

    def _checker(user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
        if user.role not in allowed:
            raise _forbidden("Insufficient role for this resource")
        return user

    return _checker


def enforce_default_rbac(
    request: Request, user: AuthenticatedUser = Depends(get_current_user)
) -> AuthenticatedUser:
    """Shop routes: any staff role reads, clerk and above write, consignors stay in the portal."""

    if user.role == ROLE_CONSIGNOR:
        raise _forbidden("Consignor accounts can only use the consignor portal")
    if request.method.upper() in WRITE_METHODS and not user.outranks("clerk"):
        raise _forbidden("Clerk role or higher required to modify data")
    return user
