"""Authentication endpoints (OAuth2 password flow with JWT)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm

from backend.dependencies.organization import resolve_organization
from backend.dependencies.security import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    AuthenticatedUser,
    get_current_user,
    oauth2_scheme,
    revoke_token,
    token_for_user,
)
from backend.schemas.auth import AuthenticatedUserPayload, TokenResponse
from backend.schemas.common import ApiResponse
from backend.services.consignors import get_consignor_for_user
from backend.services.errors import NotFoundError
from core.user_service import ROLE_CONSIGNOR, authenticate_user, get_user_by_id


router = APIRouter(prefix="/auth", tags=["auth"])


def _consignor_id_for(user: dict) -> int | None:
    if user["role"] != ROLE_CONSIGNOR or user.get("organization_id") is None:
        return None
    try:
        return int(get_consignor_for_user(int(user["organization_id"]), int(user["id"]))["id"])
    except NotFoundError:
        return None


def _payload(user: dict, consignor_id: int | None) -> AuthenticatedUserPayload:
    organization = resolve_organization(user.get("organization_id"))
    return AuthenticatedUserPayload(
        id=int(user["id"]),
        email=user["email"],
        full_name=user["full_name"],
        role=user["role"],
        organization_id=organization.id if organization else None,
        organization_name=organization.name if organization else None,
        consignor_id=consignor_id,
    )


@router.post("/token", response_model=TokenResponse)
def issue_token(form_data: OAuth2PasswordRequestForm = Depends()) -> TokenResponse:
    """Exchange e-mail (``username`` field) and password for a bearer token."""

    user = authenticate_user(form_data.username, form_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials or account not approved",
            headers={"WWW-Authenticate": "Bearer"},
        )

    consignor_id = _consignor_id_for(user)
    token = token_for_user(user, consignor_id=consignor_id)
    return TokenResponse(
        access_token=token,
        expires_in=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=_payload(user, consignor_id),
    )


@router.get("/me", response_model=ApiResponse[AuthenticatedUserPayload])
def read_me(current: AuthenticatedUser = Depends(get_current_user)):
    user = get_user_by_id(current.id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return ApiResponse.ok(_payload(user, current.consignor_id))


@router.post("/logout", response_model=ApiResponse[None])
def logout(token: str = Depends(oauth2_scheme), _: AuthenticatedUser = Depends(get_current_user)):
    revoke_token(token)
    return ApiResponse.ok(message="Logged out")
