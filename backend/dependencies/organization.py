"""Resolve the shop (organization) a request is scoped to, from the token claims."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, HTTPException, status

from backend.dependencies.security import AuthenticatedUser, get_current_user, require_roles
from backend.services.errors import NotFoundError
from backend.services.organizations import STATUS_SUSPENDED, get_organization


@dataclass(frozen=True)
class Organization:
    id: int
    name: str
    slug: str
    default_split_percentage: float
    auto_approve_consignors: bool


def resolve_organization(organization_id: int | None) -> Organization | None:
    if organization_id is None:
        return None
    try:
        row = get_organization(int(organization_id))
    except NotFoundError:
        return None
    if row["status"] == STATUS_SUSPENDED:
        return None
    return Organization(
        id=int(row["id"]),
        name=str(row["name"]),
        slug=str(row["slug"]),
        default_split_percentage=float(row["default_split_percentage"]),
        auto_approve_consignors=bool(row["auto_approve_consignors"]),
    )


def get_current_organization(user: AuthenticatedUser = Depends(get_current_user)) -> Organization:
    organization = resolve_organization(user.organization_id)
    if organization is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Organization not found for this account",
        )
    return organization


def get_current_consignor_id(user: AuthenticatedUser = Depends(require_roles("consignor"))) -> int:
    """Consignor id of a logged-in consignor account."""

    if user.consignor_id is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No consignor profile is linked to this account",
        )
    return user.consignor_id
