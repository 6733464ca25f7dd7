"""Settings and store code of the current shop."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from backend.dependencies.organization import Organization, get_current_organization
from backend.dependencies.security import AuthenticatedUser, require_roles
from backend.schemas.common import ApiResponse
from backend.schemas.organizations import (
    OrganizationPayload,
    OrganizationSettingsUpdate,
    StoreCodePayload,
    StoreCodeToggleRequest,
)
from backend.services import organizations as organizations_service

router = APIRouter(prefix="/organization", tags=["organization"])


@router.get("", response_model=ApiResponse[OrganizationPayload])
def read_organization(org: Organization = Depends(get_current_organization)):
    return ApiResponse.ok(organizations_service.get_organization(org.id))


@router.put("/settings", response_model=ApiResponse[OrganizationPayload])
def update_settings(
    payload: OrganizationSettingsUpdate,
    org: Organization = Depends(get_current_organization),
    _: AuthenticatedUser = Depends(require_roles("owner", "manager")),
):
    updated = organizations_service.update_settings(org.id, payload.model_dump(exclude_none=True))
    return ApiResponse.ok(updated, "Settings updated")


@router.get("/store-code", response_model=ApiResponse[StoreCodePayload])
def read_store_code(org: Organization = Depends(get_current_organization)):
    return ApiResponse.ok(organizations_service.get_store_code(org.id))


@router.post("/store-code/regenerate", response_model=ApiResponse[StoreCodePayload])
def regenerate_store_code(
    org: Organization = Depends(get_current_organization),
    _: AuthenticatedUser = Depends(require_roles("owner")),
):
    return ApiResponse.ok(organizations_service.regenerate_store_code(org.id), "Store code regenerated")


@router.put("/store-code/toggle", response_model=ApiResponse[StoreCodePayload])
def toggle_store_code(
    payload: StoreCodeToggleRequest,
    org: Organization = Depends(get_current_organization),
    _: AuthenticatedUser = Depends(require_roles("owner")),
):
    return ApiResponse.ok(organizations_service.toggle_store_code(org.id, payload.enabled))
