"""Consignor management for shop staff, including sign-up approvals."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query, status

from backend.dependencies.organization import Organization, get_current_organization
from backend.dependencies.security import AuthenticatedUser, require_roles
from backend.schemas.common import ApiResponse, PagedData
from backend.schemas.consignors import ConsignorCreate, ConsignorPayload, ConsignorSummary, ConsignorUpdate
from backend.schemas.registration import PendingUser, RejectionRequest, UserAccount
from backend.services import consignors as consignors_service
from backend.services import registration as registration_service

router = APIRouter(prefix="/consignors", tags=["consignors"])

require_approver = require_roles("owner", "manager")


@router.get("", response_model=ApiResponse[PagedData[ConsignorPayload]])
def list_consignors(
    search: str | None = Query(default=None, max_length=100),
    status_filter: Literal["Active", "Deactivated"] | None = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=25, ge=1, le=200),
    org: Organization = Depends(get_current_organization),
):
    result = consignors_service.list_consignors(
        org.id, search=search, status=status_filter, page=page, page_size=page_size
    )
    return ApiResponse.ok(result)


@router.post("", response_model=ApiResponse[ConsignorPayload], status_code=status.HTTP_201_CREATED)
def create_consignor(payload: ConsignorCreate, org: Organization = Depends(get_current_organization)):
    created = consignors_service.create_consignor(org.id, payload.model_dump())
    return ApiResponse.ok(created, "Consignor created")


@router.get("/approvals", response_model=ApiResponse[list[PendingUser]])
def pending_approvals(org: Organization = Depends(get_current_organization)):
    return ApiResponse.ok(registration_service.get_pending_consignors(org.id))


@router.get("/approvals/count", response_model=ApiResponse[int])
def pending_approval_count(org: Organization = Depends(get_current_organization)):
    return ApiResponse.ok(registration_service.get_pending_approval_count(org.id))


@router.post("/approvals/{user_id}/approve", response_model=ApiResponse[UserAccount])
def approve_consignor(
    user_id: int,
    org: Organization = Depends(get_current_organization),
    user: AuthenticatedUser = Depends(require_approver),
):
    return ApiResponse.ok(registration_service.approve_user(org.id, user_id, user.id), "Consignor approved")


@router.post("/approvals/{user_id}/reject", response_model=ApiResponse[UserAccount])
def reject_consignor(
    user_id: int,
    payload: RejectionRequest,
    org: Organization = Depends(get_current_organization),
    user: AuthenticatedUser = Depends(require_approver),
):
    result = registration_service.reject_user(org.id, user_id, user.id, payload.reason)
    return ApiResponse.ok(result, "Consignor rejected")


@router.get("/{consignor_id}", response_model=ApiResponse[ConsignorPayload])
def read_consignor(consignor_id: int, org: Organization = Depends(get_current_organization)):
    return ApiResponse.ok(consignors_service.get_consignor(org.id, consignor_id))


@router.put("/{consignor_id}", response_model=ApiResponse[ConsignorPayload])
def update_consignor(
    consignor_id: int, payload: ConsignorUpdate, org: Organization = Depends(get_current_organization)
):
    updated = consignors_service.update_consignor(org.id, consignor_id, payload.model_dump(exclude_unset=True))
    return ApiResponse.ok(updated, "Consignor updated")


@router.post("/{consignor_id}/deactivate", response_model=ApiResponse[ConsignorPayload])
def deactivate_consignor(consignor_id: int, org: Organization = Depends(get_current_organization)):
    result = consignors_service.set_status(org.id, consignor_id, consignors_service.STATUS_DEACTIVATED)
    return ApiResponse.ok(result, "Consignor deactivated")


@router.post("/{consignor_id}/reactivate", response_model=ApiResponse[ConsignorPayload])
def reactivate_consignor(consignor_id: int, org: Organization = Depends(get_current_organization)):
    result = consignors_service.set_status(org.id, consignor_id, consignors_service.STATUS_ACTIVE)
    return ApiResponse.ok(result, "Consignor reactivated")


@router.get("/{consignor_id}/summary", response_model=ApiResponse[ConsignorSummary])
def read_summary(consignor_id: int, org: Organization = Depends(get_current_organization)):
    return ApiResponse.ok(consignors_service.consignor_summary(org.id, consignor_id))
