"""Platform administration: shop owner approvals and cross-shop jobs."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from backend.dependencies.security import AuthenticatedUser, require_roles
from backend.schemas.common import ApiResponse
from backend.schemas.organizations import OrganizationPayload
from backend.schemas.registration import PendingUser, RejectionRequest, UserAccount
from backend.schemas.statements import MonthlyGenerationRequest, MonthlyGenerationResult
from backend.services import organizations as organizations_service
from backend.services import registration as registration_service
from backend.services import statements as statements_service

router = APIRouter(prefix="/admin", tags=["admin"])

require_admin = require_roles("admin")


@router.get("/owners/pending", response_model=ApiResponse[list[PendingUser]])
def pending_owners(_: AuthenticatedUser = Depends(require_admin)):
    return ApiResponse.ok(registration_service.get_pending_owners())


@router.post("/owners/{user_id}/approve", response_model=ApiResponse[UserAccount])
def approve_owner(user_id: int, admin: AuthenticatedUser = Depends(require_admin)):
    return ApiResponse.ok(registration_service.approve_owner(user_id, admin.id), "Owner approved")


@router.post("/owners/{user_id}/reject", response_model=ApiResponse[UserAccount])
def reject_owner(user_id: int, payload: RejectionRequest, admin: AuthenticatedUser = Depends(require_admin)):
    return ApiResponse.ok(registration_service.reject_owner(user_id, admin.id, payload.reason), "Owner rejected")


@router.get("/organizations", response_model=ApiResponse[list[OrganizationPayload]])
def list_organizations(
    status: str | None = Query(default=None),
    _: AuthenticatedUser = Depends(require_admin),
):
    return ApiResponse.ok(organizations_service.list_organizations(status=status))


@router.post("/statements/generate-monthly", response_model=ApiResponse[MonthlyGenerationResult])
def generate_all_statements(payload: MonthlyGenerationRequest, _: AuthenticatedUser = Depends(require_admin)):
    return ApiResponse.ok(statements_service.generate_statements_for_month(payload.year, payload.month))
