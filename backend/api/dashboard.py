"""Owner dashboard."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from backend.dependencies.organization import Organization, get_current_organization
from backend.schemas.common import ApiResponse
from backend.schemas.reports import DashboardPayload
from backend.services import reports as reports_service

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("", response_model=ApiResponse[DashboardPayload])
def read_dashboard(org: Organization = Depends(get_current_organization)):
    return ApiResponse.ok(reports_service.build_dashboard(org.id))
