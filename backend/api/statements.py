"""Consignor statements, seen from the shop side."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import StreamingResponse

from backend.dependencies.organization import Organization, get_current_organization
from backend.dependencies.security import AuthenticatedUser, require_roles
from backend.schemas.common import ApiResponse
from backend.schemas.statements import (
    MonthlyGenerationRequest,
    MonthlyGenerationResult,
    StatementDetail,
    StatementGenerateRequest,
    StatementPayload,
)
from backend.services import statements as statements_service

router = APIRouter(prefix="/statements", tags=["statements"])

require_statement_manager = require_roles("owner", "manager")


@router.get("", response_model=ApiResponse[list[StatementPayload]])
def list_statements(
    consignor_id: int = Query(...),
    org: Organization = Depends(get_current_organization),
):
    return ApiResponse.ok(statements_service.list_statements(org.id, consignor_id))


@router.get("/by-period", response_model=ApiResponse[StatementDetail])
def statement_by_period(
    consignor_id: int = Query(...),
    period_start: date = Query(...),
    org: Organization = Depends(get_current_organization),
):
    return ApiResponse.ok(statements_service.get_statement_by_period(org.id, consignor_id, period_start))


@router.post("/generate", response_model=ApiResponse[StatementPayload], status_code=status.HTTP_201_CREATED)
def generate_statement(
    payload: StatementGenerateRequest,
    org: Organization = Depends(get_current_organization),
    _: AuthenticatedUser = Depends(require_statement_manager),
):
    statement = statements_service.generate_statement(
        org.id, payload.consignor_id, payload.period_start, payload.period_end
    )
    return ApiResponse.ok(statement, "Statement generated")


@router.post("/generate-monthly", response_model=ApiResponse[MonthlyGenerationResult])
def generate_monthly(
    payload: MonthlyGenerationRequest,
    org: Organization = Depends(get_current_organization),
    _: AuthenticatedUser = Depends(require_statement_manager),
):
    result = statements_service.generate_statements_for_month(payload.year, payload.month, organization_id=org.id)
    return ApiResponse.ok(result)


@router.get("/{statement_id}", response_model=ApiResponse[StatementDetail])
def read_statement(statement_id: int, org: Organization = Depends(get_current_organization)):
    return ApiResponse.ok(statements_service.get_statement(org.id, statement_id))


@router.post("/{statement_id}/regenerate", response_model=ApiResponse[StatementPayload])
def regenerate_statement(
    statement_id: int,
    org: Organization = Depends(get_current_organization),
    _: AuthenticatedUser = Depends(require_statement_manager),
):
    return ApiResponse.ok(statements_service.regenerate_statement(org.id, statement_id), "Statement regenerated")


@router.get("/{statement_id}/export")
def export_statement(statement_id: int, org: Organization = Depends(get_current_organization)):
    filename, payload = statements_service.export_statement_csv(org.id, statement_id)
    return StreamingResponse(
        iter([payload]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
