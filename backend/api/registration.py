"""Public sign-up endpoints (no authentication)."""

from __future__ import annotations

from fastapi import APIRouter, status

from backend.schemas.common import ApiResponse
from backend.schemas.registration import (
    ConsignorRegistrationRequest,
    OwnerRegistrationRequest,
    RegistrationResult,
    StoreCodeValidation,
)
from backend.services import organizations as organizations_service
from backend.services import registration as registration_service

router = APIRouter(prefix="/registration", tags=["registration"])


@router.get("/validate-store-code/{code}", response_model=ApiResponse[StoreCodeValidation])
def validate_store_code(code: str):
    return ApiResponse.ok(organizations_service.validate_store_code(code))


@router.post("/owner", response_model=ApiResponse[RegistrationResult], status_code=status.HTTP_201_CREATED)
def register_owner(payload: OwnerRegistrationRequest):
    result = registration_service.register_owner(payload.model_dump())
    return ApiResponse.ok(result, result["message"])


@router.post("/consignor", response_model=ApiResponse[RegistrationResult], status_code=status.HTTP_201_CREATED)
def register_consignor(payload: ConsignorRegistrationRequest):
    result = registration_service.register_consignor(payload.model_dump())
    return ApiResponse.ok(result, result["message"])
