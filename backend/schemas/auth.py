from __future__ import annotations

from pydantic import BaseModel, Field


class AuthenticatedUserPayload(BaseModel):
    id: int
    email: str
    full_name: str
    role: str = Field(description="admin | owner | manager | clerk | consignor")
    organization_id: int | None = None
    organization_name: str | None = None
    consignor_id: int | None = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: AuthenticatedUserPayload


__all__ = ["AuthenticatedUserPayload", "TokenResponse"]
