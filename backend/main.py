"""FastAPI application for the consignment shop platform."""

from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.api import admin as admin_router
from backend.api import auth as auth_router
from backend.api import categories as categories_router
from backend.api import consignors as consignors_router
from backend.api import dashboard as dashboard_router
from backend.api import items as items_router
from backend.api import organization as organization_router
from backend.api import payouts as payouts_router
from backend.api import portal as portal_router
from backend.api import registration as registration_router
from backend.api import reports as reports_router
from backend.api import statements as statements_router
from backend.api import transactions as transactions_router
from backend.dependencies.auth import optional_api_key
from backend.dependencies.organization import get_current_consignor_id
from backend.dependencies.security import enforce_default_rbac, require_roles
from backend.schemas.common import ApiResponse
from backend.services.errors import DomainError
from backend.settings import Settings
from core.schema import ensure_schema_if_enabled
from core.user_service import bootstrap_users_if_enabled

logger = logging.getLogger(__name__)

DEFAULT_ORIGINS = ["http://localhost:4200", "http://localhost:5173", "http://localhost:3000"]


def _envelope(status_code: int, errors: list[str], message: str | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ApiResponse.fail(errors, message).model_dump())


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainError)
    async def _domain_error(request: Request, exc: DomainError) -> JSONResponse:
        return _envelope(exc.status_code, [exc.message])

    @app.exception_handler(ValueError)
    async def _value_error(request: Request, exc: ValueError) -> JSONResponse:
        return _envelope(status.HTTP_400_BAD_REQUEST, [str(exc)])

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        response = _envelope(exc.status_code, [str(exc.detail)])
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
            errors.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
        return _envelope(status.HTTP_422_UNPROCESSABLE_ENTITY, errors, "Validation failed")

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, ["An unexpected error occurred"])


@lru_cache
def create_app() -> FastAPI:
    """Build the FastAPI application and every domain router."""

    settings = Settings.load()
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(
        title="Consignment Shop API",
        version="1.0.0",
        description="""
## Multi-tenant consignment shop API

- **Registration** : shop owner sign-up, consignor sign-up with a store code, approvals
- **Inventory** : consignors, categories, items
- **Sales** : transactions with consignor/shop split
- **Payouts & statements** : paying consignors, monthly statements, CSV exports
- **Portal** : read-only self-service for consignors

### Authentication
OAuth2 password flow with JWT bearer tokens, see `/auth/token`.

### Multi-tenant
Every request is scoped to the organization carried by the token.
        """,
        openapi_tags=[
            {"name": "auth", "description": "Tokens and current user"},
            {"name": "registration", "description": "Public sign-up"},
            {"name": "shop", "description": "Shop staff operations"},
            {"name": "portal", "description": "Consignor self-service"},
            {"name": "admin", "description": "Platform administration"},
        ],
        docs_url="/docs",
        redoc_url="/redoc",
    )

    ensure_schema_if_enabled()
    bootstrap_users_if_enabled()

    allowed_origins = settings.cors_allowed_origins or DEFAULT_ORIGINS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials="*" not in allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_exception_handlers(app)

    def _security_dependencies() -> list:
        # Authentication plus the default role rules on every shop route.
        return [Depends(optional_api_key), Depends(enforce_default_rbac)]

    app.include_router(auth_router.router)
    app.include_router(registration_router.router)

    shop_router = APIRouter(tags=["shop"], dependencies=_security_dependencies())
    shop_router.include_router(organization_router.router)
    shop_router.include_router(consignors_router.router)
    shop_router.include_router(categories_router.router)
    shop_router.include_router(items_router.router)
    shop_router.include_router(transactions_router.router)
    shop_router.include_router(payouts_router.router)
    shop_router.include_router(statements_router.router)
    shop_router.include_router(reports_router.router)
    shop_router.include_router(dashboard_router.router)
    app.include_router(shop_router)

    app.include_router(
        portal_router.router,
        dependencies=[Depends(optional_api_key), Depends(get_current_consignor_id)],
    )
    app.include_router(
        admin_router.router,
        dependencies=[Depends(optional_api_key), Depends(require_roles("admin"))],
    )

    @app.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
