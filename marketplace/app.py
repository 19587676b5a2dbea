from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from marketplace.core.config import get_settings
from marketplace.core.logging import configure_logging
from marketplace.domain.errors import (
    AccountNotFound,
    ApplicationNotFound,
    IllegalTransition,
    PolicyRejection,
    StoreUnavailable,
    UnacknowledgedOrders,
    UniqueConstraintViolation,
    UsernameUnavailable,
)
from marketplace.routers import admin as admin_router
from marketplace.routers import auth as auth_router
from marketplace.routers import vendors as vendors_router
from marketplace.routers.serializers import order_json

logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject baseline security headers (anti clickjacking, nosniff, referrer policy)."""

    def __init__(self, app, *, enforce_hsts: bool) -> None:
        super().__init__(app)
        self._enforce_hsts = enforce_hsts

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer-when-downgrade")
        if self._enforce_hsts:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response


def _error(status_code: int, exc, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.__class__.__name__, "detail": exc.message, **extra},
    )


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(UnacknowledgedOrders)
    async def unacknowledged_orders(request: Request, exc: UnacknowledgedOrders):
        return _error(409, exc, orders=[order_json(order) for order in exc.orders])

    @app.exception_handler(PolicyRejection)
    async def policy_rejection(request: Request, exc: PolicyRejection):
        return _error(409, exc)

    @app.exception_handler(IllegalTransition)
    async def illegal_transition(request: Request, exc: IllegalTransition):
        return _error(409, exc, current=exc.current, transition=exc.transition)

    @app.exception_handler(UniqueConstraintViolation)
    async def unique_violation(request: Request, exc: UniqueConstraintViolation):
        return _error(409, exc)

    @app.exception_handler(UsernameUnavailable)
    async def username_unavailable(request: Request, exc: UsernameUnavailable):
        return _error(409, exc)

    @app.exception_handler(AccountNotFound)
    async def account_not_found(request: Request, exc: AccountNotFound):
        return _error(404, exc)

    @app.exception_handler(ApplicationNotFound)
    async def application_not_found(request: Request, exc: ApplicationNotFound):
        return _error(404, exc)

    @app.exception_handler(StoreUnavailable)
    async def store_unavailable(request: Request, exc: StoreUnavailable):
        logger.error("store unavailable on %s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=503,
            content={"error": "StoreUnavailable", "detail": "Service temporarily unavailable. Please try again."},
        )


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Marketplace Identity & Vendor API")

    allowed_cors = {settings.public_base_url}
    if settings.app_env != "prod":
        allowed_cors.update(
            {
                "http://localhost:8000",
                "http://127.0.0.1:8000",
                "http://localhost:5173",
                "http://127.0.0.1:5173",
            }
        )
    allowed_cors = {origin for origin in allowed_cors if origin}
    if allowed_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=sorted(allowed_cors),
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            allow_headers=["*"],
        )
    app.add_middleware(SecurityHeadersMiddleware, enforce_hsts=settings.app_env == "prod")

    _register_exception_handlers(app)
    app.include_router(auth_router.router)
    app.include_router(vendors_router.router)
    app.include_router(admin_router.router)

    @app.get("/health")
    def health():
        return {"ok": True}

    return app


app = create_app()
