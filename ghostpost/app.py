"""FastAPI application wiring for the Ghost Post core API."""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from ghostpost import __version__
from ghostpost.core.config import get_settings
from ghostpost.core.errors import ServiceError
from ghostpost.core.logging_config import configure_logging
from ghostpost.routers import auth as auth_router
from ghostpost.routers import members as members_router
from ghostpost.routers import registration as registration_router
from ghostpost.routers import sites as sites_router
from ghostpost.routers import slug as slug_router
from ghostpost.routers import users as users_router
from ghostpost.services.auth_service import AuthService
from ghostpost.services.membership_service import MembershipService
from ghostpost.services.permission_service import PermissionService
from ghostpost.services.registration_service import RegistrationService
from ghostpost.services.session_service import SessionResolver
from ghostpost.services.site_service import SiteService
from ghostpost.services.slug_service import SlugService

logger = logging.getLogger(__name__)

INTERNAL_ERROR = "Internal server error"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject baseline security headers (anti clickjacking, sniffing, referrer policy)."""

    def __init__(self, app, *, enforce_hsts: bool) -> None:
        super().__init__(app)
        self._enforce_hsts = enforce_hsts

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer-when-downgrade")
        response.headers.setdefault("Cache-Control", "no-store")
        if self._enforce_hsts:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response


async def _service_error(request: Request, exc: ServiceError) -> JSONResponse:
    return JSONResponse({"error": exc.reason}, status_code=exc.status_code)


async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    location = ".".join(str(part) for part in errors[0].get("loc", ())[1:]) if errors else ""
    reason = f"Invalid request: {location}" if location else "Invalid request"
    return JSONResponse({"error": reason}, status_code=400)


async def _internal_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse({"error": INTERNAL_ERROR}, status_code=500)


def _configure_services(app: FastAPI) -> None:
    memberships = MembershipService()
    slugs = SlugService()
    app.state.session_resolver = SessionResolver()
    app.state.membership_service = memberships
    app.state.permission_service = PermissionService(memberships)
    app.state.site_service = SiteService()
    app.state.slug_service = slugs
    app.state.registration_service = RegistrationService(slug_service=slugs)
    app.state.auth_service = AuthService()


def create_app() -> FastAPI:
    """Factory compatible with uvicorn/gunicorn (``--factory``)."""
    settings = get_settings()
    configure_logging()

    app = FastAPI(title="Ghost Post Core API", version=__version__)

    allowed_cors = set(settings.cors_origins)
    if settings.app_env != "prod":
        allowed_cors.update({"http://localhost:3000", "http://127.0.0.1:3000"})
    if allowed_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=sorted(allowed_cors),
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            allow_headers=["*"],
        )
    app.add_middleware(SecurityHeadersMiddleware, enforce_hsts=settings.app_env == "prod")

    app.add_exception_handler(ServiceError, _service_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(Exception, _internal_error)

    _configure_services(app)

    @app.get("/healthz", tags=["health"])
    def healthz() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(auth_router.router)
    app.include_router(members_router.router)
    app.include_router(users_router.router)
    app.include_router(sites_router.router)
    app.include_router(slug_router.router)
    app.include_router(registration_router.router)
    return app
