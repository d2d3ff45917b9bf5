from __future__ import annotations

from fastapi import Request

from ghostpost.core.errors import Unauthenticated
from ghostpost.services.session_service import (
    REGISTRATION_COOKIE_NAME,
    SESSION_COOKIE_NAME,
    Identity,
    SessionResolver,
)


def service(request: Request, name: str):
    svc = getattr(getattr(request.app, "state", None), name, None)
    if svc is None:
        raise RuntimeError(f"{name} not configured")
    return svc


def require_identity(request: Request) -> Identity:
    resolver: SessionResolver = service(request, "session_resolver")
    identity = resolver.resolve(request.cookies.get(SESSION_COOKIE_NAME))
    if identity is None:
        raise Unauthenticated("Unauthorized")
    return identity


def registration_id(request: Request) -> str | None:
    resolver: SessionResolver = service(request, "session_resolver")
    return resolver.resolve_registration(request.cookies.get(REGISTRATION_COOKIE_NAME))
