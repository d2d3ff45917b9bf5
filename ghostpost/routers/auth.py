from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ghostpost.core.config import get_settings
from ghostpost.core.rate_limiter import rate_limit_ip
from ghostpost.routers.dependencies import service
from ghostpost.services.auth_service import AuthService, RegistrationResume
from ghostpost.services.session_service import (
    SESSION_COOKIE_NAME,
    clear_registration_cookie,
    clear_session_cookie,
    delete_session,
    set_registration_cookie,
    set_session_cookie,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


@router.post("/login")
def login(body: LoginRequest, request: Request):
    rate_limit_ip(request, "auth:login", limit=get_settings().login_rate_limit, window_seconds=60)
    auth: AuthService = service(request, "auth_service")
    outcome = auth.login(body.email or "", body.password or "")

    if isinstance(outcome, RegistrationResume):
        reg = outcome.registration
        response = JSONResponse(
            {
                "success": True,
                "isTempRegistration": True,
                "tempReg": {
                    "id": reg.id,
                    "email": reg.email,
                    "firstName": reg.first_name,
                    "lastName": reg.last_name,
                    "currentStep": reg.current_step.name,
                },
                "isRegistrationComplete": False,
            }
        )
        set_registration_cookie(response, reg.id)
        return response

    user = outcome.user
    response = JSONResponse(
        {
            "success": True,
            "user": {
                "id": user.id,
                "email": user.email,
                "firstName": user.first_name,
                "lastName": user.last_name,
                "isSuperAdmin": bool(user.is_super_admin),
                "registrationStep": user.registration_step,
            },
            "isRegistrationComplete": outcome.is_registration_complete,
        }
    )
    if outcome.session_token:
        set_session_cookie(response, outcome.session_token)
    return response


@router.post("/logout")
def logout(request: Request):
    """Drop the server-side session and both cookies; fine to call when logged out."""
    delete_session((request.cookies.get(SESSION_COOKIE_NAME) or "").strip())
    response = JSONResponse({"success": True})
    clear_session_cookie(response)
    clear_registration_cookie(response)
    return response
