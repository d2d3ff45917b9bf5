from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ghostpost.core.errors import ServiceError
from ghostpost.routers.dependencies import registration_id, service
from ghostpost.services.registration_service import (
    RegistrationExpired,
    RegistrationNotFound,
    RegistrationService,
)
from ghostpost.services.session_service import (
    clear_registration_cookie,
    set_registration_cookie,
    set_session_cookie,
)

router = APIRouter(prefix="/api/auth", tags=["registration"])


class RegisterRequest(BaseModel):
    first_name: str | None = Field(None, alias="firstName")
    last_name: str | None = Field(None, alias="lastName")
    email: str | None = None
    phone_number: str | None = Field(None, alias="phoneNumber")
    password: str | None = None
    consent: bool = False


class VerifyCodeRequest(BaseModel):
    code: str | None = None


class AccountSetupRequest(BaseModel):
    name: str | None = None
    slug: str | None = None


class InterviewRequest(BaseModel):
    interview_data: dict[str, Any] | None = Field(None, alias="interviewData")
    is_complete: Any = Field(False, alias="isComplete")


def _registrations(request: Request) -> RegistrationService:
    return service(request, "registration_service")


def _dropped_registration(exc: ServiceError) -> JSONResponse:
    """Answer for a registration that is gone; the stale cookie goes with it."""
    response = JSONResponse({"error": exc.reason}, status_code=exc.status_code)
    clear_registration_cookie(response)
    return response


@router.post("/register")
def register(body: RegisterRequest, request: Request):
    reg = _registrations(request).start(
        first_name=body.first_name or "",
        last_name=body.last_name or "",
        email=body.email or "",
        password=body.password or "",
        consent=body.consent,
        phone_number=body.phone_number,
    )
    response = JSONResponse(
        {
            "success": True,
            "tempRegId": reg.id,
            "email": reg.email,
            "firstName": reg.first_name,
            "lastName": reg.last_name,
        }
    )
    set_registration_cookie(response, reg.id)
    return response


@router.post("/otp/send")
def send_code(request: Request, reg_id: str | None = Depends(registration_id)):
    try:
        expires_at = _registrations(request).issue_code(reg_id)
    except RegistrationNotFound as exc:
        return _dropped_registration(exc)
    return {"success": True, "expiresAt": expires_at.isoformat()}


@router.post("/otp/verify")
def verify_code(body: VerifyCodeRequest, request: Request, reg_id: str | None = Depends(registration_id)):
    try:
        step = _registrations(request).verify_code(reg_id, body.code)
    except RegistrationNotFound as exc:
        return _dropped_registration(exc)
    return {"success": True, "currentStep": step.name}


@router.post("/account/create")
def account_setup(body: AccountSetupRequest, request: Request, reg_id: str | None = Depends(registration_id)):
    try:
        reg = _registrations(request).setup_account(reg_id, body.name, body.slug)
    except RegistrationNotFound as exc:
        return _dropped_registration(exc)
    return {"success": True, "accountSetup": {"name": reg.account_name, "slug": reg.account_slug}}


@router.post("/registration/interview")
def save_interview(body: InterviewRequest, request: Request, reg_id: str | None = Depends(registration_id)):
    try:
        _registrations(request).save_interview(reg_id, body.interview_data, is_complete=body.is_complete)
    except RegistrationNotFound as exc:
        return _dropped_registration(exc)
    return {"success": True}


@router.get("/registration/status")
def registration_status(request: Request, reg_id: str | None = Depends(registration_id)):
    payload = {"success": True, **_registrations(request).status(reg_id)}
    response = JSONResponse(payload)
    if reg_id and not payload["hasTempRegistration"]:
        clear_registration_cookie(response)
    return response


@router.post("/registration/finalize")
def finalize(request: Request, reg_id: str | None = Depends(registration_id)):
    try:
        result = _registrations(request).finalize(reg_id)
    except (RegistrationNotFound, RegistrationExpired) as exc:
        return _dropped_registration(exc)
    response = JSONResponse(
        {
            "success": True,
            "user": {
                "id": result.user.id,
                "email": result.user.email,
                "firstName": result.user.first_name,
                "lastName": result.user.last_name,
            },
            "account": {"id": result.account.id, "name": result.account.name, "slug": result.account.slug},
        }
    )
    clear_registration_cookie(response)
    set_session_cookie(response, result.session_token)
    return response
