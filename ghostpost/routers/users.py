from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from ghostpost.routers.dependencies import require_identity, service
from ghostpost.services.session_service import Identity

router = APIRouter(prefix="/api", tags=["users"])


class PreferenceRequest(BaseModel):
    site_id: str | None = Field(None, alias="siteId")
    language: str | None = None
    timezone: str | None = None


@router.get("/user/permissions")
def user_permissions(request: Request, identity: Identity = Depends(require_identity)):
    return service(request, "permission_service").describe(identity).as_dict()


@router.get("/user-preferences")
def get_user_preferences(request: Request, siteId: str | None = None, identity: Identity = Depends(require_identity)):
    return service(request, "site_service").get_preference(identity, siteId)


@router.put("/user-preferences")
def put_user_preferences(body: PreferenceRequest, request: Request, identity: Identity = Depends(require_identity)):
    return service(request, "site_service").set_preference(
        identity,
        body.site_id,
        language=body.language,
        timezone=body.timezone,
    )
