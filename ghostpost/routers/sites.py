from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from ghostpost.routers.dependencies import require_identity, service
from ghostpost.services.session_service import Identity

router = APIRouter(prefix="/api/sites", tags=["sites"])


class SelectSiteRequest(BaseModel):
    site_id: str | None = Field(None, alias="siteId")


@router.get("")
def list_sites(request: Request, identity: Identity = Depends(require_identity)):
    sites = service(request, "site_service").list_sites(identity)
    return {"sites": [{"id": s.id, "name": s.name, "url": s.url} for s in sites]}


@router.patch("/select")
def select_site(body: SelectSiteRequest, request: Request, identity: Identity = Depends(require_identity)):
    service(request, "site_service").select_site(identity, body.site_id)
    return {"success": True}
