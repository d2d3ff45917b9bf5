from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel

from ghostpost.core.config import get_settings
from ghostpost.core.errors import ValidationError
from ghostpost.core.rate_limiter import rate_limit_ip
from ghostpost.routers.dependencies import service
from ghostpost.services.slug_service import SlugService

router = APIRouter(prefix="/api/auth/account", tags=["slug"])


class SlugCheckRequest(BaseModel):
    slug: str | None = None


@router.post("/check-slug")
def check_slug(body: SlugCheckRequest, request: Request):
    rate_limit_ip(request, "slug:check", limit=get_settings().slug_check_rate_limit, window_seconds=60)
    if not body.slug:
        raise ValidationError("Slug is required")
    svc: SlugService = service(request, "slug_service")
    return svc.check(body.slug).as_dict()
