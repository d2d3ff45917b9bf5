from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from ghostpost.routers.dependencies import require_identity, service
from ghostpost.services.membership_service import MembershipService
from ghostpost.services.session_service import Identity

router = APIRouter(prefix="/api/settings/users", tags=["members"])


def _memberships(request: Request) -> MembershipService:
    return service(request, "membership_service")


@router.get("")
def list_members(request: Request, identity: Identity = Depends(require_identity)):
    members = _memberships(request).list_members(identity)
    return {
        "members": [
            {
                "id": m.id,
                "userId": m.user_id,
                "email": m.user.email if m.user else None,
                "status": m.status.value,
                "isOwner": bool(m.is_owner),
                "role": {"id": m.role.id, "name": m.role.name} if m.role else None,
                "lastSelectedSiteId": m.last_selected_site_id,
            }
            for m in members
        ]
    }


@router.post("/{member_id}/suspend")
def suspend_member(member_id: str, request: Request, identity: Identity = Depends(require_identity)):
    _memberships(request).suspend(identity, member_id)
    return {"success": True}


@router.post("/{member_id}/activate")
def activate_member(member_id: str, request: Request, identity: Identity = Depends(require_identity)):
    _memberships(request).activate(identity, member_id)
    return {"success": True}
