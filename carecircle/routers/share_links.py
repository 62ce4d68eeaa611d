"""Share link endpoints: member-facing management and the public resolver."""

import logging
from datetime import timedelta
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from carecircle.core.access import AccessPredicate
from carecircle.core.deps import get_access, get_current_user_id, get_db
from carecircle.core.security import hash_value
from carecircle.db.enums import ShareObjectType
from carecircle.db.uow import unit_of_work
from carecircle.schemas.share_link import (
    ShareLinkCreate,
    ShareLinkCreated,
    ShareLinkRead,
    ShareResolveResponse,
)
from carecircle.services import audit_service, rate_limit_service, share_link_service
from carecircle.services.share_link_service import RequestMeta

logger = logging.getLogger(__name__)

router = APIRouter(tags=["share-links"])


@router.post("/share-links", response_model=ShareLinkCreated, status_code=201)
def create_share_link(
    data: ShareLinkCreate,
    user_id: UUID = Depends(get_current_user_id),
    access: AccessPredicate = Depends(get_access),
    db: Session = Depends(get_db),
):
    """Issue a share link. The token is returned only in this response."""
    ttl = timedelta(hours=data.ttl_hours) if data.ttl_hours else None
    with unit_of_work(db):
        link = share_link_service.issue_link(
            db,
            access,
            circle_id=data.circle_id,
            actor_id=user_id,
            object_type=data.object_type,
            object_id=data.object_id,
            ttl=ttl,
            max_access_count=data.max_access_count,
        )
        response = ShareLinkCreated(id=link.id, token=link.token, expires_at=link.expires_at)
    return response


@router.get("/share-links", response_model=list[ShareLinkRead])
def list_share_links(
    circle_id: UUID,
    object_type: ShareObjectType | None = None,
    object_id: UUID | None = None,
    user_id: UUID = Depends(get_current_user_id),
    access: AccessPredicate = Depends(get_access),
    db: Session = Depends(get_db),
):
    return share_link_service.list_links(
        db, access, circle_id, user_id, object_type=object_type, object_id=object_id
    )


@router.post("/share-links/{link_id}/revoke", response_model=ShareLinkRead)
def revoke_share_link(
    link_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    access: AccessPredicate = Depends(get_access),
    db: Session = Depends(get_db),
):
    with unit_of_work(db):
        link = share_link_service.revoke_link(db, access, link_id, user_id)
    db.refresh(link)
    return link


@router.get("/share/{token}", response_model=ShareResolveResponse)
def resolve_share_link(
    token: str,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Public resolver (no login).

    Rate limited per hashed client IP; the counter commits even when the
    request is rejected.
    """
    ip_hash = hash_value(audit_service.get_client_ip(request))
    meta = RequestMeta(
        ip_hash=ip_hash,
        user_agent_hash=hash_value(audit_service.get_user_agent(request)),
    )

    with unit_of_work(db):
        decision = rate_limit_service.check_endpoint(
            db,
            subject=f"ip:{ip_hash or 'unknown'}",
            endpoint=rate_limit_service.ENDPOINT_SHARE_RESOLVE,
        )
    decision.raise_if_limited()

    with unit_of_work(db):
        resolved = share_link_service.resolve_link(db, token, meta)

    return ShareResolveResponse(
        object_type=resolved.object_type,
        object_id=resolved.object_id,
        circle_id=resolved.circle_id,
    )
