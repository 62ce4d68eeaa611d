"""Handoff API endpoints."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from carecircle.core.access import AccessPredicate
from carecircle.core.deps import get_access, get_current_user_id, get_db
from carecircle.core.structured_logging import build_log_context
from carecircle.db.uow import unit_of_work
from carecircle.schemas.handoff import (
    HandoffPublish,
    HandoffRead,
    HandoffUpdate,
    PublishResponse,
    ReadReceiptResponse,
    RevisionRead,
)
from carecircle.services import handoff_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/{handoff_id}/publish", response_model=PublishResponse)
def publish_handoff(
    handoff_id: UUID,
    data: HandoffPublish,
    request: Request,
    user_id: UUID = Depends(get_current_user_id),
    access: AccessPredicate = Depends(get_access),
    db: Session = Depends(get_db),
):
    """Publish a handoff; the first publish records revision 1."""
    with unit_of_work(db):
        result = handoff_service.publish_handoff(db, access, handoff_id, user_id, data)

    logger.info(
        "handoff_published",
        extra=build_log_context(
            user_id=user_id,
            circle_id=result.handoff.circle_id,
            object_type="handoff",
            object_id=handoff_id,
            route=request.url.path,
        ),
    )
    return PublishResponse(
        handoff_id=handoff_id,
        revision=result.revision,
        published_at=result.published_at,
        tasks_created=result.tasks_created,
        notifications_queued=result.notifications_queued,
    )


@router.patch("/{handoff_id}", response_model=HandoffRead)
def update_handoff(
    handoff_id: UUID,
    data: HandoffUpdate,
    user_id: UUID = Depends(get_current_user_id),
    access: AccessPredicate = Depends(get_access),
    db: Session = Depends(get_db),
):
    """Edit a handoff. Content edits to published handoffs append a revision."""
    with unit_of_work(db):
        result = handoff_service.update_handoff(db, access, handoff_id, user_id, data)
    db.refresh(result.document)
    return result.document


@router.get("/{handoff_id}/revisions", response_model=list[RevisionRead])
def list_revisions(
    handoff_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    access: AccessPredicate = Depends(get_access),
    db: Session = Depends(get_db),
):
    """Revision history, oldest first."""
    return handoff_service.list_revisions(db, access, handoff_id, user_id)


@router.get("/{handoff_id}/revisions/{revision}", response_model=RevisionRead)
def get_revision(
    handoff_id: UUID,
    revision: int,
    user_id: UUID = Depends(get_current_user_id),
    access: AccessPredicate = Depends(get_access),
    db: Session = Depends(get_db),
):
    return handoff_service.get_revision(db, access, handoff_id, revision, user_id)


@router.post("/{handoff_id}/read", response_model=ReadReceiptResponse)
def mark_read(
    handoff_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    access: AccessPredicate = Depends(get_access),
    db: Session = Depends(get_db),
):
    """Record a read receipt (idempotent)."""
    with unit_of_work(db):
        receipt = handoff_service.mark_read(db, access, handoff_id, user_id)
        response = ReadReceiptResponse(
            handoff_id=receipt.handoff_id,
            user_id=receipt.user_id,
            read_at=receipt.read_at,
        )
    return response
