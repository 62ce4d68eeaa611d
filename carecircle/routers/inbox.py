"""Care inbox API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from carecircle.core.access import AccessPredicate
from carecircle.core.deps import get_access, get_current_user_id, get_db
from carecircle.db.uow import unit_of_work
from carecircle.schemas.inbox import AssignRequest, InboxItemRead, TriageRequest, TriageResponse
from carecircle.services import inbox_service

router = APIRouter()


@router.post("/{item_id}/assign", response_model=InboxItemRead)
def assign_item(
    item_id: UUID,
    data: AssignRequest,
    user_id: UUID = Depends(get_current_user_id),
    access: AccessPredicate = Depends(get_access),
    db: Session = Depends(get_db),
):
    with unit_of_work(db):
        item = inbox_service.assign_item(db, access, item_id, user_id, data.assignee_id)
    db.refresh(item)
    return item


@router.post("/{item_id}/triage", response_model=TriageResponse)
def triage_item(
    item_id: UUID,
    data: TriageRequest,
    user_id: UUID = Depends(get_current_user_id),
    access: AccessPredicate = Depends(get_access),
    db: Session = Depends(get_db),
):
    """
    Route an inbox item to HANDOFF, TASK, BINDER or ARCHIVE.

    One-shot: a second triage returns 409 already_triaged.
    """
    with unit_of_work(db):
        result = inbox_service.triage_item(
            db,
            access,
            item_id,
            user_id,
            data.destination_type,
            params=data.params,
            note=data.note,
        )
        response = TriageResponse(
            item_id=result.item.id,
            status=result.item.status,
            destination_type=result.destination_type.value,
            destination_id=result.destination_id,
        )
    return response
