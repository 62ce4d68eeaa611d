"""Binder API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from carecircle.core.access import AccessPredicate
from carecircle.core.deps import get_access, get_current_user_id, get_db
from carecircle.db.uow import unit_of_work
from carecircle.schemas.binder import BinderItemRead, BinderItemUpdate
from carecircle.schemas.handoff import RevisionRead
from carecircle.services import binder_service

router = APIRouter()


@router.patch("/{item_id}", response_model=BinderItemRead)
def update_binder_item(
    item_id: UUID,
    data: BinderItemUpdate,
    user_id: UUID = Depends(get_current_user_id),
    access: AccessPredicate = Depends(get_access),
    db: Session = Depends(get_db),
):
    """Edit a binder item. Content changes append a revision."""
    with unit_of_work(db):
        result = binder_service.update_binder_item(db, access, item_id, user_id, data)
    db.refresh(result.document)
    return result.document


@router.get("/{item_id}/revisions", response_model=list[RevisionRead])
def list_revisions(
    item_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    access: AccessPredicate = Depends(get_access),
    db: Session = Depends(get_db),
):
    return binder_service.list_revisions(db, access, item_id, user_id)


@router.get("/{item_id}/revisions/{revision}", response_model=RevisionRead)
def get_revision(
    item_id: UUID,
    revision: int,
    user_id: UUID = Depends(get_current_user_id),
    access: AccessPredicate = Depends(get_access),
    db: Session = Depends(get_db),
):
    return binder_service.get_revision(db, access, item_id, revision, user_id)
