"""Binder service - reference records with revision history."""

from uuid import UUID

from sqlalchemy.orm import Session

from carecircle.core.access import AccessPredicate, require_member, require_role
from carecircle.core.errors import InvalidArgumentError, NotFoundError
from carecircle.db.enums import AuditEventType, BinderItemType, Role
from carecircle.db.models import BinderItem
from carecircle.schemas.binder import BinderItemCreate, BinderItemUpdate
from carecircle.services import audit_service, revision_service
from carecircle.services.revision_service import BINDER_ITEM, RevisionResult


def get_binder_item(db: Session, item_id: UUID) -> BinderItem:
    item = db.query(BinderItem).filter(BinderItem.id == item_id).first()
    if not item:
        raise NotFoundError("Binder item not found")
    return item


def new_binder_item(
    db: Session,
    circle_id: UUID,
    created_by: UUID,
    item_type: BinderItemType,
    title: str,
    content: dict | None = None,
    patient_id: UUID | None = None,
) -> BinderItem:
    """Insert an active binder item at revision 0 (no access check, no audit)."""
    item = BinderItem(
        circle_id=circle_id,
        patient_id=patient_id,
        type=BinderItemType(item_type).value,
        title=title[:255],
        content_json=audit_service.json_document(content),
        is_active=True,
        current_revision=0,
        created_by=created_by,
        updated_by=created_by,
    )
    db.add(item)
    db.flush()
    return item


def create_binder_item(
    db: Session,
    access: AccessPredicate,
    circle_id: UUID,
    actor_id: UUID,
    data: BinderItemCreate,
) -> BinderItem:
    require_role(access, circle_id, actor_id, Role.CONTRIBUTOR)
    item = new_binder_item(
        db,
        circle_id=circle_id,
        created_by=actor_id,
        item_type=data.type,
        title=data.title,
        content=data.content_json,
        patient_id=data.patient_id,
    )
    audit_service.record(
        db,
        circle_id=circle_id,
        actor_user_id=actor_id,
        event_type=AuditEventType.BINDER_ITEM_CREATED,
        object_type=BINDER_ITEM.object_type,
        object_id=item.id,
        metadata={"type": item.type},
    )
    return item


def update_binder_item(
    db: Session,
    access: AccessPredicate,
    item_id: UUID,
    actor_id: UUID,
    data: BinderItemUpdate,
) -> RevisionResult:
    """
    Edit a binder item.

    Content changes append a revision; title and is_active are plain fields
    (deactivating an item records no history).
    """
    item = get_binder_item(db, item_id)
    require_role(access, item.circle_id, actor_id, Role.CONTRIBUTOR)

    fields = data.model_dump(exclude_unset=True, exclude={"content_json", "change_note"})
    if any(value is None for value in fields.values()):
        raise InvalidArgumentError("Title and is_active cannot be null")

    new_content = data.content_json if data.content_json is not None else item.content_json
    result = revision_service.update_content(
        db,
        BINDER_ITEM,
        item_id,
        new_content,
        editor_id=actor_id,
        fields=fields,
        change_note=data.change_note,
    )
    if result.changed:
        metadata = {"revision": result.revision, "content_changed": result.content_changed}
        if "is_active" in fields:
            metadata["is_active"] = fields["is_active"]
        audit_service.record(
            db,
            circle_id=item.circle_id,
            actor_user_id=actor_id,
            event_type=AuditEventType.BINDER_ITEM_UPDATED,
            object_type=BINDER_ITEM.object_type,
            object_id=item.id,
            metadata=metadata,
        )
    return result


def list_revisions(db: Session, access: AccessPredicate, item_id: UUID, user_id: UUID) -> list:
    item = get_binder_item(db, item_id)
    require_member(access, item.circle_id, user_id)
    return revision_service.list_revisions(db, BINDER_ITEM, item_id)


def get_revision(
    db: Session, access: AccessPredicate, item_id: UUID, revision: int, user_id: UUID
):
    item = get_binder_item(db, item_id)
    require_member(access, item.circle_id, user_id)
    return revision_service.get_revision(db, BINDER_ITEM, item_id, revision)
