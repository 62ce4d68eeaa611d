"""
Revisioned document store shared by handoffs and binder items.

Every committed content change appends exactly one revision row holding the
content as it was *before* the change, numbered ``current_revision + 1``.

Write path (one transaction, caller commits):
1. Lock the document row (SELECT ... FOR UPDATE; SQLite serializes writers
   via BEGIN IMMEDIATE).
2. Inside a SAVEPOINT: insert the revision row, then a compare-and-swap
   UPDATE guarded on the expected ``current_revision``.
3. If the CAS touches no row or the revision insert hits the unique
   constraint, roll back the savepoint, reload, and retry once before
   raising ConflictError.
"""

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from carecircle.core.errors import ConflictError, NotFoundError
from carecircle.db.enums import AuditObjectType
from carecircle.db.models import BinderItem, BinderItemRevision, Handoff, HandoffRevision
from carecircle.services.audit_service import canonical_json, json_document
from carecircle.utils.clock import utcnow

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 2


@dataclass(frozen=True)
class DocumentKind:
    """Binds a document model to its revision table."""

    name: str
    model: type
    revision_model: type
    parent_key: str
    object_type: AuditObjectType

    def revision_parent_column(self):
        return getattr(self.revision_model, self.parent_key)


HANDOFF = DocumentKind(
    name="handoff",
    model=Handoff,
    revision_model=HandoffRevision,
    parent_key="handoff_id",
    object_type=AuditObjectType.HANDOFF,
)

BINDER_ITEM = DocumentKind(
    name="binder_item",
    model=BinderItem,
    revision_model=BinderItemRevision,
    parent_key="binder_item_id",
    object_type=AuditObjectType.BINDER_ITEM,
)


@dataclass
class RevisionResult:
    document: Any
    revision: int
    content_changed: bool
    fields_changed: bool

    @property
    def changed(self) -> bool:
        return self.content_changed or self.fields_changed


class _StaleRevision(Exception):
    """CAS guard matched no row."""


def content_equal(a: dict | None, b: dict | None) -> bool:
    """Semantic JSON equality (key order and whitespace ignored)."""
    return canonical_json(a) == canonical_json(b)


def get_document(db: Session, kind: DocumentKind, doc_id: UUID, lock: bool = False):
    query = db.query(kind.model).filter(kind.model.id == doc_id)
    if lock:
        query = query.populate_existing().with_for_update()
    return query.first()


def update_content(
    db: Session,
    kind: DocumentKind,
    doc_id: UUID,
    new_content: dict,
    editor_id: UUID,
    fields: dict[str, Any] | None = None,
    change_note: str | None = None,
    force: bool = False,
) -> RevisionResult:
    """
    Apply a content change (and optional non-history fields) to a document.

    Identical content records no revision but still applies ``fields``.
    ``force`` records a revision even when content is unchanged (first
    publish of a handoff always yields revision 1).

    Raises:
        NotFoundError: document missing
        ConflictError: revision race lost twice
    """
    fields = dict(fields or {})
    new_content = json_document(new_content)

    for attempt in range(1, MAX_ATTEMPTS + 1):
        doc = get_document(db, kind, doc_id, lock=True)
        if doc is None:
            raise NotFoundError(f"{kind.name.replace('_', ' ').capitalize()} not found")

        fields_changed = any(getattr(doc, key) != value for key, value in fields.items())

        if not force and content_equal(doc.content_json, new_content):
            if fields_changed:
                for key, value in fields.items():
                    setattr(doc, key, value)
                doc.updated_by = editor_id
                db.flush()
            return RevisionResult(
                document=doc,
                revision=doc.current_revision,
                content_changed=False,
                fields_changed=fields_changed,
            )

        expected = doc.current_revision
        next_revision = expected + 1
        try:
            with db.begin_nested():
                db.add(
                    kind.revision_model(
                        **{kind.parent_key: doc.id},
                        revision=next_revision,
                        content_json=json_document(doc.content_json),
                        edited_by=editor_id,
                        change_note=change_note,
                    )
                )
                db.flush()
                result = db.execute(
                    update(kind.model)
                    .where(
                        kind.model.id == doc_id,
                        kind.model.current_revision == expected,
                    )
                    .values(
                        content_json=new_content,
                        current_revision=next_revision,
                        updated_by=editor_id,
                        updated_at=utcnow(),
                        **fields,
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    raise _StaleRevision()
        except (IntegrityError, _StaleRevision):
            logger.info(
                "Revision race on %s %s at revision %s (attempt %s)",
                kind.name,
                doc_id,
                next_revision,
                attempt,
            )
            continue

        db.refresh(doc)
        return RevisionResult(
            document=doc,
            revision=next_revision,
            content_changed=True,
            fields_changed=fields_changed,
        )

    raise ConflictError(f"Concurrent update on {kind.name.replace('_', ' ')}, please retry")


def list_revisions(db: Session, kind: DocumentKind, doc_id: UUID) -> list:
    """All revisions of a document, oldest first."""
    return (
        db.query(kind.revision_model)
        .filter(kind.revision_parent_column() == doc_id)
        .order_by(kind.revision_model.revision)
        .all()
    )


def get_revision(db: Session, kind: DocumentKind, doc_id: UUID, revision: int):
    row = (
        db.query(kind.revision_model)
        .filter(
            kind.revision_parent_column() == doc_id,
            kind.revision_model.revision == revision,
        )
        .first()
    )
    if not row:
        raise NotFoundError("Revision not found")
    return row
