"""Attachment re-parenting. Upload and storage live outside this service."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from carecircle.core.errors import InvalidArgumentError, NotFoundError
from carecircle.db.enums import AttachmentParentType
from carecircle.db.models import Attachment

logger = logging.getLogger(__name__)


def reparent_attachment(
    db: Session,
    attachment_id: UUID,
    parent_type: AttachmentParentType,
    parent_id: UUID,
    circle_id: UUID | None = None,
) -> Attachment:
    """
    Link an attachment to a handoff or binder item.

    When ``circle_id`` is given the attachment must belong to that circle.
    """
    attachment = db.query(Attachment).filter(Attachment.id == attachment_id).first()
    if not attachment:
        raise NotFoundError("Attachment not found")
    if circle_id is not None and attachment.circle_id != circle_id:
        raise InvalidArgumentError("Attachment belongs to another circle")

    if parent_type == AttachmentParentType.HANDOFF:
        attachment.handoff_id = parent_id
    elif parent_type == AttachmentParentType.BINDER_ITEM:
        attachment.binder_item_id = parent_id
    else:
        raise InvalidArgumentError(f"Unsupported attachment parent: {parent_type}")

    db.flush()
    logger.info(
        "Attachment %s linked to %s %s", attachment.id, parent_type.value, parent_id
    )
    return attachment
