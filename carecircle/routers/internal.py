"""
Internal endpoints for scheduled/cron operations.

Protected by X-Internal-Secret header.
Call from an external scheduler.
"""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from carecircle.core.deps import get_db, verify_internal_secret
from carecircle.db.uow import unit_of_work
from carecircle.services import notification_service, rate_limit_service, share_link_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/internal/scheduled",
    tags=["internal"],
    dependencies=[Depends(verify_internal_secret)],
)


class SweepResponse(BaseModel):
    deleted: int


@router.post("/outbox-retention", response_model=SweepResponse)
def outbox_retention(db: Session = Depends(get_db)):
    """Purge SENT/FAILED outbox entries past retention. PENDING is kept."""
    with unit_of_work(db):
        deleted = notification_service.purge_resolved(db)
    logger.info("Outbox retention sweep: deleted=%s", deleted)
    return SweepResponse(deleted=deleted)


@router.post("/rate-limit-retention", response_model=SweepResponse)
def rate_limit_retention(db: Session = Depends(get_db)):
    """Delete rate limit counters from finished windows."""
    with unit_of_work(db):
        deleted = rate_limit_service.purge_stale(db)
    logger.info("Rate limit retention sweep: deleted=%s", deleted)
    return SweepResponse(deleted=deleted)


@router.post("/share-link-retention", response_model=SweepResponse)
def share_link_retention(db: Session = Depends(get_db)):
    """Delete long-expired or long-revoked share links."""
    with unit_of_work(db):
        deleted = share_link_service.purge_stale(db)
    logger.info("Share link retention sweep: deleted=%s", deleted)
    return SweepResponse(deleted=deleted)
