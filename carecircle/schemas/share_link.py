"""Pydantic schemas for share links."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from carecircle.db.enums import ShareObjectType


class ShareLinkCreate(BaseModel):
    circle_id: UUID
    object_type: ShareObjectType
    object_id: UUID
    ttl_hours: int | None = Field(None, ge=1, description="Defaults to SHARE_LINK_DEFAULT_TTL_HOURS")
    max_access_count: int | None = Field(None, ge=1)


class ShareLinkCreated(BaseModel):
    """Issued link. The token is only ever returned here."""
    id: UUID
    token: str
    expires_at: datetime


class ShareLinkRead(BaseModel):
    id: UUID
    circle_id: UUID
    object_type: str
    object_id: UUID
    expires_at: datetime
    revoked_at: datetime | None
    max_access_count: int | None
    access_count: int
    last_accessed_at: datetime | None
    created_by: UUID
    created_at: datetime

    model_config = {"from_attributes": True}


class ShareResolveResponse(BaseModel):
    object_type: str
    object_id: UUID
    circle_id: UUID
