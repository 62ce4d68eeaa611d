"""Pydantic schemas for binder items."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from carecircle.db.enums import BinderItemType


class BinderItemCreate(BaseModel):
    """Request to create a binder item."""
    type: BinderItemType
    title: str = Field(..., min_length=1, max_length=255)
    content_json: dict[str, Any] = {}
    patient_id: UUID | None = None


class BinderItemUpdate(BaseModel):
    """Request to edit a binder item (partial)."""
    title: str | None = Field(None, min_length=1, max_length=255)
    content_json: dict[str, Any] | None = None
    is_active: bool | None = None
    change_note: str | None = Field(None, max_length=500)


class BinderItemRead(BaseModel):
    id: UUID
    circle_id: UUID
    patient_id: UUID | None
    type: str
    title: str
    content_json: dict[str, Any]
    is_active: bool
    current_revision: int
    created_by: UUID
    updated_by: UUID | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
