"""Pydantic schemas for handoffs."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from carecircle.db.enums import HandoffType, TaskPriority


class NextStep(BaseModel):
    """Follow-up action proposed by a handoff; becomes a task on first publish."""
    action: str = Field(..., min_length=1, max_length=255)
    suggested_owner: UUID | None = None
    due: datetime | None = None
    priority: TaskPriority = TaskPriority.MED


class StructuredBrief(BaseModel):
    """
    Published handoff content.

    Sections beyond the ones validated here (status, changes,
    questions_for_clinician, ...) are stored as given.
    """
    model_config = ConfigDict(extra="allow")

    title: str = Field(..., min_length=1, max_length=80)
    summary: str | None = Field(None, max_length=4000)
    keywords: list[str] = []
    next_steps: list[NextStep] = []


class HandoffPublish(BaseModel):
    """Request to publish (or republish) a handoff."""
    structured_json: StructuredBrief
    change_note: str | None = Field(None, max_length=500)


class HandoffUpdate(BaseModel):
    """Request to edit a handoff (partial)."""
    title: str | None = Field(None, min_length=1, max_length=80)
    summary: str | None = Field(None, max_length=4000)
    keywords: list[str] | None = None
    type: HandoffType | None = None
    content_json: dict[str, Any] | None = None
    change_note: str | None = Field(None, max_length=500)


class HandoffRead(BaseModel):
    id: UUID
    circle_id: UUID
    patient_id: UUID | None
    type: str
    title: str
    summary: str | None
    keywords: list[str]
    content_json: dict[str, Any]
    status: str
    published_at: datetime | None
    current_revision: int
    created_by: UUID
    updated_by: UUID | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PublishResponse(BaseModel):
    handoff_id: UUID
    revision: int
    published_at: datetime
    tasks_created: int
    notifications_queued: int


class RevisionRead(BaseModel):
    """One immutable revision (content as it was before the change)."""
    revision: int
    content_json: dict[str, Any]
    edited_by: UUID
    edited_at: datetime
    change_note: str | None

    model_config = {"from_attributes": True}


class ReadReceiptResponse(BaseModel):
    handoff_id: UUID
    user_id: UUID
    read_at: datetime
