"""Pydantic schemas for the care inbox."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from carecircle.db.enums import HandoffType, TaskPriority


class TriageParams(BaseModel):
    """Destination-specific options; each destination reads only its own."""
    patient_id: UUID | None = None
    handoff_type: HandoffType = HandoffType.OTHER
    owner_user_id: UUID | None = None
    due_at: datetime | None = None
    priority: TaskPriority = TaskPriority.MED


class TriageRequest(BaseModel):
    # Plain string: unknown destinations are rejected by the service
    destination_type: str = Field(..., min_length=1, max_length=20)
    params: TriageParams = Field(default_factory=TriageParams)
    note: str | None = Field(None, max_length=2000)


class TriageResponse(BaseModel):
    item_id: UUID
    status: str
    destination_type: str
    destination_id: UUID | None


class AssignRequest(BaseModel):
    assignee_id: UUID


class InboxItemRead(BaseModel):
    id: UUID
    circle_id: UUID
    patient_id: UUID | None
    kind: str
    status: str
    assigned_to: UUID | None
    title: str | None
    note: str | None
    attachment_id: UUID | None
    created_by: UUID
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
