"""Task service - tasks spawned from handoffs and inbox triage."""

from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from carecircle.core.errors import InvalidArgumentError
from carecircle.db.enums import TaskPriority, TaskStatus
from carecircle.db.models import Task
from carecircle.services import notification_service
from carecircle.utils.clock import ensure_utc


def _coerce_priority(priority: TaskPriority | str | None) -> TaskPriority:
    if priority is None:
        return TaskPriority.MED
    try:
        return TaskPriority(priority)
    except ValueError:
        raise InvalidArgumentError(f"Invalid task priority: {priority}")


def create_task(
    db: Session,
    circle_id: UUID,
    created_by: UUID,
    title: str,
    owner_user_id: UUID | None = None,
    description: str | None = None,
    due_at: datetime | None = None,
    priority: TaskPriority | str | None = None,
    patient_id: UUID | None = None,
    handoff_id: UUID | None = None,
) -> Task:
    """
    Create an OPEN task.

    Owner defaults to the creator; priority defaults to MED. Assigning to
    someone else queues a TASK_ASSIGNED notification in the same transaction.
    """
    task = Task(
        circle_id=circle_id,
        patient_id=patient_id,
        handoff_id=handoff_id,
        created_by=created_by,
        owner_user_id=owner_user_id or created_by,
        title=title[:255],
        description=description,
        due_at=ensure_utc(due_at),
        priority=_coerce_priority(priority).value,
        status=TaskStatus.OPEN.value,
    )
    db.add(task)
    db.flush()

    notification_service.notify_task_assigned(db, task, actor_user_id=created_by)
    return task


def list_tasks_for_handoff(db: Session, handoff_id: UUID) -> list[Task]:
    return (
        db.query(Task)
        .filter(Task.handoff_id == handoff_id)
        .order_by(Task.created_at)
        .all()
    )
