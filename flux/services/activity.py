"""Task status audit trail.

Every real status transition appends one ``TaskStatusLog`` row in the same session
as the task update. Rows are never updated; they only disappear when the cascade
removes their task or team.
"""
import logging
import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from flux.models.enums import TaskStatus
from flux.models.status_log import TaskStatusLog
from flux.models.task import Task
from flux.models.user import User

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50
MAX_LIMIT = 200
MISSING_TASK_TITLE = "Untitled task"

def record_status_change(
    db: Session,
    task: Task,
    old_status: TaskStatus,
    changed_by: uuid.UUID,
) -> TaskStatusLog | None:
    """Log ``old_status -> task.status`` if the value actually changed."""
    if task.status == old_status:
        return None

    row = TaskStatusLog(
        task_id=task.id,
        team_id=task.team_id,
        old_status=old_status,
        new_status=task.status,
        changed_by=changed_by,
    )
    db.add(row)
    logger.debug("task %s status %s -> %s by %s", task.id, old_status.value, task.status.value, changed_by)
    return row

def clamp_limit(raw) -> int:
    try:
        limit = int(raw)
    except (TypeError, ValueError):
        return DEFAULT_LIMIT
    if limit <= 0:
        return DEFAULT_LIMIT
    return min(limit, MAX_LIMIT)

def list_activity(
    db: Session,
    team_id: uuid.UUID,
    from_: datetime | None = None,
    to: datetime | None = None,
    user_id: uuid.UUID | None = None,
    limit: int = DEFAULT_LIMIT,
) -> list[dict]:
    q = select(TaskStatusLog).where(TaskStatusLog.team_id == team_id)
    if from_ is not None:
        q = q.where(TaskStatusLog.changed_at >= from_)
    if to is not None:
        q = q.where(TaskStatusLog.changed_at <= to)
    if user_id is not None:
        q = q.where(TaskStatusLog.changed_by == user_id)
    q = q.order_by(TaskStatusLog.changed_at.desc(), TaskStatusLog.id.desc()).limit(limit)

    rows = db.scalars(q).all()
    if not rows:
        return []

    task_ids = {r.task_id for r in rows}
    user_ids = {r.changed_by for r in rows}
    titles = dict(db.execute(select(Task.id, Task.title).where(Task.id.in_(task_ids))).all())
    users = {u.id: u for u in db.scalars(select(User).where(User.id.in_(user_ids))).all()}

    out = []
    for r in rows:
        actor = users.get(r.changed_by)
        out.append(
            {
                "id": r.id,
                "task_id": r.task_id,
                "team_id": r.team_id,
                "old_status": r.old_status,
                "new_status": r.new_status,
                "changed_at": r.changed_at,
                "task_title": titles.get(r.task_id, MISSING_TASK_TITLE),
                "link": f"/tasks/{r.task_id}",
                "changed_by": {
                    "id": r.changed_by,
                    "name": actor.name if actor else None,
                    "handle": actor.handle if actor else None,
                },
            }
        )
    return out
