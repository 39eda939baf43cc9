import uuid
from datetime import datetime
from pydantic import BaseModel, ConfigDict

from flux.models.enums import TaskPriority, TaskStatus

class TaskCreateIn(BaseModel):
    title: str
    description: str | None = None
    due_date: datetime | None = None
    priority: TaskPriority = TaskPriority.medium

class TaskUpdateIn(BaseModel):
    # unknown keys must not slip past the assignee status-only check
    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    description: str | None = None
    due_date: datetime | None = None
    priority: TaskPriority | None = None
    status: TaskStatus | None = None

class AssigneeOut(BaseModel):
    user_id: uuid.UUID
    name: str | None
    handle: str

class NoteOut(BaseModel):
    id: uuid.UUID
    task_id: uuid.UUID
    author_id: uuid.UUID
    content: str
    created_at: datetime
    mentions: list[uuid.UUID] = []

class TaskOut(BaseModel):
    id: uuid.UUID
    team_id: uuid.UUID
    title: str
    description: str | None
    due_date: datetime | None
    priority: TaskPriority
    status: TaskStatus
    created_by: uuid.UUID

class TaskDetailOut(TaskOut):
    assignees: list[AssigneeOut]
    notes: list[NoteOut]

class AssignIn(BaseModel):
    user_id: uuid.UUID

class AssignmentOut(BaseModel):
    task_id: uuid.UUID
    user_id: uuid.UUID

class NoteCreateIn(BaseModel):
    content: str = ""
