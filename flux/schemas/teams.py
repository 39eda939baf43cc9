import uuid
from datetime import datetime
from pydantic import BaseModel

from flux.models.enums import TaskStatus, TeamRole

class TeamCreateIn(BaseModel):
    name: str

class TeamUpdateIn(BaseModel):
    name: str | None = None

class TeamOut(BaseModel):
    id: uuid.UUID
    org_id: uuid.UUID
    name: str

class TeamMemberIn(BaseModel):
    user_id: uuid.UUID

class TeamMembershipOut(BaseModel):
    team_id: uuid.UUID
    user_id: uuid.UUID
    role: TeamRole

class TeamMemberOut(BaseModel):
    user_id: uuid.UUID
    handle: str
    name: str | None
    role: TeamRole

class TeamPermissionsOut(BaseModel):
    role: str
    can_create_tasks: bool
    can_assign: bool
    can_write_all: bool

class TeamLinkIn(BaseModel):
    label: str | None = None
    url: str | None = None

class TeamLinkUpdateIn(BaseModel):
    label: str | None = None
    url: str | None = None
    ordinal: int | None = None

class TeamLinkOut(BaseModel):
    id: uuid.UUID
    team_id: uuid.UUID
    label: str
    url: str
    ordinal: int

class TeamInfoIn(BaseModel):
    info: str | None = None

class TeamInfoOut(BaseModel):
    id: uuid.UUID
    name: str
    info: str | None
    links: list[TeamLinkOut]

class ActorOut(BaseModel):
    id: uuid.UUID
    name: str | None
    handle: str | None

class ActivityOut(BaseModel):
    id: uuid.UUID
    task_id: uuid.UUID
    team_id: uuid.UUID
    old_status: TaskStatus
    new_status: TaskStatus
    changed_at: datetime
    task_title: str
    link: str
    changed_by: ActorOut
