import uuid
from datetime import datetime
from pydantic import BaseModel

from flux.models.enums import CalendarEventType

class CalendarEventCreateIn(BaseModel):
    title: str
    start_at: datetime
    end_at: datetime
    description: str | None = None
    related_task_id: uuid.UUID | None = None
    type: CalendarEventType = CalendarEventType.event

class CalendarEventUpdateIn(BaseModel):
    title: str | None = None
    description: str | None = None
    type: CalendarEventType | None = None
    start_at: datetime | None = None
    end_at: datetime | None = None
    duration_minutes: int | None = None

class CalendarEventOut(BaseModel):
    id: uuid.UUID
    team_id: uuid.UUID
    title: str
    description: str | None
    start_at: datetime
    end_at: datetime
    type: CalendarEventType
    related_task_id: uuid.UUID | None
