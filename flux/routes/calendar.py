import uuid
from datetime import datetime, time, timedelta

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from flux.auth.tokens import as_utc
from flux.db import get_db
from flux.errors import DomainError
from flux.models.calendar_event import CalendarEvent
from flux.models.enums import CalendarEventType
from flux.models.task import Task
from flux.rbac.deps import TeamContext, require_team_read, require_team_write
from flux.schemas.calendar import CalendarEventCreateIn, CalendarEventOut, CalendarEventUpdateIn

router = APIRouter(prefix="/teams/{team_id}/calendar", tags=["calendar"])

def _event_out(ev: CalendarEvent) -> CalendarEventOut:
    return CalendarEventOut(
        id=ev.id,
        team_id=ev.team_id,
        title=ev.title,
        description=ev.description,
        start_at=ev.start_at,
        end_at=ev.end_at,
        type=ev.type,
        related_task_id=ev.related_task_id,
    )

def _whole_day(base: datetime) -> tuple[datetime, datetime]:
    start = datetime.combine(base.date(), time.min, tzinfo=base.tzinfo)
    end = datetime.combine(base.date(), time.max, tzinfo=base.tzinfo)
    return start, end

def _get_event(db: Session, team_id: uuid.UUID, event_id: uuid.UUID) -> CalendarEvent:
    ev = db.get(CalendarEvent, event_id)
    if ev is None or ev.team_id != team_id:
        raise HTTPException(status_code=404, detail="event not found")
    return ev

@router.get("", response_model=list[CalendarEventOut])
def list_events(
    ctx: TeamContext = Depends(require_team_read),
    db: Session = Depends(get_db),
) -> list[CalendarEventOut]:
    events = db.scalars(
        select(CalendarEvent).where(CalendarEvent.team_id == ctx.team.id).order_by(CalendarEvent.start_at)
    ).all()
    return [_event_out(ev) for ev in events]

@router.post("", response_model=CalendarEventOut)
def create_event(
    payload: CalendarEventCreateIn,
    ctx: TeamContext = Depends(require_team_write),
    db: Session = Depends(get_db),
) -> CalendarEventOut:
    if as_utc(payload.end_at) < as_utc(payload.start_at):
        raise DomainError("invalid_range")

    if payload.related_task_id is not None:
        task = db.get(Task, payload.related_task_id)
        if task is None or task.team_id != ctx.team.id:
            raise DomainError("task_not_in_team")

    ev = CalendarEvent(
        team_id=ctx.team.id,
        title=payload.title,
        description=payload.description,
        start_at=payload.start_at,
        end_at=payload.end_at,
        type=payload.type,
        related_task_id=payload.related_task_id,
    )
    db.add(ev)
    db.commit()
    return _event_out(ev)

@router.patch("/{event_id}", response_model=CalendarEventOut)
def update_event(
    event_id: uuid.UUID,
    payload: CalendarEventUpdateIn,
    ctx: TeamContext = Depends(require_team_write),
    db: Session = Depends(get_db),
) -> CalendarEventOut:
    ev = _get_event(db, ctx.team.id, event_id)

    if payload.type == CalendarEventType.task:
        # task markers always span the whole day
        start, end = _whole_day(payload.start_at or ev.start_at)
    elif payload.type == CalendarEventType.event:
        start = payload.start_at or ev.start_at
        if payload.end_at is not None:
            end = payload.end_at
        elif payload.duration_minutes and payload.duration_minutes > 0:
            end = start + timedelta(minutes=payload.duration_minutes)
        else:
            end = ev.end_at
    else:
        start = payload.start_at or ev.start_at
        end = payload.end_at or ev.end_at

    # checked before any field is assigned
    if as_utc(end) < as_utc(start):
        raise DomainError("invalid_range")

    if payload.title is not None:
        ev.title = payload.title
    if payload.description is not None:
        ev.description = payload.description
    if payload.type is not None:
        ev.type = payload.type
    ev.start_at, ev.end_at = start, end

    db.commit()
    return _event_out(ev)

@router.delete("/{event_id}")
def delete_event(
    event_id: uuid.UUID,
    ctx: TeamContext = Depends(require_team_write),
    db: Session = Depends(get_db),
) -> dict:
    ev = _get_event(db, ctx.team.id, event_id)
    db.delete(ev)
    db.commit()
    return {"ok": True}
