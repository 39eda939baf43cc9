import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from flux.db import get_db
from flux.models.note import TaskNote, TaskNoteMention
from flux.models.task import Task, TaskAssignment
from flux.models.user import User
from flux.rbac import perms
from flux.rbac.deps import (
    TaskContext,
    TeamContext,
    get_task_context,
    require_task_read,
    require_task_write,
    require_team_read,
    require_team_write,
)
from flux.schemas.tasks import (
    AssigneeOut,
    AssignIn,
    AssignmentOut,
    NoteCreateIn,
    NoteOut,
    TaskCreateIn,
    TaskDetailOut,
    TaskOut,
    TaskUpdateIn,
)
from flux.services import activity, cascade, membership, mentions
from flux.services.membership import clean_name

router = APIRouter(tags=["tasks"])

STATUS_ONLY = {"status"}

def _task_out(t: Task) -> TaskOut:
    return TaskOut(
        id=t.id,
        team_id=t.team_id,
        title=t.title,
        description=t.description,
        due_date=t.due_date,
        priority=t.priority,
        status=t.status,
        created_by=t.created_by,
    )

def _task_details(db: Session, tasks: list[Task]) -> list[TaskDetailOut]:
    if not tasks:
        return []
    task_ids = [t.id for t in tasks]

    assignees: dict[uuid.UUID, list[AssigneeOut]] = {}
    for a, u in db.execute(
        select(TaskAssignment, User)
        .join(User, User.id == TaskAssignment.user_id)
        .where(TaskAssignment.task_id.in_(task_ids))
        .order_by(User.handle)
    ).all():
        assignees.setdefault(a.task_id, []).append(AssigneeOut(user_id=u.id, name=u.name, handle=u.handle))

    notes = db.scalars(
        select(TaskNote).where(TaskNote.task_id.in_(task_ids)).order_by(TaskNote.created_at, TaskNote.id)
    ).all()
    mentioned: dict[uuid.UUID, list[uuid.UUID]] = {}
    if notes:
        for m in db.scalars(select(TaskNoteMention).where(TaskNoteMention.note_id.in_([n.id for n in notes]))).all():
            mentioned.setdefault(m.note_id, []).append(m.user_id)

    notes_by_task: dict[uuid.UUID, list[NoteOut]] = {}
    for n in notes:
        notes_by_task.setdefault(n.task_id, []).append(
            NoteOut(
                id=n.id,
                task_id=n.task_id,
                author_id=n.author_id,
                content=n.content,
                created_at=n.created_at,
                mentions=mentioned.get(n.id, []),
            )
        )

    return [
        TaskDetailOut(
            **_task_out(t).model_dump(),
            assignees=assignees.get(t.id, []),
            notes=notes_by_task.get(t.id, []),
        )
        for t in tasks
    ]

@router.get("/teams/{team_id}/tasks", response_model=list[TaskDetailOut])
def list_tasks(
    ctx: TeamContext = Depends(require_team_read),
    db: Session = Depends(get_db),
) -> list[TaskDetailOut]:
    tasks = db.scalars(
        select(Task).where(Task.team_id == ctx.team.id).order_by(Task.created_at.desc(), Task.id)
    ).all()
    return _task_details(db, list(tasks))

@router.post("/teams/{team_id}/tasks", response_model=TaskOut)
def create_task(
    payload: TaskCreateIn,
    ctx: TeamContext = Depends(require_team_write),
    db: Session = Depends(get_db),
) -> TaskOut:
    t = Task(
        team_id=ctx.team.id,
        title=payload.title,
        description=payload.description,
        due_date=payload.due_date,
        priority=payload.priority,
        created_by=ctx.user.id,
    )
    db.add(t)
    db.commit()
    db.refresh(t)
    return _task_out(t)

@router.get("/tasks/{task_id}", response_model=TaskDetailOut)
def get_task(
    ctx: TaskContext = Depends(require_task_read),
    db: Session = Depends(get_db),
) -> TaskDetailOut:
    return _task_details(db, [ctx.task])[0]

@router.patch("/tasks/{task_id}", response_model=TaskOut)
def update_task(
    payload: TaskUpdateIn,
    ctx: TaskContext = Depends(get_task_context),
    db: Session = Depends(get_db),
) -> TaskOut:
    t = ctx.task
    fields = payload.model_fields_set

    # admins/leaders may change anything; assignees may change status and nothing else
    if not perms.can_write_team(db, ctx.team.id, ctx.user.id):
        if not perms.is_task_assignee(db, t.id, ctx.user.id) or not fields <= STATUS_ONLY:
            raise HTTPException(status_code=403, detail="forbidden")

    old_status = t.status

    if payload.title is not None:
        t.title = clean_name(payload.title)
    if "description" in fields:
        t.description = payload.description
    if "due_date" in fields:
        t.due_date = payload.due_date
    if payload.priority is not None:
        t.priority = payload.priority
    if payload.status is not None:
        t.status = payload.status

    activity.record_status_change(db, t, old_status, ctx.user.id)
    db.commit()
    db.refresh(t)
    return _task_out(t)

@router.delete("/tasks/{task_id}")
def delete_task(
    ctx: TaskContext = Depends(require_task_write),
    db: Session = Depends(get_db),
) -> dict:
    cascade.delete_task(db, ctx.task.id)
    return {"ok": True}

# ---- assignees ----

@router.post("/tasks/{task_id}/assignees", response_model=AssignmentOut)
def add_assignee(
    payload: AssignIn,
    ctx: TaskContext = Depends(require_task_write),
    db: Session = Depends(get_db),
) -> AssignmentOut:
    row = membership.assign_task(db, ctx.task, payload.user_id)
    return AssignmentOut(task_id=row.task_id, user_id=row.user_id)

@router.delete("/tasks/{task_id}/assignees/{user_id}")
def remove_assignee(
    user_id: uuid.UUID,
    ctx: TaskContext = Depends(require_task_write),
    db: Session = Depends(get_db),
) -> dict:
    membership.unassign_task(db, ctx.task, user_id)
    return {"ok": True}

# ---- notes ----

@router.post("/tasks/{task_id}/notes", response_model=NoteOut)
def create_note(
    payload: NoteCreateIn,
    ctx: TaskContext = Depends(require_task_read),
    db: Session = Depends(get_db),
) -> NoteOut:
    note, rows = mentions.create_note(db, ctx.task.id, ctx.user.id, payload.content)
    db.commit()
    db.refresh(note)
    return NoteOut(
        id=note.id,
        task_id=note.task_id,
        author_id=note.author_id,
        content=note.content,
        created_at=note.created_at,
        mentions=[m.user_id for m in rows],
    )
