"""Ordered, atomic deletion of users, orgs, teams and tasks.

Each entry point first captures the dependent id sets, then deletes children before
parents using only those captured ids. All steps run inside one ``atomic`` block:
either the whole aggregate disappears or nothing does.
"""
import logging
import uuid

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from flux.config import settings
from flux.db import atomic
from flux.errors import DomainError
from flux.models.calendar_event import CalendarEvent
from flux.models.enums import OrgRole
from flux.models.identity import Identity
from flux.models.join_code import OrgJoinCode, TeamJoinCode
from flux.models.membership import OrgMembership, TeamMembership
from flux.models.note import TaskNote, TaskNoteMention
from flux.models.org import Organization
from flux.models.status_log import TaskStatusLog
from flux.models.task import Task, TaskAssignment
from flux.models.team import Goal, Team, TeamLink
from flux.models.user import User

logger = logging.getLogger(__name__)

def _ids(db: Session, stmt) -> list[uuid.UUID]:
    return list(db.scalars(stmt).all())

def _delete_where(db: Session, model, *criteria) -> int:
    return db.execute(delete(model).where(*criteria)).rowcount or 0

def _delete_in(db: Session, model, column, ids: list[uuid.UUID]) -> int:
    if not ids:
        return 0
    return _delete_where(db, model, column.in_(ids))

def _delete_task_rows(db: Session, task_ids: list[uuid.UUID], note_ids: list[uuid.UUID]) -> None:
    _delete_in(db, TaskNoteMention, TaskNoteMention.note_id, note_ids)
    _delete_in(db, TaskNote, TaskNote.task_id, task_ids)
    _delete_in(db, TaskAssignment, TaskAssignment.task_id, task_ids)

def _delete_team_rows(db: Session, team_ids: list[uuid.UUID], task_ids: list[uuid.UUID]) -> None:
    _delete_in(db, TaskStatusLog, TaskStatusLog.team_id, team_ids)
    _delete_in(db, CalendarEvent, CalendarEvent.team_id, team_ids)
    _delete_in(db, CalendarEvent, CalendarEvent.related_task_id, task_ids)
    _delete_in(db, Task, Task.id, task_ids)
    _delete_in(db, Goal, Goal.team_id, team_ids)
    _delete_in(db, TeamLink, TeamLink.team_id, team_ids)
    _delete_in(db, TeamJoinCode, TeamJoinCode.team_id, team_ids)
    _delete_in(db, TeamMembership, TeamMembership.team_id, team_ids)
    _delete_in(db, Team, Team.id, team_ids)

def delete_task(db: Session, task_id: uuid.UUID) -> None:
    note_ids = _ids(db, select(TaskNote.id).where(TaskNote.task_id == task_id))

    with atomic(db):
        _delete_task_rows(db, [task_id], note_ids)
        _delete_where(db, CalendarEvent, CalendarEvent.related_task_id == task_id)
        _delete_where(db, TaskStatusLog, TaskStatusLog.task_id == task_id)
        _delete_where(db, Task, Task.id == task_id)

    logger.info("deleted task %s (%d notes)", task_id, len(note_ids))

def delete_team(db: Session, team_id: uuid.UUID) -> None:
    task_ids = _ids(db, select(Task.id).where(Task.team_id == team_id))
    note_ids = _ids(db, select(TaskNote.id).where(TaskNote.task_id.in_(task_ids))) if task_ids else []

    with atomic(db):
        _delete_task_rows(db, task_ids, note_ids)
        _delete_team_rows(db, [team_id], task_ids)

    logger.info("deleted team %s (%d tasks, %d notes)", team_id, len(task_ids), len(note_ids))

def delete_org(db: Session, org_id: uuid.UUID) -> None:
    team_ids = _ids(db, select(Team.id).where(Team.org_id == org_id))
    task_ids = _ids(db, select(Task.id).where(Task.team_id.in_(team_ids))) if team_ids else []
    note_ids = _ids(db, select(TaskNote.id).where(TaskNote.task_id.in_(task_ids))) if task_ids else []

    with atomic(db):
        _delete_task_rows(db, task_ids, note_ids)
        _delete_team_rows(db, team_ids, task_ids)
        _delete_where(db, OrgJoinCode, OrgJoinCode.org_id == org_id)
        _delete_where(db, OrgMembership, OrgMembership.org_id == org_id)
        _delete_where(db, Organization, Organization.id == org_id)

    logger.info(
        "deleted org %s (%d teams, %d tasks, %d notes)", org_id, len(team_ids), len(task_ids), len(note_ids)
    )

def delete_user(db: Session, user_id: uuid.UUID) -> None:
    admin_of = db.scalar(
        select(func.count())
        .select_from(OrgMembership)
        .where(OrgMembership.user_id == user_id, OrgMembership.role == OrgRole.admin)
    ) or 0
    if admin_of > 0:
        raise DomainError("cannot_delete_admin")

    authored_note_ids = _ids(db, select(TaskNote.id).where(TaskNote.author_id == user_id))
    ghost_id = settings.ghost_user_id

    with atomic(db):
        _delete_where(db, Identity, Identity.user_id == user_id)
        _delete_where(db, TaskNoteMention, TaskNoteMention.user_id == user_id)
        _delete_where(db, TaskAssignment, TaskAssignment.user_id == user_id)
        _delete_where(db, TeamMembership, TeamMembership.user_id == user_id)
        _delete_where(db, OrgMembership, OrgMembership.user_id == user_id)
        # other users' mentions on this user's notes
        _delete_in(db, TaskNoteMention, TaskNoteMention.note_id, authored_note_ids)
        _delete_in(db, TaskNote, TaskNote.id, authored_note_ids)

        if ghost_id is not None and ghost_id != user_id:
            db.execute(update(Task).where(Task.created_by == user_id).values(created_by=ghost_id))
            db.execute(update(Team).where(Team.created_by == user_id).values(created_by=ghost_id))
            db.execute(
                update(Organization).where(Organization.created_by == user_id).values(created_by=ghost_id)
            )
            db.execute(
                update(TaskStatusLog).where(TaskStatusLog.changed_by == user_id).values(changed_by=ghost_id)
            )

        _delete_where(db, User, User.id == user_id)

    logger.info("deleted user %s (ghost=%s)", user_id, ghost_id)
