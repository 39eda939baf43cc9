import uuid

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from flux.config import settings
from flux.models.calendar_event import CalendarEvent
from flux.models.identity import Identity
from flux.models.join_code import OrgJoinCode
from flux.models.membership import OrgMembership, TeamMembership
from flux.models.note import TaskNote, TaskNoteMention
from flux.models.org import Organization
from flux.models.status_log import TaskStatusLog
from flux.models.task import Task, TaskAssignment
from flux.models.team import Team, TeamLink
from flux.models.user import User
from flux.services import cascade

def auth(jwt: str) -> dict[str, str]:
    return {"authorization": f"bearer {jwt}"}

def count(db: Session, model, *criteria) -> int:
    return db.scalar(select(func.count()).select_from(model).where(*criteria)) or 0

def populate(client, world) -> None:
    """Hang one of everything off the world task and team."""
    task, team = world.task_id, world.team_id

    r = client.post(f"/tasks/{task}/notes", json={"content": "hey @member @leader"}, headers=auth(world.admin))
    assert r.status_code == 200
    assert len(r.json()["mentions"]) == 2

    r = client.patch(f"/tasks/{task}", json={"status": "IN_PROGRESS"}, headers=auth(world.member))
    assert r.status_code == 200

    r = client.post(
        f"/teams/{team}/calendar",
        json={
            "title": "due",
            "start_at": "2026-03-10T09:00:00Z",
            "end_at": "2026-03-10T10:00:00Z",
            "type": "TASK",
            "related_task_id": task,
        },
        headers=auth(world.leader),
    )
    assert r.status_code == 200, r.text

    r = client.post(f"/teams/{team}/links", json={"label": "wiki", "url": "https://wiki"}, headers=auth(world.leader))
    assert r.status_code == 200

def test_delete_task_removes_dependents(client, world, db_session: Session):
    populate(client, world)
    tid = uuid.UUID(world.task_id)

    r = client.delete(f"/tasks/{world.task_id}", headers=auth(world.leader))
    assert r.status_code == 200

    assert count(db_session, Task, Task.id == tid) == 0
    assert count(db_session, TaskNote) == 0
    assert count(db_session, TaskNoteMention) == 0
    assert count(db_session, TaskAssignment) == 0
    assert count(db_session, TaskStatusLog) == 0
    assert count(db_session, CalendarEvent) == 0
    # team level rows stay
    assert count(db_session, TeamLink) == 1
    assert count(db_session, TeamMembership) == 3

def test_member_cannot_delete_task(client, world):
    r = client.delete(f"/tasks/{world.task_id}", headers=auth(world.member))
    assert r.status_code == 403

def test_delete_team_is_complete_and_scoped(client, world, db_session: Session):
    populate(client, world)

    r = client.post(f"/orgs/{world.org_id}/teams", json={"name": "spare"}, headers=auth(world.admin))
    spare = uuid.UUID(r.json()["id"])
    r = client.post(f"/teams/{spare}/tasks", json={"title": "keep me"}, headers=auth(world.admin))
    assert r.status_code == 200

    r = client.delete(f"/teams/{world.team_id}", headers=auth(world.admin))
    assert r.status_code == 200

    gone = uuid.UUID(world.team_id)
    assert count(db_session, Team, Team.id == gone) == 0
    assert count(db_session, Task, Task.team_id == gone) == 0
    assert count(db_session, TeamMembership, TeamMembership.team_id == gone) == 0
    assert count(db_session, TeamLink) == 0
    assert count(db_session, CalendarEvent) == 0
    assert count(db_session, TaskStatusLog) == 0
    assert count(db_session, TaskNote) == 0
    assert count(db_session, TaskNoteMention) == 0
    assert count(db_session, TaskAssignment) == 0

    # the other team is untouched
    assert count(db_session, Team, Team.id == spare) == 1
    assert count(db_session, Task, Task.team_id == spare) == 1
    assert count(db_session, TeamMembership, TeamMembership.team_id == spare) == 1
    # org memberships are not team data
    assert count(db_session, OrgMembership) == 3

def test_delete_org_removes_everything_but_users(client, world, db_session: Session):
    populate(client, world)
    r = client.post(f"/orgs/{world.org_id}/join-codes", json={}, headers=auth(world.admin))
    assert r.status_code == 200

    # a second org that must survive
    r = client.post("/orgs", json={"name": "survivor"}, headers=auth(world.outsider))
    survivor = uuid.UUID(r.json()["id"])

    r = client.delete(f"/orgs/{world.org_id}", headers=auth(world.leader))
    assert r.status_code == 403
    r = client.delete(f"/orgs/{world.org_id}", headers=auth(world.admin))
    assert r.status_code == 200

    org = uuid.UUID(world.org_id)
    assert count(db_session, Organization, Organization.id == org) == 0
    assert count(db_session, OrgMembership, OrgMembership.org_id == org) == 0
    assert count(db_session, OrgJoinCode) == 0
    assert count(db_session, Team) == 0
    assert count(db_session, Task) == 0
    assert count(db_session, TaskNote) == 0
    assert count(db_session, TaskNoteMention) == 0
    assert count(db_session, TaskAssignment) == 0
    assert count(db_session, TaskStatusLog) == 0
    assert count(db_session, CalendarEvent) == 0
    assert count(db_session, TeamLink) == 0

    assert count(db_session, Organization, Organization.id == survivor) == 1
    assert count(db_session, User) == 4

def test_cascade_failure_rolls_back(world, client, db_session: Session, monkeypatch):
    populate(client, world)
    team = uuid.UUID(world.team_id)

    calls = {"n": 0}
    real = cascade._delete_where

    def flaky(db, model, *criteria):
        calls["n"] += 1
        if calls["n"] == 4:
            raise RuntimeError("boom")
        return real(db, model, *criteria)

    monkeypatch.setattr(cascade, "_delete_where", flaky)

    with pytest.raises(RuntimeError):
        cascade.delete_team(db_session, team)

    # earlier steps were undone
    assert calls["n"] == 4
    assert count(db_session, Team, Team.id == team) == 1
    assert count(db_session, Task, Task.team_id == team) == 1
    assert count(db_session, TaskNote) == 1
    assert count(db_session, TaskNoteMention) == 2
    assert count(db_session, TaskAssignment) == 1
    assert count(db_session, TaskStatusLog) == 1
    assert count(db_session, TeamMembership, TeamMembership.team_id == team) == 3

def test_admin_cannot_delete_account(client, world, db_session: Session):
    r = client.delete("/me", headers=auth(world.admin))
    assert r.status_code == 400
    assert r.json() == {"error": "cannot_delete_admin"}
    assert count(db_session, User, User.id == world.admin_id) == 1

def test_delete_user_removes_personal_rows(client, world, db_session: Session):
    populate(client, world)
    # member authors a note mentioning the leader
    r = client.post(f"/tasks/{world.task_id}/notes", json={"content": "@leader done?"}, headers=auth(world.member))
    assert r.status_code == 200

    r = client.delete("/me", headers=auth(world.member))
    assert r.status_code == 200

    uid = world.member_id
    assert count(db_session, User, User.id == uid) == 0
    assert count(db_session, Identity, Identity.user_id == uid) == 0
    assert count(db_session, OrgMembership, OrgMembership.user_id == uid) == 0
    assert count(db_session, TeamMembership, TeamMembership.user_id == uid) == 0
    assert count(db_session, TaskAssignment, TaskAssignment.user_id == uid) == 0
    assert count(db_session, TaskNoteMention, TaskNoteMention.user_id == uid) == 0
    assert count(db_session, TaskNote, TaskNote.author_id == uid) == 0

    # admin's note survives, minus the deleted user's mention
    assert count(db_session, TaskNote) == 1
    assert count(db_session, TaskNoteMention) == 1

    # the old token no longer resolves to a user
    assert client.get("/me", headers=auth(world.member)).status_code == 401

def test_delete_user_reassigns_authorship_to_ghost(client, world, db_session: Session, monkeypatch):
    ghost = uuid.uuid4()
    monkeypatch.setattr(settings, "ghost_user_id", ghost)

    r = client.patch(f"/tasks/{world.task_id}", json={"status": "BLOCKED"}, headers=auth(world.leader))
    assert r.status_code == 200

    r = client.delete("/me", headers=auth(world.leader))
    assert r.status_code == 200

    task = db_session.get(Task, uuid.UUID(world.task_id))
    assert task.created_by == ghost
    log = db_session.scalar(select(TaskStatusLog))
    assert log.changed_by == ghost
