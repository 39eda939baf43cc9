import uuid

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from flux.auth.deps import get_current_user
from flux.db import get_db
from flux.models.enums import OrgRole
from flux.models.membership import OrgMembership
from flux.models.org import Organization
from flux.models.task import Task
from flux.models.team import Team
from flux.models.user import User
from flux.rbac import perms

class OrgContext:
    def __init__(self, org: Organization, membership: OrgMembership, user: User):
        self.org = org
        self.membership = membership
        self.user = user

class TeamContext:
    def __init__(self, team: Team, user: User):
        self.team = team
        self.user = user

class TaskContext:
    def __init__(self, task: Task, team: Team, user: User):
        self.task = task
        self.team = team
        self.user = user

# lookups raise 404 before any permission check raises 403

def get_org_context(
    org_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> OrgContext:
    org = db.get(Organization, org_id)
    if org is None:
        raise HTTPException(status_code=404, detail="org not found")

    membership = db.get(OrgMembership, {"org_id": org_id, "user_id": user.id})
    if membership is None:
        raise HTTPException(status_code=403, detail="not a member of this org")

    return OrgContext(org=org, membership=membership, user=user)

def require_org_admin(ctx: OrgContext = Depends(get_org_context)) -> OrgContext:
    if ctx.membership.role != OrgRole.admin:
        raise HTTPException(status_code=403, detail="forbidden")
    return ctx

def _load_team(db: Session, team_id: uuid.UUID) -> Team:
    team = db.get(Team, team_id)
    if team is None:
        raise HTTPException(status_code=404, detail="team not found")
    return team

def require_team_read(
    team_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TeamContext:
    team = _load_team(db, team_id)
    if not perms.can_read_team(db, team.id, user.id):
        raise HTTPException(status_code=403, detail="forbidden")
    return TeamContext(team=team, user=user)

def require_team_write(
    team_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TeamContext:
    team = _load_team(db, team_id)
    if not perms.can_write_team(db, team.id, user.id):
        raise HTTPException(status_code=403, detail="forbidden")
    return TeamContext(team=team, user=user)

def require_team_org_admin(
    team_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TeamContext:
    team = _load_team(db, team_id)
    if not perms.is_org_admin(db, team.org_id, user.id):
        raise HTTPException(status_code=403, detail="forbidden")
    return TeamContext(team=team, user=user)

def get_task_context(
    task_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TaskContext:
    task = db.get(Task, task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="task not found")
    team = _load_team(db, task.team_id)
    return TaskContext(task=task, team=team, user=user)

def require_task_read(ctx: TaskContext = Depends(get_task_context), db: Session = Depends(get_db)) -> TaskContext:
    if not perms.can_read_team(db, ctx.team.id, ctx.user.id):
        raise HTTPException(status_code=403, detail="forbidden")
    return ctx

def require_task_write(ctx: TaskContext = Depends(get_task_context), db: Session = Depends(get_db)) -> TaskContext:
    if not perms.can_write_team(db, ctx.team.id, ctx.user.id):
        raise HTTPException(status_code=403, detail="forbidden")
    return ctx

def require_team_admin_or_leader(
    team_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TeamContext:
    team = _load_team(db, team_id)
    if not perms.is_admin_or_leader(db, team.id, user.id):
        raise HTTPException(status_code=403, detail="forbidden")
    return TeamContext(team=team, user=user)
