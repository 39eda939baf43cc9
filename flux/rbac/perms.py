"""Role lookups and capability checks.

Every function reads current membership state through the given session; nothing
is cached across requests. Absence of a membership row always means "no access".
"""
import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from flux.models.enums import OrgRole, TeamRole
from flux.models.membership import OrgMembership, TeamMembership
from flux.models.task import TaskAssignment
from flux.models.team import Team

def role_in_org(db: Session, org_id: uuid.UUID, user_id: uuid.UUID) -> OrgRole | None:
    return db.scalar(
        select(OrgMembership.role).where(
            OrgMembership.org_id == org_id, OrgMembership.user_id == user_id
        )
    )

def role_in_team(db: Session, team_id: uuid.UUID, user_id: uuid.UUID) -> TeamRole | None:
    return db.scalar(
        select(TeamMembership.role).where(
            TeamMembership.team_id == team_id, TeamMembership.user_id == user_id
        )
    )

def is_org_admin(db: Session, org_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    return role_in_org(db, org_id, user_id) == OrgRole.admin

def is_org_member(db: Session, org_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    return role_in_org(db, org_id, user_id) is not None

def is_team_leader(db: Session, team_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    return role_in_team(db, team_id, user_id) == TeamRole.leader

def can_read_team(db: Session, team_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    team = db.get(Team, team_id)
    if team is None:
        return False
    if is_org_admin(db, team.org_id, user_id):
        return True
    return role_in_team(db, team_id, user_id) is not None

def can_write_team(db: Session, team_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    team = db.get(Team, team_id)
    if team is None:
        return False
    if is_org_admin(db, team.org_id, user_id):
        return True
    return is_team_leader(db, team_id, user_id)

# activity feed gate
is_admin_or_leader = can_write_team

def is_task_assignee(db: Session, task_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    return db.get(TaskAssignment, {"task_id": task_id, "user_id": user_id}) is not None

def team_permissions(db: Session, team: Team, user_id: uuid.UUID) -> dict | None:
    admin = is_org_admin(db, team.org_id, user_id)
    team_role = role_in_team(db, team.id, user_id)
    if not admin and team_role is None:
        return None

    leader = team_role == TeamRole.leader
    writer = admin or leader
    if admin:
        role = "ADMIN"
    elif leader:
        role = "LEADER"
    else:
        role = "MEMBER"
    return {
        "role": role,
        "can_create_tasks": writer,
        "can_assign": writer,
        "can_write_all": writer,
    }
