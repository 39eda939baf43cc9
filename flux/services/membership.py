import logging
import uuid
from datetime import datetime

from fastapi import HTTPException
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.orm import Session

from flux.auth.tokens import as_utc, now_utc, random_code
from flux.errors import DomainError
from flux.models.enums import OrgRole, TeamRole
from flux.models.join_code import OrgJoinCode
from flux.models.membership import OrgMembership, TeamMembership
from flux.models.note import TaskNote, TaskNoteMention
from flux.models.org import Organization
from flux.models.task import Task, TaskAssignment
from flux.models.team import Team
from flux.models.user import User

logger = logging.getLogger(__name__)

def clean_name(raw) -> str:
    name = raw.strip() if isinstance(raw, str) else ""
    if not name:
        raise DomainError("invalid_name")
    return name

def _team_ids_in_org(org_id: uuid.UUID):
    return select(Team.id).where(Team.org_id == org_id)

def _task_ids_in_org(org_id: uuid.UUID):
    return select(Task.id).where(Task.team_id.in_(_team_ids_in_org(org_id)))

def admin_rows_for_update(org_id: uuid.UUID):
    # row locks serialize concurrent demotions; postgres re-checks the role filter after the wait
    return (
        select(OrgMembership)
        .where(OrgMembership.org_id == org_id, OrgMembership.role == OrgRole.admin)
        .with_for_update()
        .execution_options(populate_existing=True)
    )

def admin_count(db: Session, org_id: uuid.UUID) -> int:
    return db.scalar(
        select(func.count())
        .select_from(OrgMembership)
        .where(OrgMembership.org_id == org_id, OrgMembership.role == OrgRole.admin)
    ) or 0

def ensure_org_membership(db: Session, org_id: uuid.UUID, user_id: uuid.UUID) -> OrgMembership:
    m = db.get(OrgMembership, {"org_id": org_id, "user_id": user_id})
    if m is None:
        m = OrgMembership(org_id=org_id, user_id=user_id, role=OrgRole.member)
        db.add(m)
        db.flush()
    return m

def upsert_team_membership(db: Session, team_id: uuid.UUID, user_id: uuid.UUID, role: TeamRole) -> TeamMembership:
    m = db.get(TeamMembership, {"team_id": team_id, "user_id": user_id})
    if m is None:
        m = TeamMembership(team_id=team_id, user_id=user_id, role=role)
        db.add(m)
    elif m.role != role:
        m.role = role
    db.flush()
    return m

# ---- orgs ----

def create_org(db: Session, creator_id: uuid.UUID, name: str) -> Organization:
    org = Organization(name=clean_name(name), created_by=creator_id)
    db.add(org)
    db.flush()

    db.add(OrgMembership(org_id=org.id, user_id=creator_id, role=OrgRole.admin))
    db.commit()
    return org

def create_team(db: Session, org_id: uuid.UUID, creator_id: uuid.UUID, name: str) -> Team:
    team = Team(org_id=org_id, name=clean_name(name), created_by=creator_id)
    db.add(team)
    db.flush()

    db.add(TeamMembership(team_id=team.id, user_id=creator_id, role=TeamRole.leader))
    db.commit()
    return team

# ---- join codes ----

def rotate_join_code(
    db: Session,
    org_id: uuid.UUID,
    expires_at: datetime | None = None,
    max_uses: int | None = None,
) -> OrgJoinCode:
    if max_uses is not None and max_uses <= 0:
        raise DomainError("invalid_max_uses")

    # at most one live code per org
    db.execute(delete(OrgJoinCode).where(OrgJoinCode.org_id == org_id))
    jc = OrgJoinCode(org_id=org_id, code=random_code(12), expires_at=expires_at, max_uses=max_uses, uses=0)
    db.add(jc)
    db.commit()
    db.refresh(jc)
    return jc

def current_join_code(db: Session, org_id: uuid.UUID) -> OrgJoinCode | None:
    return db.scalar(
        select(OrgJoinCode)
        .where(OrgJoinCode.org_id == org_id)
        .order_by(OrgJoinCode.created_at.desc())
        .limit(1)
    )

def redeem_join_code(db: Session, user_id: uuid.UUID, code: str) -> uuid.UUID:
    code = (code or "").strip()
    jc = db.scalar(select(OrgJoinCode).where(OrgJoinCode.code == code)) if code else None
    if jc is None:
        raise DomainError("invalid")
    if jc.expires_at is not None and now_utc() > as_utc(jc.expires_at):
        raise DomainError("expired")
    if jc.max_uses is not None and jc.uses >= jc.max_uses:
        raise DomainError("exhausted")

    # conditional increment keeps the cap exact under concurrent redemption
    stmt = (
        update(OrgJoinCode)
        .where(OrgJoinCode.id == jc.id)
        .where(or_(OrgJoinCode.max_uses.is_(None), OrgJoinCode.uses < OrgJoinCode.max_uses))
        .values(uses=OrgJoinCode.uses + 1)
        .returning(OrgJoinCode.org_id)
        .execution_options(synchronize_session=False)
    )
    org_id = db.scalar(stmt)
    if org_id is None:
        raise DomainError("exhausted")

    ensure_org_membership(db, org_id, user_id)
    db.commit()
    return org_id

# ---- org roles ----

def update_org_role(db: Session, org_id: uuid.UUID, user_id: uuid.UUID, role) -> OrgMembership:
    try:
        new_role = OrgRole(role)
    except ValueError:
        raise DomainError("invalid_role")

    admins = db.scalars(admin_rows_for_update(org_id)).all()

    m = db.get(OrgMembership, {"org_id": org_id, "user_id": user_id})
    if m is None:
        raise HTTPException(status_code=404, detail="member not found")

    if m.role == OrgRole.admin and new_role != OrgRole.admin and len(admins) <= 1:
        raise DomainError("cannot_demote_last_admin")

    if m.role != new_role:
        logger.info("org %s: role of %s %s -> %s", org_id, user_id, m.role.value, new_role.value)
        m.role = new_role
    db.commit()
    return m

def remove_org_member(db: Session, org_id: uuid.UUID, user_id: uuid.UUID) -> None:
    target = db.get(OrgMembership, {"org_id": org_id, "user_id": user_id})
    if target is None:
        raise HTTPException(status_code=404, detail="member not found")
    if target.role == OrgRole.admin:
        raise DomainError("cannot_remove_admin")

    team_ids = _team_ids_in_org(org_id)
    task_ids = _task_ids_in_org(org_id)
    note_ids = select(TaskNote.id).where(TaskNote.task_id.in_(task_ids))

    db.execute(
        delete(TeamMembership).where(TeamMembership.user_id == user_id, TeamMembership.team_id.in_(team_ids))
    )
    db.execute(
        delete(TaskAssignment).where(TaskAssignment.user_id == user_id, TaskAssignment.task_id.in_(task_ids))
    )
    db.execute(
        delete(TaskNoteMention).where(TaskNoteMention.user_id == user_id, TaskNoteMention.note_id.in_(note_ids))
    )
    db.execute(delete(OrgMembership).where(OrgMembership.org_id == org_id, OrgMembership.user_id == user_id))
    db.commit()
    logger.info("org %s: removed member %s", org_id, user_id)

def leave_org(db: Session, org_id: uuid.UUID, user_id: uuid.UUID) -> None:
    m = db.get(OrgMembership, {"org_id": org_id, "user_id": user_id})
    if m is None:
        raise HTTPException(status_code=404, detail="not a member of this org")
    if m.role == OrgRole.admin:
        raise DomainError("cannot_leave_admin")

    db.execute(
        delete(TeamMembership).where(
            TeamMembership.user_id == user_id, TeamMembership.team_id.in_(_team_ids_in_org(org_id))
        )
    )
    db.execute(
        delete(TaskAssignment).where(
            TaskAssignment.user_id == user_id, TaskAssignment.task_id.in_(_task_ids_in_org(org_id))
        )
    )
    db.execute(delete(OrgMembership).where(OrgMembership.org_id == org_id, OrgMembership.user_id == user_id))
    db.commit()
    logger.info("org %s: member %s left", org_id, user_id)

# ---- teams ----

def add_team_member(db: Session, team: Team, user_id: uuid.UUID, role: TeamRole = TeamRole.member) -> TeamMembership:
    if db.get(User, user_id) is None:
        raise DomainError("user_not_found")

    # a team member is always an org member
    ensure_org_membership(db, team.org_id, user_id)
    m = upsert_team_membership(db, team.id, user_id, role)
    db.commit()
    return m

def remove_team_member(db: Session, team: Team, user_id: uuid.UUID) -> None:
    db.execute(
        delete(TaskAssignment).where(
            TaskAssignment.user_id == user_id,
            TaskAssignment.task_id.in_(select(Task.id).where(Task.team_id == team.id)),
        )
    )
    db.execute(delete(TeamMembership).where(TeamMembership.team_id == team.id, TeamMembership.user_id == user_id))
    db.commit()

# ---- task assignees ----

def assign_task(db: Session, task: Task, user_id: uuid.UUID) -> TaskAssignment:
    on_team = db.get(TeamMembership, {"team_id": task.team_id, "user_id": user_id})
    if on_team is None:
        raise DomainError("user_not_in_team")

    row = db.get(TaskAssignment, {"task_id": task.id, "user_id": user_id})
    if row is None:
        row = TaskAssignment(task_id=task.id, user_id=user_id)
        db.add(row)
    db.commit()
    return row

def unassign_task(db: Session, task: Task, user_id: uuid.UUID) -> None:
    db.execute(delete(TaskAssignment).where(TaskAssignment.task_id == task.id, TaskAssignment.user_id == user_id))
    db.commit()
