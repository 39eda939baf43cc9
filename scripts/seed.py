import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from flux.auth.identity import ensure_unique_handle
from flux.db import SessionLocal
from flux.models.enums import OrgRole, TaskStatus, TeamRole
from flux.models.membership import OrgMembership, TeamMembership
from flux.models.org import Organization
from flux.models.task import Task, TaskAssignment
from flux.models.team import Team
from flux.models.user import User
from flux.services.membership import current_join_code, rotate_join_code

@dataclass
class SeedResult:
    admin_email: str
    leader_email: str
    member_email: str
    org_id: uuid.UUID
    team_id: uuid.UUID
    task_id: uuid.UUID
    join_code: str

def get_or_create_user(db: Session, email: str, name: str | None = None) -> User:
    email = email.lower().strip()
    u = db.scalar(select(User).where(User.email == email))
    if u is None:
        u = User(email=email, name=name, handle=ensure_unique_handle(db, email.split("@")[0]))
        db.add(u)
        db.flush()
    return u

def get_or_create_org_membership(db: Session, user_id: uuid.UUID, org_id: uuid.UUID, role: OrgRole) -> OrgMembership:
    m = db.get(OrgMembership, {"org_id": org_id, "user_id": user_id})
    if m is None:
        m = OrgMembership(org_id=org_id, user_id=user_id, role=role)
        db.add(m)
    elif m.role != role:
        m.role = role
    db.flush()
    return m

def get_or_create_team_membership(
    db: Session, user_id: uuid.UUID, team_id: uuid.UUID, role: TeamRole
) -> TeamMembership:
    m = db.get(TeamMembership, {"team_id": team_id, "user_id": user_id})
    if m is None:
        m = TeamMembership(team_id=team_id, user_id=user_id, role=role)
        db.add(m)
    elif m.role != role:
        m.role = role
    db.flush()
    return m

def get_or_create_org(db: Session, name: str, created_by: uuid.UUID) -> Organization:
    o = db.scalar(select(Organization).where(Organization.name == name))
    if o is None:
        o = Organization(name=name, created_by=created_by)
        db.add(o)
        db.flush()
    return o

def get_or_create_team(db: Session, org_id: uuid.UUID, name: str, created_by: uuid.UUID) -> Team:
    t = db.scalar(select(Team).where(Team.org_id == org_id, Team.name == name))
    if t is None:
        t = Team(org_id=org_id, name=name, created_by=created_by)
        db.add(t)
        db.flush()
    return t

def get_or_create_task(
    db: Session,
    team_id: uuid.UUID,
    title: str,
    created_by: uuid.UUID,
    assignee: uuid.UUID,
) -> Task:
    t = db.scalar(select(Task).where(Task.team_id == team_id, Task.title == title))
    if t is None:
        t = Task(team_id=team_id, title=title, status=TaskStatus.todo, created_by=created_by)
        db.add(t)
        db.flush()
    # keep it stable if you re-run seed
    if db.get(TaskAssignment, {"task_id": t.id, "user_id": assignee}) is None:
        db.add(TaskAssignment(task_id=t.id, user_id=assignee))
        db.flush()
    return t

def seed() -> SeedResult:
    db = SessionLocal()
    try:
        admin = get_or_create_user(db, "admin@example.com", "admin")
        leader = get_or_create_user(db, "leader@example.com", "leader")
        member = get_or_create_user(db, "member@example.com", "member")

        org = get_or_create_org(db, "seeded org", admin.id)
        get_or_create_org_membership(db, admin.id, org.id, OrgRole.admin)
        get_or_create_org_membership(db, leader.id, org.id, OrgRole.member)
        get_or_create_org_membership(db, member.id, org.id, OrgRole.member)

        team = get_or_create_team(db, org.id, "seeded team", admin.id)
        get_or_create_team_membership(db, leader.id, team.id, TeamRole.leader)
        get_or_create_team_membership(db, member.id, team.id, TeamRole.member)

        task = get_or_create_task(db, team.id, "seeded task", created_by=leader.id, assignee=member.id)

        db.commit()

        jc = current_join_code(db, org.id) or rotate_join_code(db, org.id)

        return SeedResult(
            admin_email=admin.email,
            leader_email=leader.email,
            member_email=member.email,
            org_id=org.id,
            team_id=team.id,
            task_id=task.id,
            join_code=jc.code,
        )
    finally:
        db.close()

if __name__ == "__main__":
    r = seed()
    print("seed complete")
    print(f"org_id={r.org_id}")
    print(f"team_id={r.team_id}")
    print(f"task_id={r.task_id}")
    print(f"join_code={r.join_code}")
    print("users:")
    print(f"  admin:  {r.admin_email}")
    print(f"  leader: {r.leader_email}")
    print(f"  member: {r.member_email}")
